import os
import pathlib
import sys
from io import BytesIO

import pytest
import reportlab
from PIL import Image

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from certdesigner.app import create_app, db
from certdesigner.models import CertificateTemplate, Settings

# reportlab ships Bitstream Vera, which gives the tests a real TrueType file
VERA_TTF = os.path.join(os.path.dirname(reportlab.__file__), "fonts", "Vera.ttf")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "slow" in item.keywords or "quarantine" in item.keywords:
            continue
        item.add_marker("full")
        if "no_smoke" in item.keywords:
            continue
        item.add_marker("smoke")


@pytest.fixture
def asset_root(tmp_path):
    root = tmp_path / "assets"
    root.mkdir()
    return root


@pytest.fixture
def app(asset_root, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("ASSET_ROOT", str(asset_root))
    monkeypatch.delenv("AUTO_CREATE_TABLES", raising=False)
    application = create_app()
    with application.app_context():
        db.create_all()
        Settings.get_or_create()
        yield application
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def png_bytes(size=(40, 20), color=(200, 30, 30, 255)) -> bytes:
    buf = BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def write_asset(root, rel_path: str, data: bytes) -> str:
    path = pathlib.Path(root) / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return "/assets/" + rel_path


def install_font(root, name: str) -> pathlib.Path:
    fonts_dir = pathlib.Path(root) / "fonts" / "user-fonts"
    fonts_dir.mkdir(parents=True, exist_ok=True)
    target = fonts_dir / f"{name}.ttf"
    target.write_bytes(pathlib.Path(VERA_TTF).read_bytes())
    return target


def text_field(field_id="name", **overrides) -> dict:
    field = {
        "id": field_id,
        "name": field_id,
        "type": "text",
        "x": 50.0,
        "y": 50.0,
        "width": 100.0,
        "height": 20.0,
        "fontSize": 16,
        "fontFamily": "TimesRoman",
        "fontWeight": "normal",
        "color": "#000000",
        "align": "left",
        "placeholder": "",
    }
    field.update(overrides)
    return field


def image_field(field_id="sig", url="", **overrides) -> dict:
    field = {
        "id": field_id,
        "name": field_id,
        "type": "signature",
        "x": 20.0,
        "y": 150.0,
        "width": 50.0,
        "height": 25.0,
        "signatureImageUrl": url,
    }
    field.update(overrides)
    return field


@pytest.fixture
def background_url(asset_root):
    return write_asset(
        asset_root,
        "certificate-templates/tpl/background_1.png",
        png_bytes((297, 210), (240, 240, 230, 255)),
    )


@pytest.fixture
def make_template(app, background_url):
    def _make(fields=None, width=297.0, height=210.0, background=None, **extra):
        template = CertificateTemplate(
            name=extra.pop("name", "Award"),
            background_image_url=background if background is not None else background_url,
            width=width,
            height=height,
            fields=fields if fields is not None else [text_field()],
            **extra,
        )
        db.session.add(template)
        db.session.commit()
        return template

    return _make
