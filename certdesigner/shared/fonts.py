from __future__ import annotations

import hashlib
import os
import re
from io import BytesIO
from typing import Iterable
from urllib.parse import quote

from flask import current_app
from PIL import ImageFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from .errors import InvalidInput, NotFound
from .storage import FONT_ASSET_DIR, AssetStore

FONT_EXTENSION = ".ttf"
FONT_URL_PREFIX = "/fonts/"

SERIF = "TimesRoman"
SANS = "Helvetica"
MONO = "Courier"
DEFAULT_FAMILY = SERIF

BUILTIN_FAMILIES: tuple[str, ...] = (SERIF, SANS, MONO)

_BUILTIN_ALIASES: dict[str, str] = {
    "timesroman": SERIF,
    "times-roman": SERIF,
    "times": SERIF,
    "times new roman": SERIF,
    "serif": SERIF,
    "helvetica": SANS,
    "arial": SANS,
    "sans": SANS,
    "sans-serif": SANS,
    "courier": MONO,
    "courier new": MONO,
    "monospace": MONO,
    "mono": MONO,
}

_PDF_FONTS: dict[tuple[str, str], str] = {
    (SERIF, "normal"): "Times-Roman",
    (SERIF, "bold"): "Times-Bold",
    (SANS, "normal"): "Helvetica",
    (SANS, "bold"): "Helvetica-Bold",
    (MONO, "normal"): "Courier",
    (MONO, "bold"): "Courier-Bold",
}

_RASTER_FONT_PATHS: dict[tuple[str, str], str] = {
    (SERIF, "normal"): "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf",
    (SERIF, "bold"): "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Bold.ttf",
    (SANS, "normal"): "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    (SANS, "bold"): "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    (MONO, "normal"): "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    (MONO, "bold"): "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
}

_CSS_BUILTIN_STACKS: dict[str, str] = {
    SERIF: '"Times New Roman", Times, serif',
    SANS: "Helvetica, Arial, sans-serif",
    MONO: '"Courier New", Courier, monospace',
}

_SERIF_HINTS = ("TimesRoman", "Times-Roman", "Times New Roman", "Georgia", "Garamond")
_SANS_HINTS = ("Helvetica", "Arial", "Verdana", "Tahoma")
_MONO_HINTS = ("Courier", "Courier New", "Monaco", "Consolas")

_SERIF_FALLBACK = 'Georgia, "Times New Roman", Times, serif'
_SANS_FALLBACK = "Arial, Helvetica, sans-serif"
_MONO_FALLBACK = '"Courier New", Courier, monospace'

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9\-_.]")


def builtin_family(name: str | None) -> str | None:
    key = (name or "").strip().lower()
    if not key:
        return None
    return _BUILTIN_ALIASES.get(key)


def is_builtin(name: str | None) -> bool:
    return builtin_family(name) is not None


def normalize_weight(weight: str | None) -> str:
    return "bold" if (weight or "").lower() == "bold" else "normal"


def get_font_family_with_fallback(font_name: str | None) -> str:
    """CSS ``font-family`` value for the editor; always a usable stack."""
    name = (font_name or "").strip().replace("'", "").replace('"', "") or DEFAULT_FAMILY
    lowered = name.lower()
    if any(hint.lower() in lowered for hint in _SERIF_HINTS):
        fallback = _SERIF_FALLBACK
    elif any(hint.lower() in lowered for hint in _SANS_HINTS):
        fallback = _SANS_FALLBACK
    elif any(hint.lower() in lowered for hint in _MONO_HINTS):
        fallback = _MONO_FALLBACK
    else:
        fallback = _SERIF_FALLBACK
    return f"'{name}', {fallback}"


def css_font_stack(font_name: str | None) -> str:
    family = builtin_family(font_name)
    if family:
        return _CSS_BUILTIN_STACKS[family]
    return get_font_family_with_fallback(font_name)


# --- custom font files -------------------------------------------------------


def sanitize_font_filename(filename: str) -> str:
    base, ext = os.path.splitext(os.path.basename(filename or ""))
    if ext.lower() != FONT_EXTENSION:
        raise InvalidInput("Only .ttf font files are supported")
    sanitized = _UNSAFE_FILENAME_CHARS.sub("_", base)
    if not sanitized.strip("._"):
        raise InvalidInput("Invalid font file name")
    return f"{sanitized}{FONT_EXTENSION}"


def _check_font_name(name: str) -> str:
    raw = (name or "").strip()
    if not raw:
        raise InvalidInput("Font name not provided")
    if ".." in raw or "/" in raw or "\\" in raw:
        raise InvalidInput("Invalid font name")
    return raw


def _font_rel_path(filename: str) -> str:
    return "/".join((FONT_ASSET_DIR.replace(os.sep, "/"), filename))


def list_fonts(store: AssetStore) -> list[str]:
    return [
        os.path.splitext(name)[0]
        for name in store.listdir(FONT_ASSET_DIR)
        if name.endswith(FONT_EXTENSION)
    ]


def save_font(store: AssetStore, filename: str, data: bytes) -> str:
    stored_name = sanitize_font_filename(filename)
    if not data:
        raise InvalidInput("Font file is empty")
    store.write(_font_rel_path(stored_name), data)
    current_app.logger.info("[FONT] stored %s (%d bytes)", stored_name, len(data))
    return stored_name


def delete_font(store: AssetStore, filename: str) -> None:
    """Delete by exact stored filename; fields using the font fall back on render."""
    name = _check_font_name(filename)
    if not name.endswith(FONT_EXTENSION):
        name = f"{name}{FONT_EXTENSION}"
    store.delete(_font_rel_path(name))
    current_app.logger.info("[FONT] deleted %s", name)


def font_file_path(store: AssetStore, family: str) -> str:
    name = _check_font_name(family)
    path = store.resolve(_font_rel_path(f"{name}{FONT_EXTENSION}"))
    if not os.path.isfile(path):
        raise NotFound(f"Font not found: {family}")
    return path


def read_font_bytes(store: AssetStore, family: str) -> bytes | None:
    try:
        name = _check_font_name(family)
        return store.read(_font_rel_path(f"{name}{FONT_EXTENSION}"))
    except (InvalidInput, NotFound):
        return None


# --- per-backend registries --------------------------------------------------


class FontFaceRegistry:
    """``@font-face`` rules for one interactive render session.

    Adding a family twice is a no-op, so the rule for a font is injected once
    per session however many fields use it.
    """

    def __init__(self, url_prefix: str = FONT_URL_PREFIX):
        self.url_prefix = url_prefix
        self._rules: dict[str, str] = {}

    def add(self, family: str | None) -> bool:
        name = (family or "").strip()
        if not name or is_builtin(name) or name in self._rules:
            return False
        safe = name.replace("'", "").replace('"', "")
        url = f"{self.url_prefix}{quote(safe)}{FONT_EXTENSION}"
        self._rules[name] = (
            "@font-face { "
            f"font-family: '{safe}'; "
            f"src: url('{url}') format('truetype'); "
            "font-weight: normal; font-style: normal; }"
        )
        return True

    def __contains__(self, family: str) -> bool:
        return family in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def families(self) -> list[str]:
        return list(self._rules)

    def css(self) -> str:
        return "\n".join(self._rules.values())


class PdfFontRegistry:
    """Maps field font keys to reportlab font names for one render.

    Custom fonts are read once and registered before any text is drawn. The
    reportlab font table is process wide, so registrations use a name derived
    from the font bytes; a replaced font file never reuses a stale entry.
    """

    def __init__(self, store: AssetStore):
        self._store = store
        self._custom: dict[str, str] = {}
        self._missing: set[str] = set()
        self.warnings: list[str] = []

    def prepare(self, families: Iterable[str]) -> None:
        for family in families:
            if not family or is_builtin(family):
                continue
            if family in self._custom or family in self._missing:
                continue
            data = read_font_bytes(self._store, family)
            if data is None:
                self._degrade(family, "font file not found")
                continue
            digest = hashlib.sha1(data).hexdigest()[:12]
            internal = f"CD-{re.sub(r'[^A-Za-z0-9]', '', family)[:40]}-{digest}"
            if internal not in pdfmetrics.getRegisteredFontNames():
                try:
                    pdfmetrics.registerFont(TTFont(internal, BytesIO(data)))
                except Exception as exc:
                    self._degrade(family, f"unreadable font: {exc}")
                    continue
            self._custom[family] = internal

    def _degrade(self, family: str, reason: str) -> None:
        self._missing.add(family)
        message = f"Font {family} unavailable ({reason}); using {DEFAULT_FAMILY}."
        self.warnings.append(message)
        current_app.logger.warning("[FONT] pdf family=%s fallback=%s reason=%s", family, DEFAULT_FAMILY, reason)

    def font_name(self, family: str | None, weight: str | None = None) -> str:
        builtin = builtin_family(family)
        if builtin:
            return _PDF_FONTS[(builtin, normalize_weight(weight))]
        if family in self._custom:
            return self._custom[family]
        return _PDF_FONTS[(DEFAULT_FAMILY, normalize_weight(weight))]


class RasterFontRegistry:
    """Pillow font objects for one raster render.

    ``prepare`` must run before the draw loop; a family that was not prepared
    falls back to the built-in serif face.
    """

    def __init__(self, store: AssetStore, builtin_paths: dict | None = None):
        self._store = store
        self._paths = dict(builtin_paths or _RASTER_FONT_PATHS)
        self._custom: dict[str, bytes] = {}
        self._missing: set[str] = set()
        self._cache: dict[tuple[str, str, int], ImageFont.ImageFont] = {}
        self.warnings: list[str] = []

    def prepare(self, families: Iterable[str]) -> None:
        for family in families:
            if not family or is_builtin(family):
                continue
            if family in self._custom or family in self._missing:
                continue
            data = read_font_bytes(self._store, family)
            if data is None:
                self._degrade(family, "font file not found")
                continue
            try:
                ImageFont.truetype(BytesIO(data), 12)
            except OSError as exc:
                self._degrade(family, f"unreadable font: {exc}")
                continue
            self._custom[family] = data

    def _degrade(self, family: str, reason: str) -> None:
        self._missing.add(family)
        self.warnings.append(
            f"Font {family} unavailable ({reason}); using {DEFAULT_FAMILY}."
        )
        current_app.logger.warning("[FONT] raster family=%s fallback=%s reason=%s", family, DEFAULT_FAMILY, reason)

    def get(self, family: str | None, weight: str | None, size_px: int):
        size_px = max(int(size_px), 1)
        weight = normalize_weight(weight)
        key_family = family if family in self._custom else (builtin_family(family) or DEFAULT_FAMILY)
        cache_key = (key_family, weight, size_px)
        font = self._cache.get(cache_key)
        if font is None:
            if key_family in self._custom:
                font = ImageFont.truetype(BytesIO(self._custom[key_family]), size_px)
            else:
                font = self._load_builtin(key_family, weight, size_px)
            self._cache[cache_key] = font
        return font

    def _load_builtin(self, family: str, weight: str, size_px: int):
        path = self._paths.get((family, weight)) or self._paths.get((family, "normal"))
        try:
            return ImageFont.truetype(path, size_px)
        except (OSError, TypeError, AttributeError):
            current_app.logger.info("[FONT] raster builtin %s missing at %s; using default face", family, path)
            return ImageFont.load_default(size=size_px)
