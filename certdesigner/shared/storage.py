from __future__ import annotations

import base64
import binascii
import os
import re
import tempfile
import time
import uuid

from flask import current_app

from .errors import InvalidInput, NotFound

ASSET_URL_PREFIX = "/assets/"
TEMPLATE_ASSET_DIR = "certificate-templates"
FONT_ASSET_DIR = os.path.join("fonts", "user-fonts")

UPLOAD_FILE_TYPES = ("background", "signature", "image")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")

_TEMPLATE_FOLDER_RE = re.compile(r"/certificate-templates/([^/]+)/")


def ensure_dir(path: str) -> None:
    """Create directory if missing (mkdir -p equivalent)."""
    os.makedirs(path, exist_ok=True)


def write_atomic(path: str, data, mode: str = "wb") -> None:
    """Write data to a temporary file then atomically rename to target path."""
    dir_path = os.path.dirname(path)
    ensure_dir(dir_path)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path)
    try:
        with os.fdopen(fd, mode) as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def decode_data_uri(reference: str) -> bytes:
    header, sep, payload = reference.partition(",")
    if not sep or not header.startswith("data:"):
        raise InvalidInput("Malformed data URI")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload, validate=False)
        return payload.encode("latin-1")
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput(f"Malformed data URI: {exc}") from None


class AssetStore:
    """Files under a single root; nothing outside the root is reachable."""

    def __init__(self, root: str):
        self.root = os.path.realpath(root)

    def resolve(self, rel_path: str) -> str:
        raw = (rel_path or "").strip().replace("\\", "/").lstrip("/")
        if not raw:
            raise InvalidInput("Asset path required")
        resolved = os.path.realpath(os.path.join(self.root, raw))
        if resolved != self.root and not resolved.startswith(f"{self.root}{os.sep}"):
            raise InvalidInput(f"Asset path escapes asset root: {rel_path!r}")
        return resolved

    def exists(self, rel_path: str) -> bool:
        try:
            return os.path.isfile(self.resolve(rel_path))
        except InvalidInput:
            return False

    def read(self, rel_path: str) -> bytes:
        path = self.resolve(rel_path)
        if not os.path.isfile(path):
            raise NotFound(f"Asset not found: {rel_path}")
        with open(path, "rb") as fh:
            return fh.read()

    def write(self, rel_path: str, data: bytes) -> str:
        path = self.resolve(rel_path)
        write_atomic(path, data)
        return path

    def delete(self, rel_path: str) -> None:
        path = self.resolve(rel_path)
        if not os.path.isfile(path):
            raise NotFound(f"Asset not found: {rel_path}")
        os.remove(path)

    def listdir(self, rel_dir: str) -> list[str]:
        path = self.resolve(rel_dir)
        if not os.path.isdir(path):
            return []
        return sorted(os.listdir(path))

    def relative_from_reference(self, reference: str) -> str:
        raw = (reference or "").strip()
        if raw.startswith(ASSET_URL_PREFIX):
            return raw[len(ASSET_URL_PREFIX):]
        if raw.startswith("/api/assets/"):
            return raw[len("/api/assets/"):]
        if "://" in raw:
            raise NotFound(f"Remote assets are not supported: {raw}")
        return raw

    @staticmethod
    def public_url(reference: str | None) -> str:
        """URL a browser can load for a stored image reference.

        Data URIs and asset URLs pass through; a bare path such as
        ``certificate-templates/<id>/bg.png`` is served from ``/assets/``.
        """
        raw = (reference or "").strip()
        if not raw or raw.startswith(("data:", ASSET_URL_PREFIX, "/api/assets/")):
            return raw
        if "://" in raw:
            return raw
        return ASSET_URL_PREFIX + raw.replace("\\", "/").lstrip("/")

    def read_reference(self, reference: str) -> bytes:
        """Bytes behind an image reference stored on a template or field."""
        raw = (reference or "").strip()
        if not raw:
            raise NotFound("Empty asset reference")
        if raw.startswith("data:"):
            return decode_data_uri(raw)
        return self.read(self.relative_from_reference(raw))

    def save_upload(
        self,
        file_type: str,
        template_folder: str | None,
        filename: str,
        data: bytes,
    ) -> tuple[str, str]:
        if file_type not in UPLOAD_FILE_TYPES:
            raise InvalidInput(f"Unsupported upload type: {file_type!r}")
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in IMAGE_EXTENSIONS:
            raise InvalidInput("Only PNG and JPEG images are supported")
        folder = (template_folder or "").strip() or str(uuid.uuid4())
        if not all(ch.isalnum() or ch == "-" for ch in folder):
            raise InvalidInput("Invalid template folder")
        stamp = int(time.time() * 1000)
        rel_path = "/".join((TEMPLATE_ASSET_DIR, folder, f"{file_type}_{stamp}{ext}"))
        while self.exists(rel_path):
            stamp += 1
            rel_path = "/".join((TEMPLATE_ASSET_DIR, folder, f"{file_type}_{stamp}{ext}"))
        self.write(rel_path, data)
        return ASSET_URL_PREFIX + rel_path, folder


def template_folder_from_url(url: str | None) -> str | None:
    """Upload folder of an existing asset URL, so replacements land beside it."""
    match = _TEMPLATE_FOLDER_RE.search(url or "")
    return match.group(1) if match else None


def get_asset_store() -> AssetStore:
    return AssetStore(current_app.config["ASSET_ROOT"])
