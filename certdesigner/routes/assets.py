from __future__ import annotations

import mimetypes
import os

from flask import Blueprint, current_app, jsonify, request, send_file

from ..shared.errors import InvalidInput, NotFound
from ..shared.http import json_body
from ..shared.storage import get_asset_store, template_folder_from_url

bp = Blueprint("assets", __name__)


@bp.get("/assets/<path:asset_path>")
@bp.get("/api/assets/<path:asset_path>")
def serve_asset(asset_path):
    path = get_asset_store().resolve(asset_path)
    if not os.path.isfile(path):
        raise NotFound("File not found")
    mimetype = mimetypes.guess_type(path)[0] or "application/octet-stream"
    response = send_file(path, mimetype=mimetype)
    response.headers["Cache-Control"] = "public, max-age=31536000, immutable"
    return response


@bp.post("/api/upload")
def upload_asset():
    file = request.files.get("file")
    if not file or not file.filename:
        raise InvalidInput("No file provided")
    store = get_asset_store()
    template_folder = request.form.get("templateId") or template_folder_from_url(
        request.form.get("oldFilePath")
    )
    url, folder = store.save_upload(
        request.form.get("fileType") or "",
        template_folder,
        file.filename,
        file.read(),
    )
    old_file = request.form.get("oldFilePath")
    if old_file:
        _remove_replaced(store, old_file)
    current_app.logger.info("[ASSET] stored %s", url)
    return jsonify({"success": True, "filePath": url, "templateId": folder})


def _remove_replaced(store, reference: str) -> None:
    try:
        store.delete(store.relative_from_reference(reference))
    except NotFound:
        current_app.logger.info("[ASSET] replaced file already gone: %s", reference)


@bp.delete("/api/upload")
def delete_asset():
    reference = json_body().get("filePath")
    if not reference:
        raise InvalidInput("File path required")
    store = get_asset_store()
    store.delete(store.relative_from_reference(reference))
    current_app.logger.info("[ASSET] deleted %s", reference)
    return jsonify({"success": True})
