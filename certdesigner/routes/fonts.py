from __future__ import annotations

from flask import Blueprint, jsonify, request, send_file

from ..shared.errors import InvalidInput
from ..shared.fonts import delete_font, font_file_path, list_fonts, save_font
from ..shared.storage import get_asset_store

bp = Blueprint("fonts", __name__)


@bp.get("/api/fonts")
def list_custom_fonts():
    return jsonify({"fonts": list_fonts(get_asset_store())})


@bp.post("/api/fonts")
def upload_font():
    file = request.files.get("font")
    if not file or not file.filename:
        raise InvalidInput("No font file provided")
    stored = save_font(get_asset_store(), file.filename, file.read())
    return jsonify(
        {
            "success": True,
            "fontName": stored,
            "message": "Font uploaded successfully",
        }
    )


@bp.delete("/api/fonts")
def remove_font():
    name = request.args.get("fontName") or ""
    delete_font(get_asset_store(), name)
    return jsonify({"success": True, "message": "Font deleted successfully"})


@bp.get("/fonts/<name>.ttf")
def serve_font(name):
    path = font_file_path(get_asset_store(), name)
    response = send_file(path, mimetype="font/ttf")
    response.headers["Cache-Control"] = "public, max-age=3600"
    return response
