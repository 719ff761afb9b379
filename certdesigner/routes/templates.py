from __future__ import annotations

from io import BytesIO

from flask import Blueprint, current_app, jsonify, render_template, send_file

from ..services import repository, rendering
from ..shared.errors import InvalidInput
from ..shared.fields import sanitize_field_values
from ..shared.http import json_body, query_bool, query_float

bp = Blueprint("templates", __name__)


@bp.get("/api/templates")
def list_templates():
    active_only = bool(query_bool("active", False))
    templates = repository.list_templates(active_only=active_only)
    return jsonify([t.to_dict() for t in templates])


@bp.post("/api/templates")
def create_template():
    template, warnings = repository.create_template(json_body())
    current_app.logger.info("[TEMPLATE] created id=%s name=%s", template.id, template.name)
    return jsonify({**template.to_dict(), "warnings": warnings}), 201


@bp.get("/api/templates/<template_id>")
def get_template(template_id):
    return jsonify(repository.get_template(template_id).to_dict())


@bp.put("/api/templates/<template_id>")
def update_template(template_id):
    template, warnings = repository.save_template(template_id, json_body())
    return jsonify({**template.to_dict(), "warnings": warnings})


@bp.delete("/api/templates/<template_id>")
def delete_template(template_id):
    repository.delete_template(template_id)
    return jsonify({"message": "Template deleted successfully"})


@bp.get("/designer/<template_id>")
def designer(template_id):
    scale = query_float("scale", 1.0)
    template, layout = rendering.designer_layout(template_id, scale)
    return render_template(
        "designer/canvas.html",
        template=template,
        layout=layout,
    )


@bp.post("/api/templates/<template_id>/preview")
def preview_template(template_id):
    payload = json_body()
    field_values = sanitize_field_values(payload.get("fieldValues") or {})
    background_visible = payload.get("backgroundVisible")
    if background_visible is not None and not isinstance(background_visible, bool):
        raise InvalidInput("backgroundVisible must be a boolean")
    result = rendering.render_raster(template_id, field_values, background_visible)
    response = send_file(
        BytesIO(result.content),
        mimetype=result.mimetype,
        download_name=f"preview-{template_id}.jpg",
    )
    if result.warnings:
        response.headers["X-Render-Warnings"] = str(len(result.warnings))
    return response
