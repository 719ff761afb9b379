from __future__ import annotations

from flask import Blueprint, jsonify

from ..services import editing
from ..shared.errors import InvalidInput
from ..shared.http import json_body

bp = Blueprint("editor", __name__, url_prefix="/api/editor")


@bp.post("")
def open_session():
    payload = json_body()
    template_id = str(payload.get("templateId") or "").strip()
    if not template_id:
        raise InvalidInput("templateId is required")
    scale = payload.get("scale", 1.0)
    if isinstance(scale, bool) or not isinstance(scale, (int, float)):
        raise InvalidInput("scale must be a number")
    session_id, session = editing.open_session(template_id, float(scale))
    return jsonify(editing.session_state(session_id, session)), 201


@bp.get("/<session_id>")
def get_session(session_id):
    session = editing.get_session(session_id)
    return jsonify(editing.session_state(session_id, session))


@bp.post("/<session_id>/events")
def post_events(session_id):
    session = editing.get_session(session_id)
    handled = editing.apply_events(session, json_body().get("events"))
    return jsonify({**editing.session_state(session_id, session), "handled": handled})


@bp.post("/<session_id>/save")
def save_session(session_id):
    template, warnings = editing.save_session(session_id)
    return jsonify({"template": template.to_dict(), "warnings": warnings})


@bp.delete("/<session_id>")
def close_session(session_id):
    editing.close_session(session_id)
    return jsonify({"message": "Editor session closed"})
