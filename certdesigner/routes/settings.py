from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..app import db
from ..models import Settings
from ..shared.http import json_body
from ..shared.settings import sanitize_settings_payload

bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@bp.get("")
def get_settings():
    return jsonify({"settings": Settings.get_or_create().to_dict()})


@bp.put("")
def update_settings():
    updates = sanitize_settings_payload(json_body())
    settings = Settings.get_or_create()
    for attr, value in updates.items():
        setattr(settings, attr, value)
    db.session.commit()
    current_app.logger.info("[SETTINGS] updated %s", ",".join(sorted(updates)) or "nothing")
    return jsonify(
        {"settings": settings.to_dict(), "message": "Settings updated successfully"}
    )
