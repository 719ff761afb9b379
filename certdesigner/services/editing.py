from __future__ import annotations

import uuid
from collections import OrderedDict

from flask import current_app

from ..models import Settings
from ..shared.editor import PRIMARY_BUTTON, SECONDARY_BUTTON, EditorSession
from ..shared.errors import InvalidInput, NotFound
from ..shared.layout import resolve_layout
from . import repository
from .render_html import InteractiveLayout, build_interactive_layout, corner_at, hit_test

MAX_SESSIONS = 200

_EXTENSION_KEY = "certdesigner.editor_sessions"


def _sessions() -> OrderedDict:
    return current_app.extensions.setdefault(_EXTENSION_KEY, OrderedDict())


def open_session(template_id: str, scale: float = 1.0) -> tuple[str, EditorSession]:
    """Start editing a template with the current nudge settings."""
    template = repository.template_snapshot(template_id)
    settings = Settings.get_or_create().to_dict()
    session = EditorSession.for_template(template, settings, scale=scale)
    sessions = _sessions()
    session_id = str(uuid.uuid4())
    sessions[session_id] = session
    while len(sessions) > MAX_SESSIONS:
        evicted, _ = sessions.popitem(last=False)
        current_app.logger.info("[EDITOR] evicted session=%s", evicted)
    current_app.logger.info("[EDITOR] opened session=%s template=%s", session_id, template_id)
    return session_id, session


def get_session(session_id: str) -> EditorSession:
    session = _sessions().get(session_id)
    if session is None:
        raise NotFound("Editor session not found")
    return session


def close_session(session_id: str) -> None:
    if _sessions().pop(session_id, None) is None:
        raise NotFound("Editor session not found")


def save_session(session_id: str):
    """Persist the session's fields onto its template."""
    session = get_session(session_id)
    template, warnings = repository.save_template(session.template_id, session.save_payload())
    current_app.logger.info(
        "[EDITOR] saved session=%s template=%s fields=%d",
        session_id,
        template.id,
        len(session.fields),
    )
    return template, warnings


def canvas_layout(session: EditorSession) -> InteractiveLayout:
    template = {
        "id": session.template_id,
        "width": session.template_width,
        "height": session.template_height,
        "fields": session.fields,
    }
    plan = resolve_layout(template, None, False, include_empty_images=True)
    labels = {str(f.get("id")): str(f.get("name") or "") for f in session.fields}
    return build_interactive_layout(plan, session.scale, labels=labels)


def session_state(session_id: str, session: EditorSession) -> dict:
    layout = canvas_layout(session)
    return {
        "sessionId": session_id,
        "templateId": session.template_id,
        "state": session.state,
        "selectedFieldId": session.selected_field_id,
        "scale": session.scale,
        "scrollLeft": session.scroll_left,
        "scrollTop": session.scroll_top,
        "normalMoveAmount": session.normal_move,
        "shiftMoveAmount": session.shift_move,
        "canUndo": session.history.can_undo,
        "canRedo": session.history.can_redo,
        "canvasWidth": round(layout.width, 2),
        "canvasHeight": round(layout.height, 2),
        "fields": session.fields,
        "boxes": [
            {
                "fieldId": box.field_id,
                "frameStyle": box.frame_style,
                "textStyle": box.text_style,
            }
            for box in layout.boxes
        ],
    }


def _number(event: dict, key: str, default: float | None = None) -> float:
    value = event.get(key, default)
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{key} must be a number") from None


def _pointer_down(session: EditorSession, event: dict) -> bool:
    x, y = _number(event, "x"), _number(event, "y")
    button = int(_number(event, "button", PRIMARY_BUTTON))
    ctrl = bool(event.get("ctrl"))
    if ctrl and button == SECONDARY_BUTTON:
        return session.pointer_down_on_canvas(x, y, button=button, ctrl=ctrl)
    if button != PRIMARY_BUTTON:
        return False
    layout = canvas_layout(session)
    for box in reversed(layout.boxes):
        corner = corner_at(box, x, y)
        if corner:
            return session.pointer_down_on_handle(box.field_id, corner, x, y)
    field_id = hit_test(layout, x, y)
    if field_id is None:
        session.select(None)
        return False
    return session.pointer_down_on_field(field_id, x, y)


def _apply_event(session: EditorSession, event: dict) -> bool:
    kind = event.get("type")
    if kind == "pointerDown":
        return _pointer_down(session, event)
    if kind == "pointerMove":
        session.pointer_move(_number(event, "x"), _number(event, "y"))
        return True
    if kind == "pointerUp":
        session.pointer_up()
        return True
    if kind == "wheel":
        return session.wheel(_number(event, "deltaY"), ctrl=bool(event.get("ctrl")))
    if kind == "keyDown":
        return session.key_down(
            str(event.get("key") or ""),
            shift=bool(event.get("shift")),
            in_text_input=bool(event.get("inTextInput")),
        )
    if kind == "undo":
        return session.undo()
    if kind == "redo":
        return session.redo()
    if kind == "setScale":
        session.set_scale(_number(event, "scale"))
        return True
    if kind == "select":
        session.select(event.get("fieldId"))
        return True
    if kind == "addField":
        session.add_field(str(event.get("fieldType") or ""))
        return True
    if kind == "updateField":
        updates = event.get("updates")
        if not isinstance(updates, dict):
            raise InvalidInput("updates must be an object")
        session.update_field(
            str(event.get("fieldId") or ""),
            updates,
            commit=event.get("commit", True) is not False,
        )
        return True
    if kind == "deleteField":
        session.delete_field(str(event.get("fieldId") or ""))
        return True
    raise InvalidInput(f"Unknown editor event: {kind!r}")


def apply_events(session: EditorSession, events) -> list[bool]:
    """Feed designer input events to ``session`` in order.

    Each entry is ``{"type": ..., ...}``; the result says which events the
    editor consumed.
    """
    if not isinstance(events, list):
        raise InvalidInput("events must be a list")
    handled = []
    for event in events:
        if not isinstance(event, dict):
            raise InvalidInput("Each event must be an object")
        handled.append(bool(_apply_event(session, event)))
    return handled
