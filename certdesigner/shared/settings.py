from __future__ import annotations

from .errors import InvalidInput

MOVE_AMOUNT_MAX_MM = 10.0

_MOVE_KEYS = {
    "normalMoveAmount": "normal_move_amount",
    "shiftMoveAmount": "shift_move_amount",
}

_MOVE_LABELS = {
    "normalMoveAmount": "Normal move amount",
    "shiftMoveAmount": "Shift move amount",
}


def sanitize_settings_payload(payload) -> dict:
    """Validated model attribute updates from a settings PUT body."""
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid request payload.")
    updates: dict = {}
    for key, attr in _MOVE_KEYS.items():
        if key not in payload or payload[key] is None:
            continue
        value = payload[key]
        if isinstance(value, bool):
            raise InvalidInput(f"{_MOVE_LABELS[key]} must be a number")
        try:
            amount = float(value)
        except (TypeError, ValueError):
            raise InvalidInput(f"{_MOVE_LABELS[key]} must be a number") from None
        if amount <= 0 or amount > MOVE_AMOUNT_MAX_MM:
            raise InvalidInput(
                f"{_MOVE_LABELS[key]} must be between 0 and {MOVE_AMOUNT_MAX_MM:g} mm"
            )
        updates[attr] = amount
    if "defaultBackgroundVisible" in payload:
        visible = payload["defaultBackgroundVisible"]
        if not isinstance(visible, bool):
            raise InvalidInput("defaultBackgroundVisible must be a boolean")
        updates["default_background_visible"] = visible
    return updates
