from __future__ import annotations

import random
import re
import string
import time
from copy import deepcopy
from typing import Iterable

from .errors import InvalidInput

FIELD_TYPES: tuple[str, ...] = ("text", "date", "signature", "image")
TEXT_FIELD_TYPES: frozenset[str] = frozenset({"text", "date"})
IMAGE_FIELD_TYPES: frozenset[str] = frozenset({"signature", "image"})

ALIGNMENTS: tuple[str, ...] = ("left", "center", "right")
FONT_WEIGHTS: tuple[str, ...] = ("normal", "bold")

DEFAULT_FONT_FAMILY = "TimesRoman"
DEFAULT_FONT_SIZE_PT = 16.0
DEFAULT_COLOR = "#000000"

# new fields land here until the user drags them
INSERT_X_MM = 50.0
INSERT_Y_MM = 50.0

_DEFAULT_SIZE_BY_TYPE: dict[str, tuple[float, float]] = {
    "text": (100.0, 20.0),
    "date": (100.0, 20.0),
    "signature": (50.0, 25.0),
    "image": (50.0, 25.0),
}

_TEXT_DEFAULTS = {
    "fontSize": DEFAULT_FONT_SIZE_PT,
    "fontFamily": DEFAULT_FONT_FAMILY,
    "fontWeight": "normal",
    "color": DEFAULT_COLOR,
    "align": "left",
    "placeholder": "",
}

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")
_SHORT_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{3}$")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def default_size(field_type: str) -> tuple[float, float]:
    return _DEFAULT_SIZE_BY_TYPE.get(field_type, _DEFAULT_SIZE_BY_TYPE["text"])


def is_text_field(field: dict) -> bool:
    return field.get("type") in TEXT_FIELD_TYPES


def is_image_field(field: dict) -> bool:
    return field.get("type") in IMAGE_FIELD_TYPES


def generate_field_id() -> str:
    """Unique within an editing session: millisecond clock plus a random suffix."""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"field_{int(time.time() * 1000)}_{suffix}"


def new_field(field_type: str, index: int) -> dict:
    if field_type not in FIELD_TYPES:
        raise InvalidInput(f"Unsupported field type: {field_type!r}")
    width, height = default_size(field_type)
    field = {
        "id": generate_field_id(),
        "name": f"{field_type}_field_{index}",
        "type": field_type,
        "x": INSERT_X_MM,
        "y": INSERT_Y_MM,
        "width": width,
        "height": height,
    }
    field.update(deepcopy(_TEXT_DEFAULTS))
    field["placeholder"] = f"Enter {field_type}"
    if field_type in IMAGE_FIELD_TYPES:
        field["signatureImageUrl"] = ""
    return field


def validate_field_position(
    field: dict, template_width: float, template_height: float
) -> bool:
    try:
        x = float(field.get("x", 0))
        y = float(field.get("y", 0))
    except (TypeError, ValueError):
        return False
    if x < 0 or y < 0:
        return False
    if x > template_width or y > template_height:
        return False
    if is_image_field(field):
        width = field.get("width")
        height = field.get("height")
        try:
            if width is not None and x + float(width) > template_width:
                return False
            if height is not None and y + float(height) > template_height:
                return False
        except (TypeError, ValueError):
            return False
    return True


def out_of_bounds_fields(
    fields: Iterable[dict], template_width: float, template_height: float
) -> list[str]:
    return [
        str(field.get("id"))
        for field in fields
        if not validate_field_position(field, template_width, template_height)
    ]


def _number(raw: dict, key: str, default: float | None = None) -> float:
    value = raw.get(key, default)
    if value is None or value == "":
        if default is None:
            raise InvalidInput(f"Field attribute {key!r} is required")
        return float(default)
    if isinstance(value, bool):
        raise InvalidInput(f"Field attribute {key!r} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Field attribute {key!r} must be a number") from None
    if number != number or number in (float("inf"), float("-inf")):
        raise InvalidInput(f"Field attribute {key!r} must be finite")
    return number


def normalize_color(value) -> str:
    raw = str(value or "").strip()
    if _HEX_COLOR.match(raw):
        return raw.lower()
    if _SHORT_HEX_COLOR.match(raw):
        return "#" + "".join(ch * 2 for ch in raw[1:]).lower()
    raise InvalidInput(f"Invalid colour: {value!r}")


def color_to_rgb(color: str) -> tuple[int, int, int]:
    normalized = normalize_color(color)
    return (
        int(normalized[1:3], 16),
        int(normalized[3:5], 16),
        int(normalized[5:7], 16),
    )


def sanitize_field(raw: dict) -> dict:
    if not isinstance(raw, dict):
        raise InvalidInput("Each field must be an object")
    field_type = str(raw.get("type") or "").strip().lower()
    if field_type not in FIELD_TYPES:
        raise InvalidInput(f"Unsupported field type: {raw.get('type')!r}")
    field_id = str(raw.get("id") or "").strip()
    if not field_id:
        raise InvalidInput("Field id is required")
    default_w, default_h = default_size(field_type)
    field = {
        "id": field_id,
        "name": str(raw.get("name") or field_id),
        "type": field_type,
        "x": _number(raw, "x"),
        "y": _number(raw, "y"),
        "width": _number(raw, "width", default_w),
        "height": _number(raw, "height", default_h),
    }
    if field["width"] <= 0 or field["height"] <= 0:
        raise InvalidInput(f"Field {field_id} must have a positive size")

    font_size = _number(raw, "fontSize", DEFAULT_FONT_SIZE_PT)
    if font_size <= 0:
        raise InvalidInput(f"Field {field_id} font size must be positive")
    field["fontSize"] = font_size
    field["fontFamily"] = str(raw.get("fontFamily") or DEFAULT_FONT_FAMILY).strip()
    weight = str(raw.get("fontWeight") or "normal").lower()
    # "light" was offered by older editors; no backend draws it differently
    field["fontWeight"] = weight if weight in FONT_WEIGHTS else "normal"
    field["color"] = normalize_color(raw.get("color") or DEFAULT_COLOR)
    align = str(raw.get("align") or raw.get("textAlign") or "left").lower()
    if align not in ALIGNMENTS:
        raise InvalidInput(f"Field {field_id} has invalid alignment {align!r}")
    field["align"] = align
    field["placeholder"] = str(raw.get("placeholder") or "")
    if field_type in IMAGE_FIELD_TYPES:
        field["signatureImageUrl"] = str(raw.get("signatureImageUrl") or "")
    return field


def sanitize_fields(raw_fields) -> list[dict]:
    if raw_fields is None:
        return []
    if not isinstance(raw_fields, list):
        raise InvalidInput("fields must be a list")
    fields: list[dict] = []
    seen: set[str] = set()
    for raw in raw_fields:
        field = sanitize_field(raw)
        if field["id"] in seen:
            raise InvalidInput(f"Duplicate field id {field['id']}")
        seen.add(field["id"])
        fields.append(field)
    return fields


def _dimension(payload: dict, key: str) -> float:
    try:
        value = _number(payload, key)
    except InvalidInput:
        raise InvalidInput(f"Template {key} must be a number") from None
    if value <= 0:
        raise InvalidInput(f"Template {key} must be greater than zero")
    return value


def sanitize_template_payload(payload, *, partial: bool = False) -> dict:
    """Validate a create (``partial=False``) or update body for a template.

    Keys use the camelCase names the designer sends. The returned dict uses
    model attribute names and only contains keys present in the payload when
    ``partial`` is true.
    """
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid request payload.")
    if not partial:
        missing = [
            key
            for key in ("name", "backgroundImageUrl", "width", "height")
            if payload.get(key) in (None, "")
        ]
        if missing:
            raise InvalidInput(
                "Missing required fields: " + ", ".join(missing)
            )
    data: dict = {}
    if "name" in payload:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise InvalidInput("Template name is required")
        data["name"] = name
    if "description" in payload:
        data["description"] = (str(payload.get("description") or "").strip() or None)
    if "backgroundImageUrl" in payload:
        background = str(payload.get("backgroundImageUrl") or "").strip()
        if not background:
            raise InvalidInput("Background image is required")
        data["background_image_url"] = background
    if "width" in payload:
        data["width"] = _dimension(payload, "width")
    if "height" in payload:
        data["height"] = _dimension(payload, "height")
    if "fields" in payload or not partial:
        data["fields"] = sanitize_fields(payload.get("fields") or [])
    if "isActive" in payload:
        is_active = payload.get("isActive")
        if not isinstance(is_active, bool):
            raise InvalidInput("isActive must be a boolean")
        data["is_active"] = is_active
    return data


def text_field_ids(fields: Iterable[dict]) -> set[str]:
    return {str(field.get("id")) for field in fields if is_text_field(field)}


def sanitize_field_values(raw) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidInput("fieldValues must be an object")
    values: dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            raise InvalidInput(f"Value for field {key} must be a string")
        values[str(key)] = str(value)
    return values
