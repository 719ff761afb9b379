from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Mapping

from .fields import (
    DEFAULT_COLOR,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE_PT,
    color_to_rgb,
    default_size,
    is_image_field,
    is_text_field,
)
from .errors import InvalidInput
from .fonts import is_builtin, normalize_weight

TEXT = "text"
IMAGE = "image"

# horizontal share of the text width that sits left of the anchor
ALIGN_OFFSETS: dict[str, float] = {"left": 0.0, "center": 0.5, "right": 1.0}


@dataclass(frozen=True)
class ResolvedBox:
    """Backend-neutral description of one field, in millimetres from the top-left."""

    field_id: str
    field_type: str
    kind: str
    x: float
    y: float
    width: float
    height: float
    text: str = ""
    font_family: str = DEFAULT_FONT_FAMILY
    font_weight: str = "normal"
    font_size: float = DEFAULT_FONT_SIZE_PT
    color: str = DEFAULT_COLOR
    align: str = "left"
    image_ref: str = ""

    @property
    def rgb(self) -> tuple[int, int, int]:
        return color_to_rgb(self.color)

    @property
    def anchor_x(self) -> float:
        """x is the left edge, centre or right edge of the text depending on align."""
        return self.x

    @property
    def align_offset(self) -> float:
        return ALIGN_OFFSETS.get(self.align, 0.0)

    def text_left(self, anchor: float, text_width: float) -> float:
        """Left edge of a run of ``text_width`` placed at ``anchor``, in the caller's units."""
        return anchor - text_width * self.align_offset


@dataclass(frozen=True)
class RenderPlan:
    template_id: str | None
    width: float
    height: float
    background: str | None
    boxes: tuple[ResolvedBox, ...] = dc_field(default_factory=tuple)

    @property
    def custom_font_families(self) -> list[str]:
        families: list[str] = []
        for box in self.boxes:
            if box.kind != TEXT or not box.text:
                continue
            if is_builtin(box.font_family) or box.font_family in families:
                continue
            families.append(box.font_family)
        return families

    def box(self, field_id: str) -> ResolvedBox | None:
        return next((b for b in self.boxes if b.field_id == field_id), None)


def resolve_text_value(field: Mapping, field_values: Mapping[str, str] | None) -> str:
    value = (field_values or {}).get(str(field.get("id")))
    if value not in (None, ""):
        return str(value)
    for fallback_key in ("placeholder", "defaultValue"):
        fallback = field.get(fallback_key)
        if fallback:
            return str(fallback)
    return ""


def _float(value, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def resolve_box(
    field: Mapping,
    field_values: Mapping[str, str] | None,
    include_empty_images: bool = False,
) -> ResolvedBox | None:
    field_type = str(field.get("type") or "")
    default_w, default_h = default_size(field_type)
    geometry = {
        "field_id": str(field.get("id")),
        "field_type": field_type,
        "x": _float(field.get("x"), 0.0),
        "y": _float(field.get("y"), 0.0),
        "width": _float(field.get("width"), default_w),
        "height": _float(field.get("height"), default_h),
    }
    if is_text_field(field):
        align = str(field.get("align") or field.get("textAlign") or "left").lower()
        try:
            color_to_rgb(field.get("color") or DEFAULT_COLOR)
            color = str(field.get("color") or DEFAULT_COLOR)
        except InvalidInput:
            color = DEFAULT_COLOR
        return ResolvedBox(
            kind=TEXT,
            text=resolve_text_value(field, field_values),
            font_family=str(field.get("fontFamily") or DEFAULT_FONT_FAMILY),
            font_weight=normalize_weight(field.get("fontWeight")),
            font_size=_float(field.get("fontSize"), DEFAULT_FONT_SIZE_PT) or DEFAULT_FONT_SIZE_PT,
            color=color,
            align=align if align in ALIGN_OFFSETS else "left",
            **geometry,
        )
    if is_image_field(field):
        image_ref = str(field.get("signatureImageUrl") or "").strip()
        if not image_ref and not include_empty_images:
            return None
        return ResolvedBox(kind=IMAGE, image_ref=image_ref, **geometry)
    return None


def resolve_layout(
    template: Mapping,
    field_values: Mapping[str, str] | None = None,
    background_visible: bool | None = None,
    *,
    include_empty_images: bool = False,
) -> RenderPlan:
    """Absolute boxes for every drawable field of ``template``, in field order.

    ``template`` is a snapshot in the designer's JSON shape. A ``None``
    visibility flag means the background is drawn. Hiding the background
    never hides field content. The editor passes ``include_empty_images`` so
    image fields without a picture still get a box to grab.
    """
    width = _float(template.get("width"), 0.0)
    height = _float(template.get("height"), 0.0)
    if width <= 0 or height <= 0:
        raise InvalidInput("Template width and height must be greater than zero")
    visible = True if background_visible is None else bool(background_visible)
    boxes = []
    for field in template.get("fields") or []:
        box = resolve_box(field, field_values, include_empty_images)
        if box is not None:
            boxes.append(box)
    return RenderPlan(
        template_id=template.get("id"),
        width=width,
        height=height,
        background=(template.get("backgroundImageUrl") or "") if visible else None,
        boxes=tuple(boxes),
    )


@dataclass(frozen=True)
class RenderResult:
    content: bytes
    mimetype: str
    warnings: tuple[str, ...] = ()
