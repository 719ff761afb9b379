from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..shared.editor import CORNERS
from ..shared.fonts import FontFaceRegistry, css_font_stack, is_builtin
from ..shared.layout import IMAGE, TEXT, RenderPlan, ResolvedBox
from ..shared.storage import AssetStore
from ..shared.units import clamp_scale, mm_to_pixels, points_to_mm

HANDLE_TOLERANCE_PX = 6.0

_TRANSLATE = {"left": "", "center": "translateX(-50%)", "right": "translateX(-100%)"}


@dataclass(frozen=True)
class FieldBox:
    """One field on the editor canvas, in CSS pixels at the current zoom.

    ``left``/``top``/``width``/``height`` describe the field frame used for
    hit testing and resize handles. ``text_style`` positions the text run
    inside the frame so its anchor matches the PDF and JPEG output.
    """

    field_id: str
    kind: str
    left: float
    top: float
    width: float
    height: float
    frame_style: str
    text_style: str = ""
    text: str = ""
    image_url: str = ""

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, px: float, py: float) -> bool:
        return self.left <= px <= self.right and self.top <= py <= self.bottom


@dataclass(frozen=True)
class InteractiveLayout:
    width: float
    height: float
    scale: float
    background: str | None
    boxes: tuple[FieldBox, ...]
    font_css: str

    @property
    def canvas_style(self) -> str:
        style = f"width:{self.width:.2f}px;height:{self.height:.2f}px;"
        if self.background:
            style += f"background-image:url('{self.background}');background-size:100% 100%;"
        return style

    def box(self, field_id: str) -> FieldBox | None:
        return next((b for b in self.boxes if b.field_id == field_id), None)


def font_size_css_px(font_size_pt: float, scale: float) -> float:
    return mm_to_pixels(points_to_mm(font_size_pt), scale)


def _frame_style(left: float, top: float, width: float, height: float) -> str:
    return (
        f"left:{left:.2f}px;top:{top:.2f}px;"
        f"width:{width:.2f}px;height:{height:.2f}px;"
    )


def _text_style(box: ResolvedBox, scale: float) -> str:
    parts = [
        "position:absolute",
        "left:0",
        "top:0",
        "white-space:nowrap",
        "line-height:1",
        f"font-size:{font_size_css_px(box.font_size, scale):.2f}px",
        f"font-family:{css_font_stack(box.font_family)}",
        f"font-weight:{box.font_weight}",
        f"color:{box.color}",
        f"text-align:{box.align}",
    ]
    transform = _TRANSLATE.get(box.align, "")
    if transform:
        parts.append(f"transform:{transform}")
    return ";".join(parts) + ";"


def build_interactive_layout(
    plan: RenderPlan,
    scale: float = 1.0,
    fonts: FontFaceRegistry | None = None,
    labels: Mapping[str, str] | None = None,
) -> InteractiveLayout:
    """Absolute CSS positions for every box of ``plan`` at zoom ``scale``.

    Empty text falls back to ``labels[field_id]`` so an unfilled field is
    still visible while designing. Custom font families are added to
    ``fonts`` once each.
    """
    scale = clamp_scale(scale)
    fonts = fonts if fonts is not None else FontFaceRegistry()
    labels = labels or {}
    boxes = []
    for box in plan.boxes:
        left = mm_to_pixels(box.x, scale)
        top = mm_to_pixels(box.y, scale)
        width = mm_to_pixels(box.width, scale)
        height = mm_to_pixels(box.height, scale)
        frame = _frame_style(left, top, width, height)
        if box.kind == TEXT:
            if not is_builtin(box.font_family):
                fonts.add(box.font_family)
            boxes.append(
                FieldBox(
                    field_id=box.field_id,
                    kind=TEXT,
                    left=left,
                    top=top,
                    width=width,
                    height=height,
                    frame_style=frame,
                    text_style=_text_style(box, scale),
                    text=box.text or labels.get(box.field_id, ""),
                )
            )
        elif box.kind == IMAGE:
            boxes.append(
                FieldBox(
                    field_id=box.field_id,
                    kind=IMAGE,
                    left=left,
                    top=top,
                    width=width,
                    height=height,
                    frame_style=frame,
                    text=labels.get(box.field_id, "") if not box.image_ref else "",
                    image_url=AssetStore.public_url(box.image_ref),
                )
            )
    return InteractiveLayout(
        width=mm_to_pixels(plan.width, scale),
        height=mm_to_pixels(plan.height, scale),
        scale=scale,
        background=AssetStore.public_url(plan.background) or None,
        boxes=tuple(boxes),
        font_css=fonts.css(),
    )


def hit_test(layout: InteractiveLayout, px: float, py: float) -> str | None:
    """Id of the topmost field under the pointer; later fields paint on top."""
    for box in reversed(layout.boxes):
        if box.contains(px, py):
            return box.field_id
    return None


def corner_at(
    box: FieldBox, px: float, py: float, tolerance: float = HANDLE_TOLERANCE_PX
) -> str | None:
    points = {
        "nw": (box.left, box.top),
        "ne": (box.right, box.top),
        "sw": (box.left, box.bottom),
        "se": (box.right, box.bottom),
    }
    for corner in CORNERS:
        cx, cy = points[corner]
        if abs(px - cx) <= tolerance and abs(py - cy) <= tolerance:
            return corner
    return None
