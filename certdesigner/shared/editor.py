from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass

from .errors import InvalidInput, NotFound
from .fields import new_field, sanitize_fields
from .history import History
from .units import ZOOM_STEP, clamp_scale, pixels_to_mm

IDLE = "idle"
DRAGGING = "dragging"
RESIZING = "resizing"
PANNING = "panning"

CORNERS = ("nw", "ne", "sw", "se")

MIN_FIELD_WIDTH_MM = 10.0
MIN_FIELD_HEIGHT_MM = 5.0

PRIMARY_BUTTON = 0
SECONDARY_BUTTON = 2

DEFAULT_NORMAL_MOVE_MM = 0.5
DEFAULT_SHIFT_MOVE_MM = 1.0

_ARROW_DIRECTIONS = {
    "ArrowLeft": (-1, 0),
    "ArrowRight": (1, 0),
    "ArrowUp": (0, -1),
    "ArrowDown": (0, 1),
}
_DELETE_KEYS = {"Delete", "Backspace"}


@dataclass(frozen=True)
class DragAnchor:
    pointer_x: float
    pointer_y: float
    field_x: float
    field_y: float


@dataclass(frozen=True)
class ResizeAnchor:
    pointer_x: float
    pointer_y: float
    field_x: float
    field_y: float
    width: float
    height: float
    corner: str


@dataclass(frozen=True)
class PanAnchor:
    pointer_x: float
    pointer_y: float
    scroll_left: float
    scroll_top: float


def resize_geometry(anchor: ResizeAnchor, delta_x_mm: float, delta_y_mm: float) -> dict:
    """New x/y/width/height for a corner drag of ``delta`` millimetres.

    East/south handles grow the box; west/north handles shrink it and shift
    x/y so the opposite edge stays put. Sizes never drop below the floors,
    and a floored edge stops moving instead of inverting the box.
    """
    corner = anchor.corner
    # x/y follow the clamped size, not the raw delta, so a floored west or
    # north edge pins the opposite edge instead of snapping back to the start.
    x, y = anchor.field_x, anchor.field_y
    width, height = anchor.width, anchor.height
    if "e" in corner:
        width = max(MIN_FIELD_WIDTH_MM, anchor.width + delta_x_mm)
    elif "w" in corner:
        width = max(MIN_FIELD_WIDTH_MM, anchor.width - delta_x_mm)
        x = anchor.field_x + (anchor.width - width)
    if "s" in corner:
        height = max(MIN_FIELD_HEIGHT_MM, anchor.height + delta_y_mm)
    elif "n" in corner:
        height = max(MIN_FIELD_HEIGHT_MM, anchor.height - delta_y_mm)
        y = anchor.field_y + (anchor.height - height)
    return {"x": x, "y": y, "width": width, "height": height}


class EditorSession:
    """In-memory state of one designer canvas.

    All geometry is kept in millimetres; pointer coordinates arrive in screen
    pixels and are converted with the current zoom. Drag, resize and pan are
    mutually exclusive: a gesture only starts from ``IDLE``.
    """

    def __init__(
        self,
        template_width: float = 297.0,
        template_height: float = 210.0,
        fields: list[dict] | None = None,
        *,
        normal_move: float = DEFAULT_NORMAL_MOVE_MM,
        shift_move: float = DEFAULT_SHIFT_MOVE_MM,
        scale: float = 1.0,
    ):
        self.template_width = float(template_width)
        self.template_height = float(template_height)
        self.normal_move = float(normal_move)
        self.shift_move = float(shift_move)
        self.scale = clamp_scale(scale)
        self.scroll_left = 0.0
        self.scroll_top = 0.0
        self.template_id: str | None = None
        self.state = IDLE
        self.selected_field_id: str | None = None
        self._anchor = None
        self._gesture_field_id: str | None = None
        self.fields: list[dict] = deepcopy(fields or [])
        self.history = History(self.fields)

    @classmethod
    def for_template(
        cls, template: dict, settings: dict | None = None, **kwargs
    ) -> "EditorSession":
        """Session for ``template``; ``settings`` is ``Settings.to_dict()``."""
        if settings:
            kwargs.setdefault(
                "normal_move", settings.get("normalMoveAmount") or DEFAULT_NORMAL_MOVE_MM
            )
            kwargs.setdefault(
                "shift_move", settings.get("shiftMoveAmount") or DEFAULT_SHIFT_MOVE_MM
            )
        session = cls(**kwargs)
        session.load(template)
        return session

    def load(self, template: dict) -> None:
        """Start editing ``template``; history restarts at the loaded state."""
        self.template_id = template.get("id")
        self.template_width = float(template["width"])
        self.template_height = float(template["height"])
        self.fields = sanitize_fields(deepcopy(template.get("fields") or []))
        self.selected_field_id = None
        self.state = IDLE
        self._anchor = None
        self.history.reset(self.fields)

    # --- field operations ----------------------------------------------------

    def field(self, field_id: str) -> dict:
        for field in self.fields:
            if field["id"] == field_id:
                return field
        raise NotFound(f"Field not found: {field_id}")

    @property
    def selected_field(self) -> dict | None:
        if not self.selected_field_id:
            return None
        try:
            return self.field(self.selected_field_id)
        except NotFound:
            return None

    def select(self, field_id: str | None) -> None:
        if field_id is not None:
            self.field(field_id)
        self.selected_field_id = field_id

    def commit(self) -> None:
        self.history.commit(self.fields)

    def save_payload(self) -> dict:
        """Body for ``repository.save_template``: the whole field list."""
        return {"fields": deepcopy(self.fields)}

    def add_field(self, field_type: str) -> dict:
        field = new_field(field_type, len(self.fields) + 1)
        self.fields.append(field)
        self.commit()
        self.selected_field_id = field["id"]
        return field

    def update_field(self, field_id: str, updates: dict, *, commit: bool = True) -> dict:
        """Apply attribute edits; ``commit=False`` is a live edit not yet blurred."""
        if "id" in updates and updates["id"] != field_id:
            raise InvalidInput("Field id cannot be changed")
        field = self.field(field_id)
        field.update(updates)
        if commit:
            self.commit()
        return field

    def delete_field(self, field_id: str) -> None:
        self.field(field_id)
        self.fields = [f for f in self.fields if f["id"] != field_id]
        self.commit()
        if self.selected_field_id == field_id:
            self.selected_field_id = None

    # --- history -------------------------------------------------------------

    def undo(self) -> bool:
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.fields = snapshot
        self.selected_field_id = None
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.fields = snapshot
        self.selected_field_id = None
        return True

    # --- pointer gestures ----------------------------------------------------

    def _to_mm(self, px: float) -> float:
        return pixels_to_mm(px, self.scale)

    def pointer_down_on_field(self, field_id: str, pointer_x: float, pointer_y: float) -> bool:
        if self.state != IDLE:
            return False
        field = self.field(field_id)
        self.selected_field_id = field_id
        self._gesture_field_id = field_id
        self._anchor = DragAnchor(pointer_x, pointer_y, float(field["x"]), float(field["y"]))
        self.state = DRAGGING
        return True

    def pointer_down_on_handle(
        self, field_id: str, corner: str, pointer_x: float, pointer_y: float
    ) -> bool:
        if corner not in CORNERS:
            raise InvalidInput(f"Unknown resize handle: {corner!r}")
        if self.state != IDLE:
            return False
        field = self.field(field_id)
        self.selected_field_id = field_id
        self._gesture_field_id = field_id
        self._anchor = ResizeAnchor(
            pointer_x,
            pointer_y,
            float(field["x"]),
            float(field["y"]),
            float(field.get("width") or 50),
            float(field.get("height") or 25),
            corner,
        )
        self.state = RESIZING
        return True

    def pointer_down_on_canvas(
        self, pointer_x: float, pointer_y: float, *, button: int, ctrl: bool = False
    ) -> bool:
        if self.state != IDLE or not (ctrl and button == SECONDARY_BUTTON):
            return False
        self._anchor = PanAnchor(pointer_x, pointer_y, self.scroll_left, self.scroll_top)
        self.state = PANNING
        return True

    def pointer_move(self, pointer_x: float, pointer_y: float) -> None:
        anchor = self._anchor
        if self.state == DRAGGING:
            delta_x = self._to_mm(pointer_x - anchor.pointer_x)
            delta_y = self._to_mm(pointer_y - anchor.pointer_y)
            field = self.field(self._gesture_field_id)
            field["x"] = max(0.0, min(self.template_width, anchor.field_x + delta_x))
            field["y"] = max(0.0, min(self.template_height, anchor.field_y + delta_y))
        elif self.state == RESIZING:
            delta_x = self._to_mm(pointer_x - anchor.pointer_x)
            delta_y = self._to_mm(pointer_y - anchor.pointer_y)
            self.field(self._gesture_field_id).update(
                resize_geometry(anchor, delta_x, delta_y)
            )
        elif self.state == PANNING:
            self.scroll_left = anchor.scroll_left - (pointer_x - anchor.pointer_x)
            self.scroll_top = anchor.scroll_top - (pointer_y - anchor.pointer_y)

    def pointer_up(self) -> None:
        if self.state in (DRAGGING, RESIZING) and self._gesture_field_id:
            self.commit()
        self.state = IDLE
        self._anchor = None
        self._gesture_field_id = None

    # --- zoom and keyboard ---------------------------------------------------

    def wheel(self, delta_y: float, *, ctrl: bool = False) -> bool:
        if not ctrl or delta_y == 0:
            return False
        step = -ZOOM_STEP if delta_y > 0 else ZOOM_STEP
        self.scale = round(clamp_scale(self.scale + step), 4)
        return True

    def set_scale(self, scale: float) -> None:
        self.scale = clamp_scale(scale)

    def key_down(self, key: str, *, shift: bool = False, in_text_input: bool = False) -> bool:
        """Handle a key press; returns whether the editor consumed it."""
        if in_text_input or self.state != IDLE:
            return False
        field = self.selected_field
        if field is None:
            return False
        if key in _DELETE_KEYS:
            self.delete_field(field["id"])
            return True
        direction = _ARROW_DIRECTIONS.get(key)
        if direction is None:
            return False
        step = self.shift_move if shift else self.normal_move
        field["x"] = max(0.0, min(self.template_width, float(field["x"]) + direction[0] * step))
        field["y"] = max(0.0, min(self.template_height, float(field["y"]) + direction[1] * step))
        self.commit()
        return True
