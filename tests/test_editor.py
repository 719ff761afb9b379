import pytest

from certdesigner.shared.editor import (
    DRAGGING,
    IDLE,
    PANNING,
    PRIMARY_BUTTON,
    RESIZING,
    SECONDARY_BUTTON,
    EditorSession,
    ResizeAnchor,
    resize_geometry,
)
from certdesigner.shared.errors import InvalidInput, NotFound

from conftest import image_field, text_field


@pytest.fixture
def session():
    return EditorSession.for_template(
        {"width": 297, "height": 210, "fields": [text_field("a"), image_field("sig")]}
    )


def test_drag_converts_pixels_to_millimetres(session):
    assert session.pointer_down_on_field("a", 100, 100)
    assert session.state == DRAGGING
    session.pointer_move(137.795, 100)
    assert session.field("a")["x"] == pytest.approx(60.0, abs=0.01)
    assert session.field("a")["y"] == pytest.approx(50.0)
    session.pointer_up()
    assert session.state == IDLE
    assert len(session.history) == 2


def test_drag_respects_zoom(session):
    session.set_scale(2.0)
    session.pointer_down_on_field("a", 0, 0)
    session.pointer_move(75.59, 0)
    assert session.field("a")["x"] == pytest.approx(60.0, abs=0.01)


def test_drag_is_clamped_to_page(session):
    session.pointer_down_on_field("a", 0, 0)
    session.pointer_move(-10000, 10000)
    assert session.field("a")["x"] == 0
    assert session.field("a")["y"] == 210


def test_drag_commits_once(session):
    session.pointer_down_on_field("a", 0, 0)
    for step in range(1, 20):
        session.pointer_move(step, step)
    session.pointer_up()
    assert len(session.history) == 2
    assert session.undo()
    assert session.field("a")["x"] == 50


def test_gestures_are_exclusive(session):
    session.pointer_down_on_field("a", 0, 0)
    assert not session.pointer_down_on_handle("a", "se", 0, 0)
    assert not session.pointer_down_on_canvas(0, 0, button=SECONDARY_BUTTON, ctrl=True)
    assert session.state == DRAGGING


def test_resize_se_keeps_origin():
    anchor = ResizeAnchor(0, 0, 20, 30, 50, 25, "se")
    assert resize_geometry(anchor, 10, 5) == {"x": 20, "y": 30, "width": 60, "height": 30}


def test_resize_nw_keeps_opposite_corner():
    anchor = ResizeAnchor(0, 0, 20, 30, 50, 25, "nw")
    geometry = resize_geometry(anchor, 10, 5)
    assert geometry == {"x": 30, "y": 35, "width": 40, "height": 20}
    assert geometry["x"] + geometry["width"] == 70
    assert geometry["y"] + geometry["height"] == 55


def test_resize_floors_stop_the_moving_edge():
    anchor = ResizeAnchor(0, 0, 20, 30, 50, 25, "nw")
    geometry = resize_geometry(anchor, 100, 100)
    assert geometry["width"] == 10
    assert geometry["height"] == 5
    assert geometry["x"] + geometry["width"] == 70
    assert geometry["y"] + geometry["height"] == 55
    grow = resize_geometry(ResizeAnchor(0, 0, 20, 30, 50, 25, "se"), -100, -100)
    assert (grow["width"], grow["height"]) == (10, 5)


def test_resize_through_session(session):
    assert session.pointer_down_on_handle("sig", "se", 0, 0)
    assert session.state == RESIZING
    session.pointer_move(37.795, 37.795)
    field = session.field("sig")
    assert field["width"] == pytest.approx(60, abs=0.01)
    assert field["height"] == pytest.approx(35, abs=0.01)
    assert (field["x"], field["y"]) == (20, 150)
    session.pointer_up()
    assert len(session.history) == 2


def test_unknown_handle_rejected(session):
    with pytest.raises(InvalidInput):
        session.pointer_down_on_handle("sig", "north", 0, 0)


def test_pan_requires_ctrl_and_secondary_button(session):
    assert not session.pointer_down_on_canvas(0, 0, button=PRIMARY_BUTTON, ctrl=True)
    assert not session.pointer_down_on_canvas(0, 0, button=SECONDARY_BUTTON, ctrl=False)
    session.scroll_left, session.scroll_top = 100, 50
    assert session.pointer_down_on_canvas(200, 200, button=SECONDARY_BUTTON, ctrl=True)
    assert session.state == PANNING
    session.pointer_move(150, 220)
    assert (session.scroll_left, session.scroll_top) == (150, 30)
    session.pointer_up()
    assert session.state == IDLE
    assert len(session.history) == 1


def test_wheel_zoom_steps_and_clamps(session):
    assert not session.wheel(-100, ctrl=False)
    assert session.wheel(-100, ctrl=True)
    assert session.scale == pytest.approx(1.1)
    for _ in range(40):
        session.wheel(-100, ctrl=True)
    assert session.scale == 3.0
    for _ in range(40):
        session.wheel(100, ctrl=True)
    assert session.scale == 0.5


def test_arrow_nudge_uses_move_amounts():
    session = EditorSession.for_template(
        {"width": 297, "height": 210, "fields": [text_field("a")]},
        normal_move=0.5,
        shift_move=2.0,
    )
    session.select("a")
    assert session.key_down("ArrowRight")
    assert session.key_down("ArrowUp", shift=True)
    assert session.field("a")["x"] == 50.5
    assert session.field("a")["y"] == 48.0
    assert len(session.history) == 3


def test_nudge_clamps_and_needs_selection(session):
    assert not session.key_down("ArrowLeft")
    session.update_field("a", {"x": 0.2})
    session.select("a")
    session.key_down("ArrowLeft")
    assert session.field("a")["x"] == 0


def test_delete_key_ignored_in_text_input(session):
    session.select("a")
    assert not session.key_down("Backspace", in_text_input=True)
    assert session.key_down("Delete")
    with pytest.raises(NotFound):
        session.field("a")
    assert session.selected_field_id is None
    assert session.undo()
    assert session.field("a")["id"] == "a"


def test_add_field_selects_and_commits(session):
    field = session.add_field("date")
    assert session.selected_field_id == field["id"]
    assert field["name"] == "date_field_3"
    assert len(session.history) == 2


def test_update_field_live_edit_does_not_commit(session):
    session.update_field("a", {"placeholder": "typ"}, commit=False)
    assert len(session.history) == 1
    session.update_field("a", {"placeholder": "typed"})
    assert len(session.history) == 2
    with pytest.raises(InvalidInput):
        session.update_field("a", {"id": "b"})


def test_undo_redo_clears_selection(session):
    session.select("a")
    session.update_field("a", {"x": 80})
    session.select("a")
    assert session.undo()
    assert session.selected_field_id is None
    assert session.field("a")["x"] == 50
    assert session.redo()
    assert session.field("a")["x"] == 80
    assert not session.redo()


def test_load_resets_history(session):
    session.update_field("a", {"x": 80})
    session.load({"width": 100, "height": 100, "fields": [text_field("z", x=1, y=1)]})
    assert len(session.history) == 1
    assert not session.undo()
    assert session.template_width == 100


def test_for_template_reads_move_amounts_from_settings():
    session = EditorSession.for_template(
        {"id": "tpl", "width": 297, "height": 210, "fields": [text_field("a")]},
        {"normalMoveAmount": 3.0, "shiftMoveAmount": 7.5, "defaultBackgroundVisible": True},
    )
    assert session.template_id == "tpl"
    session.select("a")
    session.key_down("ArrowRight")
    session.key_down("ArrowDown", shift=True)
    assert session.field("a")["x"] == 53.0
    assert session.field("a")["y"] == 57.5


def test_save_payload_is_a_detached_field_list(session):
    session.update_field("a", {"x": 80})
    payload = session.save_payload()
    assert [f["id"] for f in payload["fields"]] == ["a", "sig"]
    payload["fields"][0]["x"] = 1
    assert session.field("a")["x"] == 80
