import pytest

from certdesigner.app import db
from certdesigner.models import CertificateTemplate

from conftest import text_field

PX_PER_MM = 3.7795275591


def _open(client, template_id, **extra):
    resp = client.post("/api/editor", json={"templateId": template_id, **extra})
    assert resp.status_code == 201
    return resp.get_json()


def _events(client, state, *events):
    return client.post(
        f"/api/editor/{state['sessionId']}/events", json={"events": list(events)}
    )


def _click(x_mm, y_mm):
    return {"type": "pointerDown", "x": x_mm * PX_PER_MM, "y": y_mm * PX_PER_MM, "button": 0}


def test_settings_update_changes_arrow_step(client, make_template):
    template = make_template()
    assert client.put("/api/settings", json={"normalMoveAmount": 3.0}).status_code == 200
    state = _open(client, template.id)
    assert state["normalMoveAmount"] == 3.0
    assert state["shiftMoveAmount"] == 1.0

    resp = _events(
        client,
        state,
        _click(60, 55),
        {"type": "pointerUp"},
        {"type": "keyDown", "key": "ArrowRight"},
        {"type": "keyDown", "key": "ArrowDown", "shift": True},
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["handled"] == [True, True, True, True]
    assert body["selectedFieldId"] == "name"
    assert body["fields"][0]["x"] == 53.0
    assert body["fields"][0]["y"] == 51.0


def test_default_step_without_settings_change(client, make_template):
    state = _open(client, make_template().id)
    body = _events(
        client, state, _click(60, 55), {"type": "pointerUp"}, {"type": "keyDown", "key": "ArrowLeft"}
    ).get_json()
    assert body["fields"][0]["x"] == 49.5


def test_corner_press_resizes_and_save_persists(client, make_template):
    template = make_template()
    state = _open(client, template.id)
    body = _events(
        client,
        state,
        _click(50, 50),
        {"type": "pointerMove", "x": 60 * PX_PER_MM, "y": 50 * PX_PER_MM},
    ).get_json()
    assert body["state"] == "resizing"
    body = _events(client, state, {"type": "pointerUp"}).get_json()
    field = body["fields"][0]
    assert field["x"] == pytest.approx(60.0, abs=0.01)
    assert field["width"] == pytest.approx(90.0, abs=0.01)
    assert body["canUndo"] is True

    resp = client.post(f"/api/editor/{state['sessionId']}/save")
    assert resp.status_code == 200
    saved = resp.get_json()
    assert saved["warnings"] == []
    assert saved["template"]["fields"][0]["width"] == pytest.approx(90.0, abs=0.01)
    stored = db.session.get(CertificateTemplate, template.id)
    assert stored.fields[0]["x"] == pytest.approx(60.0, abs=0.01)


def test_undo_restores_field_and_click_outside_deselects(client, make_template):
    state = _open(client, make_template().id)
    _events(client, state, _click(60, 55), {"type": "pointerUp"}, {"type": "keyDown", "key": "ArrowUp"})
    body = _events(client, state, {"type": "undo"}).get_json()
    assert body["fields"][0]["y"] == 50.0
    assert body["canRedo"] is True
    body = _events(client, state, _click(280, 200), {"type": "pointerUp"}).get_json()
    assert body["handled"][0] is False
    assert body["selectedFieldId"] is None


def test_ctrl_wheel_zooms_and_rescales_boxes(client, make_template):
    state = _open(client, make_template(fields=[text_field("a")]).id, scale=1.0)
    body = _events(client, state, {"type": "wheel", "deltaY": -120, "ctrl": True}).get_json()
    assert body["scale"] == pytest.approx(1.1)
    assert body["canvasWidth"] == pytest.approx(297 * PX_PER_MM * 1.1, abs=0.01)
    assert "left:207.87px" in body["boxes"][0]["frameStyle"]


def test_editor_rejects_bad_events(client, make_template):
    state = _open(client, make_template().id)
    assert _events(client, state, {"type": "teleport"}).status_code == 400
    assert _events(client, state, {"type": "pointerMove", "x": "far", "y": 0}).status_code == 400
    resp = client.post(f"/api/editor/{state['sessionId']}/events", json={"events": "undo"})
    assert resp.status_code == 400
    assert _events(client, state, {"type": "select", "fieldId": "ghost"}).status_code == 404


def test_unknown_session_and_template(client, make_template):
    assert client.post("/api/editor", json={"templateId": "nope"}).status_code == 404
    assert client.post("/api/editor", json={}).status_code == 400
    assert client.get("/api/editor/nope").status_code == 404
    state = _open(client, make_template().id)
    assert client.delete(f"/api/editor/{state['sessionId']}").status_code == 200
    assert client.get(f"/api/editor/{state['sessionId']}").status_code == 404
