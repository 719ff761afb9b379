from io import BytesIO

import pytest
from PIL import Image
from PyPDF2 import PdfReader

from certdesigner.app import db
from certdesigner.models import Certificate, Settings

from conftest import image_field, text_field


@pytest.fixture
def template(make_template):
    return make_template(
        fields=[
            text_field("name", placeholder="Recipient"),
            image_field("sig", url="/assets/sig/missing.png"),
        ]
    )


def _issue(client, template, **overrides):
    payload = {
        "templateId": template.id,
        "recipientName": "Ada Lovelace",
        "fieldValues": {"name": "Ada Lovelace"},
    }
    payload.update(overrides)
    return client.post("/api/certificates", json=payload)


def test_issue_certificate_uses_settings_default(client, template):
    settings = Settings.get()
    settings.default_background_visible = False
    db.session.commit()
    resp = _issue(client, template, certificateNumber="C-001")
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["backgroundVisible"] is False
    assert data["certificateNumber"] == "C-001"
    assert data["fieldValues"] == {"name": "Ada Lovelace"}


def test_issue_requires_fields(client, template):
    resp = client.post("/api/certificates", json={"templateId": template.id})
    assert resp.status_code == 400
    assert "recipientName" in resp.get_json()["error"]


def test_issue_unknown_template(client):
    resp = client.post(
        "/api/certificates",
        json={"templateId": "nope", "recipientName": "A", "fieldValues": {}},
    )
    assert resp.status_code == 404


def test_duplicate_certificate_number_conflicts(client, template):
    assert _issue(client, template, certificateNumber="C-1").status_code == 201
    resp = _issue(client, template, certificateNumber="C-1")
    assert resp.status_code == 409
    assert Certificate.query.count() == 1


def test_get_includes_template(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    data = client.get(f"/api/certificates/{cert_id}").get_json()
    assert data["template"]["id"] == template.id


def test_update_certificate_fields(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    resp = client.put(
        f"/api/certificates/{cert_id}",
        json={"fieldValues": {"name": "Countess Lovelace"}, "issuedTo": "ACME"},
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["fieldValues"] == {"name": "Countess Lovelace"}
    assert data["issuedTo"] == "ACME"


def test_template_id_is_immutable(client, template, make_template):
    other = make_template(name="other")
    cert_id = _issue(client, template).get_json()["id"]
    resp = client.put(f"/api/certificates/{cert_id}", json={"templateId": other.id})
    assert resp.status_code == 400
    assert client.get(f"/api/certificates/{cert_id}").get_json()["templateId"] == template.id


def test_background_visibility_toggle(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    resp = client.put(
        f"/api/certificates/{cert_id}/background-visibility",
        json={"backgroundVisible": "no"},
    )
    assert resp.status_code == 400
    resp = client.put(
        f"/api/certificates/{cert_id}/background-visibility",
        json={"backgroundVisible": False},
    )
    assert resp.status_code == 200
    assert resp.get_json()["backgroundVisible"] is False


def test_generate_pdf(client, template):
    cert_id = _issue(client, template, certificateNumber="C-7").get_json()["id"]
    resp = client.get(f"/api/certificates/{cert_id}/generate?disposition=inline")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.headers["Content-Disposition"].startswith("inline")
    assert "certificate-C-7.pdf" in resp.headers["Content-Disposition"]
    reader = PdfReader(BytesIO(resp.data))
    assert len(reader.pages) == 1
    assert "Ada Lovelace" in reader.pages[0].extract_text()


def test_generate_rejects_bad_disposition(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    resp = client.get(f"/api/certificates/{cert_id}/generate?disposition=evil")
    assert resp.status_code == 400


def test_generate_image(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    resp = client.get(f"/api/certificates/{cert_id}/image")
    assert resp.status_code == 200
    assert resp.mimetype == "image/jpeg"
    assert Image.open(BytesIO(resp.data)).size == (3508, 2480)


def test_certificate_survives_template_edit(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    client.put(
        f"/api/templates/{template.id}",
        json={"fields": [text_field("name", x=10, y=10)]},
    )
    resp = client.get(f"/api/certificates/{cert_id}/generate")
    assert resp.status_code == 200


def test_generate_for_deleted_template_is_404(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    client.delete(f"/api/templates/{template.id}")
    resp = client.get(f"/api/certificates/{cert_id}/generate")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Template not found"


def test_generate_with_missing_background(client, make_template):
    template = make_template(background="/assets/gone.png")
    cert_id = _issue(client, template).get_json()["id"]
    resp = client.get(f"/api/certificates/{cert_id}/generate")
    assert resp.status_code == 500
    body = resp.get_json()
    assert body["error"] == "Failed to generate certificate"
    assert "gone.png" in body["message"]


def test_hidden_background_renders_without_asset(client, make_template):
    template = make_template(background="/assets/gone.png")
    cert_id = _issue(client, template, backgroundVisible=False).get_json()["id"]
    assert client.get(f"/api/certificates/{cert_id}/generate").status_code == 200


def test_delete_certificate(client, template):
    cert_id = _issue(client, template).get_json()["id"]
    assert client.delete(f"/api/certificates/{cert_id}").status_code == 200
    assert client.get(f"/api/certificates/{cert_id}").status_code == 404
