from __future__ import annotations

from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename

from ..app import db
from ..models import CertificateTemplate
from ..services import repository, rendering
from ..shared.errors import BackgroundAssetError, InvalidInput, NotFound
from ..shared.http import json_body

bp = Blueprint("certificates", __name__, url_prefix="/api/certificates")

_DISPOSITIONS = ("attachment", "inline")


@bp.get("")
def list_certificates():
    return jsonify([c.to_dict() for c in repository.list_certificates()])


@bp.post("")
def create_certificate():
    payload = json_body()
    created_by = request.headers.get("X-User-Id") or None
    cert = repository.save_certificate(payload, created_by=created_by)
    return jsonify(cert.to_dict()), 201


@bp.get("/<cert_id>")
def get_certificate(cert_id):
    cert = repository.get_certificate(cert_id)
    data = cert.to_dict()
    template = db.session.get(CertificateTemplate, cert.template_id)
    data["template"] = template.to_dict() if template else None
    return jsonify(data)


@bp.put("/<cert_id>")
def update_certificate(cert_id):
    cert = repository.update_certificate_fields(cert_id, json_body())
    return jsonify(cert.to_dict())


@bp.delete("/<cert_id>")
def delete_certificate(cert_id):
    repository.delete_certificate(cert_id)
    return jsonify({"message": "Certificate deleted successfully"})


@bp.put("/<cert_id>/background-visibility")
def update_background_visibility(cert_id):
    payload = json_body()
    visible = payload.get("backgroundVisible")
    if not isinstance(visible, bool):
        raise InvalidInput("backgroundVisible must be a boolean")
    cert = repository.update_certificate_fields(cert_id, {"backgroundVisible": visible})
    current_app.logger.info("[CERT] id=%s background_visible=%s", cert_id, visible)
    return jsonify(cert.to_dict())


def _download_name(base: str, extension: str) -> str:
    return secure_filename(f"certificate-{base}.{extension}") or f"certificate.{extension}"


@bp.get("/<cert_id>/generate")
def generate_pdf(cert_id):
    disposition = (request.args.get("disposition") or "attachment").lower()
    if disposition not in _DISPOSITIONS:
        raise InvalidInput("disposition must be attachment or inline")
    cert = repository.get_certificate(cert_id)
    try:
        result = rendering.render_certificate_pdf(cert_id)
    except (NotFound, InvalidInput, BackgroundAssetError):
        raise
    except Exception:
        current_app.logger.exception("[RENDER-FAIL] certificate=%s format=pdf", cert_id)
        return jsonify({"error": "Failed to generate certificate"}), 500
    return send_file(
        BytesIO(result.content),
        mimetype=result.mimetype,
        as_attachment=disposition == "attachment",
        download_name=_download_name(cert.certificate_number or cert.id, "pdf"),
    )


@bp.get("/<cert_id>/image")
def generate_image(cert_id):
    repository.get_certificate(cert_id)
    try:
        result = rendering.render_certificate_jpeg(cert_id)
    except (NotFound, InvalidInput, BackgroundAssetError):
        raise
    except Exception:
        current_app.logger.exception("[RENDER-FAIL] certificate=%s format=jpeg", cert_id)
        return jsonify({"error": "Failed to generate certificate image"}), 500
    response = send_file(
        BytesIO(result.content),
        mimetype=result.mimetype,
        download_name=_download_name(cert_id, "jpg"),
    )
    response.headers["Cache-Control"] = "no-store"
    return response
