from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..app import db
from ..models import Certificate, CertificateTemplate, Settings
from ..shared.errors import ConstraintViolation, InvalidInput, NotFound
from ..shared.fields import (
    out_of_bounds_fields,
    sanitize_field_values,
    sanitize_template_payload,
)

_CERTIFICATE_UPDATABLE = {
    "recipientName": "recipient_name",
    "issuedTo": "issued_to",
    "fieldValues": "field_values",
    "backgroundVisible": "background_visible",
    "certificateNumber": "certificate_number",
}


def get_template(template_id: str) -> CertificateTemplate:
    template = db.session.get(CertificateTemplate, template_id)
    if not template:
        raise NotFound("Template not found")
    return template


def template_snapshot(template_id: str) -> dict:
    """Plain copy of a template row, detached from later edits."""
    return get_template(template_id).to_dict()


def list_templates(active_only: bool = False) -> list[CertificateTemplate]:
    query = CertificateTemplate.query
    if active_only:
        query = query.filter(CertificateTemplate.is_active.is_(True))
    return query.order_by(CertificateTemplate.created_at.desc()).all()


def create_template(payload: dict) -> tuple[CertificateTemplate, list[str]]:
    data = sanitize_template_payload(payload)
    template = CertificateTemplate(**data)
    db.session.add(template)
    db.session.commit()
    warnings = out_of_bounds_fields(template.fields, template.width, template.height)
    _log_bounds(template, warnings)
    return template, warnings


def save_template(template_id: str, payload: dict) -> tuple[CertificateTemplate, list[str]]:
    """Replace a template; ``fields`` is swapped as a whole list, never patched."""
    template = get_template(template_id)
    data = sanitize_template_payload(payload, partial=True)
    for key, value in data.items():
        setattr(template, key, value)
    db.session.commit()
    warnings = out_of_bounds_fields(template.fields, template.width, template.height)
    _log_bounds(template, warnings)
    return template, warnings


def _log_bounds(template: CertificateTemplate, warnings: list[str]) -> None:
    if warnings:
        current_app.logger.warning(
            "[TEMPLATE] id=%s out_of_bounds_fields=%s", template.id, ",".join(warnings)
        )


def delete_template(template_id: str) -> None:
    template = get_template(template_id)
    db.session.delete(template)
    db.session.commit()
    current_app.logger.info("[TEMPLATE] deleted id=%s", template_id)


def get_certificate(certificate_id: str) -> Certificate:
    certificate = db.session.get(Certificate, certificate_id)
    if not certificate:
        raise NotFound("Certificate not found")
    return certificate


def list_certificates() -> list[Certificate]:
    return Certificate.query.order_by(Certificate.created_at.desc()).all()


def _certificate_number(raw) -> str | None:
    value = (str(raw).strip() if raw is not None else "")
    return value or None


def _ensure_unique_number(number: str | None, exclude_id: str | None = None) -> None:
    if not number:
        return
    query = Certificate.query.filter(Certificate.certificate_number == number)
    if exclude_id:
        query = query.filter(Certificate.id != exclude_id)
    if query.first() is not None:
        raise ConstraintViolation(f"Certificate number {number} is already in use")


def _commit_certificate() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if "certificate_number" in str(getattr(exc, "orig", exc)).lower():
            raise ConstraintViolation("Certificate number is already in use") from None
        raise


def save_certificate(payload: dict, created_by: str | None = None) -> Certificate:
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid request payload.")
    template_id = str(payload.get("templateId") or "").strip()
    recipient_name = str(payload.get("recipientName") or "").strip()
    if not template_id or not recipient_name or payload.get("fieldValues") is None:
        raise InvalidInput(
            "Missing required fields: templateId, recipientName, fieldValues"
        )
    get_template(template_id)
    field_values = sanitize_field_values(payload.get("fieldValues"))
    background_visible = payload.get("backgroundVisible")
    if background_visible is None:
        background_visible = Settings.get_or_create().default_background_visible
    elif not isinstance(background_visible, bool):
        raise InvalidInput("backgroundVisible must be a boolean")
    number = _certificate_number(payload.get("certificateNumber"))
    _ensure_unique_number(number)
    certificate = Certificate(
        template_id=template_id,
        recipient_name=recipient_name,
        issued_to=(str(payload.get("issuedTo") or "").strip() or None),
        field_values=field_values,
        background_visible=background_visible,
        certificate_number=number,
        created_by=created_by,
    )
    db.session.add(certificate)
    _commit_certificate()
    current_app.logger.info(
        "[CERT] issued id=%s template=%s", certificate.id, template_id
    )
    return certificate


def update_certificate_fields(certificate_id: str, partial: dict) -> Certificate:
    """Admin correction of an issued certificate; ``templateId`` is immutable."""
    if not isinstance(partial, dict):
        raise InvalidInput("Invalid request payload.")
    certificate = get_certificate(certificate_id)
    if "templateId" in partial and partial["templateId"] != certificate.template_id:
        raise InvalidInput("templateId cannot be changed")
    changes: dict = {}
    for key, attr in _CERTIFICATE_UPDATABLE.items():
        if key not in partial:
            continue
        value = partial[key]
        if key == "fieldValues":
            value = sanitize_field_values(value)
        elif key == "backgroundVisible":
            if not isinstance(value, bool):
                raise InvalidInput("backgroundVisible must be a boolean")
        elif key == "recipientName":
            value = str(value or "").strip()
            if not value:
                raise InvalidInput("recipientName cannot be empty")
        elif key == "certificateNumber":
            value = _certificate_number(value)
            _ensure_unique_number(value, exclude_id=certificate.id)
        else:
            value = str(value or "").strip() or None
        changes[attr] = value
    for attr, value in changes.items():
        setattr(certificate, attr, value)
    _commit_certificate()
    return certificate


def delete_certificate(certificate_id: str) -> None:
    certificate = get_certificate(certificate_id)
    db.session.delete(certificate)
    db.session.commit()
