from __future__ import annotations

import uuid

from .app import db


def _uuid() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class Settings(db.Model):
    __tablename__ = "settings"
    id = db.Column(db.Integer, primary_key=True, default=1)
    normal_move_amount = db.Column(db.Float, nullable=False, default=0.5)
    shift_move_amount = db.Column(db.Float, nullable=False, default=1.0)
    default_background_visible = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )

    # always enforce singleton row id=1
    @staticmethod
    def get() -> "Settings | None":
        return db.session.get(Settings, 1)

    @staticmethod
    def get_or_create() -> "Settings":
        settings = Settings.get()
        if settings is None:
            settings = Settings(
                id=1,
                normal_move_amount=0.5,
                shift_move_amount=1.0,
                default_background_visible=True,
            )
            db.session.add(settings)
            db.session.commit()
        return settings

    def to_dict(self) -> dict:
        return {
            "normalMoveAmount": self.normal_move_amount,
            "shiftMoveAmount": self.shift_move_amount,
            "defaultBackgroundVisible": self.default_background_visible,
            "updatedAt": _iso(self.updated_at),
        }


class CertificateTemplate(db.Model):
    __tablename__ = "certificate_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    background_image_url = db.Column(db.Text, nullable=False)
    width = db.Column(db.Float, nullable=False)
    height = db.Column(db.Float, nullable=False)
    fields = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "backgroundImageUrl": self.background_image_url,
            "width": self.width,
            "height": self.height,
            "fields": list(self.fields or []),
            "isActive": bool(self.is_active),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Certificate(db.Model):
    __tablename__ = "certificates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    # no foreign key: certificates outlive the template they were issued from
    template_id = db.Column(db.String(36), nullable=False, index=True)
    recipient_name = db.Column(db.String(255), nullable=False)
    issued_to = db.Column(db.String(255))
    field_values = db.Column(db.JSON, nullable=False, default=dict)
    background_visible = db.Column(db.Boolean, nullable=False, default=True)
    certificate_number = db.Column(db.String(64), unique=True, index=True)
    created_by = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "templateId": self.template_id,
            "recipientName": self.recipient_name,
            "issuedTo": self.issued_to,
            "fieldValues": dict(self.field_values or {}),
            "backgroundVisible": bool(self.background_visible),
            "certificateNumber": self.certificate_number,
            "createdBy": self.created_by,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
