from __future__ import annotations

from typing import Mapping

from flask import current_app

from ..shared.fonts import FontFaceRegistry
from ..shared.layout import RenderResult, resolve_layout
from ..shared.storage import get_asset_store
from . import repository
from .render_html import InteractiveLayout, build_interactive_layout
from .render_pdf import render_pdf as paint_pdf
from .render_raster import render_raster as paint_raster


def _log_warnings(kind: str, template_id: str, result: RenderResult) -> RenderResult:
    for warning in result.warnings:
        current_app.logger.warning("[RENDER] %s template=%s %s", kind, template_id, warning)
    return result


def render_vector(
    template_id: str,
    field_values: Mapping[str, str] | None = None,
    background_visible: bool | None = None,
    title: str | None = None,
) -> RenderResult:
    # snapshot first so a concurrent template save cannot change this render
    template = repository.template_snapshot(template_id)
    plan = resolve_layout(template, field_values, background_visible)
    result = paint_pdf(plan, get_asset_store(), title=title or template.get("name"))
    return _log_warnings("pdf", template_id, result)


def render_raster(
    template_id: str,
    field_values: Mapping[str, str] | None = None,
    background_visible: bool | None = None,
) -> RenderResult:
    template = repository.template_snapshot(template_id)
    plan = resolve_layout(template, field_values, background_visible)
    result = paint_raster(plan, get_asset_store())
    return _log_warnings("jpeg", template_id, result)


def render_certificate_pdf(certificate_id: str) -> RenderResult:
    cert = repository.get_certificate(certificate_id)
    current_app.logger.info(
        "[RENDER] certificate=%s template=%s format=pdf", cert.id, cert.template_id
    )
    return render_vector(
        cert.template_id,
        cert.field_values,
        cert.background_visible,
        title=f"Certificate - {cert.recipient_name}",
    )


def render_certificate_jpeg(certificate_id: str) -> RenderResult:
    cert = repository.get_certificate(certificate_id)
    current_app.logger.info(
        "[RENDER] certificate=%s template=%s format=jpeg", cert.id, cert.template_id
    )
    return render_raster(cert.template_id, cert.field_values, cert.background_visible)


def designer_layout(
    template_id: str, scale: float = 1.0
) -> tuple[dict, InteractiveLayout]:
    """Editor canvas for a template, with field names shown for empty fields."""
    template = repository.template_snapshot(template_id)
    plan = resolve_layout(template, None, True, include_empty_images=True)
    labels = {
        str(field.get("id")): str(field.get("name") or "")
        for field in template.get("fields") or []
    }
    layout = build_interactive_layout(plan, scale, FontFaceRegistry(), labels)
    return template, layout

