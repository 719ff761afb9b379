from __future__ import annotations

from io import BytesIO

from flask import current_app
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from ..shared.errors import BackgroundAssetError, InvalidInput, NotFound
from ..shared.fonts import PdfFontRegistry
from ..shared.layout import IMAGE, TEXT, RenderPlan, RenderResult, ResolvedBox
from ..shared.storage import AssetStore
from ..shared.units import mm_to_points

PDF_MIMETYPE = "application/pdf"


def page_size_points(plan: RenderPlan) -> tuple[float, float]:
    return mm_to_points(plan.width), mm_to_points(plan.height)


def text_anchor_points(box: ResolvedBox, page_height: float) -> tuple[float, float]:
    """Anchor of a text box in PDF space: (align anchor x, top of the line)."""
    return mm_to_points(box.anchor_x), page_height - mm_to_points(box.y)


def _image_reader(data: bytes) -> ImageReader:
    reader = ImageReader(BytesIO(data))
    # force a decode so corrupt bytes fail here rather than inside drawImage
    reader.getSize()
    return reader


def _draw_background(c, plan: RenderPlan, store: AssetStore, w: float, h: float) -> None:
    reference = plan.background
    if not reference:
        raise BackgroundAssetError(plan.template_id, reference, "no background image set")
    try:
        data = store.read_reference(reference)
    except (NotFound, InvalidInput) as exc:
        raise BackgroundAssetError(plan.template_id, reference, str(exc)) from exc
    try:
        reader = _image_reader(data)
    except Exception as exc:
        raise BackgroundAssetError(
            plan.template_id, reference, f"unreadable image: {exc}"
        ) from exc
    # full bleed; the background is stretched to the page
    c.drawImage(reader, 0, 0, width=w, height=h, mask="auto")


def _draw_text(c, box: ResolvedBox, fonts: PdfFontRegistry, page_height: float) -> None:
    if not box.text:
        return
    font_name = fonts.font_name(box.font_family, box.font_weight)
    size = box.font_size
    anchor_x, top = text_anchor_points(box, page_height)
    text_width = pdfmetrics.stringWidth(box.text, font_name, size)
    left = box.text_left(anchor_x, text_width)
    baseline = top - pdfmetrics.getAscent(font_name, size)
    r, g, b = box.rgb
    c.setFont(font_name, size)
    c.setFillColorRGB(r / 255.0, g / 255.0, b / 255.0)
    c.drawString(left, baseline, box.text)


def _draw_image(
    c, box: ResolvedBox, store: AssetStore, page_height: float, warnings: list[str]
) -> None:
    try:
        reader = _image_reader(store.read_reference(box.image_ref))
    except (NotFound, InvalidInput) as exc:
        _skip_image(box, str(exc), warnings)
        return
    except Exception as exc:
        _skip_image(box, f"unreadable image: {exc}", warnings)
        return
    c.drawImage(
        reader,
        mm_to_points(box.x),
        page_height - mm_to_points(box.y + box.height),
        width=mm_to_points(box.width),
        height=mm_to_points(box.height),
        preserveAspectRatio=True,
        anchor="c",
        mask="auto",
    )


def _skip_image(box: ResolvedBox, reason: str, warnings: list[str]) -> None:
    warnings.append(f"Image for field {box.field_id} skipped: {reason}")
    current_app.logger.warning("[RENDER] pdf field=%s image skipped reason=%s", box.field_id, reason)


def render_pdf(plan: RenderPlan, store: AssetStore, title: str | None = None) -> RenderResult:
    """Paint ``plan`` onto a single page sized exactly to the template."""
    w, h = page_size_points(plan)
    fonts = PdfFontRegistry(store)
    fonts.prepare(plan.custom_font_families)
    warnings: list[str] = list(fonts.warnings)

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(w, h), pageCompression=1)
    if title:
        c.setTitle(title)
    if plan.background is not None:
        _draw_background(c, plan, store, w, h)
    for box in plan.boxes:
        if box.kind == TEXT:
            _draw_text(c, box, fonts, h)
        elif box.kind == IMAGE:
            _draw_image(c, box, store, h, warnings)
    c.showPage()
    c.save()
    current_app.logger.info(
        "[RENDER] pdf template=%s fields=%d warnings=%d",
        plan.template_id,
        len(plan.boxes),
        len(warnings),
    )
    return RenderResult(buffer.getvalue(), PDF_MIMETYPE, tuple(warnings))
