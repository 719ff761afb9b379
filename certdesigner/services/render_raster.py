from __future__ import annotations

from io import BytesIO

from flask import current_app
from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from ..shared.errors import BackgroundAssetError, InvalidInput, NotFound
from ..shared.fonts import RasterFontRegistry
from ..shared.layout import IMAGE, TEXT, RenderPlan, RenderResult, ResolvedBox
from ..shared.storage import AssetStore
from ..shared.units import RASTER_DPI, mm_to_raster_pixels, points_to_raster_pixels

JPEG_MIMETYPE = "image/jpeg"
JPEG_QUALITY = 95
_WHITE = (255, 255, 255)


def page_size_pixels(plan: RenderPlan) -> tuple[int, int]:
    return (
        max(int(round(mm_to_raster_pixels(plan.width))), 1),
        max(int(round(mm_to_raster_pixels(plan.height))), 1),
    )


def _px(mm: float) -> int:
    return int(round(mm_to_raster_pixels(mm)))


def _open_image(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


def _background(plan: RenderPlan, store: AssetStore, size: tuple[int, int]) -> Image.Image:
    if plan.background is None:
        return Image.new("RGB", size, _WHITE)
    reference = plan.background
    if not reference:
        raise BackgroundAssetError(plan.template_id, reference, "no background image set")
    try:
        data = store.read_reference(reference)
    except (NotFound, InvalidInput) as exc:
        raise BackgroundAssetError(plan.template_id, reference, str(exc)) from exc
    try:
        image = _open_image(data)
    except (UnidentifiedImageError, OSError) as exc:
        raise BackgroundAssetError(
            plan.template_id, reference, f"unreadable image: {exc}"
        ) from exc
    page = Image.new("RGB", size, _WHITE)
    stretched = image.convert("RGBA").resize(size, Image.LANCZOS)
    page.paste(stretched, (0, 0), stretched)
    return page


def _draw_text(draw: ImageDraw.ImageDraw, box: ResolvedBox, fonts: RasterFontRegistry) -> None:
    if not box.text:
        return
    size_px = int(round(points_to_raster_pixels(box.font_size)))
    font = fonts.get(box.font_family, box.font_weight, size_px)
    text_width = draw.textlength(box.text, font=font)
    left = box.text_left(mm_to_raster_pixels(box.anchor_x), text_width)
    # default "la" anchor: the given y is the ascender line, i.e. the top of the text
    draw.text((left, mm_to_raster_pixels(box.y)), box.text, font=font, fill=box.rgb)


def _paste_image(
    page: Image.Image, box: ResolvedBox, store: AssetStore, warnings: list[str]
) -> None:
    try:
        image = _open_image(store.read_reference(box.image_ref))
    except (NotFound, InvalidInput) as exc:
        _skip_image(box, str(exc), warnings)
        return
    except (UnidentifiedImageError, OSError) as exc:
        _skip_image(box, f"unreadable image: {exc}", warnings)
        return
    box_w, box_h = max(_px(box.width), 1), max(_px(box.height), 1)
    fitted = ImageOps.contain(image.convert("RGBA"), (box_w, box_h), Image.LANCZOS)
    left = _px(box.x) + (box_w - fitted.width) // 2
    top = _px(box.y) + (box_h - fitted.height) // 2
    page.paste(fitted, (left, top), fitted)


def _skip_image(box: ResolvedBox, reason: str, warnings: list[str]) -> None:
    warnings.append(f"Image for field {box.field_id} skipped: {reason}")
    current_app.logger.warning("[RENDER] raster field=%s image skipped reason=%s", box.field_id, reason)


def render_raster(plan: RenderPlan, store: AssetStore, fonts: RasterFontRegistry | None = None) -> RenderResult:
    """Flattened RGB JPEG of ``plan`` at 300 DPI."""
    fonts = fonts or RasterFontRegistry(store)
    fonts.prepare(plan.custom_font_families)
    warnings: list[str] = list(fonts.warnings)

    size = page_size_pixels(plan)
    page = _background(plan, store, size)
    draw = ImageDraw.Draw(page)
    for box in plan.boxes:
        if box.kind == TEXT:
            _draw_text(draw, box, fonts)
        elif box.kind == IMAGE:
            _paste_image(page, box, store, warnings)

    out = BytesIO()
    page.convert("RGB").save(
        out, format="JPEG", quality=JPEG_QUALITY, dpi=(RASTER_DPI, RASTER_DPI)
    )
    current_app.logger.info(
        "[RENDER] jpeg template=%s size=%sx%s warnings=%d",
        plan.template_id,
        size[0],
        size[1],
        len(warnings),
    )
    return RenderResult(out.getvalue(), JPEG_MIMETYPE, tuple(warnings))
