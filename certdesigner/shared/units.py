from __future__ import annotations

# 96 px per inch / 25.4 mm per inch
PX_PER_MM = 3.7795275591
# not the exact inverse of PX_PER_MM; drag math depends on this value
MM_PER_PX = 0.264583
# 72 pt per inch / 25.4 mm per inch
PT_PER_MM = 2.834645669
# 300 dpi raster output
RASTER_DPI = 300
RASTER_PX_PER_MM = 11.811

MIN_SCALE = 0.5
MAX_SCALE = 3.0
ZOOM_STEP = 0.1


def mm_to_pixels(mm: float, scale: float = 1.0) -> float:
    return mm * PX_PER_MM * scale


def pixels_to_mm(px: float, scale: float = 1.0) -> float:
    return px * MM_PER_PX / scale


def mm_to_points(mm: float) -> float:
    return mm * PT_PER_MM


def points_to_mm(pt: float) -> float:
    return pt / PT_PER_MM


def mm_to_raster_pixels(mm: float) -> float:
    return mm * RASTER_PX_PER_MM


def raster_pixels_to_mm(px: float) -> float:
    return px / RASTER_PX_PER_MM


def points_to_raster_pixels(pt: float) -> float:
    """Font sizes are stored in points; the raster backend draws in 300 dpi pixels."""
    return pt * RASTER_DPI / 72.0


def clamp_scale(scale: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, scale))
