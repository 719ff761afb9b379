import pytest

from certdesigner.shared.units import (
    MAX_SCALE,
    MIN_SCALE,
    clamp_scale,
    mm_to_pixels,
    mm_to_points,
    mm_to_raster_pixels,
    pixels_to_mm,
    points_to_mm,
    points_to_raster_pixels,
    raster_pixels_to_mm,
)


def test_mm_to_pixels_scales_with_zoom():
    assert mm_to_pixels(10) == pytest.approx(37.795275591)
    assert mm_to_pixels(10, 2.0) == pytest.approx(75.590551182)


def test_pixels_to_mm_keeps_editor_constant():
    # 0.264583 rather than 1 / 3.7795275591
    assert pixels_to_mm(1) == 0.264583
    assert pixels_to_mm(37.795, 1.0) == pytest.approx(10.0, abs=0.01)
    assert pixels_to_mm(75.59, 2.0) == pytest.approx(10.0, abs=0.01)


def test_round_trip_stays_within_tenth_of_mm():
    for mm in (0, 0.5, 12.3, 148.5, 297):
        for scale in (0.5, 1.0, 1.7, 3.0):
            assert abs(pixels_to_mm(mm_to_pixels(mm, scale), scale) - mm) <= 0.1


def test_points_and_raster_pixels():
    assert mm_to_points(50) == pytest.approx(141.73, abs=0.01)
    assert points_to_mm(mm_to_points(123.4)) == pytest.approx(123.4)
    assert mm_to_raster_pixels(210) == pytest.approx(2480.31, abs=0.01)
    assert raster_pixels_to_mm(mm_to_raster_pixels(33)) == pytest.approx(33)
    assert points_to_raster_pixels(72) == pytest.approx(300)


@pytest.mark.parametrize(
    "raw, expected",
    [(0.1, MIN_SCALE), (0.5, 0.5), (1.3, 1.3), (3.0, 3.0), (7, MAX_SCALE)],
)
def test_clamp_scale(raw, expected):
    assert clamp_scale(raw) == expected
