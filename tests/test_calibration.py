"""
Tests for scale resolution.
"""

import pytest

from optical_engine import CalibrationObject, DegenerateCalibration, ImplausibleScale
from optical_engine.calibration import resolve_scale


@pytest.fixture
def card():
    return CalibrationObject.for_kind("credit_card")


class TestResolveScale:
    """mm/px from the calibration object's extreme points."""

    def test_card_spanning_200px(self, card):
        scale = resolve_scale((300, 100), (500, 100), card)
        assert scale.pixel_distance == pytest.approx(200.0)
        assert scale.mm_per_pixel == pytest.approx(0.428)
        assert scale.calibration is card

    def test_diagonal_edge_uses_euclidean_distance(self, card):
        scale = resolve_scale((0, 0), (120, 160), card)
        assert scale.pixel_distance == pytest.approx(200.0)

    @pytest.mark.parametrize("span", [100.0, 150.0, 250.0, 400.0])
    def test_doubling_span_halves_scale(self, card, span):
        single = resolve_scale((0, 0), (span, 0), card)
        double = resolve_scale((0, 0), (2 * span, 0), card)
        assert double.mm_per_pixel == pytest.approx(single.mm_per_pixel / 2)

    def test_short_span_is_degenerate(self, card):
        with pytest.raises(DegenerateCalibration) as exc:
            resolve_scale((300, 100), (303, 100), card)
        assert exc.value.pixel_distance == pytest.approx(3.0)
        assert exc.value.code == "degenerate_calibration"

    def test_coincident_points_are_degenerate(self, card):
        with pytest.raises(DegenerateCalibration):
            resolve_scale((10, 10), (10, 10), card)

    def test_small_object_is_implausible(self, card):
        # 85.6 mm across 10 px = 8.56 mm/px
        with pytest.raises(ImplausibleScale) as exc:
            resolve_scale((0, 0), (10, 0), card)
        assert exc.value.mm_per_pixel == pytest.approx(8.56)

    def test_huge_object_is_implausible(self, card):
        with pytest.raises(ImplausibleScale):
            resolve_scale((0, 0), (5000, 0), card)

    def test_custom_thresholds(self, card):
        scale = resolve_scale((0, 0), (10, 0), card, min_pixel_distance=2.0, scale_range=(0.01, 10.0))
        assert scale.mm_per_pixel == pytest.approx(8.56)


class TestScaleFactor:
    """Derived helpers."""

    def test_to_mm(self, card):
        scale = resolve_scale((300, 100), (500, 100), card)
        assert scale.to_mm(140) == pytest.approx(59.92)

    def test_camera_distance_with_known_focal_length(self, card):
        scale = resolve_scale((0, 0), (200, 0), card)
        assert scale.camera_distance_mm(800, focal_length_px=1000.0) == pytest.approx(428.0)
