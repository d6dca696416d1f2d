"""
Tests for lighting coercion, consistency, plausibility and the quality score.
"""

import itertools

import pytest

from optical_engine import CalibrationObject, LightingCondition
from optical_engine.calibration import resolve_scale
from optical_engine.geometry import compute_geometry
from optical_engine.quality import assess_quality, check_consistency, find_implausible


@pytest.fixture
def geometry(landmarks):
    scale = resolve_scale((300, 100), (500, 100), CalibrationObject.for_kind("credit_card"))
    return compute_geometry(landmarks, scale)


class TestLightingCondition:
    """Upstream labels clamp to the three-valued enum."""

    def test_scores(self):
        assert LightingCondition.GOOD.score == 1.0
        assert LightingCondition.FAIR.score == 0.6
        assert LightingCondition.POOR.score == 0.2

    @pytest.mark.parametrize("label,expected", [
        ("good", LightingCondition.GOOD),
        (" FAIR ", LightingCondition.FAIR),
        ("excellent", LightingCondition.GOOD),
        ("moderate", LightingCondition.FAIR),
        ("dark", LightingCondition.POOR),
    ])
    def test_known_labels(self, label, expected):
        assert LightingCondition.coerce(label) is expected

    @pytest.mark.parametrize("label", ["studio", "", None, 3])
    def test_unknown_labels_are_poor(self, label):
        assert LightingCondition.coerce(label) is LightingCondition.POOR


class TestChecks:
    """Consistency and plausibility."""

    def test_reference_geometry_passes(self, geometry):
        assert check_consistency(geometry)
        assert find_implausible(geometry) == []

    def test_consistency_tolerance(self, make_landmarks):
        scale = resolve_scale((300, 100), (500, 100), CalibrationObject.for_kind("credit_card"))
        geo = compute_geometry(make_landmarks(right_pupil=[470.0, 325.0]), scale)
        assert not check_consistency(geo)
        assert check_consistency(geo, tolerance_mm=1.0)

    def test_wide_pd_is_first_offender(self, make_landmarks):
        scale = resolve_scale((300, 100), (500, 100), CalibrationObject.for_kind("credit_card"))
        lm = make_landmarks(left_pupil=[300.0, 300.0], right_pupil=[500.0, 300.0])
        offenders = find_implausible(compute_geometry(lm, scale))
        name, value, bounds = offenders[0]
        assert name == "pupillary_distance_mm"
        assert value == pytest.approx(85.6)
        assert bounds == (45.0, 80.0)

    def test_optical_center_offset_is_symmetric(self, geometry):
        offenders = find_implausible(geometry, {"optical_center_offset_mm": (0.0, 0.5)})
        assert [name for name, _, _ in offenders] == [
            "optical_center_left.y",
            "optical_center_right.y",
        ]

    def test_optical_center_offset_lower_bound(self, geometry):
        # |x| = 0.428 and |y| = 0.856 for both eyes
        offenders = find_implausible(geometry, {"optical_center_offset_mm": (0.5, 10.0)})
        assert offenders == [
            ("optical_center_left.x", pytest.approx(-0.428), (0.5, 10.0)),
            ("optical_center_right.x", pytest.approx(0.428), (0.5, 10.0)),
        ]

    def test_absent_frame_is_not_checked(self, geometry):
        assert find_implausible(geometry, {"frame_width_mm": (500.0, 600.0)}) == []


class TestAssessQuality:
    """Weighted score and penalties."""

    def test_clean_good_lighting(self):
        q = assess_quality(0.95, "good", True, True, False)
        assert q.score == pytest.approx(0.96)
        assert q.penalties == []

    def test_fallback_penalty(self):
        q = assess_quality(0.95, "good", True, True, True)
        assert q.score == pytest.approx(0.816)
        assert q.penalties == ["segment_height_fallback"]

    def test_each_failed_check_penalises(self):
        one = assess_quality(0.9, "fair", False, True, False)
        two = assess_quality(0.9, "fair", False, False, False)
        base = 0.8 * 0.9 + 0.2 * 0.6
        assert one.score == pytest.approx(base * 0.7)
        assert two.score == pytest.approx(base * 0.49)
        assert two.penalties == ["pd_consistency", "plausibility"]

    @pytest.mark.parametrize("confidence,expected", [(1.7, 1.0), (-0.3, 0.0), (None, 0.0), (float("nan"), 0.0)])
    def test_confidence_is_clamped(self, confidence, expected):
        q = assess_quality(confidence, "good", True, True, False)
        assert q.confidence == expected
        assert 0.0 <= q.score <= 1.0

    def test_monotonic_in_every_input(self):
        confidences = [0.0, 0.3, 0.6, 0.9, 1.0]
        lightings = [LightingCondition.POOR, LightingCondition.FAIR, LightingCondition.GOOD]
        flags = [False, True]

        def score(c, l, cons, plaus, clean):
            return assess_quality(c, l, cons, plaus, not clean).score

        grid = list(itertools.product(range(5), range(3), flags, flags, flags))
        for a, b in itertools.product(grid, repeat=2):
            if all(x <= y for x, y in zip(a, b)):
                worse = score(confidences[a[0]], lightings[a[1]], *a[2:])
                better = score(confidences[b[0]], lightings[b[1]], *b[2:])
                assert better >= worse - 1e-12
