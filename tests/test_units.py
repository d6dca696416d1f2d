"""
Tests for the calibration object registry.
"""

import pytest

from optical_engine import (
    CalibrationKind,
    CalibrationObject,
    UnknownCalibrationKind,
    real_size_mm_for,
)


class TestRegistry:
    """Fixed table of reference sizes."""

    def test_cards_use_id1_long_edge(self):
        assert real_size_mm_for(CalibrationKind.CREDIT_CARD) == pytest.approx(85.60)
        assert real_size_mm_for(CalibrationKind.ID_CARD) == pytest.approx(85.60)

    def test_coin_and_ruler_have_defaults(self):
        assert real_size_mm_for(CalibrationKind.COIN) == pytest.approx(27.0)
        assert real_size_mm_for(CalibrationKind.RULER) == pytest.approx(100.0)

    def test_string_kind_is_coerced(self):
        assert real_size_mm_for("credit_card") == pytest.approx(85.60)
        assert real_size_mm_for(" ID_CARD ") == pytest.approx(85.60)

    @pytest.mark.parametrize("kind", ["banknote", "", 42, None])
    def test_unknown_kind_fails(self, kind):
        with pytest.raises(UnknownCalibrationKind) as exc:
            real_size_mm_for(kind)
        assert exc.value.code == "unknown_calibration_kind"


class TestCalibrationObject:
    """Construction and invariants."""

    def test_for_kind_uses_registry(self):
        obj = CalibrationObject.for_kind("credit_card")
        assert obj.kind is CalibrationKind.CREDIT_CARD
        assert obj.real_size_mm == pytest.approx(85.60)

    def test_coin_accepts_override(self):
        obj = CalibrationObject.for_kind(CalibrationKind.COIN, 24.26)
        assert obj.real_size_mm == pytest.approx(24.26)

    def test_card_rejects_different_size(self):
        with pytest.raises(ValueError):
            CalibrationObject.for_kind(CalibrationKind.CREDIT_CARD, 90.0)

    def test_card_accepts_matching_size(self):
        obj = CalibrationObject.for_kind(CalibrationKind.ID_CARD, 85.60)
        assert obj.real_size_mm == pytest.approx(85.60)

    @pytest.mark.parametrize("size", [0.0, -5.0, float("nan"), float("inf")])
    def test_non_positive_size_rejected(self, size):
        with pytest.raises(ValueError):
            CalibrationObject(kind=CalibrationKind.RULER, real_size_mm=size)

    def test_is_immutable(self):
        obj = CalibrationObject.for_kind("coin")
        with pytest.raises(AttributeError):
            obj.real_size_mm = 10.0
