"""
Structured failures raised by the optical measurement engine.

Every error carries a stable ``code`` and a ``details`` mapping so callers
can decide what to tell the user (e.g. "retake the photo with the card
visible") without parsing messages.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple


class MeasurementError(Exception):
    """Base class for all engine failures."""

    code = "measurement_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> dict:
        """Convert error to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnknownCalibrationKind(MeasurementError):
    """Calibration kind outside the supported set."""

    code = "unknown_calibration_kind"

    def __init__(self, kind: Any):
        super().__init__(f"Unknown calibration object kind: {kind!r}", kind=str(kind))
        self.kind = kind


class DegenerateCalibration(MeasurementError):
    """Calibration object too small (or misdetected) to derive a scale."""

    code = "degenerate_calibration"

    def __init__(self, pixel_distance: float, minimum: float):
        super().__init__(
            f"Calibration object spans {pixel_distance:.2f}px, "
            f"need at least {minimum:.1f}px",
            pixel_distance=pixel_distance,
            minimum=minimum,
        )
        self.pixel_distance = pixel_distance
        self.minimum = minimum


class ImplausibleScale(MeasurementError):
    """Derived mm/px lies outside the range a real camera setup produces."""

    code = "implausible_scale"

    def __init__(self, mm_per_pixel: float, bounds: Tuple[float, float]):
        super().__init__(
            f"Scale {mm_per_pixel:.4f} mm/px outside expected range "
            f"[{bounds[0]}, {bounds[1]}]",
            mm_per_pixel=mm_per_pixel,
            bounds=list(bounds),
        )
        self.mm_per_pixel = mm_per_pixel
        self.bounds = bounds


class InsufficientLandmarks(MeasurementError):
    """Required landmarks are missing or unusable."""

    code = "insufficient_landmarks"

    def __init__(
        self,
        missing: Sequence[str] = (),
        invalid: Sequence[str] = (),
        message: Optional[str] = None,
    ):
        missing_list: List[str] = list(missing)
        invalid_list: List[str] = list(invalid)
        if message is None:
            parts = []
            if missing_list:
                parts.append(f"missing: {', '.join(missing_list)}")
            if invalid_list:
                parts.append(f"invalid: {', '.join(invalid_list)}")
            message = "Insufficient landmarks (" + "; ".join(parts) + ")"
        super().__init__(message, missing=missing_list, invalid=invalid_list)
        self.missing = missing_list
        self.invalid = invalid_list


class ImplausibleResult(MeasurementError):
    """A computed value falls outside its physiological range."""

    code = "implausible_result"

    def __init__(self, field: str, value: float, bounds: Tuple[float, float], message: Optional[str] = None):
        if message is None:
            message = (
                f"{field}={value:.2f}mm outside plausible range "
                f"[{bounds[0]}, {bounds[1]}]"
            )
        super().__init__(message, field=field, value=value, bounds=list(bounds))
        self.field = field
        self.value = value
        self.bounds = bounds
