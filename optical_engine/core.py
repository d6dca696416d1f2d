"""
Core Optical Measurement Engine

This module provides the OpticalMeasurementEngine class, which composes
scale resolution, landmark geometry and quality assessment into a single
validated MeasurementResult.

Each call runs Setup -> Compute -> Validate and either returns a result or
raises a MeasurementError. Nothing is retried or cached between calls.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

from .calibration import ScaleFactor, resolve_scale
from .errors import ImplausibleResult
from .geometry import GeometryMeasurements, OpticalCenter, compute_geometry
from .landmarks import LandmarkSet
from .quality import (
    LightingCondition,
    QualityAssessment,
    assess_quality,
    check_consistency,
    find_implausible,
)
from .units import CalibrationKind, CalibrationObject
from .utils import (
    MIN_CALIBRATION_PX,
    PD_SUM_TOLERANCE_MM,
    PLAUSIBILITY_BOUNDS_MM,
    RELIABLE_QUALITY,
    SCALE_RANGE_MM_PER_PX,
    SEGMENT_FALLBACK_FACE_RATIO,
    Bounds,
)


# Camera distances outside this range make the planar scale assumption shaky
NEAR_CAMERA_MM = 200.0
FAR_CAMERA_MM = 800.0


@dataclass(frozen=True)
class MeasurementResult:
    """
    Complete optical measurement for one photograph.

    All lengths are mm at full double precision; rounding happens only in
    ``to_dict``.
    """

    # Pupillary distance
    pupillary_distance_mm: float
    monocular_pd_left_mm: float
    monocular_pd_right_mm: float

    # Optical centers
    optical_center_left: OpticalCenter
    optical_center_right: OpticalCenter

    # Segment height
    segment_height_left_mm: float
    segment_height_right_mm: float

    # Face
    face_width_mm: float
    face_height_mm: float
    nose_bridge_width_mm: float

    # Quality
    measurement_quality: float
    face_detection_confidence: float
    lighting_condition: LightingCondition

    # Calibration
    mm_per_pixel: float
    calibration_kind: CalibrationKind

    # Frame (only when a frame box was supplied)
    frame_width_mm: Optional[float] = None
    frame_height_mm: Optional[float] = None

    segment_height_estimated: bool = False
    flags: Tuple[str, ...] = field(default_factory=tuple)
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_reliable(self) -> bool:
        """Check if the measurement is good enough to order lenses without review."""
        return (
            self.measurement_quality >= RELIABLE_QUALITY
            and not self.flags
            and not self.segment_height_estimated
        )

    def to_dict(self, decimals: Optional[int] = 1) -> dict:
        """
        Convert result to dictionary for serialization.

        Args:
            decimals: Decimal places for mm values; None keeps full precision
        """
        def mm(value: Optional[float]) -> Optional[float]:
            if value is None or decimals is None:
                return value
            return round(value, decimals)

        return {
            "pupillary_distance": mm(self.pupillary_distance_mm),
            "monocular_pd_left": mm(self.monocular_pd_left_mm),
            "monocular_pd_right": mm(self.monocular_pd_right_mm),
            "optical_center_left": self.optical_center_left.to_dict(decimals),
            "optical_center_right": self.optical_center_right.to_dict(decimals),
            "segment_height_left": mm(self.segment_height_left_mm),
            "segment_height_right": mm(self.segment_height_right_mm),
            "face_width": mm(self.face_width_mm),
            "face_height": mm(self.face_height_mm),
            "nose_bridge_width": mm(self.nose_bridge_width_mm),
            "frame_width": mm(self.frame_width_mm),
            "frame_height": mm(self.frame_height_mm),
            "measurement_quality": round(self.measurement_quality, 2),
            "face_detection_confidence": round(self.face_detection_confidence, 2),
            "lighting_condition": self.lighting_condition.value,
            "mm_per_pixel": self.mm_per_pixel,
            "calibration_object": self.calibration_kind.value,
            "segment_height_estimated": self.segment_height_estimated,
            "is_reliable": self.is_reliable,
            "flags": list(self.flags),
            "warnings": list(self.warnings),
        }

    def __str__(self) -> str:
        """Human-readable string representation."""
        grade = "✓ Reliable" if self.is_reliable else "⚠ Review"
        return (
            f"MeasurementResult(PD={self.pupillary_distance_mm:.1f}mm "
            f"[L {self.monocular_pd_left_mm:.1f} / R {self.monocular_pd_right_mm:.1f}], "
            f"quality={self.measurement_quality:.0%}, {grade})"
        )


class OpticalMeasurementEngine:
    """
    Stateless engine turning detected landmarks into optical measurements.

    Holds only immutable thresholds, so one instance can serve concurrent
    requests.

    Usage:
        engine = OpticalMeasurementEngine()
        result = engine.measure(landmarks, CalibrationKind.CREDIT_CARD, 0.95, "good")
        print(f"PD: {result.pupillary_distance_mm:.1f}mm")
    """

    def __init__(
        self,
        min_calibration_px: float = MIN_CALIBRATION_PX,
        scale_range: Bounds = SCALE_RANGE_MM_PER_PX,
        consistency_tolerance_mm: float = PD_SUM_TOLERANCE_MM,
        segment_fallback_ratio: float = SEGMENT_FALLBACK_FACE_RATIO,
        plausibility_bounds: Optional[Dict[str, Bounds]] = None,
        strict: bool = True
    ):
        """
        Initialize the engine.

        Args:
            min_calibration_px: Shortest usable calibration span (pixels)
            scale_range: Accepted mm/px range
            consistency_tolerance_mm: Allowed |PD - (mono L + mono R)|
            segment_fallback_ratio: Face-height fraction for approximated segment height
            plausibility_bounds: Field -> (min, max) mm overrides
            strict: Raise ImplausibleResult instead of returning a flagged result
        """
        self.min_calibration_px = min_calibration_px
        self.scale_range = tuple(scale_range)
        self.consistency_tolerance_mm = consistency_tolerance_mm
        self.segment_fallback_ratio = segment_fallback_ratio
        self.plausibility_bounds = dict(PLAUSIBILITY_BOUNDS_MM)
        if plausibility_bounds:
            self.plausibility_bounds.update(plausibility_bounds)
        self.strict = strict

    def measure(
        self,
        landmarks: LandmarkSet,
        calibration: Union[CalibrationObject, CalibrationKind, str],
        detection_confidence: float,
        lighting: Union[LightingCondition, str, None]
    ) -> MeasurementResult:
        """
        Compute a validated measurement.

        Args:
            landmarks: Detector output for one photograph
            calibration: Calibration object, or a kind to look up in the registry
            detection_confidence: Detector confidence in [0, 1]
            lighting: Upstream lighting label

        Returns:
            MeasurementResult

        Raises:
            UnknownCalibrationKind, DegenerateCalibration, ImplausibleScale,
            InsufficientLandmarks, ImplausibleResult
        """
        # Setup
        if not isinstance(calibration, CalibrationObject):
            calibration = CalibrationObject.for_kind(calibration)
        landmarks.validate()

        # Compute
        scale = resolve_scale(
            landmarks.calibration_start,
            landmarks.calibration_end,
            calibration,
            min_pixel_distance=self.min_calibration_px,
            scale_range=self.scale_range,
        )
        geometry = compute_geometry(landmarks, scale, self.segment_fallback_ratio)

        # Validate
        consistency_ok = check_consistency(geometry, self.consistency_tolerance_mm)
        offenders = find_implausible(geometry, self.plausibility_bounds)
        quality = assess_quality(
            detection_confidence,
            lighting,
            consistency_ok=consistency_ok,
            plausibility_ok=not offenders,
            fallback_used=geometry.segment_height_estimated,
        )

        flags = []
        if not consistency_ok:
            flags.append("pupillary_distance_mm")
        flags.extend(name for name, _, _ in offenders)

        if self.strict:
            self._enforce(geometry, consistency_ok, offenders)

        return self._assemble(geometry, scale, quality, tuple(flags), landmarks)

    def _enforce(self, geometry: GeometryMeasurements, consistency_ok: bool, offenders) -> None:
        """Fail loudly on the first offending field."""
        if not consistency_ok:
            total = geometry.monocular_sum_mm
            tol = self.consistency_tolerance_mm
            raise ImplausibleResult(
                "pupillary_distance_mm",
                geometry.pupillary_distance_mm,
                (total - tol, total + tol),
                message=(
                    f"Binocular PD {geometry.pupillary_distance_mm:.2f}mm differs from "
                    f"monocular sum {total:.2f}mm by more than {tol}mm"
                ),
            )
        if offenders:
            name, value, limits = offenders[0]
            raise ImplausibleResult(name, value, limits)

    def _assemble(
        self,
        geometry: GeometryMeasurements,
        scale: ScaleFactor,
        quality: QualityAssessment,
        flags: Tuple[str, ...],
        landmarks: LandmarkSet
    ) -> MeasurementResult:
        warnings = list(geometry.warnings)

        camera_distance = scale.camera_distance_mm(landmarks.image_width)
        if camera_distance < NEAR_CAMERA_MM:
            warnings.append(
                f"Estimated camera distance {camera_distance:.0f}mm is very close; "
                "lens distortion may affect accuracy."
            )
        elif camera_distance > FAR_CAMERA_MM:
            warnings.append(
                f"Estimated camera distance {camera_distance:.0f}mm is far; "
                "landmark noise is amplified."
            )
        if flags:
            warnings.append(f"Failed checks: {', '.join(flags)}")

        return MeasurementResult(
            pupillary_distance_mm=geometry.pupillary_distance_mm,
            monocular_pd_left_mm=geometry.monocular_pd_left_mm,
            monocular_pd_right_mm=geometry.monocular_pd_right_mm,
            optical_center_left=geometry.optical_center_left,
            optical_center_right=geometry.optical_center_right,
            segment_height_left_mm=geometry.segment_height_left_mm,
            segment_height_right_mm=geometry.segment_height_right_mm,
            face_width_mm=geometry.face_width_mm,
            face_height_mm=geometry.face_height_mm,
            nose_bridge_width_mm=geometry.nose_bridge_width_mm,
            measurement_quality=quality.score,
            face_detection_confidence=quality.confidence,
            lighting_condition=quality.lighting,
            mm_per_pixel=scale.mm_per_pixel,
            calibration_kind=scale.calibration.kind,
            frame_width_mm=geometry.frame_width_mm,
            frame_height_mm=geometry.frame_height_mm,
            segment_height_estimated=geometry.segment_height_estimated,
            flags=flags,
            warnings=tuple(warnings),
        )


_default_engine = OpticalMeasurementEngine()


def compute_measurement(
    image_landmarks: LandmarkSet,
    calibration: Union[CalibrationObject, CalibrationKind, str],
    detection_confidence: float,
    lighting: Union[LightingCondition, str, None]
) -> MeasurementResult:
    """
    Compute a measurement with the default strict engine.

    See OpticalMeasurementEngine.measure.
    """
    return _default_engine.measure(image_landmarks, calibration, detection_confidence, lighting)
