"""
Quality Assessor - Measurement Confidence Scoring

Combines the detector's confidence, the upstream lighting label and the
engine's own geometric checks into one score in [0, 1]:

    score = 0.8 * detection_confidence + 0.2 * lighting_score
    score *= 0.7 for each failed check (PD consistency, plausibility)
    score *= 0.85 when segment height was approximated

Every factor is non-negative and non-decreasing in its input, so a strictly
better input set never scores lower than a worse one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .geometry import GeometryMeasurements
from .utils import (
    CHECK_PENALTY,
    DETECTION_WEIGHT,
    FALLBACK_PENALTY,
    LIGHTING_WEIGHT,
    PD_SUM_TOLERANCE_MM,
    PLAUSIBILITY_BOUNDS_MM,
    Bounds,
    clamp,
    within,
)


class LightingCondition(str, Enum):
    """Coarse lighting label from the upstream luminance estimator."""
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @property
    def score(self) -> float:
        return _LIGHTING_SCORES[self]

    @classmethod
    def coerce(cls, value: Union["LightingCondition", str, None]) -> "LightingCondition":
        """
        Clamp an upstream label to the three-valued enum.

        Unrecognised labels map to POOR.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            try:
                return cls(key)
            except ValueError:
                return _LIGHTING_SYNONYMS.get(key, cls.POOR)
        return cls.POOR


_LIGHTING_SCORES = {
    LightingCondition.GOOD: 1.0,
    LightingCondition.FAIR: 0.6,
    LightingCondition.POOR: 0.2,
}

_LIGHTING_SYNONYMS = {
    "excellent": LightingCondition.GOOD,
    "bright": LightingCondition.GOOD,
    "moderate": LightingCondition.FAIR,
    "medium": LightingCondition.FAIR,
    "bad": LightingCondition.POOR,
    "dark": LightingCondition.POOR,
    "overexposed": LightingCondition.POOR,
}


@dataclass
class QualityAssessment:
    """Result of quality assessment."""
    score: float
    lighting: LightingCondition
    confidence: float
    penalties: List[str] = field(default_factory=list)


def check_consistency(
    geometry: GeometryMeasurements,
    tolerance_mm: float = PD_SUM_TOLERANCE_MM
) -> bool:
    """Binocular PD must equal monocular left + right within tolerance."""
    return abs(geometry.pupillary_distance_mm - geometry.monocular_sum_mm) <= tolerance_mm


def find_implausible(
    geometry: GeometryMeasurements,
    bounds: Optional[Dict[str, Bounds]] = None
) -> List[Tuple[str, float, Bounds]]:
    """
    List every output outside its physiological range.

    Args:
        geometry: Computed measurements
        bounds: Field -> (min, max) in mm; defaults to PLAUSIBILITY_BOUNDS_MM

    Returns:
        List of (field, value, bounds), in output order
    """
    bounds = PLAUSIBILITY_BOUNDS_MM if bounds is None else bounds
    offenders = []

    def check(name: str, value: Optional[float], limits: Optional[Bounds]):
        if value is None or limits is None:
            return
        if not within(value, limits):
            offenders.append((name, value, limits))

    check("pupillary_distance_mm", geometry.pupillary_distance_mm, bounds.get("pupillary_distance_mm"))
    check("monocular_pd_left_mm", geometry.monocular_pd_left_mm, bounds.get("monocular_pd_left_mm"))
    check("monocular_pd_right_mm", geometry.monocular_pd_right_mm, bounds.get("monocular_pd_right_mm"))

    # Offset bounds limit the magnitude of each axis
    offset = bounds.get("optical_center_offset_mm")
    if offset is not None:
        for eye, center in (("left", geometry.optical_center_left), ("right", geometry.optical_center_right)):
            for axis, value in (("x", center.x_mm), ("y", center.y_mm)):
                if not within(abs(value), offset):
                    offenders.append((f"optical_center_{eye}.{axis}", value, offset))

    for name in (
        "segment_height_left_mm",
        "segment_height_right_mm",
        "face_width_mm",
        "face_height_mm",
        "nose_bridge_width_mm",
        "frame_width_mm",
        "frame_height_mm",
    ):
        check(name, getattr(geometry, name), bounds.get(name))

    return offenders


def assess_quality(
    detection_confidence: float,
    lighting: Union[LightingCondition, str, None],
    consistency_ok: bool,
    plausibility_ok: bool,
    fallback_used: bool
) -> QualityAssessment:
    """
    Score a measurement.

    Args:
        detection_confidence: Detector confidence, clamped to [0, 1]
        lighting: Upstream lighting label, clamped to the enum
        consistency_ok: PD equals sum of monoculars within tolerance
        plausibility_ok: Every output inside its physiological range
        fallback_used: Segment height was approximated

    Returns:
        QualityAssessment with score in [0, 1]
    """
    confidence = clamp(float(detection_confidence) if detection_confidence is not None else 0.0)
    lighting = LightingCondition.coerce(lighting)

    score = DETECTION_WEIGHT * confidence + LIGHTING_WEIGHT * lighting.score
    penalties = []

    if not consistency_ok:
        score *= CHECK_PENALTY
        penalties.append("pd_consistency")
    if not plausibility_ok:
        score *= CHECK_PENALTY
        penalties.append("plausibility")
    if fallback_used:
        score *= FALLBACK_PENALTY
        penalties.append("segment_height_fallback")

    return QualityAssessment(
        score=clamp(score),
        lighting=lighting,
        confidence=confidence,
        penalties=penalties,
    )
