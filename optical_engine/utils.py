"""
Utility functions and constants for the optical measurement engine.
"""

import math
from typing import Dict, Optional, Tuple


Point = Tuple[float, float]
Bounds = Tuple[float, float]


# ISO/IEC 7810 ID-1 card long edge (mm)
CARD_WIDTH_MM = 85.60

# Default sizes for the other supported calibration objects (mm)
COIN_DIAMETER_MM = 27.00  # BRL 1 real
RULER_SEGMENT_MM = 100.0  # 10 cm marked span

# Scale resolution
MIN_CALIBRATION_PX = 5.0  # Below this the division is unstable
# mm/px range from typical phone selfies: the card spans ~85-4000 px
SCALE_RANGE_MM_PER_PX: Bounds = (0.02, 1.0)

# Binocular PD must equal the sum of monoculars within this tolerance
PD_SUM_TOLERANCE_MM = 0.5

# Segment height approximation when no lower frame reference is available
SEGMENT_FALLBACK_FACE_RATIO = 0.11

# Physiological plausibility bounds (mm). Optical center bounds (both ends) apply to |x| and |y|.
PLAUSIBILITY_BOUNDS_MM: Dict[str, Bounds] = {
    "pupillary_distance_mm": (45.0, 80.0),
    "monocular_pd_left_mm": (20.0, 42.0),
    "monocular_pd_right_mm": (20.0, 42.0),
    "optical_center_offset_mm": (0.0, 10.0),
    "segment_height_left_mm": (10.0, 40.0),
    "segment_height_right_mm": (10.0, 40.0),
    "face_width_mm": (90.0, 200.0),
    "face_height_mm": (100.0, 260.0),
    "nose_bridge_width_mm": (8.0, 30.0),
    "frame_width_mm": (100.0, 170.0),
    "frame_height_mm": (20.0, 80.0),
}

# Quality weights
DETECTION_WEIGHT = 0.8
LIGHTING_WEIGHT = 0.2
CHECK_PENALTY = 0.7  # Per failed consistency/plausibility check
FALLBACK_PENALTY = 0.85  # Segment height was approximated
RELIABLE_QUALITY = 0.8


def euclidean_distance(p1: Point, p2: Point) -> float:
    """Calculate Euclidean distance between two 2D points."""
    return math.sqrt((p2[0] - p1[0]) ** 2 + (p2[1] - p1[1]) ** 2)


def midpoint(p1: Point, p2: Point) -> Point:
    """Midpoint of the segment p1-p2."""
    return ((p1[0] + p2[0]) / 2.0, (p1[1] + p2[1]) / 2.0)


def calculate_angle(p1: Point, p2: Point) -> float:
    """Calculate angle between two points in degrees."""
    return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))


def is_finite_point(point: Optional[Point]) -> bool:
    """Check that a point exists and both coordinates are finite numbers."""
    if point is None:
        return False
    try:
        x, y = float(point[0]), float(point[1])
    except (TypeError, ValueError, IndexError):
        return False
    return math.isfinite(x) and math.isfinite(y)


def within(value: float, bounds: Bounds) -> bool:
    """Inclusive range check."""
    return bounds[0] <= value <= bounds[1]


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp value to [lo, hi]; NaN maps to lo."""
    if value is None or math.isnan(value):
        return lo
    return max(lo, min(hi, value))
