"""
Lighting estimation from image luminance statistics.

Upstream collaborator of the engine: produces the coarse lighting label
consumed by the Quality Assessor.
"""

from typing import Tuple

import cv2
import numpy as np

from .quality import LightingCondition


# Mean grayscale intensity bands (0-255)
TOO_DARK = 50.0
TOO_BRIGHT = 180.0
GOOD_MIN = 100.0


def luminance_stats(image: np.ndarray) -> Tuple[float, float]:
    """
    Mean and standard deviation of grayscale intensity.

    Args:
        image: BGR or grayscale image

    Returns:
        (mean, std) on the 0-255 scale
    """
    if image.ndim == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image
    mean, std = cv2.meanStdDev(gray)
    return float(mean[0][0]), float(std[0][0])


def classify_luminance(mean_intensity: float) -> LightingCondition:
    """Map a mean intensity to a lighting label. Both band edges of "good" are exclusive."""
    if mean_intensity < TOO_DARK or mean_intensity > TOO_BRIGHT:
        return LightingCondition.POOR
    if GOOD_MIN < mean_intensity < TOO_BRIGHT:
        return LightingCondition.GOOD
    return LightingCondition.FAIR


def estimate_lighting(image: np.ndarray) -> LightingCondition:
    """Classify the lighting of a BGR image."""
    mean, _ = luminance_stats(image)
    return classify_luminance(mean)
