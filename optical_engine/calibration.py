"""
Scale Resolver - Pixel to Millimeter Calibration

Derives mm/px from the two extreme points of the calibration object along
its known edge:

    mm_per_pixel = real_size_mm / pixel_distance

The factor belongs to a single photograph (camera distance and zoom differ
per capture) and is never cached or reused across requests.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .errors import DegenerateCalibration, ImplausibleScale
from .units import CalibrationObject
from .utils import (
    MIN_CALIBRATION_PX,
    SCALE_RANGE_MM_PER_PX,
    Bounds,
    Point,
    euclidean_distance,
    within,
)


# Assumed horizontal field of view when EXIF focal length is unavailable
DEFAULT_FOV_DEGREES = 60.0


@dataclass(frozen=True)
class ScaleFactor:
    """Result of scale resolution for one image."""
    mm_per_pixel: float
    pixel_distance: float
    calibration: CalibrationObject

    def to_mm(self, pixels: float) -> float:
        """Convert a pixel length to millimeters."""
        return pixels * self.mm_per_pixel

    def camera_distance_mm(
        self,
        image_width_px: int,
        focal_length_px: Optional[float] = None
    ) -> float:
        """
        Estimate camera-to-subject distance from the calibration object.

        Formula: D = (real_size_mm * focal_length_px) / pixel_distance

        If focal length is unknown, estimate it from image width (assuming ~60° FOV).

        Args:
            image_width_px: Image width for focal length estimation
            focal_length_px: Camera focal length in pixels (optional)

        Returns:
            Estimated distance in mm
        """
        if focal_length_px is None:
            fov_radians = math.radians(DEFAULT_FOV_DEGREES)
            focal_length_px = image_width_px / (2 * math.tan(fov_radians / 2))
        return (self.calibration.real_size_mm * focal_length_px) / self.pixel_distance


def resolve_scale(
    start: Point,
    end: Point,
    calibration: CalibrationObject,
    min_pixel_distance: float = MIN_CALIBRATION_PX,
    scale_range: Bounds = SCALE_RANGE_MM_PER_PX
) -> ScaleFactor:
    """
    Compute mm/px from the calibration object's extreme points.

    Args:
        start: First extreme point of the known edge (pixels)
        end: Second extreme point of the known edge (pixels)
        calibration: Calibration object with its real size
        min_pixel_distance: Smallest usable span in pixels
        scale_range: Accepted (min, max) mm/px

    Returns:
        ScaleFactor

    Raises:
        DegenerateCalibration: span shorter than min_pixel_distance
        ImplausibleScale: resulting mm/px outside scale_range
    """
    pixel_distance = euclidean_distance(start, end)

    if not math.isfinite(pixel_distance) or pixel_distance < min_pixel_distance:
        raise DegenerateCalibration(pixel_distance, min_pixel_distance)

    mm_per_pixel = calibration.real_size_mm / pixel_distance

    if not within(mm_per_pixel, scale_range):
        raise ImplausibleScale(mm_per_pixel, scale_range)

    return ScaleFactor(
        mm_per_pixel=mm_per_pixel,
        pixel_distance=pixel_distance,
        calibration=calibration,
    )
