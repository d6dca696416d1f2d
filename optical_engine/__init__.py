"""
Optical Measurement Engine

Computes pupillary distance, optical centers, segment heights and facial
dimensions in millimeters from detected landmarks and a calibration object
of known size.
"""

from .core import MeasurementResult, OpticalMeasurementEngine, compute_measurement
from .errors import (
    DegenerateCalibration,
    ImplausibleResult,
    ImplausibleScale,
    InsufficientLandmarks,
    MeasurementError,
    UnknownCalibrationKind,
)
from .landmarks import BoundingBox, LandmarkSet
from .quality import LightingCondition
from .units import CalibrationKind, CalibrationObject, real_size_mm_for

__version__ = "0.1.0"
__all__ = [
    "MeasurementResult",
    "OpticalMeasurementEngine",
    "compute_measurement",
    "MeasurementError",
    "UnknownCalibrationKind",
    "DegenerateCalibration",
    "ImplausibleScale",
    "InsufficientLandmarks",
    "ImplausibleResult",
    "BoundingBox",
    "LandmarkSet",
    "LightingCondition",
    "CalibrationKind",
    "CalibrationObject",
    "real_size_mm_for",
]
