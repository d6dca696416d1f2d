"""
Optical Measurement Service - Backend logic for landmark detection and measurement.
Wires the external collaborators (MediaPipe landmarks, luminance lighting)
to the pure optical measurement engine.
"""

import os
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence

import cv2
import numpy as np
from dotenv import load_dotenv

from optical_engine import (
    CalibrationObject,
    InsufficientLandmarks,
    LandmarkSet,
    MeasurementError,
    OpticalMeasurementEngine,
)
from optical_engine.detection import FaceLandmarkDetector
from optical_engine.lighting import classify_luminance, luminance_stats

load_dotenv()


INPUTS_DIR = os.getenv("OPTICAL_INPUTS_DIR", "")  # Empty disables saving inputs
STRICT_MODE = os.getenv("OPTICAL_STRICT", "1").lower() not in ("0", "false", "no")


def _failure(error: MeasurementError, warnings: Optional[list] = None) -> Dict[str, Any]:
    return {
        'success': False,
        'measurement': None,
        'error': error.to_dict(),
        'warnings': warnings or [],
    }


def _parse_calibration_points(points: Optional[Sequence]) -> tuple:
    """Two [x, y] points along the calibration object's known edge."""
    if points is None or len(points) != 2:
        raise InsufficientLandmarks(missing=["calibration_start", "calibration_end"])
    try:
        start, end = [(float(p[0]), float(p[1])) for p in points]
    except (TypeError, ValueError, IndexError):
        raise InsufficientLandmarks(invalid=["calibration_start", "calibration_end"])
    return start, end


class MeasurementService:
    """Optical measurement service: detection + lighting + engine."""

    def __init__(self, engine: Optional[OpticalMeasurementEngine] = None, detector=None):
        print("Initializing Optical Measurement Engine...")
        self.engine = engine or OpticalMeasurementEngine(strict=STRICT_MODE)
        self._detector = detector

        self.inputs_base_dir = INPUTS_DIR
        if self.inputs_base_dir:
            os.makedirs(self.inputs_base_dir, exist_ok=True)

    @property
    def detector(self) -> FaceLandmarkDetector:
        """Lazy load the landmark detector."""
        if self._detector is None:
            self._detector = FaceLandmarkDetector()
            print("[MeasurementService] MediaPipe FaceLandmarker initialized")
        return self._detector

    def _save_input(self, image: np.ndarray) -> Optional[str]:
        """Save the input image into a timestamped session directory."""
        if not self.inputs_base_dir:
            return None
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        session_dir = os.path.join(self.inputs_base_dir, timestamp)
        os.makedirs(session_dir, exist_ok=True)
        input_path = os.path.join(session_dir, "input.jpg")
        cv2.imwrite(input_path, image)
        print(f"[MeasurementService] Saved input image to: {input_path}")
        return session_dir

    def measure_landmarks(
        self,
        landmarks_payload: Mapping[str, Any],
        calibration_kind: str,
        detection_confidence: float,
        lighting: Optional[str],
        real_size_mm: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Measure from landmarks detected by the caller.

        Args:
            landmarks_payload: Mapping accepted by LandmarkSet.from_dict
            calibration_kind: credit_card, id_card, coin or ruler
            detection_confidence: Detector confidence in [0, 1]
            lighting: good, fair or poor (other labels clamp to poor)
            real_size_mm: Optional coin/ruler size override

        Returns:
            Dict with success flag, measurement and structured error
        """
        try:
            calibration = CalibrationObject.for_kind(calibration_kind, real_size_mm)
            landmarks = LandmarkSet.from_dict(landmarks_payload)
            result = self.engine.measure(landmarks, calibration, detection_confidence, lighting)
        except MeasurementError as e:
            print(f"[MeasurementService] {e.code}: {e.message}")
            return _failure(e)

        return {
            'success': True,
            'measurement': result.to_dict(),
            'error': None,
            'warnings': list(result.warnings),
        }

    def measure_image(
        self,
        image: np.ndarray,
        calibration_kind: str,
        calibration_points: Optional[Sequence],
        real_size_mm: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Detect landmarks and lighting on an image, then measure.

        Args:
            image: BGR image
            calibration_kind: credit_card, id_card, coin or ruler
            calibration_points: Two [x, y] points along the object's known edge
            real_size_mm: Optional coin/ruler size override

        Returns:
            Dict with success flag, measurement and structured error
        """
        session_dir = self._save_input(image)

        try:
            calibration = CalibrationObject.for_kind(calibration_kind, real_size_mm)
            start, end = _parse_calibration_points(calibration_points)

            face = self.detector.detect(image)
            if face is None:
                raise InsufficientLandmarks(
                    missing=["face"],
                    message="No face detected in image",
                )

            mean, std = luminance_stats(image)
            lighting = classify_luminance(mean)
            print(f"[MeasurementService] Lighting: {lighting.value} (mean={mean:.1f}, std={std:.1f})")

            landmarks = face.to_landmark_set(start, end)
            result = self.engine.measure(landmarks, calibration, face.confidence, lighting)
        except MeasurementError as e:
            print(f"[MeasurementService] {e.code}: {e.message}")
            failure = _failure(e)
            failure['session_dir'] = session_dir
            return failure

        print(f"[MeasurementService] {result}")
        return {
            'success': True,
            'measurement': result.to_dict(),
            'error': None,
            'warnings': list(result.warnings),
            'session_dir': session_dir,
        }


# Singleton instance
_measurement_service = None


def get_measurement_service() -> MeasurementService:
    """Get or create the measurement service singleton."""
    global _measurement_service
    if _measurement_service is None:
        _measurement_service = MeasurementService()
    return _measurement_service
