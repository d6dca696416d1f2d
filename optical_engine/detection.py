"""
Landmark Detection Adapter - MediaPipe Face Landmarker

Maps the 478-point refined face mesh onto the engine's LandmarkSet. The
detector itself is an external capability; this module only loads it and
translates its output. Calibration endpoints are supplied by the caller
(e.g. clicked on the card edge).
"""

import math
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np
from dotenv import load_dotenv

from .errors import InsufficientLandmarks
from .landmarks import BoundingBox, LandmarkSet
from .utils import Point, calculate_angle, euclidean_distance

load_dotenv()


# Configuration
MODEL_PATH = os.getenv(
    "FACE_LANDMARKER_MODEL",
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "face_landmarker.task"),
)

# MediaPipe Face Mesh indices (refined landmarks)
LEFT_IRIS_CENTER = 468
RIGHT_IRIS_CENTER = 473
LEFT_EYE_OUTER = 33
LEFT_EYE_INNER = 133
RIGHT_EYE_INNER = 362
RIGHT_EYE_OUTER = 263
NOSE_BRIDGE_LEFT = 193
NOSE_BRIDGE_RIGHT = 417
NOSE_TIP = 1
FACE_MESH_POINTS = 468  # Iris points come after the mesh
REFINED_MESH_POINTS = 478

BASE_CONFIDENCE = 0.9


def _pt(landmarks_px: np.ndarray, index: int) -> Point:
    return (float(landmarks_px[index][0]), float(landmarks_px[index][1]))


def estimate_detection_confidence(landmarks_px: np.ndarray) -> float:
    """
    Heuristic detection confidence from head pose.

    Roll comes from the eye line angle, yaw from the nose tip offset against
    the eye center. Both reduce a base confidence.

    Args:
        landmarks_px: (N, 2+) array of pixel coordinates

    Returns:
        Confidence score between 0 and 1
    """
    left_eye = _pt(landmarks_px, LEFT_EYE_OUTER)
    right_eye = _pt(landmarks_px, RIGHT_EYE_OUTER)
    nose_tip = _pt(landmarks_px, NOSE_TIP)

    roll = calculate_angle(left_eye, right_eye)
    # Eye order can be mirrored; fold roll into [-90, 90]
    if roll > 90:
        roll -= 180
    elif roll < -90:
        roll += 180

    eye_width = euclidean_distance(left_eye, right_eye)
    eye_center_x = (left_eye[0] + right_eye[0]) / 2
    yaw_ratio = (nose_tip[0] - eye_center_x) / (eye_width * 0.5) if eye_width > 0 else 0
    yaw = math.degrees(math.asin(max(-1, min(1, yaw_ratio * 0.7))))

    confidence = BASE_CONFIDENCE
    confidence -= min(abs(yaw) / 45.0, 0.3)
    confidence -= min(abs(roll) / 45.0, 0.2)
    return max(0.0, min(1.0, confidence))


def landmarks_to_set(
    landmarks_px: np.ndarray,
    image_shape: Tuple[int, ...],
    calibration_start: Optional[Point],
    calibration_end: Optional[Point]
) -> LandmarkSet:
    """
    Translate a refined face mesh into a LandmarkSet.

    Args:
        landmarks_px: (478, 2+) array of pixel coordinates
        image_shape: Image shape (h, w[, c])
        calibration_start: Calibration edge first point (pixels)
        calibration_end: Calibration edge second point (pixels)

    Returns:
        LandmarkSet (not yet validated)

    Raises:
        InsufficientLandmarks: mesh lacks the refined iris points
    """
    landmarks_px = np.asarray(landmarks_px, dtype=np.float64)
    if landmarks_px.ndim != 2 or landmarks_px.shape[0] < REFINED_MESH_POINTS:
        raise InsufficientLandmarks(
            missing=["left_pupil", "right_pupil"],
            message="Iris landmarks not available. Ensure the refined face mesh is used",
        )

    h, w = image_shape[:2]
    mesh = landmarks_px[:FACE_MESH_POINTS, :2]
    # Mesh points may spill slightly past the image edge
    x_min, y_min = np.clip(mesh.min(axis=0), 0, [w, h])
    x_max, y_max = np.clip(mesh.max(axis=0), 0, [w, h])

    return LandmarkSet(
        image_width=int(w),
        image_height=int(h),
        left_pupil=_pt(landmarks_px, LEFT_IRIS_CENTER),
        right_pupil=_pt(landmarks_px, RIGHT_IRIS_CENTER),
        left_eye_inner=_pt(landmarks_px, LEFT_EYE_INNER),
        left_eye_outer=_pt(landmarks_px, LEFT_EYE_OUTER),
        right_eye_inner=_pt(landmarks_px, RIGHT_EYE_INNER),
        right_eye_outer=_pt(landmarks_px, RIGHT_EYE_OUTER),
        nose_bridge_left=_pt(landmarks_px, NOSE_BRIDGE_LEFT),
        nose_bridge_right=_pt(landmarks_px, NOSE_BRIDGE_RIGHT),
        face_box=BoundingBox(top_left=(float(x_min), float(y_min)), bottom_right=(float(x_max), float(y_max))),
        calibration_start=calibration_start,
        calibration_end=calibration_end,
    )


@dataclass
class DetectedFace:
    """Raw detector output for one face."""
    landmarks_px: np.ndarray  # (478, 3) pixel coordinates
    image_shape: Tuple[int, ...]
    confidence: float

    def to_landmark_set(
        self,
        calibration_start: Optional[Point],
        calibration_end: Optional[Point]
    ) -> LandmarkSet:
        return landmarks_to_set(self.landmarks_px, self.image_shape, calibration_start, calibration_end)


class FaceLandmarkDetector:
    """
    Face landmark detection using the MediaPipe FaceLandmarker Tasks API.

    The refined model provides iris centers (468, 473) used as pupils.
    """

    def __init__(self, model_path: Optional[str] = None, min_detection_confidence: float = 0.5):
        """
        Initialize the detector.

        Args:
            model_path: Path to face_landmarker.task (defaults to FACE_LANDMARKER_MODEL)
            min_detection_confidence: Minimum detection confidence
        """
        import mediapipe as mp

        model_path = model_path or MODEL_PATH
        if not os.path.exists(model_path):
            raise FileNotFoundError(
                f"Face landmarker model not found at {model_path}. "
                "Download from: https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
            )

        base_options = mp.tasks.BaseOptions(model_asset_path=model_path)
        options = mp.tasks.vision.FaceLandmarkerOptions(
            base_options=base_options,
            running_mode=mp.tasks.vision.RunningMode.IMAGE,
            num_faces=1,
            min_face_detection_confidence=min_detection_confidence,
            min_face_presence_confidence=min_detection_confidence,
            min_tracking_confidence=min_detection_confidence,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False
        )
        self.mp = mp
        self.face_landmarker = mp.tasks.vision.FaceLandmarker.create_from_options(options)

    def detect(self, image: np.ndarray) -> Optional[DetectedFace]:
        """
        Detect facial landmarks.

        Args:
            image: BGR input image

        Returns:
            DetectedFace, or None when no face is found
        """
        rgb_image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = self.mp.Image(image_format=self.mp.ImageFormat.SRGB, data=rgb_image)
        results = self.face_landmarker.detect(mp_image)

        if not results.face_landmarks:
            return None

        h, w = image.shape[:2]
        landmarks_px = np.array([
            [lm.x * w, lm.y * h, lm.z * w]
            for lm in results.face_landmarks[0]
        ])
        if landmarks_px.shape[0] < REFINED_MESH_POINTS:
            return None

        return DetectedFace(
            landmarks_px=landmarks_px,
            image_shape=image.shape,
            confidence=estimate_detection_confidence(landmarks_px),
        )

    def close(self):
        """Release resources."""
        self.face_landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
