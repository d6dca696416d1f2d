"""
Shared fixtures.

The reference photograph is 800x800 px with a credit card spanning 200 px
(0.428 mm/px) and pupils 140 px apart (PD 59.92 mm).
"""

import copy

import numpy as np
import pytest

from optical_engine import LandmarkSet
from optical_engine.detection import (
    LEFT_EYE_INNER,
    LEFT_EYE_OUTER,
    LEFT_IRIS_CENTER,
    NOSE_BRIDGE_LEFT,
    NOSE_BRIDGE_RIGHT,
    NOSE_TIP,
    REFINED_MESH_POINTS,
    RIGHT_EYE_INNER,
    RIGHT_EYE_OUTER,
    RIGHT_IRIS_CENTER,
)


SCALE = 85.60 / 200.0

BASE_PAYLOAD = {
    "image_width": 800,
    "image_height": 800,
    "left_pupil": [330.0, 300.0],
    "right_pupil": [470.0, 300.0],
    "left_eye_outer": [300.0, 302.0],
    "left_eye_inner": [362.0, 302.0],
    "right_eye_inner": [438.0, 302.0],
    "right_eye_outer": [500.0, 302.0],
    "nose_bridge_left": [386.0, 320.0],
    "nose_bridge_right": [414.0, 320.0],
    "face_box": {"top_left": [236.0, 150.0], "bottom_right": [564.0, 594.0]},
    "calibration_start": [300.0, 100.0],
    "calibration_end": [500.0, 100.0],
    "frame_bottom_left": [330.0, 350.0],
    "frame_bottom_right": [470.0, 350.0],
}


@pytest.fixture
def payload():
    """Fresh copy of the reference landmark payload."""
    return copy.deepcopy(BASE_PAYLOAD)


@pytest.fixture
def make_landmarks(payload):
    """Build a LandmarkSet from the reference payload with overrides (None removes a point)."""
    def _make(**overrides):
        data = copy.deepcopy(payload)
        data.update(overrides)
        return LandmarkSet.from_dict(data)
    return _make


@pytest.fixture
def landmarks(make_landmarks):
    return make_landmarks()


@pytest.fixture
def mesh():
    """
    Synthetic 478-point face mesh matching the reference payload.

    Unused mesh points sit at the face centre; four points pin the face box.
    """
    pts = np.zeros((REFINED_MESH_POINTS, 3), dtype=np.float64)
    pts[:, 0] = 400.0
    pts[:, 1] = 370.0
    pts[10, :2] = (400.0, 150.0)   # Forehead
    pts[152, :2] = (400.0, 594.0)  # Chin
    pts[234, :2] = (236.0, 370.0)  # Left cheek
    pts[454, :2] = (564.0, 370.0)  # Right cheek
    pts[LEFT_IRIS_CENTER, :2] = (330.0, 300.0)
    pts[RIGHT_IRIS_CENTER, :2] = (470.0, 300.0)
    pts[LEFT_EYE_OUTER, :2] = (300.0, 302.0)
    pts[LEFT_EYE_INNER, :2] = (362.0, 302.0)
    pts[RIGHT_EYE_INNER, :2] = (438.0, 302.0)
    pts[RIGHT_EYE_OUTER, :2] = (500.0, 302.0)
    pts[NOSE_BRIDGE_LEFT, :2] = (386.0, 320.0)
    pts[NOSE_BRIDGE_RIGHT, :2] = (414.0, 320.0)
    pts[NOSE_TIP, :2] = (400.0, 400.0)
    return pts
