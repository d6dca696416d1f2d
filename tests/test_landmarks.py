"""
Tests for landmark parsing and validation.
"""

import numpy as np
import pytest

from optical_engine import BoundingBox, InsufficientLandmarks, LandmarkSet


class TestParsing:
    """LandmarkSet.from_dict input formats."""

    def test_list_points(self, landmarks):
        assert landmarks.left_pupil == (330.0, 300.0)
        assert landmarks.face_box.width == pytest.approx(328.0)
        assert landmarks.face_box.height == pytest.approx(444.0)

    def test_xy_mapping_points(self, make_landmarks):
        lm = make_landmarks(left_pupil={"x": 331, "y": 299})
        assert lm.left_pupil == (331.0, 299.0)

    def test_numpy_points(self, make_landmarks):
        lm = make_landmarks(right_pupil=np.array([470.5, 300.25]))
        assert lm.right_pupil == (470.5, 300.25)

    def test_box_as_xywh(self, make_landmarks):
        lm = make_landmarks(face_box={"x": 236, "y": 150, "width": 328, "height": 444})
        assert lm.face_box == BoundingBox((236.0, 150.0), (564.0, 594.0))

    def test_image_size_pair(self, payload):
        del payload["image_width"], payload["image_height"]
        payload["image_size"] = [640, 480]
        lm = LandmarkSet.from_dict(payload)
        assert (lm.image_width, lm.image_height) == (640, 480)

    def test_unreadable_point(self, make_landmarks):
        with pytest.raises(InsufficientLandmarks) as exc:
            make_landmarks(left_pupil=["a", "b"])
        assert exc.value.invalid == ["left_pupil"]

    @pytest.mark.parametrize("size", [800, [800], [800, 800, 3], None, ["w", "h"]])
    def test_malformed_image_size(self, payload, size):
        del payload["image_width"], payload["image_height"]
        payload["image_size"] = size
        with pytest.raises(InsufficientLandmarks) as exc:
            LandmarkSet.from_dict(payload)
        assert exc.value.invalid == ["image_size"]

    @pytest.mark.parametrize("value", [[[1.0, 2.0], [3.0, 4.0]], [1.0, 2.0, 3.0], [5.0]])
    def test_point_must_have_two_coordinates(self, make_landmarks, value):
        with pytest.raises(InsufficientLandmarks) as exc:
            make_landmarks(left_pupil=value)
        assert exc.value.invalid == ["left_pupil"]

    def test_missing_image_size(self, payload):
        del payload["image_width"]
        with pytest.raises(InsufficientLandmarks) as exc:
            LandmarkSet.from_dict(payload)
        assert "image_size" in exc.value.invalid

    def test_round_trip_through_dict(self, landmarks):
        assert LandmarkSet.from_dict(landmarks.to_dict()) == landmarks


class TestValidation:
    """Presence, finiteness and image-bounds checks."""

    def test_reference_set_is_valid(self, landmarks):
        landmarks.validate()

    def test_missing_right_pupil(self, make_landmarks):
        lm = make_landmarks(right_pupil=None)
        with pytest.raises(InsufficientLandmarks) as exc:
            lm.validate()
        assert exc.value.missing == ["right_pupil"]
        assert exc.value.code == "insufficient_landmarks"

    def test_missing_face_box(self, make_landmarks):
        lm = make_landmarks(face_box=None)
        assert lm.missing_required() == ["face_box"]

    def test_out_of_bounds_point(self, make_landmarks):
        lm = make_landmarks(nose_bridge_left=[900.0, 320.0])
        with pytest.raises(InsufficientLandmarks) as exc:
            lm.validate()
        assert exc.value.invalid == ["nose_bridge_left"]

    def test_negative_coordinate(self, make_landmarks):
        lm = make_landmarks(calibration_start=[-1.0, 100.0])
        with pytest.raises(InsufficientLandmarks) as exc:
            lm.validate()
        assert "calibration_start" in exc.value.invalid

    def test_non_finite_point(self, make_landmarks):
        lm = make_landmarks(left_eye_inner=[float("nan"), 302.0])
        with pytest.raises(InsufficientLandmarks) as exc:
            lm.validate()
        assert "left_eye_inner" in exc.value.invalid

    def test_coincident_pupils(self, make_landmarks):
        lm = make_landmarks(right_pupil=[330.0, 300.0])
        with pytest.raises(InsufficientLandmarks) as exc:
            lm.validate()
        assert "pupils_coincident" in exc.value.invalid

    def test_optional_frame_points_are_checked(self, make_landmarks):
        lm = make_landmarks(frame_bottom_left=[330.0, 801.0])
        with pytest.raises(InsufficientLandmarks) as exc:
            lm.validate()
        assert "frame_bottom_left" in exc.value.invalid

    def test_points_on_the_edge_are_in_bounds(self, make_landmarks):
        lm = make_landmarks(calibration_start=[0.0, 0.0], calibration_end=[800.0, 0.0])
        lm.validate()
