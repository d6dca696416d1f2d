"""
Landmark input types.

Pixel-space coordinates produced by the external landmark detector. The
engine treats them as untrusted, read-only input: ``LandmarkSet.validate``
must pass before any geometry is computed.
"""

from dataclasses import dataclass, fields
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np

from .errors import InsufficientLandmarks
from .utils import Point, euclidean_distance, is_finite_point


REQUIRED_POINTS = (
    "left_pupil",
    "right_pupil",
    "left_eye_inner",
    "left_eye_outer",
    "right_eye_inner",
    "right_eye_outer",
    "nose_bridge_left",
    "nose_bridge_right",
    "calibration_start",
    "calibration_end",
)

OPTIONAL_POINTS = (
    "frame_bottom_left",
    "frame_bottom_right",
)


def parse_point(value: Any, name: str) -> Optional[Point]:
    """
    Parse a point given as ``[x, y]``, ``(x, y)``, ``{"x": .., "y": ..}`` or a numpy array.

    Returns None for a missing value; raises InsufficientLandmarks for an
    unreadable one.
    """
    if value is None:
        return None
    try:
        if isinstance(value, Mapping):
            return (float(value["x"]), float(value["y"]))
        arr = np.asarray(value, dtype=np.float64).reshape(-1)
        if arr.shape[0] != 2:
            raise ValueError("need exactly two coordinates")
        return (float(arr[0]), float(arr[1]))
    except (KeyError, TypeError, ValueError):
        raise InsufficientLandmarks(invalid=[name])


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box given by two opposite corners (pixels)."""
    top_left: Point
    bottom_right: Point

    @property
    def width(self) -> float:
        return abs(self.bottom_right[0] - self.top_left[0])

    @property
    def height(self) -> float:
        return abs(self.bottom_right[1] - self.top_left[1])

    @property
    def bottom(self) -> float:
        return max(self.top_left[1], self.bottom_right[1])

    @property
    def corners(self) -> Tuple[Point, Point]:
        return (self.top_left, self.bottom_right)

    @classmethod
    def from_dict(cls, data: Any, name: str = "face_box") -> Optional["BoundingBox"]:
        """
        Build a box from ``{"top_left", "bottom_right"}``, ``{"x", "y", "width", "height"}``
        or a pair of corner points.
        """
        if data is None:
            return None
        if isinstance(data, BoundingBox):
            return data
        try:
            if isinstance(data, Mapping):
                if "top_left" in data:
                    top_left = parse_point(data["top_left"], name)
                    bottom_right = parse_point(data.get("bottom_right"), name)
                else:
                    x, y = float(data["x"]), float(data["y"])
                    top_left = (x, y)
                    bottom_right = (x + float(data["width"]), y + float(data["height"]))
            else:
                first, second = data
                top_left = parse_point(first, name)
                bottom_right = parse_point(second, name)
        except (KeyError, TypeError, ValueError):
            raise InsufficientLandmarks(invalid=[name])

        if top_left is None or bottom_right is None:
            raise InsufficientLandmarks(invalid=[name])
        return cls(top_left=top_left, bottom_right=bottom_right)


@dataclass(frozen=True)
class LandmarkSet:
    """
    Facial and calibration-object landmarks for one photograph.

    Left/right follow the detector's convention. ``frame_*`` fields are
    optional lower-rim references used for segment height.
    """
    image_width: int
    image_height: int

    left_pupil: Optional[Point] = None
    right_pupil: Optional[Point] = None
    left_eye_inner: Optional[Point] = None
    left_eye_outer: Optional[Point] = None
    right_eye_inner: Optional[Point] = None
    right_eye_outer: Optional[Point] = None
    nose_bridge_left: Optional[Point] = None
    nose_bridge_right: Optional[Point] = None
    face_box: Optional[BoundingBox] = None
    calibration_start: Optional[Point] = None
    calibration_end: Optional[Point] = None

    frame_bottom_left: Optional[Point] = None
    frame_bottom_right: Optional[Point] = None
    frame_box: Optional[BoundingBox] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LandmarkSet":
        """
        Build a LandmarkSet from a JSON-like mapping.

        ``image_width``/``image_height`` may also be given as ``image_size: [w, h]``.
        """
        try:
            if "image_size" in data:
                width, height = data["image_size"]
            else:
                width, height = data.get("image_width"), data.get("image_height")
            width, height = int(width), int(height)
        except (TypeError, ValueError):
            raise InsufficientLandmarks(invalid=["image_size"])

        kwargs = {"image_width": width, "image_height": height}
        for name in REQUIRED_POINTS + OPTIONAL_POINTS:
            kwargs[name] = parse_point(data.get(name), name)
        kwargs["face_box"] = BoundingBox.from_dict(data.get("face_box"), "face_box")
        kwargs["frame_box"] = BoundingBox.from_dict(data.get("frame_box"), "frame_box")
        return cls(**kwargs)

    def to_dict(self) -> dict:
        """Convert to the mapping accepted by ``from_dict``."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, BoundingBox):
                value = {"top_left": list(value.top_left), "bottom_right": list(value.bottom_right)}
            elif isinstance(value, tuple):
                value = list(value)
            out[f.name] = value
        return out

    def missing_required(self) -> List[str]:
        """Names of required landmarks that were not supplied."""
        missing = [name for name in REQUIRED_POINTS if getattr(self, name) is None]
        if self.face_box is None:
            missing.append("face_box")
        return missing

    def _named_points(self):
        for name in REQUIRED_POINTS + OPTIONAL_POINTS:
            point = getattr(self, name)
            if point is not None:
                yield name, point
        for box_name in ("face_box", "frame_box"):
            box = getattr(self, box_name)
            if box is not None:
                for corner in box.corners:
                    yield box_name, corner

    def _in_bounds(self, point: Point) -> bool:
        return 0.0 <= point[0] <= self.image_width and 0.0 <= point[1] <= self.image_height

    def validate(self) -> None:
        """
        Check presence, finiteness and image bounds of every landmark.

        Raises:
            InsufficientLandmarks: listing missing and invalid landmark names
        """
        invalid: List[str] = []
        if self.image_width <= 0 or self.image_height <= 0:
            invalid.append("image_size")

        for name, point in self._named_points():
            if name in invalid:
                continue
            if not is_finite_point(point) or not self._in_bounds(point):
                invalid.append(name)

        if (
            "left_pupil" not in invalid and "right_pupil" not in invalid
            and self.left_pupil is not None and self.right_pupil is not None
            and euclidean_distance(self.left_pupil, self.right_pupil) <= 0.0
        ):
            invalid.append("pupils_coincident")

        missing = self.missing_required()
        if missing or invalid:
            raise InsufficientLandmarks(missing=missing, invalid=invalid)
