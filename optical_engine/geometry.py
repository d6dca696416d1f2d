"""
Landmark Geometry Calculator

Converts pixel-space landmarks into the optical distances needed to
manufacture lenses:

1. Binocular PD: pupil-to-pupil distance
2. Monocular PD: each pupil to the vertical midline through the
   pupil-segment midpoint (the face box centre is not used, faces are
   rarely symmetric)
3. Optical center offsets: pupil relative to its eye-corner midpoint
4. Face width/height, nose-bridge width, frame size
5. Segment height: pupil down to the lower frame reference, or an
   approximation from face height when no frame reference exists
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .calibration import ScaleFactor
from .errors import InsufficientLandmarks
from .landmarks import LandmarkSet
from .utils import SEGMENT_FALLBACK_FACE_RATIO, Point, euclidean_distance, midpoint


@dataclass(frozen=True)
class OpticalCenter:
    """
    Pupil offset from the eye-corner midpoint, in mm.

    Image-aligned axes: x grows toward image right, y grows downward.
    """
    x_mm: float
    y_mm: float

    def to_dict(self, decimals: Optional[int] = None) -> dict:
        if decimals is None:
            return {"x": self.x_mm, "y": self.y_mm}
        return {"x": round(self.x_mm, decimals), "y": round(self.y_mm, decimals)}


@dataclass
class GeometryMeasurements:
    """Raw geometric outputs in mm, full precision."""
    pupillary_distance_mm: float
    monocular_pd_left_mm: float
    monocular_pd_right_mm: float
    optical_center_left: OpticalCenter
    optical_center_right: OpticalCenter
    segment_height_left_mm: float
    segment_height_right_mm: float
    face_width_mm: float
    face_height_mm: float
    nose_bridge_width_mm: float
    frame_width_mm: Optional[float] = None
    frame_height_mm: Optional[float] = None
    segment_height_estimated: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def monocular_sum_mm(self) -> float:
        return self.monocular_pd_left_mm + self.monocular_pd_right_mm


def _optical_center(pupil: Point, inner: Point, outer: Point, scale: ScaleFactor) -> OpticalCenter:
    origin = midpoint(inner, outer)
    return OpticalCenter(
        x_mm=scale.to_mm(pupil[0] - origin[0]),
        y_mm=scale.to_mm(pupil[1] - origin[1]),
    )


def _lower_reference_y(landmarks: LandmarkSet, eye: str) -> Optional[float]:
    """Lower frame reference line for one eye, most specific first."""
    per_eye = getattr(landmarks, f"frame_bottom_{eye}")
    if per_eye is not None:
        return per_eye[1]
    if landmarks.frame_box is not None:
        return landmarks.frame_box.bottom
    return None


def _segment_height(
    landmarks: LandmarkSet,
    eye: str,
    pupil: Point,
    scale: ScaleFactor,
    face_height_mm: float,
    fallback_ratio: float
) -> Tuple[float, bool]:
    """Return (segment height mm, used_fallback)."""
    reference_y = _lower_reference_y(landmarks, eye)
    if reference_y is None:
        return fallback_ratio * face_height_mm, True
    return scale.to_mm(reference_y - pupil[1]), False


def compute_geometry(
    landmarks: LandmarkSet,
    scale: ScaleFactor,
    segment_fallback_ratio: float = SEGMENT_FALLBACK_FACE_RATIO
) -> GeometryMeasurements:
    """
    Compute every output distance from calibrated landmarks.

    Args:
        landmarks: Validated landmark set
        scale: Scale factor for this image
        segment_fallback_ratio: Fraction of face height used for segment
            height when no lower frame reference is supplied

    Returns:
        GeometryMeasurements in mm

    Raises:
        InsufficientLandmarks: a required landmark is missing
    """
    missing = landmarks.missing_required()
    if missing:
        raise InsufficientLandmarks(missing=missing)

    left_pupil = landmarks.left_pupil
    right_pupil = landmarks.right_pupil
    warnings: List[str] = []

    # Binocular PD
    pd_px = euclidean_distance(left_pupil, right_pupil)
    if pd_px <= 0:
        raise InsufficientLandmarks(invalid=["pupils_coincident"])

    # Monocular PD against the pupil midline
    midline_x = (left_pupil[0] + right_pupil[0]) / 2.0
    mono_left_px = abs(left_pupil[0] - midline_x)
    mono_right_px = abs(right_pupil[0] - midline_x)

    # Optical centers
    oc_left = _optical_center(left_pupil, landmarks.left_eye_inner, landmarks.left_eye_outer, scale)
    oc_right = _optical_center(right_pupil, landmarks.right_eye_inner, landmarks.right_eye_outer, scale)

    # Face and bridge dimensions
    face_width_mm = scale.to_mm(landmarks.face_box.width)
    face_height_mm = scale.to_mm(landmarks.face_box.height)
    bridge_px = euclidean_distance(landmarks.nose_bridge_left, landmarks.nose_bridge_right)

    frame_width_mm = None
    frame_height_mm = None
    if landmarks.frame_box is not None:
        frame_width_mm = scale.to_mm(landmarks.frame_box.width)
        frame_height_mm = scale.to_mm(landmarks.frame_box.height)

    # Segment heights
    seg_left, fallback_left = _segment_height(
        landmarks, "left", left_pupil, scale, face_height_mm, segment_fallback_ratio
    )
    seg_right, fallback_right = _segment_height(
        landmarks, "right", right_pupil, scale, face_height_mm, segment_fallback_ratio
    )
    estimated = fallback_left or fallback_right
    if estimated:
        eyes = [eye for eye, used in (("left", fallback_left), ("right", fallback_right)) if used]
        warnings.append(
            f"No lower frame reference for {' and '.join(eyes)} eye; segment height "
            f"approximated as {segment_fallback_ratio:.0%} of face height."
        )

    return GeometryMeasurements(
        pupillary_distance_mm=scale.to_mm(pd_px),
        monocular_pd_left_mm=scale.to_mm(mono_left_px),
        monocular_pd_right_mm=scale.to_mm(mono_right_px),
        optical_center_left=oc_left,
        optical_center_right=oc_right,
        segment_height_left_mm=seg_left,
        segment_height_right_mm=seg_right,
        face_width_mm=face_width_mm,
        face_height_mm=face_height_mm,
        nose_bridge_width_mm=scale.to_mm(bridge_px),
        frame_width_mm=frame_width_mm,
        frame_height_mm=frame_height_mm,
        segment_height_estimated=estimated,
        warnings=warnings,
    )
