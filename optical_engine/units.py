"""
Unit Registry - Known Physical Sizes of Calibration Objects

ISO/IEC 7810 ID-1 Card Dimensions (credit and ID cards):
- Width: 85.60 mm (long edge, used for calibration)
- Height: 53.98 mm
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import math

from .errors import UnknownCalibrationKind
from .utils import CARD_WIDTH_MM, COIN_DIAMETER_MM, RULER_SEGMENT_MM


class CalibrationKind(str, Enum):
    """Supported calibration objects."""
    CREDIT_CARD = "credit_card"
    ID_CARD = "id_card"
    COIN = "coin"
    RULER = "ruler"

    @classmethod
    def coerce(cls, kind: Union["CalibrationKind", str]) -> "CalibrationKind":
        """Accept an enum member or its string value."""
        if isinstance(kind, cls):
            return kind
        if isinstance(kind, str):
            try:
                return cls(kind.strip().lower())
            except ValueError:
                pass
        raise UnknownCalibrationKind(kind)


_REAL_SIZE_MM = {
    CalibrationKind.CREDIT_CARD: CARD_WIDTH_MM,
    CalibrationKind.ID_CARD: CARD_WIDTH_MM,
    CalibrationKind.COIN: COIN_DIAMETER_MM,
    CalibrationKind.RULER: RULER_SEGMENT_MM,
}

# Card sizes are fixed by the standard, only these accept a caller size
_ADJUSTABLE_KINDS = (CalibrationKind.COIN, CalibrationKind.RULER)


def real_size_mm_for(kind: Union[CalibrationKind, str]) -> float:
    """
    Look up the real-world reference length of a calibration object.

    Args:
        kind: Calibration kind (enum member or its string value)

    Returns:
        Reference length in mm

    Raises:
        UnknownCalibrationKind: kind is not in the supported set
    """
    return _REAL_SIZE_MM[CalibrationKind.coerce(kind)]


@dataclass(frozen=True)
class CalibrationObject:
    """Physical reference object for a single measurement request."""
    kind: CalibrationKind
    real_size_mm: float

    def __post_init__(self):
        if not isinstance(self.kind, CalibrationKind):
            raise UnknownCalibrationKind(self.kind)
        if not (isinstance(self.real_size_mm, (int, float)) and math.isfinite(self.real_size_mm)):
            raise ValueError(f"real_size_mm must be a finite number, got {self.real_size_mm!r}")
        if self.real_size_mm <= 0:
            raise ValueError(f"real_size_mm must be positive, got {self.real_size_mm}")

    @classmethod
    def for_kind(
        cls,
        kind: Union[CalibrationKind, str],
        real_size_mm: Optional[float] = None
    ) -> "CalibrationObject":
        """
        Build a calibration object from the registry.

        Args:
            kind: Calibration kind
            real_size_mm: Optional caller-measured size. Accepted for coins and
                rulers; card sizes are fixed by ISO/IEC 7810.

        Returns:
            CalibrationObject
        """
        kind = CalibrationKind.coerce(kind)
        standard = real_size_mm_for(kind)

        if real_size_mm is None:
            return cls(kind=kind, real_size_mm=standard)

        real_size_mm = float(real_size_mm)
        if kind not in _ADJUSTABLE_KINDS and abs(real_size_mm - standard) > 0.01:
            raise ValueError(
                f"{kind.value} size is fixed at {standard}mm (ISO/IEC 7810 ID-1), "
                f"got {real_size_mm}mm"
            )
        return cls(kind=kind, real_size_mm=real_size_mm)
