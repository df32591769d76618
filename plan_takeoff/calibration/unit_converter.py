"""
Unit Converter Module

Functions for converting between drawing pixels and real-world units.
"""

import logging
import math
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

from ..constants import CEILING_HEIGHT_MM_THRESHOLD, ROUND_DECIMALS

logger = logging.getLogger(__name__)

# Constants
MM_PER_METER = 1000
MM_PER_CM = 10


@dataclass(frozen=True)
class Scale:
    """
    Project calibration: a known real length and its traced pixel length.
    """
    known_length_mm: float
    pixel_length: float

    @property
    def is_valid(self) -> bool:
        return self.pixel_length > 0 and self.known_length_mm > 0

    @property
    def mm_per_pixel(self) -> float:
        if self.pixel_length <= 0:
            return 0.0
        return self.known_length_mm / self.pixel_length

    @property
    def meters_per_pixel(self) -> float:
        return self.mm_per_pixel / MM_PER_METER

    def to_dict(self) -> Dict[str, float]:
        return {
            "known_length_mm": self.known_length_mm,
            "pixel_length": self.pixel_length,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Scale"]:
        """
        Read a stored scale; None when missing or not usable.

        Accepts {known_length_mm, pixel_length} and the store's
        {knownLength, pixelLength} keys.
        """
        if not data:
            return None

        known = data.get("known_length_mm", data.get("knownLength"))
        pixels = data.get("pixel_length", data.get("pixelLength"))
        try:
            scale = cls(known_length_mm=float(known), pixel_length=float(pixels))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed scale: {data}")
            return None

        if not scale.is_valid:
            logger.warning(f"Ignoring scale with non-positive values: {data}")
            return None

        return scale


def px_to_meters(length_px: float, meters_per_pixel: float) -> float:
    """Convert a pixel length to metres."""
    return length_px * meters_per_pixel


def px2_to_square_meters(area_px2: float, meters_per_pixel: float) -> float:
    """
    Convert a pixel area to square metres.

    Note: Area conversion uses the linear factor squared.
    """
    return area_px2 * (meters_per_pixel * meters_per_pixel)


def ceiling_height_to_meters(raw_height: Any) -> Optional[float]:
    """
    Normalise a stored ceiling height to metres.

    Heights are stored in millimetres; older projects stored metres.
    Anything at or above CEILING_HEIGHT_MM_THRESHOLD is millimetres.

    Args:
        raw_height: Stored value (mm or m), may be None

    Returns:
        Height in metres, None when missing or non-positive
    """
    if raw_height is None:
        return None

    try:
        height = float(raw_height)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric ceiling height: {raw_height!r}")
        return None

    if math.isnan(height) or height <= 0:
        return None

    if height >= CEILING_HEIGHT_MM_THRESHOLD:
        return height / MM_PER_METER

    return height


def round2(value: Any) -> float:
    """
    Round half-up to presentation precision.

    Plain round() rounds half to even (2.675 -> 2.67 on some inputs);
    estimate cells must round 0.005 up.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0

    if math.isnan(number) or math.isinf(number):
        return 0.0

    quantum = Decimal(1).scaleb(-ROUND_DECIMALS)
    return float(Decimal(repr(number)).quantize(quantum, rounding=ROUND_HALF_UP))


def length_to_mm(length: float, unit: str = "mm") -> float:
    """
    Convert a real-world length to millimetres.

    Args:
        length: Length value
        unit: "mm", "cm" or "m"

    Returns:
        Length in millimetres
    """
    unit = unit.lower()
    if unit in ("mm", "millimeter", "millimeters"):
        return length
    elif unit in ("cm", "centimeter", "centimeters"):
        return length * MM_PER_CM
    elif unit in ("m", "meter", "meters"):
        return length * MM_PER_METER
    else:
        logger.warning(f"Unknown unit '{unit}', assuming mm")
        return length


def format_length(length_m: Optional[float]) -> str:
    """
    Format a length for display.

    Returns:
        Formatted string like "10.5 m", or "unavailable" without a scale
    """
    if length_m is None:
        return "unavailable"
    return f"{round2(length_m):.2f} m"


def format_area(area: Optional[float], unit: str = "m²") -> str:
    """
    Format an area with unit.

    Returns:
        Formatted string like "14.00 m²", or "unavailable" without a scale
    """
    if area is None:
        return "unavailable"
    return f"{round2(area):.2f} {unit}"


def parse_calibration_string(calib_string: str) -> Tuple[Tuple[float, float], Tuple[float, float], float, str]:
    """
    Parse a calibration string in format "x1,y1:x2,y2=LENGTH UNIT".

    Args:
        calib_string: Calibration string like "100,200:250,200=3000mm"

    Returns:
        Tuple of (point1, point2, length, unit)

    Raises:
        ValueError: If string format is invalid
    """
    # Pattern: x1,y1:x2,y2=LENGTHunit
    pattern = r"(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?):(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)=(\d+(?:\.\d+)?)\s*(mm|cm|m)?$"

    match = re.match(pattern, calib_string.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid calibration format: {calib_string}")

    x1, y1, x2, y2, length, unit = match.groups()

    point1 = (float(x1), float(y1))
    point2 = (float(x2), float(y2))
    real_length = float(length)
    length_unit = (unit or "mm").lower()

    return point1, point2, real_length, length_unit
