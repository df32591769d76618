"""
Scale Calibrator Module

Turns a traced reference line and its real length into a project scale,
and gates every other stage until a scale exists.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..constants import StageType
from ..geometry.calculator import line_length, polyline_length
from ..geometry.primitives import AnyPrimitive, LinePrimitive
from .unit_converter import Scale, length_to_mm

logger = logging.getLogger(__name__)


class CalibrationError(ValueError):
    """Raised when a calibration line or length is rejected."""


@dataclass
class CalibrationResult:
    """Accepted calibration."""
    scale: Scale
    ceiling_height_mm: Optional[float] = None
    recalibrated: bool = False


def is_stage_available(stage: str, scale: Optional[Scale]) -> bool:
    """
    Check if a stage can be used.

    Only the measurement (calibration) stage works without a scale.
    """
    if stage == StageType.MEASUREMENT:
        return True
    return scale is not None and scale.is_valid


def _positive_number(value: Any) -> Optional[float]:
    """Return value as a positive float, None otherwise."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return None
    return number


def calculate_scale_from_calibration(
    point1: Tuple[float, float],
    point2: Tuple[float, float],
    real_length: float,
    length_unit: str = "mm"
) -> Scale:
    """
    Calculate a scale from two-point calibration.

    Args:
        point1: First point (x, y) in drawing pixels
        point2: Second point (x, y) in drawing pixels
        real_length: Real-world length between points
        length_unit: Unit of real_length ("mm", "cm", "m")

    Returns:
        Scale for the project

    Raises:
        CalibrationError: Zero pixel distance or non-positive length
    """
    pixel_length = line_length(point1[0], point1[1], point2[0], point2[1])
    if pixel_length <= 0:
        raise CalibrationError("Calibration points coincide, scale is undefined")

    length = _positive_number(real_length)
    if length is None:
        raise CalibrationError(f"Real length must be a positive number: {real_length!r}")

    known_mm = length_to_mm(length, length_unit)
    scale = Scale(known_length_mm=known_mm, pixel_length=pixel_length)
    logger.info(
        f"Calibration: {known_mm:.1f} mm / {pixel_length:.1f} px = "
        f"{scale.mm_per_pixel:.4f} mm/px"
    )

    return scale


class ScaleCalibrator:
    """
    Calibration workflow for one project.

    Without a scale the calibrator is in calibration mode and only the
    measurement stage is available. A line submitted while a scale exists
    starts a re-calibration: other stages stay usable and the current
    scale is only replaced on confirm.
    """

    def __init__(self, scale: Optional[Scale] = None):
        self.scale = scale if scale is not None and scale.is_valid else None
        self.pending_pixels: Optional[float] = None
        self.recalibrating = False

    @property
    def calibrating(self) -> bool:
        """True while no scale exists (initial calibration mode)."""
        return self.scale is None

    @property
    def awaiting_confirmation(self) -> bool:
        return self.pending_pixels is not None

    def is_stage_enabled(self, stage: str) -> bool:
        return is_stage_available(stage, self.scale)

    def submit_line(self, primitive: AnyPrimitive) -> float:
        """
        Take a traced line as the calibration reference.

        Only the most recent line is kept; submitting again replaces the
        pending one.

        Args:
            primitive: The drawn primitive

        Returns:
            Pixel length of the line

        Raises:
            CalibrationError: Not a line, or zero length
        """
        if not isinstance(primitive, LinePrimitive):
            raise CalibrationError(
                f"Calibration needs a line, got {getattr(primitive, 'element_type', type(primitive).__name__)}"
            )

        pixels = polyline_length(primitive.points)
        if pixels <= 0:
            raise CalibrationError("Calibration line has zero length")

        if self.pending_pixels is not None:
            logger.debug(f"Replacing pending calibration line ({self.pending_pixels:.1f} px)")

        self.pending_pixels = pixels
        self.recalibrating = self.scale is not None
        logger.debug(f"Calibration line: {pixels:.1f} px (recalibration: {self.recalibrating})")

        return pixels

    def confirm(
        self,
        known_length_mm: Any,
        ceiling_height_mm: Any = None
    ) -> CalibrationResult:
        """
        Apply the pending line with its real length.

        Args:
            known_length_mm: Real length of the pending line in millimetres
            ceiling_height_mm: Optional ceiling height entered with it

        Returns:
            CalibrationResult with the new scale

        Raises:
            CalibrationError: No pending line, or invalid length. The
                current scale is left unchanged.
        """
        if self.pending_pixels is None:
            raise CalibrationError("No calibration line to confirm")

        known = _positive_number(known_length_mm)
        if known is None:
            raise CalibrationError(f"Known length must be a positive number: {known_length_mm!r}")

        new_scale = Scale(known_length_mm=known, pixel_length=self.pending_pixels)
        recalibrated = self.scale is not None

        self.scale = new_scale
        self.pending_pixels = None
        self.recalibrating = False

        height = _positive_number(ceiling_height_mm)
        if ceiling_height_mm is not None and height is None:
            logger.warning(f"Ignoring invalid ceiling height: {ceiling_height_mm!r}")

        logger.info(
            f"Scale {'updated' if recalibrated else 'set'}: "
            f"{new_scale.mm_per_pixel:.4f} mm/px"
        )

        return CalibrationResult(
            scale=new_scale,
            ceiling_height_mm=height,
            recalibrated=recalibrated,
        )

    def cancel(self) -> None:
        """Drop the pending line, keeping the current scale."""
        if self.pending_pixels is not None:
            logger.debug("Calibration cancelled")
        self.pending_pixels = None
        self.recalibrating = False
