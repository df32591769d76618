# Scale calibration module

from .unit_converter import (
    Scale,
    px_to_meters,
    px2_to_square_meters,
    ceiling_height_to_meters,
    round2,
    length_to_mm,
    format_length,
    format_area,
    parse_calibration_string,
)

from .calibrator import (
    CalibrationError,
    CalibrationResult,
    ScaleCalibrator,
    is_stage_available,
    calculate_scale_from_calibration,
)

__all__ = [
    # Unit Converter
    "Scale",
    "px_to_meters",
    "px2_to_square_meters",
    "ceiling_height_to_meters",
    "round2",
    "length_to_mm",
    "format_length",
    "format_area",
    "parse_calibration_string",
    # Calibrator
    "CalibrationError",
    "CalibrationResult",
    "ScaleCalibrator",
    "is_stage_available",
    "calculate_scale_from_calibration",
]
