# Estimate assembly module

from .assembler import (
    EstimateLine,
    Estimate,
    RoomTotals,
    summarize_rooms,
    assemble_estimate,
    WallSegmentMeasurement,
    MeasurementTable,
    build_measurement_table,
)

__all__ = [
    "EstimateLine",
    "Estimate",
    "RoomTotals",
    "summarize_rooms",
    "assemble_estimate",
    "WallSegmentMeasurement",
    "MeasurementTable",
    "build_measurement_table",
]
