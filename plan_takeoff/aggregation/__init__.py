# Stage aggregation and opening netting module

from .stage_aggregator import (
    WallSegment,
    StageTotals,
    CalibratedWallSegment,
    CalibratedStageTotals,
    aggregate_stage,
    aggregate_project,
    calibrate_stage_totals,
)

from .openings import (
    opening_area_m2,
    filter_orphaned_openings,
    validate_room_measurement,
    calculate_room_measurements,
    opening_dedup_key,
    deduplicate_openings,
    calculate_opening_measurements,
)

__all__ = [
    # Stage Aggregator
    "WallSegment",
    "StageTotals",
    "CalibratedWallSegment",
    "CalibratedStageTotals",
    "aggregate_stage",
    "aggregate_project",
    "calibrate_stage_totals",
    # Openings
    "opening_area_m2",
    "filter_orphaned_openings",
    "validate_room_measurement",
    "calculate_room_measurements",
    "opening_dedup_key",
    "deduplicate_openings",
    "calculate_opening_measurements",
]
