"""
Stage Aggregator Module

Folds the primitives of one construction stage into stage-level totals.

Totals are kept in drawing units. The calibrated view converts them to
metres once, with the project scale.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Iterable

from ..calibration.unit_converter import (
    Scale,
    px_to_meters,
    px2_to_square_meters,
    round2,
)
from ..constants import StageType, SemanticTag
from ..geometry.calculator import (
    polyline_length,
    rectangle_dims,
    polygon_area_and_perimeter,
    corner_count,
    primitive_length_px,
    primitive_area_px2,
)
from ..geometry.primitives import (
    AnyPrimitive,
    LinePrimitive,
    RectanglePrimitive,
    PolygonPrimitive,
    is_closed_polyline,
)

logger = logging.getLogger(__name__)


@dataclass
class WallSegment:
    """One traced wall (line or thick-stroke rectangle)."""
    element_id: str
    length_px: float
    page_id: str = ""


@dataclass
class StageTotals:
    """Raw (pixel-space) totals of one stage."""
    stage: str
    primitive_count: int = 0

    # Lines and rectangles, every stage
    total_length_px: float = 0.0
    total_area_px2: float = 0.0
    wall_segments: List[WallSegment] = field(default_factory=list)

    # Markup
    room_perimeter_px: float = 0.0
    room_area_px2: float = 0.0
    room_count: int = 0
    door_area_px2: float = 0.0
    door_count: int = 0
    window_area_px2: float = 0.0
    window_count: int = 0

    # Electrical
    counts: Dict[str, int] = field(
        default_factory=lambda: {tag: 0 for tag in SemanticTag.COUNTED}
    )
    led_length_px: float = 0.0

    # Materials (baseboards)
    baseboard_length_px: float = 0.0
    baseboard_corners: int = 0
    baseboard_count: int = 0


@dataclass
class CalibratedWallSegment:
    element_id: str
    length_m: float
    page_id: str = ""


@dataclass
class CalibratedStageTotals:
    """Stage totals in metres; only exists once the project has a scale."""
    stage: str
    meters_per_pixel: float

    total_length_m: float = 0.0
    total_area_m2: float = 0.0
    wall_segments: List[CalibratedWallSegment] = field(default_factory=list)

    room_perimeter_m: float = 0.0
    room_area_m2: float = 0.0
    room_count: int = 0
    door_area_m2: float = 0.0
    door_count: int = 0
    window_area_m2: float = 0.0
    window_count: int = 0

    counts: Dict[str, int] = field(default_factory=dict)
    led_length_m: float = 0.0

    baseboard_length_m: float = 0.0
    baseboard_corners: int = 0
    baseboard_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert totals to dictionary for JSON serialization."""
        return {
            "stage": self.stage,
            "total_length_m": round2(self.total_length_m),
            "total_area_m2": round2(self.total_area_m2),
            "wall_segment_count": len(self.wall_segments),
            "room_perimeter_m": round2(self.room_perimeter_m),
            "room_area_m2": round2(self.room_area_m2),
            "room_count": self.room_count,
            "door_area_m2": round2(self.door_area_m2),
            "door_count": self.door_count,
            "window_area_m2": round2(self.window_area_m2),
            "window_count": self.window_count,
            "counts": dict(self.counts),
            "led_length_m": round2(self.led_length_m),
            "baseboard_length_m": round2(self.baseboard_length_m),
            "baseboard_corners": self.baseboard_corners,
        }


def _add_markup(totals: StageTotals, primitive: AnyPrimitive) -> None:
    """Route markup polygons and door/window shapes to their accumulators."""
    tag = primitive.semantic_tag

    if tag == SemanticTag.DOOR:
        totals.door_area_px2 += primitive_area_px2(primitive)
        totals.door_count += 1
    elif tag == SemanticTag.WINDOW:
        totals.window_area_px2 += primitive_area_px2(primitive)
        totals.window_count += 1
    elif isinstance(primitive, PolygonPrimitive):
        area, perimeter = polygon_area_and_perimeter(primitive.points)
        if area <= 0:
            logger.debug(f"Skipping degenerate room polygon {primitive.element_id}")
            return
        totals.room_area_px2 += area
        totals.room_perimeter_px += perimeter
        totals.room_count += 1


def _add_electrical(totals: StageTotals, primitive: AnyPrimitive) -> None:
    tag = primitive.semantic_tag

    if tag in SemanticTag.COUNTED:
        totals.counts[tag] += 1
    elif tag == SemanticTag.LED:
        totals.led_length_px += primitive_length_px(primitive)


def _add_baseboard(totals: StageTotals, primitive: LinePrimitive) -> None:
    closed = is_closed_polyline(primitive.points, primitive.is_closed)
    totals.baseboard_length_px += polyline_length(primitive.points)
    totals.baseboard_corners += corner_count(primitive.points, closed)
    totals.baseboard_count += 1


def aggregate_stage(primitives: Iterable[AnyPrimitive], stage: str) -> StageTotals:
    """
    Fold the primitives tagged with a stage into totals.

    Primitives of other stages are ignored. Every accumulator is a plain
    sum, so the order of the input does not change the result.

    Args:
        primitives: Primitives of the project, any stage
        stage: Stage to aggregate

    Returns:
        StageTotals in drawing units
    """
    totals = StageTotals(stage=stage)

    for primitive in primitives:
        if primitive.stage != stage:
            continue

        totals.primitive_count += 1

        if isinstance(primitive, LinePrimitive):
            length = polyline_length(primitive.points)
            totals.total_length_px += length
            if length > 0:
                totals.wall_segments.append(
                    WallSegment(primitive.element_id, length, primitive.page_id)
                )

        elif isinstance(primitive, RectanglePrimitive):
            width, height = rectangle_dims(primitive)
            totals.total_area_px2 += width * height
            totals.total_length_px += max(width, height)
            if max(width, height) > 0:
                totals.wall_segments.append(
                    WallSegment(primitive.element_id, max(width, height), primitive.page_id)
                )

        if stage == StageType.MARKUP:
            _add_markup(totals, primitive)
        elif stage == StageType.ELECTRICAL:
            _add_electrical(totals, primitive)
        elif stage == StageType.MATERIALS:
            if isinstance(primitive, LinePrimitive) and primitive.is_baseboard:
                _add_baseboard(totals, primitive)

    logger.debug(
        f"Stage {stage}: {totals.primitive_count} primitives, "
        f"length {totals.total_length_px:.1f} px, area {totals.total_area_px2:.1f} px²"
    )

    return totals


def aggregate_project(primitives: Iterable[AnyPrimitive]) -> Dict[str, StageTotals]:
    """Build totals for every stage of a project."""
    primitives = list(primitives)
    return {stage: aggregate_stage(primitives, stage) for stage in StageType.ALL}


def calibrate_stage_totals(
    totals: StageTotals,
    scale: Optional[Scale]
) -> Optional[CalibratedStageTotals]:
    """
    Convert stage totals to metres.

    Args:
        totals: Pixel-space totals
        scale: Project scale, may be None

    Returns:
        CalibratedStageTotals, or None when no valid scale exists
    """
    if scale is None or not scale.is_valid:
        return None

    mpp = scale.meters_per_pixel

    return CalibratedStageTotals(
        stage=totals.stage,
        meters_per_pixel=mpp,
        total_length_m=px_to_meters(totals.total_length_px, mpp),
        total_area_m2=px2_to_square_meters(totals.total_area_px2, mpp),
        wall_segments=[
            CalibratedWallSegment(
                element_id=segment.element_id,
                length_m=px_to_meters(segment.length_px, mpp),
                page_id=segment.page_id,
            )
            for segment in totals.wall_segments
        ],
        room_perimeter_m=px_to_meters(totals.room_perimeter_px, mpp),
        room_area_m2=px2_to_square_meters(totals.room_area_px2, mpp),
        room_count=totals.room_count,
        door_area_m2=px2_to_square_meters(totals.door_area_px2, mpp),
        door_count=totals.door_count,
        window_area_m2=px2_to_square_meters(totals.window_area_px2, mpp),
        window_count=totals.window_count,
        counts=dict(totals.counts),
        led_length_m=px_to_meters(totals.led_length_px, mpp),
        baseboard_length_m=px_to_meters(totals.baseboard_length_px, mpp),
        baseboard_corners=totals.baseboard_corners,
        baseboard_count=totals.baseboard_count,
    )
