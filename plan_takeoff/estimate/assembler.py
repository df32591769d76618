"""
Estimate Assembler Module

Builds the priced estimate (fixed rows plus catalog rows) and the
measurement detail table from calculated quantities.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Sequence

from ..aggregation.stage_aggregator import CalibratedStageTotals
from ..calibration.unit_converter import round2
from ..config import EstimateSettings
from ..constants import (
    StageType,
    SemanticTag,
    EstimateRow,
    ESTIMATE_ROW_LABELS,
    NO_SCALE_WARNING,
    NO_CEILING_HEIGHT_WARNING,
)
from ..geometry.room import RoomMeasurement, OpeningMeasurement
from ..rules.consumption import (
    ConsumptionResult,
    ConsumptionSummary,
    QuantityContext,
    summarize_results,
)

logger = logging.getLogger(__name__)

ELECTRICAL_LABELS = {
    SemanticTag.SPOTLIGHT: "Spotlights",
    SemanticTag.BRA: "Wall lights",
    SemanticTag.OUTLET: "Outlets",
    SemanticTag.SWITCH: "Switches",
}


@dataclass
class EstimateLine:
    """
    One estimate row.

    The amount is the unrounded quantity times the price, rounded once.
    """
    name: str
    unit: str
    quantity: float
    unit_price: float
    key: Optional[str] = None      # fixed row id, None for catalog rows
    stage: Optional[str] = None
    kind: Optional[str] = None

    @property
    def amount(self) -> float:
        return round2(self.quantity * self.unit_price)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "unit": self.unit,
            "quantity": round2(self.quantity),
            "unit_price": round2(self.unit_price),
            "amount": self.amount,
            "key": self.key,
            "stage": self.stage,
            "kind": self.kind,
        }

    def to_csv_row(self) -> List[Any]:
        return [
            self.name,
            self.unit,
            round2(self.quantity),
            round2(self.unit_price),
            self.amount,
        ]

    @staticmethod
    def csv_header() -> List[str]:
        return ["Item", "Unit", "Quantity", "Unit price", "Amount"]


@dataclass
class Estimate:
    """Assembled estimate."""
    lines: List[EstimateLine] = field(default_factory=list)
    stage_summaries: Dict[str, ConsumptionSummary] = field(default_factory=dict)
    scale_available: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def grand_total(self) -> float:
        """Sum of the per-row (already rounded) amounts."""
        return round2(sum(line.amount for line in self.lines))

    @property
    def fixed_lines(self) -> List[EstimateLine]:
        return [line for line in self.lines if line.key is not None]

    @property
    def catalog_lines(self) -> List[EstimateLine]:
        return [line for line in self.lines if line.key is None]

    def line(self, key: str) -> Optional[EstimateLine]:
        """Fixed row by key."""
        for line in self.lines:
            if line.key == key:
                return line
        return None

    def to_rows(self) -> List[List[Any]]:
        """Header, one row per line, then the total row."""
        rows = [EstimateLine.csv_header()]
        rows.extend(line.to_csv_row() for line in self.lines)
        rows.append(["Total", "", "", "", self.grand_total])
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scale_available": self.scale_available,
            "lines": [line.to_dict() for line in self.lines],
            "stage_summaries": {
                stage: summary.to_dict()
                for stage, summary in self.stage_summaries.items()
            },
            "grand_total": self.grand_total,
            "warnings": list(self.warnings),
        }


@dataclass
class RoomTotals:
    """Room measurements summed for the fixed estimate rows."""
    floor_m2: float = 0.0
    wall_m2: float = 0.0
    living_wall_m2: float = 0.0
    living_floor_m2: float = 0.0
    wet_wall_m2: float = 0.0
    wet_floor_m2: float = 0.0


def summarize_rooms(
    rooms: Sequence[RoomMeasurement],
    settings: EstimateSettings
) -> RoomTotals:
    """Split room areas into wet (tiled) and living rooms."""
    totals = RoomTotals()

    for measurement in rooms:
        totals.floor_m2 += measurement.floor_area_m2
        totals.wall_m2 += measurement.net_wall_area_m2
        if settings.is_wet_room_type(measurement.room_type_name):
            totals.wet_wall_m2 += measurement.net_wall_area_m2
            totals.wet_floor_m2 += measurement.floor_area_m2
        else:
            totals.living_wall_m2 += measurement.net_wall_area_m2
            totals.living_floor_m2 += measurement.floor_area_m2

    return totals


def _stage_length_m(context: QuantityContext, stage: str) -> float:
    totals = context.stage_totals.get(stage)
    return totals.total_length_m if totals is not None else 0.0


def _fixed_row_quantities(context: QuantityContext, settings: EstimateSettings) -> Dict[str, float]:
    height = context.ceiling_height_m
    rooms = summarize_rooms(context.rooms, settings)
    materials = context.stage_totals.get(StageType.MATERIALS)

    return {
        EstimateRow.DEMOLITION: round2(_stage_length_m(context, StageType.DEMOLITION) * height),
        EstimateRow.INSTALLATION: round2(_stage_length_m(context, StageType.INSTALLATION) * height),
        EstimateRow.SCREED: rooms.floor_m2,
        EstimateRow.PLASTER: rooms.wall_m2,
        EstimateRow.FINISHING_PUTTY: rooms.living_wall_m2,
        EstimateRow.TILING: rooms.wet_wall_m2 + rooms.wet_floor_m2,
        EstimateRow.BASEBOARD: materials.baseboard_length_m if materials is not None else 0.0,
    }


def assemble_estimate(
    context: QuantityContext,
    stage_results: Dict[str, List[ConsumptionResult]],
    settings: Optional[EstimateSettings] = None
) -> Estimate:
    """
    Combine fixed rows and catalog rows into one estimate.

    Fixed rows come first, in EstimateRow.ORDER, priced at the configured
    unit prices. Catalog rows follow stage by stage, priced at their
    purchase price.

    Args:
        context: Calculated quantities
        stage_results: Evaluated catalog entries per stage
        settings: Unit prices and room classification

    Returns:
        Estimate with lines and grand total
    """
    settings = settings or EstimateSettings()
    estimate = Estimate(scale_available=context.scale_available)

    if not context.scale_available:
        estimate.warnings.append(NO_SCALE_WARNING)
    elif context.ceiling_height_m <= 0:
        estimate.warnings.append(NO_CEILING_HEIGHT_WARNING)

    quantities = _fixed_row_quantities(context, settings)
    for key in EstimateRow.ORDER:
        label, unit = ESTIMATE_ROW_LABELS[key]
        estimate.lines.append(EstimateLine(
            name=label,
            unit=unit,
            quantity=quantities[key],
            unit_price=settings.unit_price(key),
            key=key,
        ))

    for stage, results in stage_results.items():
        for result in results:
            if not result.resolved:
                estimate.warnings.append(
                    f"{stage}: basis of {result.entry.name!r} unavailable, quantity 0"
                )
            estimate.lines.append(EstimateLine(
                name=result.entry.name,
                unit=result.unit,
                quantity=result.required_qty,
                unit_price=result.entry.purchase_price,
                stage=stage,
                kind=result.entry.kind,
            ))
        estimate.stage_summaries[stage] = summarize_results(results)

    logger.info(f"Estimate: {len(estimate.lines)} lines, total {estimate.grand_total:.2f}")

    return estimate


# =============================================================================
# MEASUREMENT TABLE
# =============================================================================

@dataclass
class WallSegmentMeasurement:
    """A demolished or built wall."""
    label: str
    length_m: float
    height_m: float

    @property
    def area_m2(self) -> float:
        return self.length_m * self.height_m

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "length_m": round2(self.length_m),
            "area_m2": round2(self.area_m2),
            "height_m": round2(self.height_m),
        }

    def to_csv_row(self) -> List[Any]:
        return [self.label, round2(self.length_m), round2(self.area_m2), round2(self.height_m)]

    @staticmethod
    def csv_header() -> List[str]:
        return ["Wall", "Length, m", "Area, m²", "Height, m"]


@dataclass
class MeasurementTable:
    """Per-item detail behind the estimate."""
    rooms: List[RoomMeasurement] = field(default_factory=list)
    openings: List[OpeningMeasurement] = field(default_factory=list)
    demolition: List[WallSegmentMeasurement] = field(default_factory=list)
    installation: List[WallSegmentMeasurement] = field(default_factory=list)
    electrical_counts: Dict[str, int] = field(default_factory=dict)
    led_length_m: float = 0.0
    baseboard_length_m: float = 0.0
    baseboard_corners: int = 0

    def to_rows(self) -> List[List[Any]]:
        """Flatten into sections separated by blank rows."""
        rows: List[List[Any]] = [RoomMeasurement.csv_header()]
        rows.extend(m.to_csv_row() for m in self.rooms)

        rows.extend([[], ["Openings"], OpeningMeasurement.csv_header()])
        rows.extend(m.to_csv_row() for m in self.openings)

        for title, segments in (("Demolition", self.demolition), ("Installation", self.installation)):
            rows.extend([[], [title], WallSegmentMeasurement.csv_header()])
            rows.extend(segment.to_csv_row() for segment in segments)

        rows.extend([[], ["Electrical"], ["Item", "Quantity"]])
        for tag in SemanticTag.COUNTED:
            rows.append([ELECTRICAL_LABELS[tag], self.electrical_counts.get(tag, 0)])
        rows.append(["LED strip, m", round2(self.led_length_m)])

        rows.extend([
            [],
            ["Baseboards"],
            ["Length, m", round2(self.baseboard_length_m)],
            ["Corners", self.baseboard_corners],
        ])

        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rooms": [m.to_dict() for m in self.rooms],
            "openings": [m.to_dict() for m in self.openings],
            "demolition": [s.to_dict() for s in self.demolition],
            "installation": [s.to_dict() for s in self.installation],
            "electrical": {
                "counts": dict(self.electrical_counts),
                "led_length_m": round2(self.led_length_m),
            },
            "baseboards": {
                "length_m": round2(self.baseboard_length_m),
                "corners": self.baseboard_corners,
            },
        }


def _wall_segments(totals: Optional[CalibratedStageTotals], height_m: float) -> List[WallSegmentMeasurement]:
    if totals is None:
        return []
    return [
        WallSegmentMeasurement(label=f"Wall {idx}", length_m=segment.length_m, height_m=height_m)
        for idx, segment in enumerate(totals.wall_segments, start=1)
    ]


def build_measurement_table(
    context: QuantityContext,
    openings: Sequence[OpeningMeasurement]
) -> MeasurementTable:
    """
    Build the measurement detail table.

    Args:
        context: Calculated quantities
        openings: Every opening record (not deduplicated)

    Returns:
        MeasurementTable, empty when the project has no scale
    """
    if not context.scale_available:
        return MeasurementTable()

    height = context.ceiling_height_m
    electrical = context.stage_totals.get(StageType.ELECTRICAL)
    materials = context.stage_totals.get(StageType.MATERIALS)

    return MeasurementTable(
        rooms=list(context.rooms),
        openings=list(openings),
        demolition=_wall_segments(context.stage_totals.get(StageType.DEMOLITION), height),
        installation=_wall_segments(context.stage_totals.get(StageType.INSTALLATION), height),
        electrical_counts=dict(electrical.counts) if electrical is not None else {},
        led_length_m=electrical.led_length_m if electrical is not None else 0.0,
        baseboard_length_m=materials.baseboard_length_m if materials is not None else 0.0,
        baseboard_corners=materials.baseboard_corners if materials is not None else 0,
    )
