"""
Consumption Rule Engine Module

Maps a material/work catalog entry to the physical quantity it is priced
against (its basis) and computes required quantity, cost, revenue and
profit.

Values are kept unrounded; rounding happens at presentation time.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Sequence, Tuple

from ..aggregation.stage_aggregator import CalibratedStageTotals
from ..calibration.unit_converter import round2
from ..constants import (
    StageType,
    SemanticTag,
    CatalogKind,
    CatalogScope,
    CatalogFamily,
    Basis,
    OpeningType,
    WALL_STAGES,
    TRIGGER_STAGES,
    CORNER_UNIT_MARKERS,
    WORK_UNIT_LABEL,
    WINDOW_HEIGHT_FACTOR,
)
from ..geometry.room import RoomMeasurement, OpeningMeasurement

logger = logging.getLogger(__name__)


def _number(value: Any, field_name: str, default: float = 0.0) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"{field_name} must be finite, got {value!r}")
    return number


@dataclass
class CatalogEntry:
    """
    One material or work row of a catalog.

    The basis selector depends on the catalog family: stage entries use
    trigger_type (or a wall basis for demolition/installation), room-type
    entries use floor_m2/wall_m2, opening entries use opening_m2/per_opening.
    """
    name: str
    consumption_per_unit: float = 0.0
    purchase_price: float = 0.0
    sell_price: float = 0.0
    unit: Optional[str] = None
    kind: str = CatalogKind.MATERIAL
    scope: str = CatalogScope.DEFAULT
    stage: Optional[str] = None
    trigger_type: Optional[str] = None
    basis: Optional[str] = None
    room_type_id: Optional[str] = None
    opening_type: Optional[str] = None
    family: Optional[str] = None

    @property
    def catalog_family(self) -> str:
        if self.family:
            return self.family
        if self.opening_type:
            return CatalogFamily.OPENING
        if self.room_type_id:
            return CatalogFamily.ROOM_TYPE
        return CatalogFamily.STAGE

    @property
    def display_unit(self) -> str:
        """Unit shown on the estimate row; work rows are in hours."""
        if self.kind == CatalogKind.WORK:
            return WORK_UNIT_LABEL
        return self.unit or "-"

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "CatalogEntry":
        """
        Build an entry from a store record (snake_case or camelCase keys).

        Raises:
            ValueError: Missing name, non-numeric rate or price, or an
                unknown kind, scope, stage, trigger, opening type or family
        """
        name = record.get("name")
        if not name:
            raise ValueError("Catalog entry has no name")

        kind = record.get("kind", CatalogKind.MATERIAL)
        if kind not in CatalogKind.ALL:
            raise ValueError(f"Catalog entry {name!r}: unknown kind {kind!r}")

        scope = record.get("scope", CatalogScope.DEFAULT)
        if scope not in CatalogScope.ALL:
            raise ValueError(f"Catalog entry {name!r}: unknown scope {scope!r}")

        stage = record.get("stage", record.get("stageType"))
        if stage is not None and stage not in StageType.ALL:
            raise ValueError(f"Catalog entry {name!r}: unknown stage {stage!r}")

        trigger_type = record.get("trigger_type", record.get("triggerType"))
        if trigger_type is not None and trigger_type not in SemanticTag.ALL:
            raise ValueError(f"Catalog entry {name!r}: unknown trigger {trigger_type!r}")

        opening_type = record.get("opening_type", record.get("openingType"))
        if opening_type is not None and opening_type not in OpeningType.ALL:
            raise ValueError(f"Catalog entry {name!r}: unknown opening type {opening_type!r}")

        family = record.get("family")
        if family is not None and family not in CatalogFamily.ALL:
            raise ValueError(f"Catalog entry {name!r}: unknown family {family!r}")

        room_type_id = record.get("room_type_id", record.get("roomTypeId"))
        unit = record.get("unit")

        return cls(
            name=str(name),
            consumption_per_unit=_number(
                record.get("consumption_per_unit", record.get("consumptionPerUnit")),
                "consumption_per_unit",
            ),
            purchase_price=_number(
                record.get("purchase_price", record.get("purchasePrice")),
                "purchase_price",
            ),
            sell_price=_number(
                record.get("sell_price", record.get("sellPrice")),
                "sell_price",
            ),
            unit=str(unit) if unit else None,
            kind=kind,
            scope=scope,
            stage=stage,
            trigger_type=trigger_type,
            basis=record.get("basis"),
            room_type_id=None if room_type_id is None else str(room_type_id),
            opening_type=opening_type,
            family=family,
        )


@dataclass
class QuantityContext:
    """
    Quantities the rule engine resolves bases against.

    stage_totals only holds calibrated totals, so it is empty until the
    project has a scale.
    """
    scale_available: bool = False
    ceiling_height_m: float = 0.0
    stage_totals: Dict[str, CalibratedStageTotals] = field(default_factory=dict)
    rooms: List[RoomMeasurement] = field(default_factory=list)

    # Deduplicated, one per physical opening
    openings: List[OpeningMeasurement] = field(default_factory=list)

    window_height_factor: float = WINDOW_HEIGHT_FACTOR
    corner_unit_markers: Tuple[str, ...] = CORNER_UNIT_MARKERS


@dataclass
class ConsumptionResult:
    """Evaluated catalog entry."""
    entry: CatalogEntry
    basis_value: float = 0.0
    required_qty: float = 0.0
    cost: float = 0.0
    revenue: float = 0.0
    profit: float = 0.0
    resolved: bool = True

    @property
    def unit(self) -> str:
        return self.entry.display_unit

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "name": self.entry.name,
            "kind": self.entry.kind,
            "stage": self.entry.stage,
            "family": self.entry.catalog_family,
            "unit": self.unit,
            "consumption_per_unit": self.entry.consumption_per_unit,
            "basis_value": round2(self.basis_value),
            "required_qty": round2(self.required_qty),
            "purchase_price": round2(self.entry.purchase_price),
            "cost": round2(self.cost),
            "revenue": round2(self.revenue),
            "profit": round2(self.profit),
            "resolved": self.resolved,
        }

    def to_row(self) -> List[Any]:
        """[name, rate, unit, qty, cost] as shown in stage tables."""
        return [
            self.entry.name,
            self.entry.consumption_per_unit,
            self.unit,
            round2(self.required_qty),
            round2(self.cost),
        ]


@dataclass
class ConsumptionSummary:
    """Totals row of a list of results."""
    count: int = 0
    cost: float = 0.0
    revenue: float = 0.0
    profit: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "cost": round2(self.cost),
            "revenue": round2(self.revenue),
            "profit": round2(self.profit),
        }


def is_corner_unit(unit: Optional[str], markers: Sequence[str] = CORNER_UNIT_MARKERS) -> bool:
    """Check if a unit label means 'per corner' (case-insensitive)."""
    if not unit:
        return False
    unit = unit.lower()
    return any(marker in unit for marker in markers)


def _resolve_opening_basis(entry: CatalogEntry, context: QuantityContext) -> Optional[float]:
    basis = entry.basis or Basis.OPENING_M2
    if basis not in Basis.OPENING:
        logger.warning(f"Catalog entry {entry.name!r}: basis {basis!r} is not valid for openings")
        return None

    if not context.scale_available:
        return None

    matching = [
        m for m in context.openings
        if entry.opening_type is None or m.opening.opening_type == entry.opening_type
    ]

    if basis == Basis.PER_OPENING:
        return float(len(matching))

    return sum(m.area_m2 for m in matching)


def _resolve_room_type_basis(entry: CatalogEntry, context: QuantityContext) -> Optional[float]:
    if entry.basis not in Basis.ROOM_TYPE:
        logger.warning(f"Catalog entry {entry.name!r}: room-type basis {entry.basis!r} is not valid")
        return None

    if not context.scale_available:
        return None

    matching = [
        m for m in context.rooms
        if entry.room_type_id is None or m.room.room_type_id == entry.room_type_id
    ]

    if entry.basis == Basis.FLOOR_M2:
        return sum(m.floor_area_m2 for m in matching)

    return sum(m.net_wall_area_m2 for m in matching)


def _resolve_trigger(entry: CatalogEntry, context: QuantityContext) -> Optional[float]:
    trigger = entry.trigger_type
    totals = context.stage_totals.get(TRIGGER_STAGES[trigger])
    if totals is None:
        return None

    height = context.ceiling_height_m

    if trigger == SemanticTag.ROOM:
        return totals.room_perimeter_m * height + 2 * totals.room_area_m2
    if trigger == SemanticTag.DOOR:
        return totals.door_area_m2 * height
    if trigger == SemanticTag.WINDOW:
        return totals.window_area_m2 * (context.window_height_factor * height)
    if trigger == SemanticTag.LED:
        return totals.led_length_m

    return float(totals.counts.get(trigger, 0))


def _resolve_stage_basis(entry: CatalogEntry, context: QuantityContext) -> Optional[float]:
    if entry.trigger_type:
        return _resolve_trigger(entry, context)

    totals = context.stage_totals.get(entry.stage) if entry.stage else None

    if entry.stage == StageType.MATERIALS:
        if totals is None:
            return None
        if is_corner_unit(entry.unit, context.corner_unit_markers):
            return float(totals.baseboard_corners)
        return totals.baseboard_length_m

    if entry.stage in WALL_STAGES:
        if totals is None:
            return None
        basis = entry.basis or Basis.WALL_M2
        if basis == Basis.LINEAR_M:
            return totals.total_length_m
        if basis == Basis.WALL_M2:
            return totals.total_length_m * context.ceiling_height_m
        logger.warning(f"Catalog entry {entry.name!r}: basis {basis!r} is not valid for walls")
        return None

    return None


def resolve_basis(entry: CatalogEntry, context: QuantityContext) -> Optional[float]:
    """
    Find the quantity an entry is priced against.

    Args:
        entry: Catalog entry
        context: Available quantities

    Returns:
        Basis value, or None when it cannot be resolved
    """
    family = entry.catalog_family

    if family == CatalogFamily.OPENING:
        return _resolve_opening_basis(entry, context)

    if family == CatalogFamily.ROOM_TYPE:
        return _resolve_room_type_basis(entry, context)

    return _resolve_stage_basis(entry, context)


def evaluate_entry(entry: CatalogEntry, context: QuantityContext) -> ConsumptionResult:
    """
    Compute required quantity and money for one entry.

    required_qty = consumption_per_unit x basis
    cost = required_qty x purchase_price
    revenue = required_qty x sell_price

    An unresolvable basis gives a zero row, never an exception.
    """
    basis_value = resolve_basis(entry, context)
    resolved = basis_value is not None

    if not resolved:
        logger.warning(
            f"Catalog entry {entry.name!r} ({entry.catalog_family}, stage {entry.stage}): "
            f"basis unavailable, quantity set to 0"
        )
        basis_value = 0.0

    required_qty = entry.consumption_per_unit * basis_value
    cost = required_qty * entry.purchase_price
    revenue = required_qty * entry.sell_price

    return ConsumptionResult(
        entry=entry,
        basis_value=basis_value,
        required_qty=required_qty,
        cost=cost,
        revenue=revenue,
        profit=revenue - cost,
        resolved=resolved,
    )


def select_catalog(project_rows: Sequence[Any], default_rows: Sequence[Any]) -> List[Any]:
    """Project rows replace the defaults entirely when there are any."""
    if project_rows:
        return list(project_rows)
    return list(default_rows or [])


def evaluate_catalog(entries: Sequence[CatalogEntry], context: QuantityContext) -> List[ConsumptionResult]:
    """Evaluate every entry, in catalog order."""
    return [evaluate_entry(entry, context) for entry in entries]


def summarize_results(results: Sequence[ConsumptionResult]) -> ConsumptionSummary:
    summary = ConsumptionSummary()
    for result in results:
        summary.count += 1
        summary.cost += result.cost
        summary.revenue += result.revenue
        summary.profit += result.profit
    return summary
