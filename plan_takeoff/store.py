"""
Project Snapshot Module

Read-only view of one project's stored data: primitives, scale, rooms,
openings, room types and catalog. Records are validated here, once, and
reach the calculators as typed objects.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Optional, Dict, Any, Union

from .calibration.unit_converter import Scale, ceiling_height_to_meters
from .constants import CatalogFamily, CatalogScope
from .geometry.primitives import (
    AnyPrimitive,
    PolygonPrimitive,
    primitive_from_dict,
)
from .geometry.room import Room, Opening
from .rules.consumption import CatalogEntry, select_catalog

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a snapshot file or document cannot be read."""


@dataclass(frozen=True)
class ProjectSnapshot:
    """Immutable input of one estimate computation."""
    name: str = ""
    scale: Optional[Scale] = None
    ceiling_height_mm: Optional[float] = None
    primitives: Tuple[AnyPrimitive, ...] = ()
    rooms: Tuple[Room, ...] = ()
    openings: Tuple[Opening, ...] = ()
    room_types: Dict[str, str] = field(default_factory=dict)
    catalog: Tuple[CatalogEntry, ...] = ()
    skipped_records: int = 0

    @property
    def scale_available(self) -> bool:
        return self.scale is not None and self.scale.is_valid

    @property
    def ceiling_height_m(self) -> Optional[float]:
        return ceiling_height_to_meters(self.ceiling_height_mm)

    def primitives_for_stage(self, stage: str) -> List[AnyPrimitive]:
        return [p for p in self.primitives if p.stage == stage]

    def _entries(self, family: str, kind: str, scope: str, **match: Any) -> List[CatalogEntry]:
        return [
            entry for entry in self.catalog
            if entry.catalog_family == family
            and entry.kind == kind
            and entry.scope == scope
            and all(getattr(entry, attr) == value for attr, value in match.items())
        ]

    def _select(self, family: str, kind: str, **match: Any) -> List[CatalogEntry]:
        return select_catalog(
            self._entries(family, kind, CatalogScope.PROJECT, **match),
            self._entries(family, kind, CatalogScope.DEFAULT, **match),
        )

    def catalog_for(self, stage: str, kind: str) -> List[CatalogEntry]:
        """Stage catalog; project rows replace defaults when there are any."""
        return self._select(CatalogFamily.STAGE, kind, stage=stage)

    def room_type_catalog(self, kind: str) -> List[CatalogEntry]:
        return self._select(CatalogFamily.ROOM_TYPE, kind)

    def opening_catalog(self, opening_type: str, kind: str) -> List[CatalogEntry]:
        return self._select(CatalogFamily.OPENING, kind, opening_type=opening_type)


def _records(data: Dict[str, Any], *keys: str) -> List[Any]:
    for key in keys:
        if key in data:
            value = data[key]
            if value is None:
                return []
            if not isinstance(value, list):
                raise SnapshotError(f"'{key}' must be a list, got {type(value).__name__}")
            return value
    return []


def _parse_room_types(raw: Any) -> Dict[str, str]:
    """Accept {id: name} or [{_id/id, name}, ...]."""
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}

    room_types = {}
    for record in raw or []:
        if not isinstance(record, dict):
            continue
        type_id = record.get("room_type_id", record.get("_id", record.get("id")))
        if type_id is not None:
            room_types[str(type_id)] = str(record.get("name", ""))
    return room_types


def snapshot_from_dict(data: Dict[str, Any]) -> ProjectSnapshot:
    """
    Validate and convert a stored project document.

    Malformed records are skipped with a warning; the rest of the project
    is still usable.

    Args:
        data: Project document (snake_case or store camelCase keys)

    Returns:
        ProjectSnapshot

    Raises:
        SnapshotError: The document itself is not a mapping, or a record
            collection is not a list
    """
    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot must be a JSON object, got {type(data).__name__}")

    skipped = 0

    def convert(kind: str, records: List[Any], factory) -> List[Any]:
        nonlocal skipped
        items = []
        for idx, record in enumerate(records):
            if not isinstance(record, dict):
                logger.warning(f"Skipping {kind} #{idx}: not an object")
                skipped += 1
                continue
            try:
                items.append(factory(record))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping {kind} #{idx}: {e}")
                skipped += 1
        return items

    primitives = convert("element", _records(data, "primitives", "elements"), primitive_from_dict)

    polygons = {p.element_id: p for p in primitives if isinstance(p, PolygonPrimitive)}
    rooms = convert(
        "room",
        _records(data, "rooms"),
        lambda record: Room.from_dict(record, polygons),
    )
    openings = convert("opening", _records(data, "openings"), Opening.from_dict)
    catalog = convert("catalog entry", _records(data, "catalog"), CatalogEntry.from_dict)

    room_types = _parse_room_types(data.get("room_types", data.get("roomTypes")))

    scale = Scale.from_dict(data.get("scale"))
    ceiling_height = data.get("ceiling_height_mm", data.get("ceilingHeight"))

    snapshot = ProjectSnapshot(
        name=str(data.get("name", "")),
        scale=scale,
        ceiling_height_mm=ceiling_height,
        primitives=tuple(primitives),
        rooms=tuple(rooms),
        openings=tuple(openings),
        room_types=room_types,
        catalog=tuple(catalog),
        skipped_records=skipped,
    )

    logger.debug(
        f"Snapshot {snapshot.name!r}: {len(primitives)} elements, {len(rooms)} rooms, "
        f"{len(openings)} openings, {len(catalog)} catalog entries, {skipped} skipped"
    )

    return snapshot


def load_snapshot(path: Union[str, Path]) -> ProjectSnapshot:
    """
    Load a project snapshot from a JSON file.

    Raises:
        SnapshotError: Missing, unreadable or invalid JSON file
    """
    path = Path(path)
    if not path.exists():
        raise SnapshotError(f"Snapshot file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise SnapshotError(f"Cannot read {path}: {e}") from e

    return snapshot_from_dict(data)
