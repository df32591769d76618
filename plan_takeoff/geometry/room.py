"""
Room Data Structure Module

Defines rooms, openings between rooms, and their measured results.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Tuple, Optional, Dict, Any

from ..calibration.unit_converter import round2
from ..constants import OpeningType
from .primitives import Point, PolygonPrimitive, parse_points

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """
    A closed polygon assigned a room type.

    Geometry is resolved from the room's polygon primitive before the
    room reaches the calculators.
    """
    room_id: str
    name: str
    room_type_id: Optional[str] = None
    points: List[Point] = field(default_factory=list)
    page_id: str = ""
    element_id: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        record: Dict[str, Any],
        polygons: Optional[Dict[str, PolygonPrimitive]] = None
    ) -> "Room":
        """
        Build a room from a store record.

        Points come from the record itself, or from the polygon primitive
        named by its element id.
        """
        room_id = record.get("room_id", record.get("roomId", record.get("_id")))
        if room_id is None:
            raise ValueError("Room record has no id")

        element_id = record.get("element_id", record.get("elementId"))
        points = parse_points(record.get("points"))
        if not points and element_id is not None and polygons:
            polygon = polygons.get(str(element_id))
            if polygon is not None:
                points = list(polygon.points)

        room_type_id = record.get("room_type_id", record.get("roomTypeId"))

        return cls(
            room_id=str(room_id),
            name=str(record.get("name", "")),
            room_type_id=None if room_type_id is None else str(room_type_id),
            points=points,
            page_id=str(record.get("page_id", record.get("pageId", ""))),
            element_id=None if element_id is None else str(element_id),
        )


@dataclass
class Opening:
    """
    A gap in a wall, linking one room (exterior) or two rooms.

    Length is the traced length in pixels, height is in millimetres.
    """
    opening_id: str
    room_id1: str
    opening_type: str = OpeningType.OPENING
    height_mm: float = 0.0
    length_px: float = 0.0
    room_id2: Optional[str] = None
    page_id: str = ""

    def room_ids(self) -> Tuple[str, ...]:
        """Rooms this opening touches."""
        if self.room_id2:
            return (self.room_id1, self.room_id2)
        return (self.room_id1,)

    def touches(self, room_id: str) -> bool:
        return room_id == self.room_id1 or room_id == self.room_id2

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Opening":
        """
        Build an opening from a store record.

        Raises:
            ValueError: Unknown opening type, or negative or non-finite
                length/height
        """
        opening_id = record.get("opening_id", record.get("_id", record.get("id")))
        room_id1 = record.get("room_id1", record.get("roomId1"))
        if opening_id is None or room_id1 is None:
            raise ValueError("Opening record needs an id and a first room")

        opening_type = record.get("opening_type", record.get("openingType", OpeningType.OPENING))
        if opening_type not in OpeningType.ALL:
            raise ValueError(f"Unknown opening type: {opening_type!r}")

        height_mm = float(record.get("height_mm", record.get("heightMm", 0)) or 0)
        length_px = float(record.get("length_px", record.get("lengthPx", 0)) or 0)
        if not (math.isfinite(height_mm) and math.isfinite(length_px)):
            raise ValueError(f"Opening {opening_id}: size is not a finite number")
        if height_mm < 0 or length_px < 0:
            raise ValueError(
                f"Opening {opening_id}: negative size "
                f"(height {height_mm} mm, length {length_px} px)"
            )

        room_id2 = record.get("room_id2", record.get("roomId2"))

        return cls(
            opening_id=str(opening_id),
            room_id1=str(room_id1),
            opening_type=opening_type,
            height_mm=height_mm,
            length_px=length_px,
            room_id2=str(room_id2) if room_id2 else None,
            page_id=str(record.get("page_id", record.get("pageId", ""))),
        )


@dataclass
class RoomMeasurement:
    """Calibrated measurements of one room."""
    room: Room
    room_type_name: str = ""

    perimeter_m: float = 0.0
    floor_area_m2: float = 0.0
    ceiling_height_m: float = 0.0
    gross_wall_area_m2: float = 0.0
    openings_area_m2: float = 0.0
    net_wall_area_m2: float = 0.0

    # Validation warnings
    warnings: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        if self.room_type_name:
            return f"{self.room.name} ({self.room_type_name})"
        return self.room.name

    def to_dict(self) -> Dict[str, Any]:
        """Convert measurement to dictionary for JSON serialization."""
        return {
            "room_id": self.room.room_id,
            "name": self.room.name,
            "room_type_id": self.room.room_type_id,
            "room_type": self.room_type_name,
            "perimeter_m": round2(self.perimeter_m),
            "floor_area_m2": round2(self.floor_area_m2),
            "ceiling_height_m": round2(self.ceiling_height_m),
            "gross_wall_area_m2": round2(self.gross_wall_area_m2),
            "openings_area_m2": round2(self.openings_area_m2),
            "net_wall_area_m2": round2(self.net_wall_area_m2),
            "warnings": self.warnings,
        }

    def to_csv_row(self) -> List[Any]:
        """Convert measurement to CSV row values."""
        return [
            self.label,
            round2(self.perimeter_m),
            round2(self.floor_area_m2),
            round2(self.net_wall_area_m2),
            round2(self.ceiling_height_m),
        ]

    @staticmethod
    def csv_header() -> List[str]:
        """Return CSV header row."""
        return [
            "Room",
            "Perimeter, m",
            "Floor area, m²",
            "Wall area, m²",
            "Height, m",
        ]


@dataclass
class OpeningMeasurement:
    """Calibrated size of one opening record."""
    opening: Opening
    label: str
    length_m: float = 0.0
    height_m: float = 0.0
    area_m2: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "opening_id": self.opening.opening_id,
            "label": self.label,
            "opening_type": self.opening.opening_type,
            "room_ids": list(self.opening.room_ids()),
            "length_m": round2(self.length_m),
            "height_m": round2(self.height_m),
            "area_m2": round2(self.area_m2),
        }

    def to_csv_row(self) -> List[Any]:
        return [
            self.label,
            self.opening.opening_type,
            round2(self.height_m),
            round2(self.length_m),
            round2(self.area_m2),
        ]

    @staticmethod
    def csv_header() -> List[str]:
        return ["Opening", "Type", "Height, m", "Length, m", "Vertical area, m²"]
