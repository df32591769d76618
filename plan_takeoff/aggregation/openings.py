"""
Opening Netting Module

Per-room floor and wall measurements with opening areas netted out of the
walls, and per-opening measurements.
"""

import logging
from typing import List, Tuple, Optional, Dict, Iterable

from ..calibration.unit_converter import px_to_meters, px2_to_square_meters
from ..constants import (
    MIN_POLYGON_VERTICES,
    MIN_ROOM_AREA_M2,
    MIN_CEILING_HEIGHT_M,
    MAX_CEILING_HEIGHT_M,
    OPENING_DEDUP_LENGTH_DECIMALS,
)
from ..geometry.calculator import polygon_area_and_perimeter
from ..geometry.room import Room, Opening, RoomMeasurement, OpeningMeasurement

logger = logging.getLogger(__name__)


def opening_area_m2(opening: Opening, meters_per_pixel: float) -> float:
    """
    Vertical area of an opening.

    Args:
        opening: Opening with traced length (px) and height (mm)
        meters_per_pixel: Linear scale factor

    Returns:
        length_m x height_m
    """
    length_m = px_to_meters(opening.length_px, meters_per_pixel)
    return length_m * (opening.height_mm / 1000)


def filter_orphaned_openings(rooms: Iterable[Room], openings: Iterable[Opening]) -> List[Opening]:
    """
    Drop openings that reference a room that no longer exists.

    Returns:
        Openings whose rooms are all present, in input order
    """
    room_ids = {room.room_id for room in rooms}
    kept = []

    for opening in openings:
        missing = [rid for rid in opening.room_ids() if rid not in room_ids]
        if missing:
            logger.warning(
                f"Opening {opening.opening_id} references missing room(s) "
                f"{', '.join(missing)}, ignoring"
            )
            continue
        kept.append(opening)

    return kept


def validate_room_measurement(measurement: RoomMeasurement) -> List[str]:
    """
    Sanity-check a room measurement.

    Args:
        measurement: Calculated room measurement

    Returns:
        List of warning messages
    """
    warnings = []

    if measurement.floor_area_m2 < MIN_ROOM_AREA_M2:
        warnings.append(
            f"Floor area {measurement.floor_area_m2:.2f} m² is below minimum "
            f"({MIN_ROOM_AREA_M2} m²)"
        )

    height = measurement.ceiling_height_m
    if height > 0 and height < MIN_CEILING_HEIGHT_M:
        warnings.append(
            f"Ceiling height {height:.2f} m is below minimum ({MIN_CEILING_HEIGHT_M} m)"
        )

    if height > MAX_CEILING_HEIGHT_M:
        warnings.append(
            f"Ceiling height {height:.2f} m exceeds maximum ({MAX_CEILING_HEIGHT_M} m)"
        )

    if measurement.openings_area_m2 > measurement.gross_wall_area_m2 > 0:
        warnings.append(
            f"Openings ({measurement.openings_area_m2:.2f} m²) exceed wall area "
            f"({measurement.gross_wall_area_m2:.2f} m²), wall area clamped to 0"
        )

    return warnings


def calculate_room_measurements(
    rooms: List[Room],
    openings: List[Opening],
    meters_per_pixel: float,
    ceiling_height_m: float,
    room_types: Optional[Dict[str, str]] = None
) -> List[RoomMeasurement]:
    """
    Measure every room and net its openings out of its walls.

    Each opening record touching a room (as first or second room) is
    subtracted from that room's wall area, so an opening between two
    rooms reduces both. Orphaned openings are ignored.

    Args:
        rooms: Rooms with resolved polygon points
        openings: Opening records of the project
        meters_per_pixel: Linear scale factor
        ceiling_height_m: Ceiling height in metres (0 when unknown)
        room_types: Optional {room_type_id: name} map for labels

    Returns:
        RoomMeasurement per room with at least three points
    """
    room_types = room_types or {}
    openings = filter_orphaned_openings(rooms, openings)
    measurements = []

    for room in rooms:
        if len(room.points) < MIN_POLYGON_VERTICES:
            logger.warning(
                f"Room {room.room_id} ({room.name}) has {len(room.points)} points, skipping"
            )
            continue

        area_px2, perimeter_px = polygon_area_and_perimeter(room.points)
        perimeter_m = px_to_meters(perimeter_px, meters_per_pixel)
        floor_area_m2 = px2_to_square_meters(area_px2, meters_per_pixel)
        gross_wall_m2 = perimeter_m * ceiling_height_m

        openings_m2 = sum(
            opening_area_m2(opening, meters_per_pixel)
            for opening in openings
            if opening.touches(room.room_id)
        )

        measurement = RoomMeasurement(
            room=room,
            room_type_name=room_types.get(room.room_type_id, "") if room.room_type_id else "",
            perimeter_m=perimeter_m,
            floor_area_m2=floor_area_m2,
            ceiling_height_m=ceiling_height_m,
            gross_wall_area_m2=gross_wall_m2,
            openings_area_m2=openings_m2,
            net_wall_area_m2=max(0.0, gross_wall_m2 - openings_m2),
        )

        measurement.warnings = validate_room_measurement(measurement)
        for warning in measurement.warnings:
            logger.warning(f"Room {room.room_id}: {warning}")

        logger.debug(
            f"Room {room.room_id}: {floor_area_m2:.2f} m² floor, "
            f"{perimeter_m:.2f} m perimeter, {measurement.net_wall_area_m2:.2f} m² net wall"
        )

        measurements.append(measurement)

    return measurements


def opening_dedup_key(
    opening: Opening,
    decimals: int = OPENING_DEDUP_LENGTH_DECIMALS
) -> Tuple:
    """
    Identity of the physical opening a record describes.

    Two records with the same room pair (in either order), type, height
    and traced length (to `decimals` pixels) are the same opening.
    """
    return (
        tuple(sorted(opening.room_ids())),
        opening.opening_type,
        opening.height_mm,
        round(opening.length_px, decimals),
    )


def deduplicate_openings(
    openings: Iterable[Opening],
    decimals: int = OPENING_DEDUP_LENGTH_DECIMALS
) -> List[Opening]:
    """
    Collapse paired opening records into one per physical opening.

    Used for material consumption only; wall netting keeps every record.

    Returns:
        First record of each physical opening, in input order
    """
    seen = set()
    unique = []

    for opening in openings:
        key = opening_dedup_key(opening, decimals)
        if key in seen:
            logger.debug(f"Opening {opening.opening_id} duplicates {key}, counted once")
            continue
        seen.add(key)
        unique.append(opening)

    return unique


def _opening_label(
    opening: Opening,
    position: int,
    room_index: Dict[str, int]
) -> str:
    first = room_index.get(opening.room_id1)
    second = room_index.get(opening.room_id2) if opening.room_id2 else None

    if first and second:
        return f"Opening {first}-{second}"
    if first:
        return f"Opening {first}"
    return f"Opening {position}"


def calculate_opening_measurements(
    rooms: List[Room],
    openings: List[Opening],
    meters_per_pixel: float
) -> List[OpeningMeasurement]:
    """
    Measure each opening record.

    Labels use the 1-based position of the linked rooms in `rooms`
    ("Opening 1-2"), or the opening's own position when no room is known.
    """
    room_index = {room.room_id: idx for idx, room in enumerate(rooms, start=1)}
    measurements = []

    for position, opening in enumerate(openings, start=1):
        length_m = px_to_meters(opening.length_px, meters_per_pixel)
        height_m = opening.height_mm / 1000
        area = length_m * height_m

        measurements.append(OpeningMeasurement(
            opening=opening,
            label=_opening_label(opening, position, room_index),
            length_m=length_m,
            height_m=height_m,
            area_m2=area,
        ))

    return measurements
