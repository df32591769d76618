"""
Geometry Calculator Module

Scale-agnostic measurements of traced primitives. Every function works in
drawing (pixel) units; callers convert to metres once, at aggregation time.
"""

import logging
import math
from typing import List, Tuple

from shapely.errors import GEOSException
from shapely.geometry import LineString, Polygon

from ..constants import MIN_POLYGON_VERTICES, CLOSED_POLYLINE_EPSILON
from .primitives import (
    Point,
    AnyPrimitive,
    LinePrimitive,
    RectanglePrimitive,
    CirclePrimitive,
    PolygonPrimitive,
    endpoints_coincide,
)

logger = logging.getLogger(__name__)


def line_length(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between two points (legacy single-segment lines)."""
    return math.hypot(x2 - x1, y2 - y1)


def polyline_length(points: List[Point]) -> float:
    """
    Calculate the length of an open polyline.

    Args:
        points: Polyline vertices in drawing units

    Returns:
        Sum of segment lengths, 0 for fewer than two points
    """
    if len(points) < 2:
        return 0.0

    return LineString(points).length


def rectangle_dims(rect: RectanglePrimitive) -> Tuple[float, float]:
    """Return (width, height) as absolute values."""
    return abs(rect.width), abs(rect.height)


def rectangle_wall_length(rect: RectanglePrimitive) -> float:
    """
    Length of a rectangle drawn as a thick wall stroke.

    The long side is the wall, the short side its thickness.
    """
    width, height = rectangle_dims(rect)
    return max(width, height)


def circle_dims(circle: CirclePrimitive) -> Tuple[float, float]:
    """Return (radius, diameter)."""
    radius = abs(circle.radius)
    return radius, 2 * radius


def polygon_area_and_perimeter(points: List[Point]) -> Tuple[float, float]:
    """
    Calculate area and perimeter of a simple polygon.

    The closing edge (last vertex back to the first) is part of the
    perimeter. A repeated closing vertex is accepted. Area is the absolute
    shoelace value, so vertex order and starting vertex do not matter.

    Args:
        points: Polygon vertices in drawing units

    Returns:
        Tuple of (area, perimeter), (0, 0) below three vertices
    """
    if len(points) < MIN_POLYGON_VERTICES:
        return 0.0, 0.0

    try:
        polygon = Polygon(points)
    except (ValueError, GEOSException) as e:
        # Fewer than three distinct vertices once the ring is closed
        logger.warning(f"Degenerate polygon with {len(points)} points: {e}")
        return 0.0, 0.0

    return abs(polygon.area), polygon.length


def corner_count(
    points: List[Point],
    is_closed: bool,
    epsilon: float = CLOSED_POLYLINE_EPSILON
) -> int:
    """
    Count the corners of a polyline.

    Closed: one corner per vertex, not counting a repeated closing vertex.
    Open: the two free ends are not corners.

    Args:
        points: Polyline vertices
        is_closed: Whether the polyline is closed
        epsilon: Tolerance for a repeated closing vertex

    Returns:
        Number of corners
    """
    n = len(points)

    if is_closed:
        if n > 1 and endpoints_coincide(points, epsilon):
            return n - 1
        return n

    return max(0, n - 2)


def primitive_length_px(primitive: AnyPrimitive) -> float:
    """
    Linear extent of a primitive as used for wall and strip lengths.

    Lines give their polyline length, rectangles their long side,
    polygons their perimeter. Other kinds have no length.
    """
    if isinstance(primitive, LinePrimitive):
        return polyline_length(primitive.points)

    if isinstance(primitive, RectanglePrimitive):
        return rectangle_wall_length(primitive)

    if isinstance(primitive, PolygonPrimitive):
        return polygon_area_and_perimeter(primitive.points)[1]

    return 0.0


def primitive_area_px2(primitive: AnyPrimitive) -> float:
    """Enclosed area of a primitive, 0 for open shapes."""
    if isinstance(primitive, RectanglePrimitive):
        width, height = rectangle_dims(primitive)
        return width * height

    if isinstance(primitive, PolygonPrimitive):
        return polygon_area_and_perimeter(primitive.points)[0]

    if isinstance(primitive, CirclePrimitive):
        radius, _ = circle_dims(primitive)
        return math.pi * radius * radius

    return 0.0
