# Geometry calculations module

from .primitives import (
    Point,
    PrimitiveFormatError,
    Primitive,
    LinePrimitive,
    RectanglePrimitive,
    CirclePrimitive,
    PolygonPrimitive,
    TextPrimitive,
    AnyPrimitive,
    is_closed_polyline,
    endpoints_coincide,
    parse_points,
    primitive_from_dict,
)

from .calculator import (
    line_length,
    polyline_length,
    rectangle_dims,
    rectangle_wall_length,
    circle_dims,
    polygon_area_and_perimeter,
    corner_count,
    primitive_length_px,
    primitive_area_px2,
)

from .room import (
    Room,
    Opening,
    RoomMeasurement,
    OpeningMeasurement,
)

__all__ = [
    # Primitives
    "Point",
    "PrimitiveFormatError",
    "Primitive",
    "LinePrimitive",
    "RectanglePrimitive",
    "CirclePrimitive",
    "PolygonPrimitive",
    "TextPrimitive",
    "AnyPrimitive",
    "is_closed_polyline",
    "endpoints_coincide",
    "parse_points",
    "primitive_from_dict",
    # Calculator
    "line_length",
    "polyline_length",
    "rectangle_dims",
    "rectangle_wall_length",
    "circle_dims",
    "polygon_area_and_perimeter",
    "corner_count",
    "primitive_length_px",
    "primitive_area_px2",
    # Room
    "Room",
    "Opening",
    "RoomMeasurement",
    "OpeningMeasurement",
]
