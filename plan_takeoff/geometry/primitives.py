"""
Primitive Data Structures Module

Typed variants for traced drawing primitives and their conversion from
loosely-typed store records.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Tuple, Optional, Dict, Any, Union

from ..constants import (
    ElementType,
    SemanticTag,
    StageType,
    CLOSED_POLYLINE_EPSILON,
)

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class PrimitiveFormatError(ValueError):
    """Raised when a store record cannot be converted to a primitive."""


@dataclass
class Primitive:
    """Fields shared by every traced primitive."""
    element_id: str
    stage: str
    page_id: str = ""
    semantic_tag: Optional[str] = None
    style: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LinePrimitive(Primitive):
    """Single segment or multi-segment polyline."""
    element_type = ElementType.LINE

    points: List[Point] = field(default_factory=list)
    is_closed: Optional[bool] = None
    is_baseboard: bool = False


@dataclass
class RectanglePrimitive(Primitive):
    """Axis-aligned rectangle, corner plus signed width/height."""
    element_type = ElementType.RECTANGLE

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass
class CirclePrimitive(Primitive):
    element_type = ElementType.CIRCLE

    cx: float = 0.0
    cy: float = 0.0
    radius: float = 0.0


@dataclass
class PolygonPrimitive(Primitive):
    """Closed polygon, closing edge implied."""
    element_type = ElementType.POLYGON

    points: List[Point] = field(default_factory=list)


@dataclass
class TextPrimitive(Primitive):
    element_type = ElementType.TEXT

    x: float = 0.0
    y: float = 0.0
    text: str = ""


AnyPrimitive = Union[
    LinePrimitive,
    RectanglePrimitive,
    CirclePrimitive,
    PolygonPrimitive,
    TextPrimitive,
]


def is_closed_polyline(
    points: List[Point],
    is_closed: Optional[bool] = None,
    epsilon: float = CLOSED_POLYLINE_EPSILON
) -> bool:
    """
    Decide whether a polyline is closed.

    Closed when the stored flag is set, or when the first and last points
    coincide. A false or missing flag does not reopen a drawn loop.

    Args:
        points: Polyline points
        is_closed: Stored flag, None when absent
        epsilon: Coincidence tolerance in drawing units

    Returns:
        True if the polyline is closed
    """
    return bool(is_closed) or endpoints_coincide(points, epsilon)


def endpoints_coincide(points: List[Point], epsilon: float = CLOSED_POLYLINE_EPSILON) -> bool:
    """Check if the last point repeats the first within epsilon."""
    if len(points) < 2:
        return False

    (x0, y0), (xn, yn) = points[0], points[-1]
    return math.hypot(xn - x0, yn - y0) < epsilon


def _to_float(value: Any) -> float:
    """Convert a stored number, mapping NaN and junk to 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0

    if math.isnan(number) or math.isinf(number):
        return 0.0

    return number


def parse_points(raw: Any) -> List[Point]:
    """Parse [{x, y}, ...] or [[x, y], ...] into tuples, skipping bad or non-finite entries."""
    if not isinstance(raw, (list, tuple)):
        return []

    points = []
    for item in raw:
        if isinstance(item, dict):
            x, y = item.get("x"), item.get("y")
        elif isinstance(item, (list, tuple)) and len(item) >= 2:
            x, y = item[0], item[1]
        else:
            continue

        if isinstance(x, (int, float)) and isinstance(y, (int, float)):
            if math.isfinite(x) and math.isfinite(y):
                points.append((float(x), float(y)))

    return points


def _parse_line_points(data: Dict[str, Any]) -> List[Point]:
    """Read point-array shape data, falling back to legacy x1/y1/x2/y2."""
    if "points" in data:
        return parse_points(data.get("points"))

    if all(key in data for key in ("x1", "y1", "x2", "y2")):
        return [
            (_to_float(data["x1"]), _to_float(data["y1"])),
            (_to_float(data["x2"]), _to_float(data["y2"])),
        ]

    return []


def primitive_from_dict(record: Dict[str, Any]) -> AnyPrimitive:
    """
    Build a typed primitive from a store record.

    Accepts both snake_case and the drawing surface's camelCase keys
    (elementType, semanticType, isClosed, isBaseboard, stageType).

    Args:
        record: Store record with element type, stage and shape data

    Returns:
        Primitive variant for the element type

    Raises:
        PrimitiveFormatError: Unknown element type, stage or semantic tag
    """
    element_type = record.get("element_type", record.get("elementType"))
    if element_type not in ElementType.ALL:
        raise PrimitiveFormatError(f"Unknown element type: {element_type!r}")

    stage = record.get("stage", record.get("stageType"))
    if stage not in StageType.ALL:
        raise PrimitiveFormatError(f"Unknown stage: {stage!r}")

    semantic_tag = record.get("semantic_tag", record.get("semanticType"))
    if semantic_tag is not None and semantic_tag not in SemanticTag.ALL:
        raise PrimitiveFormatError(f"Unknown semantic tag: {semantic_tag!r}")

    data = record.get("data") or {}
    if not isinstance(data, dict):
        raise PrimitiveFormatError(f"Shape data must be a mapping, got {type(data).__name__}")

    common = dict(
        element_id=str(record.get("element_id", record.get("_id", record.get("id", "")))),
        stage=stage,
        page_id=str(record.get("page_id", record.get("pageId", ""))),
        semantic_tag=semantic_tag,
        style=dict(record.get("style") or {}),
    )

    if element_type == ElementType.LINE:
        is_closed = data.get("is_closed", data.get("isClosed"))
        return LinePrimitive(
            points=_parse_line_points(data),
            is_closed=None if is_closed is None else bool(is_closed),
            is_baseboard=bool(data.get("is_baseboard", data.get("isBaseboard", False))),
            **common,
        )

    if element_type == ElementType.RECTANGLE:
        return RectanglePrimitive(
            x=_to_float(data.get("x")),
            y=_to_float(data.get("y")),
            width=_to_float(data.get("width")),
            height=_to_float(data.get("height")),
            **common,
        )

    if element_type == ElementType.CIRCLE:
        return CirclePrimitive(
            cx=_to_float(data.get("cx", data.get("x"))),
            cy=_to_float(data.get("cy", data.get("y"))),
            radius=_to_float(data.get("radius", data.get("r"))),
            **common,
        )

    if element_type == ElementType.POLYGON:
        return PolygonPrimitive(points=parse_points(data.get("points")), **common)

    return TextPrimitive(
        x=_to_float(data.get("x")),
        y=_to_float(data.get("y")),
        text=str(data.get("text", "")),
        **common,
    )
