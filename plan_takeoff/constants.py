"""
Plan Takeoff - Master Constants Reference

Business values used by the quantity and estimate calculations.
Values that encode pricing assumptions can be overridden through
EstimateSettings (see config.py) without touching geometry code.
"""

# =============================================================================
# STAGES
# =============================================================================

class StageType:
    MEASUREMENT = "measurement"   # calibration stage
    DEMOLITION = "demolition"
    INSTALLATION = "installation"
    MARKUP = "markup"             # rooms, doors, windows
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    FINISHING = "finishing"
    MATERIALS = "materials"       # baseboards

    ALL = (
        MEASUREMENT,
        DEMOLITION,
        INSTALLATION,
        MARKUP,
        ELECTRICAL,
        PLUMBING,
        FINISHING,
        MATERIALS,
    )


# Stages whose catalogs are priced per wall (length or length x height)
WALL_STAGES = (StageType.DEMOLITION, StageType.INSTALLATION)

# =============================================================================
# PRIMITIVES
# =============================================================================

class ElementType:
    LINE = "line"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    POLYGON = "polygon"
    TEXT = "text"

    ALL = (LINE, RECTANGLE, CIRCLE, POLYGON, TEXT)


class SemanticTag:
    ROOM = "room"
    DOOR = "door"
    WINDOW = "window"
    SPOTLIGHT = "spotlight"
    BRA = "bra"
    LED = "led"
    OUTLET = "outlet"
    SWITCH = "switch"

    ALL = (ROOM, DOOR, WINDOW, SPOTLIGHT, BRA, LED, OUTLET, SWITCH)

    # Fixtures counted one per primitive
    COUNTED = (SPOTLIGHT, BRA, OUTLET, SWITCH)


class OpeningType:
    DOOR = "door"
    WINDOW = "window"
    OPENING = "opening"

    ALL = (OPENING, DOOR, WINDOW)


# Distance (drawing units) under which the first and last polyline
# points are treated as the same point
CLOSED_POLYLINE_EPSILON = 1e-6

# Minimum polygon vertices for a room
MIN_POLYGON_VERTICES = 3

# =============================================================================
# CATALOG
# =============================================================================

class CatalogKind:
    MATERIAL = "material"
    WORK = "work"

    ALL = (MATERIAL, WORK)


class CatalogScope:
    DEFAULT = "default"   # owner-wide defaults
    PROJECT = "project"   # overrides defaults for one project

    ALL = (DEFAULT, PROJECT)


class CatalogFamily:
    STAGE = "stage"           # triggerType or stage-wide basis
    ROOM_TYPE = "room_type"   # per room type, floor or wall area
    OPENING = "opening"       # per opening type

    ALL = (STAGE, ROOM_TYPE, OPENING)


class Basis:
    FLOOR_M2 = "floor_m2"
    WALL_M2 = "wall_m2"
    OPENING_M2 = "opening_m2"
    PER_OPENING = "per_opening"
    LINEAR_M = "linear_m"

    ROOM_TYPE = (FLOOR_M2, WALL_M2)
    OPENING = (OPENING_M2, PER_OPENING)
    WALL_STAGE = (LINEAR_M, WALL_M2)


# Stage whose aggregates feed each trigger type
TRIGGER_STAGES = {
    SemanticTag.ROOM: StageType.MARKUP,
    SemanticTag.DOOR: StageType.MARKUP,
    SemanticTag.WINDOW: StageType.MARKUP,
    SemanticTag.SPOTLIGHT: StageType.ELECTRICAL,
    SemanticTag.BRA: StageType.ELECTRICAL,
    SemanticTag.OUTLET: StageType.ELECTRICAL,
    SemanticTag.SWITCH: StageType.ELECTRICAL,
    SemanticTag.LED: StageType.ELECTRICAL,
}

# Unit labels that switch a baseboard entry to per-corner counting
CORNER_UNIT_MARKERS = ("угол", "corner")

# Unit label reported for work rows (labour hours)
WORK_UNIT_LABEL = "h"

# =============================================================================
# HEURISTICS
# =============================================================================

# Window work is priced against a reduced height
WINDOW_HEIGHT_FACTOR = 2 / 3

# Paired openings are the same physical opening when their traced
# lengths match at this many decimal pixels
OPENING_DEDUP_LENGTH_DECIMALS = 1

# Ceiling heights at or above this value are millimetres, below are metres
CEILING_HEIGHT_MM_THRESHOLD = 100

# Room type names (lowercase) treated as wet rooms for tiling
WET_ROOM_TYPE_NAMES = ("ванная", "bathroom")

# =============================================================================
# ESTIMATE
# =============================================================================

class EstimateRow:
    DEMOLITION = "demolition"
    INSTALLATION = "installation"
    SCREED = "screed"
    PLASTER = "plaster"
    FINISHING_PUTTY = "finishing_putty"
    TILING = "tiling"
    BASEBOARD = "baseboard"

    ORDER = (
        DEMOLITION,
        INSTALLATION,
        SCREED,
        PLASTER,
        FINISHING_PUTTY,
        TILING,
        BASEBOARD,
    )


# Fixed unit prices per estimate row
ESTIMATE_UNIT_PRICES = {
    EstimateRow.DEMOLITION: 200.0,
    EstimateRow.INSTALLATION: 220.0,
    EstimateRow.SCREED: 220.0,
    EstimateRow.PLASTER: 150.0,
    EstimateRow.FINISHING_PUTTY: 180.0,
    EstimateRow.TILING: 900.0,
    EstimateRow.BASEBOARD: 99.0,
}

ESTIMATE_ROW_LABELS = {
    EstimateRow.DEMOLITION: ("Partition demolition", "m²"),
    EstimateRow.INSTALLATION: ("Partition masonry", "m²"),
    EstimateRow.SCREED: ("Screed pouring", "m²"),
    EstimateRow.PLASTER: ("Wall plastering", "m²"),
    EstimateRow.FINISHING_PUTTY: ("Finishing putty", "m²"),
    EstimateRow.TILING: ("Tile laying", "m²"),
    EstimateRow.BASEBOARD: ("Baseboard installation", "m"),
}

# Decimal places for presentation and export
ROUND_DECIMALS = 2

# Result warnings shared by the estimate and the pipeline
NO_SCALE_WARNING = "No scale: calibrate the project to get physical quantities"
NO_CEILING_HEIGHT_WARNING = "No ceiling height: wall areas are 0"

# =============================================================================
# MEASUREMENT SANITY CHECKS
# =============================================================================

# Rooms smaller than this are flagged (m²)
MIN_ROOM_AREA_M2 = 1.0

# Ceiling heights outside this range are flagged (m)
MIN_CEILING_HEIGHT_M = 2.0
MAX_CEILING_HEIGHT_M = 6.0
