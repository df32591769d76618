"""
Phase 3 Tests: Stage Aggregation

Tests for per-stage totals in drawing units and their calibrated view.
"""

import random
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from plan_takeoff.aggregation import (
    aggregate_stage,
    aggregate_project,
    calibrate_stage_totals,
)
from plan_takeoff.calibration import Scale
from plan_takeoff.constants import StageType, SemanticTag
from plan_takeoff.geometry import (
    LinePrimitive,
    RectanglePrimitive,
    CirclePrimitive,
    PolygonPrimitive,
    primitive_from_dict,
)

TOL = 1e-9

SCALE = Scale(known_length_mm=3000, pixel_length=150)  # 20 mm/px


def demolition_primitives():
    return [
        LinePrimitive(element_id="w1", stage=StageType.DEMOLITION,
                      points=[(0, 0), (300, 0), (300, 200)]),
        primitive_from_dict({
            "_id": "w2", "elementType": "line", "stageType": "demolition",
            "data": {"x1": 0, "y1": 0, "x2": 0, "y2": 100},
        }),
        RectanglePrimitive(element_id="w3", stage=StageType.DEMOLITION,
                           x=0, y=0, width=200, height=20),
    ]


def markup_primitives():
    return [
        PolygonPrimitive(element_id="room1", stage=StageType.MARKUP,
                         semantic_tag=SemanticTag.ROOM,
                         points=[(0, 0), (250, 0), (250, 200), (0, 200)]),
        # Untagged polygon is still a room
        PolygonPrimitive(element_id="room2", stage=StageType.MARKUP,
                         points=[(0, 0), (100, 0), (100, 100), (0, 100)]),
        # Degenerate polygon
        PolygonPrimitive(element_id="room3", stage=StageType.MARKUP,
                         points=[(0, 0), (100, 0), (200, 0)]),
        RectanglePrimitive(element_id="door1", stage=StageType.MARKUP,
                           semantic_tag=SemanticTag.DOOR, width=45, height=10),
        RectanglePrimitive(element_id="win1", stage=StageType.MARKUP,
                           semantic_tag=SemanticTag.WINDOW, width=60, height=5),
        PolygonPrimitive(element_id="win2", stage=StageType.MARKUP,
                         semantic_tag=SemanticTag.WINDOW,
                         points=[(0, 0), (10, 0), (10, 10), (0, 10)]),
    ]


def electrical_primitives():
    return [
        CirclePrimitive(element_id="s1", stage=StageType.ELECTRICAL,
                        semantic_tag=SemanticTag.SPOTLIGHT, radius=5),
        CirclePrimitive(element_id="s2", stage=StageType.ELECTRICAL,
                        semantic_tag=SemanticTag.SPOTLIGHT, radius=5),
        CirclePrimitive(element_id="o1", stage=StageType.ELECTRICAL,
                        semantic_tag=SemanticTag.OUTLET, radius=3),
        RectanglePrimitive(element_id="sw1", stage=StageType.ELECTRICAL,
                           semantic_tag=SemanticTag.SWITCH, width=4, height=4),
        LinePrimitive(element_id="led1", stage=StageType.ELECTRICAL,
                      semantic_tag=SemanticTag.LED, points=[(0, 0), (150, 0), (150, 50)]),
    ]


def test_demolition_totals():
    """Test lines, legacy lines and rectangles feed length and area."""
    totals = aggregate_stage(demolition_primitives(), StageType.DEMOLITION)

    assert totals.primitive_count == 3
    # 500 + 100 + max(200, 20)
    assert abs(totals.total_length_px - 800) < TOL
    assert abs(totals.total_area_px2 - 4000) < TOL
    assert [s.element_id for s in totals.wall_segments] == ["w1", "w2", "w3"]
    assert abs(totals.wall_segments[2].length_px - 200) < TOL

    print("  [PASS] Demolition totals")


def test_other_stages_ignored():
    """Test primitives of another stage do not contribute."""
    primitives = demolition_primitives() + electrical_primitives()
    totals = aggregate_stage(primitives, StageType.INSTALLATION)

    assert totals.primitive_count == 0
    assert totals.total_length_px == 0
    assert totals.wall_segments == []

    print("  [PASS] Other stages ignored")


def test_zero_length_line_has_no_segment():
    """Test zero-length lines add no wall segment."""
    primitives = [
        LinePrimitive(element_id="dot", stage=StageType.DEMOLITION, points=[(5, 5), (5, 5)]),
        LinePrimitive(element_id="single", stage=StageType.DEMOLITION, points=[(5, 5)]),
    ]
    totals = aggregate_stage(primitives, StageType.DEMOLITION)

    assert totals.primitive_count == 2
    assert totals.total_length_px == 0
    assert totals.wall_segments == []

    print("  [PASS] Zero-length lines")


def test_markup_totals():
    """Test room, door and window accumulators."""
    totals = aggregate_stage(markup_primitives(), StageType.MARKUP)

    assert totals.room_count == 2
    assert abs(totals.room_area_px2 - (50000 + 10000)) < TOL
    assert abs(totals.room_perimeter_px - (900 + 400)) < TOL

    assert totals.door_count == 1
    assert abs(totals.door_area_px2 - 450) < TOL

    assert totals.window_count == 2
    assert abs(totals.window_area_px2 - (300 + 100)) < TOL

    print("  [PASS] Markup totals")


def test_electrical_totals():
    """Test fixture counts and LED length."""
    totals = aggregate_stage(electrical_primitives(), StageType.ELECTRICAL)

    assert totals.counts[SemanticTag.SPOTLIGHT] == 2
    assert totals.counts[SemanticTag.OUTLET] == 1
    assert totals.counts[SemanticTag.SWITCH] == 1
    assert totals.counts[SemanticTag.BRA] == 0
    assert abs(totals.led_length_px - 200) < TOL

    print("  [PASS] Electrical totals")


def test_baseboard_totals():
    """Test baseboard length and corners for closed and open paths."""
    primitives = [
        # Closed square
        LinePrimitive(element_id="b1", stage=StageType.MATERIALS, is_baseboard=True,
                      points=[(0, 0), (100, 0), (100, 100), (0, 100), (0, 0)]),
        # Open three-segment path
        LinePrimitive(element_id="b2", stage=StageType.MATERIALS, is_baseboard=True,
                      is_closed=False,
                      points=[(0, 0), (100, 0), (100, 100), (0, 100)]),
        # Not a baseboard
        LinePrimitive(element_id="x", stage=StageType.MATERIALS,
                      points=[(0, 0), (1000, 0)]),
    ]
    totals = aggregate_stage(primitives, StageType.MATERIALS)

    assert totals.baseboard_count == 2
    assert abs(totals.baseboard_length_px - 700) < TOL
    assert totals.baseboard_corners == 4 + 2

    print("  [PASS] Baseboard totals")


def test_baseboard_loop_flagged_open():
    """Test a drawn loop stored with isClosed false still counts every corner."""
    record = {
        "_id": "b1", "elementType": "line", "stageType": "materials",
        "data": {"isBaseboard": True, "isClosed": False,
                 "points": [[0, 0], [100, 0], [100, 100], [0, 100], [0, 0]]},
    }
    totals = aggregate_stage([primitive_from_dict(record)], StageType.MATERIALS)

    assert totals.baseboard_corners == 4
    assert abs(totals.baseboard_length_px - 400) < TOL

    print("  [PASS] Baseboard loop flagged open")


def test_permutation_invariance():
    """Test shuffling the input leaves every total unchanged."""
    primitives = demolition_primitives() + markup_primitives() + electrical_primitives()
    reference = aggregate_project(primitives)

    rng = random.Random(42)
    for _ in range(5):
        shuffled = list(primitives)
        rng.shuffle(shuffled)
        result = aggregate_project(shuffled)

        for stage, totals in reference.items():
            other = result[stage]
            assert abs(other.total_length_px - totals.total_length_px) < TOL
            assert abs(other.total_area_px2 - totals.total_area_px2) < TOL
            assert abs(other.room_area_px2 - totals.room_area_px2) < TOL
            assert abs(other.led_length_px - totals.led_length_px) < TOL
            assert other.counts == totals.counts
            assert other.door_count == totals.door_count
            assert other.window_count == totals.window_count

    print("  [PASS] Permutation invariance")


def test_aggregate_project_covers_all_stages():
    """Test every stage has totals, even an empty one."""
    result = aggregate_project(demolition_primitives())

    assert set(result.keys()) == set(StageType.ALL)
    assert result[StageType.PLUMBING].primitive_count == 0

    print("  [PASS] All stages aggregated")


def test_calibrate_without_scale():
    """Test no scale means no calibrated totals."""
    totals = aggregate_stage(demolition_primitives(), StageType.DEMOLITION)

    assert calibrate_stage_totals(totals, None) is None
    assert calibrate_stage_totals(totals, Scale(3000, 0)) is None

    print("  [PASS] Calibration without scale")


def test_calibrate_with_scale():
    """Test pixel totals convert to metres and square metres."""
    totals = aggregate_stage(demolition_primitives(), StageType.DEMOLITION)
    calibrated = calibrate_stage_totals(totals, SCALE)

    assert abs(calibrated.meters_per_pixel - 0.02) < TOL
    assert abs(calibrated.total_length_m - 16.0) < 1e-9
    assert abs(calibrated.total_area_m2 - 1.6) < 1e-9
    assert len(calibrated.wall_segments) == 3
    assert abs(calibrated.wall_segments[0].length_m - 10.0) < 1e-9

    data = calibrated.to_dict()
    assert data["total_length_m"] == 16.0
    assert data["wall_segment_count"] == 3

    print("  [PASS] Calibration with scale")


def run_all_tests():
    """Run all Phase 3 tests."""
    print("=" * 60)
    print("Phase 3 Tests: Stage Aggregation")
    print("=" * 60)

    tests = [
        test_demolition_totals,
        test_other_stages_ignored,
        test_zero_length_line_has_no_segment,
        test_markup_totals,
        test_electrical_totals,
        test_baseboard_totals,
        test_baseboard_loop_flagged_open,
        test_permutation_invariance,
        test_aggregate_project_covers_all_stages,
        test_calibrate_without_scale,
        test_calibrate_with_scale,
    ]

    failed = []
    for test in tests:
        try:
            test()
        except AssertionError as e:
            print(f"  [FAIL] {test.__name__}: {e}")
            failed.append(test.__name__)

    print("\n" + "=" * 60)
    print(f"Phase 3 Results: {len(tests) - len(failed)}/{len(tests)} tests passed")
    print("=" * 60)

    return not failed


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
