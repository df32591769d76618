"""
Phase 6 Tests: Estimate Assembly

Tests for fixed estimate rows, catalog rows, totals and the measurement
table.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from plan_takeoff.aggregation import (
    CalibratedStageTotals,
    CalibratedWallSegment,
    calculate_room_measurements,
    calculate_opening_measurements,
)
from plan_takeoff.config import EstimateSettings
from plan_takeoff.constants import (
    StageType,
    SemanticTag,
    EstimateRow,
    Basis,
    CatalogKind,
    NO_SCALE_WARNING,
    NO_CEILING_HEIGHT_WARNING,
)
from plan_takeoff.estimate import (
    EstimateLine,
    summarize_rooms,
    assemble_estimate,
    build_measurement_table,
)
from plan_takeoff.geometry import Room, Opening
from plan_takeoff.rules import CatalogEntry, QuantityContext, evaluate_catalog

MPP = 0.02
HEIGHT_M = 2.7
TOL = 1e-6

ROOM_TYPES = {"t1": "Living room", "t2": "Ванная"}


def build_rooms():
    return [
        Room(room_id="r1", name="Living", room_type_id="t1",
             points=[(0, 0), (250, 0), (250, 200), (0, 200)]),
        Room(room_id="r2", name="Bath", room_type_id="t2",
             points=[(250, 0), (350, 0), (350, 100), (250, 100)]),
    ]


def build_context(height_m=HEIGHT_M):
    """Living room 5 x 4 m, bathroom 2 x 2 m, 10 m demolished, 12 m baseboard."""
    demolition = CalibratedStageTotals(
        stage=StageType.DEMOLITION, meters_per_pixel=MPP, total_length_m=10.0,
        wall_segments=[
            CalibratedWallSegment("w1", 6.0),
            CalibratedWallSegment("w2", 4.0),
        ],
    )
    electrical = CalibratedStageTotals(
        stage=StageType.ELECTRICAL, meters_per_pixel=MPP,
        counts={SemanticTag.SPOTLIGHT: 4, SemanticTag.BRA: 1,
                SemanticTag.OUTLET: 6, SemanticTag.SWITCH: 2},
        led_length_m=3.25,
    )
    materials = CalibratedStageTotals(
        stage=StageType.MATERIALS, meters_per_pixel=MPP,
        baseboard_length_m=12.0, baseboard_corners=8,
    )

    return QuantityContext(
        scale_available=True,
        ceiling_height_m=height_m,
        stage_totals={
            StageType.DEMOLITION: demolition,
            StageType.ELECTRICAL: electrical,
            StageType.MATERIALS: materials,
        },
        rooms=calculate_room_measurements(build_rooms(), [], MPP, height_m, ROOM_TYPES),
    )


def test_line_amount_rounds_once():
    """Test the amount is quantity times price, rounded once."""
    line = EstimateLine(name="Screed", unit="m²", quantity=20.004, unit_price=220)

    assert line.amount == 4400.88
    assert line.to_csv_row() == ["Screed", "m²", 20.0, 220.0, 4400.88]

    line = EstimateLine(name="Row", unit="m²", quantity=1.005, unit_price=100)
    assert line.amount == 100.5

    print("  [PASS] Line amount rounding")


def test_catalog_line_matches_consumption_cost():
    """Test a catalog row with a fractional quantity agrees with its cost."""
    context = build_context()
    entry = CatalogEntry(name="Primer", consumption_per_unit=0.0333, purchase_price=100,
                         stage=StageType.DEMOLITION, basis=Basis.LINEAR_M, unit="l")
    results = evaluate_catalog([entry], context)

    estimate = assemble_estimate(context, {StageType.DEMOLITION: results})
    line = estimate.catalog_lines[0]

    assert abs(results[0].required_qty - 0.333) < TOL
    assert line.amount == 33.3
    assert abs(estimate.stage_summaries[StageType.DEMOLITION].cost - line.amount) < TOL

    print("  [PASS] Catalog line matches cost")


def test_summarize_rooms_wet_split():
    """Test bathrooms count as wet rooms, case-insensitively."""
    context = build_context()
    totals = summarize_rooms(context.rooms, EstimateSettings())

    assert abs(totals.floor_m2 - 24.0) < TOL
    assert abs(totals.wet_floor_m2 - 4.0) < TOL
    assert abs(totals.wet_wall_m2 - 21.6) < TOL
    assert abs(totals.living_wall_m2 - 48.6) < TOL
    assert abs(totals.wall_m2 - 70.2) < TOL

    print("  [PASS] Wet room split")


def test_fixed_rows():
    """Test every fixed row's quantity, price and amount."""
    estimate = assemble_estimate(build_context(), {})

    assert [line.key for line in estimate.lines] == list(EstimateRow.ORDER)

    expected = {
        EstimateRow.DEMOLITION: (27.0, 200.0, 5400.0),
        EstimateRow.INSTALLATION: (0.0, 220.0, 0.0),
        EstimateRow.SCREED: (24.0, 220.0, 5280.0),
        EstimateRow.PLASTER: (70.2, 150.0, 10530.0),
        EstimateRow.FINISHING_PUTTY: (48.6, 180.0, 8748.0),
        EstimateRow.TILING: (25.6, 900.0, 23040.0),
        EstimateRow.BASEBOARD: (12.0, 99.0, 1188.0),
    }

    for key, (quantity, price, amount) in expected.items():
        line = estimate.line(key)
        assert abs(line.quantity - quantity) < TOL, f"{key}: {line.quantity}"
        assert line.unit_price == price
        assert abs(line.amount - amount) < TOL, f"{key}: {line.amount}"

    assert abs(estimate.grand_total - 54186.0) < TOL
    assert estimate.line(EstimateRow.DEMOLITION).name == "Partition demolition"
    assert estimate.line(EstimateRow.BASEBOARD).unit == "m"
    assert estimate.warnings == []

    print("  [PASS] Fixed rows")


def test_custom_unit_prices():
    """Test configured prices replace the defaults."""
    settings = EstimateSettings.from_dict({"unit_prices": {"demolition": 250}})
    estimate = assemble_estimate(build_context(), {}, settings)

    assert estimate.line(EstimateRow.DEMOLITION).amount == 6750.0
    assert estimate.line(EstimateRow.SCREED).unit_price == 220.0

    print("  [PASS] Custom unit prices")


def test_catalog_rows_follow_fixed_rows():
    """Test catalog rows are priced at purchase price after fixed rows."""
    context = build_context()
    entries = [
        CatalogEntry(name="Bags", consumption_per_unit=0.5, purchase_price=100,
                     stage=StageType.DEMOLITION, basis=Basis.LINEAR_M, unit="pcs"),
        CatalogEntry(name="Wall removal", consumption_per_unit=0.2, purchase_price=800,
                     kind=CatalogKind.WORK, stage=StageType.DEMOLITION, basis=Basis.LINEAR_M),
        CatalogEntry(name="Pipe", consumption_per_unit=1, purchase_price=10,
                     stage=StageType.PLUMBING),
    ]
    stage_results = {
        StageType.DEMOLITION: evaluate_catalog(entries[:2], context),
        StageType.PLUMBING: evaluate_catalog(entries[2:], context),
    }

    estimate = assemble_estimate(context, stage_results)

    catalog = estimate.catalog_lines
    assert [line.name for line in catalog] == ["Bags", "Wall removal", "Pipe"]
    assert catalog[0].amount == 500.0
    assert catalog[1].unit == "h"
    assert catalog[1].amount == 1600.0
    assert catalog[2].amount == 0.0
    assert len(estimate.fixed_lines) == len(EstimateRow.ORDER)

    assert abs(estimate.grand_total - (54186.0 + 2100.0)) < TOL
    assert any("Pipe" in w for w in estimate.warnings)

    summary = estimate.stage_summaries[StageType.DEMOLITION]
    assert summary.count == 2
    assert abs(summary.cost - 2100.0) < TOL

    rows = estimate.to_rows()
    assert rows[0] == EstimateLine.csv_header()
    assert rows[-1] == ["Total", "", "", "", estimate.grand_total]

    print("  [PASS] Catalog rows")


def test_no_scale_estimate():
    """Test a project without scale gives zero rows and a warning."""
    context = QuantityContext(scale_available=False, ceiling_height_m=2.7)
    estimate = assemble_estimate(context, {})

    assert len(estimate.lines) == len(EstimateRow.ORDER)
    assert all(line.amount == 0.0 for line in estimate.lines)
    assert estimate.grand_total == 0.0
    assert not estimate.scale_available
    assert estimate.warnings == [NO_SCALE_WARNING]

    print("  [PASS] No-scale estimate")


def test_zero_ceiling_height():
    """Test unknown ceiling height zeroes wall rows and warns."""
    estimate = assemble_estimate(build_context(height_m=0.0), {})

    assert estimate.line(EstimateRow.DEMOLITION).quantity == 0.0
    assert estimate.line(EstimateRow.PLASTER).quantity == 0.0
    assert abs(estimate.line(EstimateRow.SCREED).quantity - 24.0) < TOL
    assert NO_CEILING_HEIGHT_WARNING in estimate.warnings

    print("  [PASS] Zero ceiling height")


def test_measurement_table():
    """Test measurement sections and rows."""
    context = build_context()
    openings = calculate_opening_measurements(
        build_rooms(),
        [Opening(opening_id="d1", room_id1="r1", room_id2="r2",
                 opening_type="door", height_mm=2000, length_px=45)],
        MPP,
    )

    table = build_measurement_table(context, openings)

    assert len(table.rooms) == 2
    assert [s.label for s in table.demolition] == ["Wall 1", "Wall 2"]
    assert abs(table.demolition[0].area_m2 - 16.2) < TOL
    assert table.installation == []

    rows = table.to_rows()
    assert rows[0] == ["Room", "Perimeter, m", "Floor area, m²", "Wall area, m²", "Height, m"]
    assert rows[1][0] == "Living (Living room)"
    assert ["Openings"] in rows
    assert ["Opening 1-2", "door", 2.0, 0.9, 1.8] in rows
    assert ["Wall 1", 6.0, 16.2, 2.7] in rows
    assert ["Outlets", 6] in rows
    assert ["LED strip, m", 3.25] in rows
    assert ["Corners", 8] in rows
    assert rows[-2] == ["Length, m", 12.0]

    data = table.to_dict()
    assert data["baseboards"] == {"length_m": 12.0, "corners": 8}
    assert data["electrical"]["counts"][SemanticTag.SPOTLIGHT] == 4

    print("  [PASS] Measurement table")


def test_measurement_table_without_scale():
    """Test the table is empty without a scale."""
    table = build_measurement_table(QuantityContext(scale_available=False), [])

    assert table.rooms == []
    assert table.demolition == []
    assert table.baseboard_corners == 0

    print("  [PASS] Measurement table without scale")


def run_all_tests():
    """Run all Phase 6 tests."""
    print("=" * 60)
    print("Phase 6 Tests: Estimate Assembly")
    print("=" * 60)

    tests = [
        test_line_amount_rounds_once,
        test_catalog_line_matches_consumption_cost,
        test_summarize_rooms_wet_split,
        test_fixed_rows,
        test_custom_unit_prices,
        test_catalog_rows_follow_fixed_rows,
        test_no_scale_estimate,
        test_zero_ceiling_height,
        test_measurement_table,
        test_measurement_table_without_scale,
    ]

    failed = []
    for test in tests:
        try:
            test()
        except AssertionError as e:
            print(f"  [FAIL] {test.__name__}: {e}")
            failed.append(test.__name__)

    print("\n" + "=" * 60)
    print(f"Phase 6 Results: {len(tests) - len(failed)}/{len(tests)} tests passed")
    print("=" * 60)

    return not failed


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
