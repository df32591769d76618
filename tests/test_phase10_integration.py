"""
Phase 10 Tests: Integration

End-to-end tests from a stored project document to the output files.
"""

import argparse
import json
import sys
import tempfile
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from plan_takeoff.cli import main
from plan_takeoff.config import EstimateSettings
from plan_takeoff.constants import (
    EstimateRow,
    StageType,
    NO_SCALE_WARNING,
    NO_CEILING_HEIGHT_WARNING,
)
from plan_takeoff.output import build_output_json
from plan_takeoff.pipeline import (
    compute_estimate,
    apply_overrides,
    resolve_ceiling_height_m,
    collect_stage_catalogs,
    run_pipeline,
)
from plan_takeoff.store import snapshot_from_dict

TOL = 1e-6


def project_document(with_scale=True):
    """One 5 x 4 m room with an exterior door, 10 m of demolished wall and baseboards."""
    data = {
        "name": "Apartment",
        "ceilingHeight": 2700,
        "elements": [
            {"_id": "w1", "elementType": "line", "stageType": "demolition",
             "data": {"points": [[0, 300], [500, 300]]}},
            {"_id": "p1", "elementType": "polygon", "stageType": "markup",
             "semanticType": "room",
             "data": {"points": [[0, 0], [250, 0], [250, 200], [0, 200]]}},
            {"_id": "b1", "elementType": "line", "stageType": "materials",
             "data": {"isBaseboard": True,
                      "points": [[0, 0], [250, 0], [250, 200], [0, 200], [0, 0]]}},
            {"_id": "s1", "elementType": "circle", "stageType": "electrical",
             "semanticType": "spotlight", "data": {"cx": 10, "cy": 10, "radius": 3}},
        ],
        "rooms": [{"_id": "r1", "name": "Living", "roomTypeId": "t1", "elementId": "p1"}],
        "roomTypes": {"t1": "Living room"},
        "openings": [
            {"_id": "d1", "roomId1": "r1", "openingType": "door",
             "heightMm": 2000, "lengthPx": 45},
        ],
        "catalog": [
            {"name": "Bags", "stageType": "demolition", "basis": "linear_m",
             "consumptionPerUnit": 0.5, "purchasePrice": 100, "sellPrice": 120, "unit": "pcs"},
            {"name": "Corner piece", "stageType": "materials", "unit": "угол",
             "consumptionPerUnit": 1, "purchasePrice": 50},
            {"name": "Lamp", "stageType": "electrical", "triggerType": "spotlight",
             "consumptionPerUnit": 1, "purchasePrice": 300},
            {"name": "Door kit", "openingType": "door", "basis": "per_opening",
             "consumptionPerUnit": 1, "purchasePrice": 1000},
        ],
    }
    if with_scale:
        data["scale"] = {"knownLength": 3000, "pixelLength": 150}
    return data


def test_room_scenario():
    """Test 5 x 4 m room, 2.7 m ceiling, 0.9 x 2.0 m door."""
    result = compute_estimate(snapshot_from_dict(project_document()))

    room = result.measurements.rooms[0]
    assert abs(room.floor_area_m2 - 20.0) < TOL
    assert abs(room.perimeter_m - 18.0) < TOL
    assert abs(room.gross_wall_area_m2 - 48.6) < TOL
    assert abs(room.net_wall_area_m2 - 46.8) < TOL

    opening = result.measurements.openings[0]
    assert opening.label == "Opening 1"
    assert abs(opening.area_m2 - 1.8) < TOL

    print("  [PASS] Room scenario")


def test_estimate_scenario():
    """Test fixed and catalog rows of the full project."""
    result = compute_estimate(snapshot_from_dict(project_document()))
    estimate = result.estimate

    expected_fixed = {
        EstimateRow.DEMOLITION: 5400.0,
        EstimateRow.INSTALLATION: 0.0,
        EstimateRow.SCREED: 4400.0,
        EstimateRow.PLASTER: 7020.0,
        EstimateRow.FINISHING_PUTTY: 8424.0,
        EstimateRow.TILING: 0.0,
        EstimateRow.BASEBOARD: 1782.0,
    }
    for key, amount in expected_fixed.items():
        assert abs(estimate.line(key).amount - amount) < TOL, f"{key}: {estimate.line(key).amount}"

    catalog = {line.name: line for line in estimate.catalog_lines}
    assert catalog["Bags"].amount == 500.0
    assert catalog["Corner piece"].quantity == 4.0
    assert catalog["Corner piece"].amount == 200.0
    assert catalog["Lamp"].amount == 300.0
    assert catalog["Door kit"].amount == 1000.0

    assert abs(estimate.grand_total - (27026.0 + 2000.0)) < TOL
    assert result.warnings == []

    print("  [PASS] Estimate scenario")


def test_markup_catalog_order():
    """Test markup stage lists room-type and opening rows, materials first."""
    snapshot = snapshot_from_dict(project_document())
    catalogs = collect_stage_catalogs(snapshot)

    assert StageType.MEASUREMENT not in catalogs
    assert [e.name for e in catalogs[StageType.MARKUP]] == ["Door kit"]
    assert [e.name for e in catalogs[StageType.DEMOLITION]] == ["Bags"]

    print("  [PASS] Catalog collection")


def test_paired_openings_counted_once():
    """Test a door stored from both rooms is consumed once."""
    data = project_document()
    data["elements"].append(
        {"_id": "p2", "elementType": "polygon", "stageType": "markup",
         "data": {"points": [[250, 0], [350, 0], [350, 100], [250, 100]]}}
    )
    data["rooms"].append({"_id": "r2", "name": "Bath", "elementId": "p2"})
    data["openings"] = [
        {"_id": "d1", "roomId1": "r1", "roomId2": "r2", "openingType": "door",
         "heightMm": 2000, "lengthPx": 45.04},
        {"_id": "d2", "roomId1": "r2", "roomId2": "r1", "openingType": "door",
         "heightMm": 2000, "lengthPx": 45.0},
    ]

    result = compute_estimate(snapshot_from_dict(data))

    kit = [line for line in result.estimate.catalog_lines if line.name == "Door kit"][0]
    assert kit.quantity == 1.0
    assert len(result.measurements.openings) == 2
    assert [o.label for o in result.measurements.openings] == ["Opening 1-2", "Opening 2-1"]

    print("  [PASS] Paired openings counted once")


def test_no_scale_project():
    """Test an uncalibrated project gives zero amounts and warnings."""
    result = compute_estimate(snapshot_from_dict(project_document(with_scale=False)))

    assert not result.scale_available
    assert result.estimate.grand_total == 0.0
    assert result.measurements.rooms == []
    assert result.calibrated_totals == {}
    assert result.warnings.count(NO_SCALE_WARNING) == 1
    assert all(not r.resolved for results in result.stage_results.values() for r in results)

    # Raw totals are still available
    assert result.stage_totals[StageType.DEMOLITION].total_length_px == 500

    print("  [PASS] No-scale project")


def test_calibration_override():
    """Test a command-line calibration supplies the missing scale."""
    snapshot = snapshot_from_dict(project_document(with_scale=False))
    snapshot, scale_used, warnings = apply_overrides(
        snapshot, calibration="0,0:150,0=3m", ceiling_height_mm=3000
    )

    assert warnings == []
    assert scale_used.startswith("calibration")
    assert snapshot.scale.mm_per_pixel == 20

    result = compute_estimate(snapshot)
    assert abs(result.ceiling_height_m - 3.0) < TOL
    assert abs(result.estimate.line(EstimateRow.DEMOLITION).quantity - 30.0) < TOL

    _, scale_used, warnings = apply_overrides(snapshot, calibration="5,5:5,5=3000mm")
    assert warnings and "Calibration failed" in warnings[0]

    print("  [PASS] Calibration override")


def test_default_ceiling_height():
    """Test the configured default applies only when the project has none."""
    data = project_document()
    del data["ceilingHeight"]
    snapshot = snapshot_from_dict(data)

    assert resolve_ceiling_height_m(snapshot, EstimateSettings()) == 0.0

    settings = EstimateSettings(default_ceiling_height_mm=2500)
    assert abs(resolve_ceiling_height_m(snapshot, settings) - 2.5) < TOL

    result = compute_estimate(snapshot)
    assert result.warnings.count(NO_CEILING_HEIGHT_WARNING) == 1
    assert result.estimate.line(EstimateRow.PLASTER).quantity == 0.0

    print("  [PASS] Default ceiling height")


def test_idempotent_output():
    """Test the same snapshot always gives the same document."""
    snapshot = snapshot_from_dict(project_document())

    first = json.dumps(build_output_json(compute_estimate(snapshot), "p.json"), sort_keys=True)
    second = json.dumps(build_output_json(compute_estimate(snapshot), "p.json"), sort_keys=True)

    assert first == second

    print("  [PASS] Idempotent output")


def test_run_pipeline_writes_files():
    """Test the pipeline writes estimate, measurements and JSON."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_file = Path(tmpdir) / "apartment.json"
        input_file.write_text(json.dumps(project_document(), ensure_ascii=False), encoding="utf-8")
        output_dir = Path(tmpdir) / "out"

        args = argparse.Namespace(
            input=str(input_file),
            output=str(output_dir),
            settings=None,
            calib=None,
            ceiling_height=None,
            no_json=False,
            no_csv=False,
            verbose=True,
        )
        result = run_pipeline(args)

        assert Path(result.estimate_csv_path).name == "apartment_estimate.csv"
        assert Path(result.measurements_csv_path).name == "apartment_measurements.csv"
        assert Path(result.json_path).name == "apartment_estimate.json"
        for path in (result.estimate_csv_path, result.measurements_csv_path, result.json_path):
            assert Path(path).exists(), f"Missing {path}"

        data = json.loads(Path(result.json_path).read_text(encoding="utf-8"))
        assert data["metadata"]["scale_used"] == "project"
        assert abs(data["metadata"]["grand_total"] - 29026.0) < TOL

    print("  [PASS] Pipeline writes files")


def test_cli_main_with_settings():
    """Test the CLI entry point with a settings file and no JSON."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_file = Path(tmpdir) / "apartment.json"
        input_file.write_text(json.dumps(project_document(), ensure_ascii=False), encoding="utf-8")
        settings_file = Path(tmpdir) / "prices.yaml"
        settings_file.write_text("unit_prices:\n  screed: 300\n", encoding="utf-8")
        output_dir = Path(tmpdir) / "out"

        main(["-i", str(input_file), "-o", str(output_dir),
              "--settings", str(settings_file), "--no-json"])

        assert (output_dir / "apartment_estimate.csv").exists()
        assert not (output_dir / "apartment_estimate.json").exists()

        text = (output_dir / "apartment_estimate.csv").read_text(encoding="utf-8")
        assert "Screed pouring,m²,20.0,300.0,6000.0" in text

    print("  [PASS] CLI main")


def run_all_tests():
    """Run all Phase 10 tests."""
    print("=" * 60)
    print("Phase 10 Tests: Integration")
    print("=" * 60)

    tests = [
        test_room_scenario,
        test_estimate_scenario,
        test_markup_catalog_order,
        test_paired_openings_counted_once,
        test_no_scale_project,
        test_calibration_override,
        test_default_ceiling_height,
        test_idempotent_output,
        test_run_pipeline_writes_files,
        test_cli_main_with_settings,
    ]

    failed = []
    for test in tests:
        try:
            test()
        except AssertionError as e:
            print(f"  [FAIL] {test.__name__}: {e}")
            failed.append(test.__name__)

    print("\n" + "=" * 60)
    print(f"Phase 10 Results: {len(tests) - len(failed)}/{len(tests)} tests passed")
    print("=" * 60)

    return not failed


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
