"""
Pipeline Orchestration Module

Coordinates the full workflow from project snapshot to output files.

compute_estimate() is a pure function of the snapshot and settings;
run_pipeline() adds file loading, overrides and output.
"""

import dataclasses
import logging
import time
from pathlib import Path
from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, field

from .aggregation.stage_aggregator import (
    StageTotals,
    CalibratedStageTotals,
    aggregate_project,
    calibrate_stage_totals,
)
from .aggregation.openings import (
    filter_orphaned_openings,
    calculate_room_measurements,
    calculate_opening_measurements,
    deduplicate_openings,
)
from .calibration.calibrator import calculate_scale_from_calibration
from .calibration.unit_converter import (
    Scale,
    ceiling_height_to_meters,
    parse_calibration_string,
)
from .config import EstimateSettings
from .constants import (
    StageType,
    CatalogKind,
    OpeningType,
    NO_SCALE_WARNING,
    NO_CEILING_HEIGHT_WARNING,
)
from .estimate.assembler import (
    Estimate,
    MeasurementTable,
    assemble_estimate,
    build_measurement_table,
)
from .geometry.room import OpeningMeasurement
from .output.csv_writer import (
    write_estimate_to_csv,
    write_measurements_to_csv,
    generate_estimate_csv_filename,
    generate_measurements_csv_filename,
)
from .output.json_writer import write_estimate_to_json, generate_json_filename
from .rules.consumption import (
    CatalogEntry,
    ConsumptionResult,
    QuantityContext,
    evaluate_catalog,
)
from .store import ProjectSnapshot, load_snapshot


logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for pipeline execution."""
    input_file: str
    output_dir: str
    settings_file: Optional[str] = None
    calibration: Optional[str] = None
    ceiling_height_mm: Optional[float] = None
    no_json: bool = False
    no_csv: bool = False
    verbose: bool = False


@dataclass
class EstimateResult:
    """Everything computed from one snapshot."""
    project_name: str
    scale: Optional[Scale]
    ceiling_height_m: float
    stage_totals: Dict[str, StageTotals]
    calibrated_totals: Dict[str, CalibratedStageTotals]
    context: QuantityContext
    opening_measurements: List[OpeningMeasurement]
    stage_results: Dict[str, List[ConsumptionResult]]
    estimate: Estimate
    measurements: MeasurementTable
    warnings: List[str] = field(default_factory=list)

    @property
    def scale_available(self) -> bool:
        return self.scale is not None


@dataclass
class PipelineResult:
    """Result from full pipeline execution."""
    input_file: str
    output_dir: str
    result: EstimateResult
    scale_used: str
    warnings: List[str]
    estimate_csv_path: Optional[str]
    measurements_csv_path: Optional[str]
    json_path: Optional[str]
    processing_time: float


def resolve_ceiling_height_m(snapshot: ProjectSnapshot, settings: EstimateSettings) -> float:
    """Project ceiling height, else the configured default, else 0."""
    height = snapshot.ceiling_height_m
    if height is None:
        height = ceiling_height_to_meters(settings.default_ceiling_height_mm)
    return height or 0.0


def collect_stage_catalogs(
    snapshot: ProjectSnapshot
) -> Dict[str, List[CatalogEntry]]:
    """
    Catalog entries per stage, materials before works.

    The markup stage also carries the room-type and opening catalogs.
    """
    catalogs = {}

    for stage in StageType.ALL:
        if stage == StageType.MEASUREMENT:
            continue

        entries = []
        for kind in (CatalogKind.MATERIAL, CatalogKind.WORK):
            if stage == StageType.MARKUP:
                entries.extend(snapshot.room_type_catalog(kind))
                for opening_type in OpeningType.ALL:
                    entries.extend(snapshot.opening_catalog(opening_type, kind))
            entries.extend(snapshot.catalog_for(stage, kind))

        if entries:
            catalogs[stage] = entries

    return catalogs


def compute_estimate(
    snapshot: ProjectSnapshot,
    settings: Optional[EstimateSettings] = None
) -> EstimateResult:
    """
    Compute quantities, catalog rows, estimate and measurements.

    Pure: the same snapshot and settings always give the same result.
    Without a scale every physical quantity is unavailable and the
    estimate degrades to zero rows with a warning.

    Args:
        snapshot: Project snapshot
        settings: Estimate settings (defaults when None)

    Returns:
        EstimateResult
    """
    settings = settings or EstimateSettings()
    warnings = []

    scale = snapshot.scale if snapshot.scale_available else None
    height_m = resolve_ceiling_height_m(snapshot, settings)

    if scale is None:
        warnings.append(NO_SCALE_WARNING)
    if height_m <= 0:
        warnings.append(NO_CEILING_HEIGHT_WARNING)
    if snapshot.skipped_records:
        warnings.append(f"{snapshot.skipped_records} malformed record(s) skipped")

    stage_totals = aggregate_project(snapshot.primitives)
    calibrated_totals = {}
    for stage, totals in stage_totals.items():
        calibrated = calibrate_stage_totals(totals, scale)
        if calibrated is not None:
            calibrated_totals[stage] = calibrated

    rooms = list(snapshot.rooms)
    openings = filter_orphaned_openings(rooms, snapshot.openings)
    orphaned = len(snapshot.openings) - len(openings)
    if orphaned:
        warnings.append(f"{orphaned} opening(s) reference missing rooms and were ignored")

    room_measurements = []
    opening_measurements = []
    unique_measurements = []

    if scale is not None:
        mpp = scale.meters_per_pixel
        room_measurements = calculate_room_measurements(
            rooms, openings, mpp, height_m, snapshot.room_types
        )
        opening_measurements = calculate_opening_measurements(rooms, openings, mpp)

        unique_ids = {
            o.opening_id
            for o in deduplicate_openings(openings, settings.opening_dedup_decimals)
        }
        unique_measurements = [
            m for m in opening_measurements if m.opening.opening_id in unique_ids
        ]

        for measurement in room_measurements:
            warnings.extend(f"Room {measurement.label}: {w}" for w in measurement.warnings)

    context = QuantityContext(
        scale_available=scale is not None,
        ceiling_height_m=height_m,
        stage_totals=calibrated_totals,
        rooms=room_measurements,
        openings=unique_measurements,
        window_height_factor=settings.window_height_factor,
        corner_unit_markers=settings.corner_unit_markers,
    )

    stage_results = {
        stage: evaluate_catalog(entries, context)
        for stage, entries in collect_stage_catalogs(snapshot).items()
    }

    estimate = assemble_estimate(context, stage_results, settings)
    measurements = build_measurement_table(context, opening_measurements)

    for warning in estimate.warnings:
        if warning not in warnings:
            warnings.append(warning)

    return EstimateResult(
        project_name=snapshot.name,
        scale=scale,
        ceiling_height_m=height_m,
        stage_totals=stage_totals,
        calibrated_totals=calibrated_totals,
        context=context,
        opening_measurements=opening_measurements,
        stage_results=stage_results,
        estimate=estimate,
        measurements=measurements,
        warnings=warnings,
    )


def apply_overrides(
    snapshot: ProjectSnapshot,
    calibration: Optional[str] = None,
    ceiling_height_mm: Optional[float] = None
) -> Tuple[ProjectSnapshot, str, List[str]]:
    """
    Apply command-line scale and ceiling height overrides.

    Args:
        snapshot: Loaded snapshot
        calibration: Two-point calibration string
        ceiling_height_mm: Ceiling height override

    Returns:
        Tuple of (snapshot, scale_description, warnings)
    """
    warnings = []
    scale_used = "project" if snapshot.scale_available else "none"

    if calibration:
        try:
            point1, point2, real_length, unit = parse_calibration_string(calibration)
            scale = calculate_scale_from_calibration(point1, point2, real_length, unit)
            snapshot = dataclasses.replace(snapshot, scale=scale)
            scale_used = f"calibration: {calibration}"
            logger.info(f"Using calibration: {calibration} -> {scale.mm_per_pixel:.4f} mm/px")
        except ValueError as e:
            warnings.append(f"Calibration failed: {e}")

    if ceiling_height_mm is not None:
        snapshot = dataclasses.replace(snapshot, ceiling_height_mm=ceiling_height_mm)

    return snapshot, scale_used, warnings


def run_pipeline(args) -> PipelineResult:
    """
    Run the full estimate pipeline.

    Args:
        args: Parsed command-line arguments

    Returns:
        PipelineResult with all outputs
    """
    start_time = time.time()

    # Create config from args
    config = PipelineConfig(
        input_file=args.input,
        output_dir=args.output,
        settings_file=getattr(args, 'settings', None),
        calibration=getattr(args, 'calib', None),
        ceiling_height_mm=getattr(args, 'ceiling_height', None),
        no_json=args.no_json,
        no_csv=args.no_csv,
        verbose=args.verbose,
    )

    # Setup logging
    log_level = logging.DEBUG if config.verbose else logging.INFO
    logging.basicConfig(level=log_level, format='%(message)s')

    logger.info(f"Processing: {config.input_file}")

    settings = EstimateSettings()
    if config.settings_file:
        settings = EstimateSettings.from_yaml(config.settings_file)
        logger.info(f"Settings: {config.settings_file}")

    snapshot = load_snapshot(config.input_file)
    snapshot, scale_used, all_warnings = apply_overrides(
        snapshot, config.calibration, config.ceiling_height_mm
    )

    result = compute_estimate(snapshot, settings)
    all_warnings.extend(result.warnings)

    # Generate outputs
    output_dir = Path(config.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    estimate_csv_path = None
    measurements_csv_path = None
    json_path = None

    if not config.no_csv:
        estimate_csv_path = generate_estimate_csv_filename(config.input_file, config.output_dir)
        write_estimate_to_csv(result.estimate, estimate_csv_path)
        logger.info(f"CSV written: {estimate_csv_path}")

        measurements_csv_path = generate_measurements_csv_filename(config.input_file, config.output_dir)
        write_measurements_to_csv(result.measurements, measurements_csv_path)
        logger.info(f"CSV written: {measurements_csv_path}")

    if not config.no_json:
        json_path = generate_json_filename(config.input_file, config.output_dir)
        write_estimate_to_json(result, json_path, input_file=config.input_file, scale_used=scale_used)
        logger.info(f"JSON written: {json_path}")

    processing_time = time.time() - start_time

    # Summary
    total_area = sum(m.floor_area_m2 for m in result.measurements.rooms)
    logger.info(f"\nSummary:")
    logger.info(f"  Scale: {scale_used}")
    logger.info(f"  Rooms measured: {len(result.measurements.rooms)}")
    logger.info(f"  Total floor area: {total_area:,.2f} m²")
    logger.info(f"  Estimate lines: {len(result.estimate.lines)}")
    logger.info(f"  Grand total: {result.estimate.grand_total:,.2f}")
    logger.info(f"  Processing time: {processing_time:.1f}s")

    if all_warnings and config.verbose:
        logger.info(f"\nWarnings ({len(all_warnings)}):")
        for w in all_warnings[:10]:
            logger.info(f"  - {w}")
        if len(all_warnings) > 10:
            logger.info(f"  ... and {len(all_warnings) - 10} more")

    return PipelineResult(
        input_file=config.input_file,
        output_dir=config.output_dir,
        result=result,
        scale_used=scale_used,
        warnings=all_warnings,
        estimate_csv_path=estimate_csv_path,
        measurements_csv_path=measurements_csv_path,
        json_path=json_path,
        processing_time=processing_time,
    )
