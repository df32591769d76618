"""
JSON Writer Module

Writes the estimate, measurements and stage totals as one JSON document
with a metadata block.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

from ..calibration.unit_converter import round2

if TYPE_CHECKING:
    from ..pipeline import EstimateResult

logger = logging.getLogger(__name__)

PIPELINE_VERSION = "1.0.0"


def build_output_json(
    result: "EstimateResult",
    input_file: str,
    scale_used: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build the output document.

    Args:
        result: Computed estimate result
        input_file: Input snapshot path
        scale_used: Description of the scale source

    Returns:
        Dictionary with metadata, estimate, measurements and stage totals
    """
    estimate = result.estimate

    metadata = {
        "pipeline_version": PIPELINE_VERSION,
        "input_file": Path(input_file).name,
        "project_name": result.project_name,
        "scale_available": result.scale_available,
        "scale": result.scale.to_dict() if result.scale else None,
        "scale_used": scale_used,
        "meters_per_pixel": result.scale.meters_per_pixel if result.scale else None,
        "ceiling_height_m": round2(result.ceiling_height_m),
        "total_rooms": len(result.measurements.rooms),
        "total_floor_area_m2": round2(sum(m.floor_area_m2 for m in result.measurements.rooms)),
        "total_lines": len(estimate.lines),
        "grand_total": estimate.grand_total,
        "warnings": list(result.warnings),
    }

    return {
        "metadata": metadata,
        "estimate": estimate.to_dict(),
        "measurements": result.measurements.to_dict(),
        "stages": {
            stage: totals.to_dict()
            for stage, totals in result.calibrated_totals.items()
        },
        "catalog": {
            stage: [r.to_dict() for r in results]
            for stage, results in result.stage_results.items()
        },
    }


def write_estimate_to_json(
    result: "EstimateResult",
    output_path: str,
    input_file: str,
    scale_used: Optional[str] = None
) -> str:
    """
    Write the output document to a JSON file.

    Args:
        result: Computed estimate result
        output_path: Path to output JSON file
        input_file: Input snapshot path
        scale_used: Description of the scale source

    Returns:
        Path to written file
    """
    document = build_output_json(result, input_file, scale_used)

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)

    logger.debug(f"Wrote JSON output to {path}")
    return str(path)


def generate_json_filename(input_file: str, output_dir: str) -> str:
    """
    Generate JSON filename from the snapshot filename.

    Returns:
        Full path for the JSON file (<stem>_estimate.json)
    """
    stem = Path(input_file).stem
    return str(Path(output_dir) / f"{stem}_estimate.json")
