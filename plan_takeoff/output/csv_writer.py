"""
CSV Writer Module

Writes the estimate and the measurement table as CSV files.
"""

import csv
import logging
from pathlib import Path
from typing import Any, List

from ..estimate.assembler import Estimate, MeasurementTable

logger = logging.getLogger(__name__)


def _write_rows(rows: List[List[Any]], output_path: str) -> str:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(rows)

    return str(path)


def write_estimate_to_csv(estimate: Estimate, output_path: str) -> str:
    """
    Write estimate lines and the total row to CSV.

    Args:
        estimate: Assembled estimate
        output_path: Path to output CSV file

    Returns:
        Path to written file
    """
    path = _write_rows(estimate.to_rows(), output_path)
    logger.debug(f"Wrote {len(estimate.lines)} estimate lines to {path}")
    return path


def write_measurements_to_csv(table: MeasurementTable, output_path: str) -> str:
    """
    Write the measurement table sections to one CSV file.

    Args:
        table: Measurement detail table
        output_path: Path to output CSV file

    Returns:
        Path to written file
    """
    path = _write_rows(table.to_rows(), output_path)
    logger.debug(f"Wrote measurements ({len(table.rooms)} rooms) to {path}")
    return path


def generate_estimate_csv_filename(input_file: str, output_dir: str) -> str:
    """
    Generate estimate CSV filename from the snapshot filename.

    Args:
        input_file: Path to input snapshot
        output_dir: Output directory

    Returns:
        Full path for the CSV file (<stem>_estimate.csv)
    """
    stem = Path(input_file).stem
    return str(Path(output_dir) / f"{stem}_estimate.csv")


def generate_measurements_csv_filename(input_file: str, output_dir: str) -> str:
    """Full path for the measurement CSV file (<stem>_measurements.csv)."""
    stem = Path(input_file).stem
    return str(Path(output_dir) / f"{stem}_measurements.csv")
