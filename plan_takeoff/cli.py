"""
Command Line Interface Module

Parses command-line arguments for the takeoff pipeline.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .calibration.unit_converter import parse_calibration_string

# Sanity bounds for --ceiling-height (mm)
MIN_CEILING_HEIGHT_ARG_MM = 1000
MAX_CEILING_HEIGHT_ARG_MM = 10000


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the pipeline."""
    parser = argparse.ArgumentParser(
        prog="plan_takeoff",
        description="Compute quantities and a priced estimate from traced floor-plan data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m plan_takeoff -i project.json -o ./output
  python -m plan_takeoff -i project.json -o ./output --calib "100,200:250,200=3000mm"
  python -m plan_takeoff -i project.json -o ./output --settings prices.yaml --verbose
        """
    )

    # Required arguments
    parser.add_argument(
        "-i", "--input",
        required=True,
        help="Input project snapshot (JSON)"
    )

    parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output directory path"
    )

    # Optional arguments
    parser.add_argument(
        "--settings",
        help="YAML file with unit prices and estimate settings"
    )

    parser.add_argument(
        "--calib",
        help="Two-point calibration overriding the project scale ('x1,y1:x2,y2=3000mm')"
    )

    parser.add_argument(
        "--ceiling-height",
        type=float,
        help="Ceiling height in mm, overrides the project value"
    )

    parser.add_argument(
        "--no-json",
        action="store_true",
        help="Skip JSON output"
    )

    parser.add_argument(
        "--no-csv",
        action="store_true",
        help="Skip CSV output"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    return parser


def validate_args(args: argparse.Namespace) -> Tuple[bool, str]:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Check input file exists
    input_path = Path(args.input)
    if not input_path.exists():
        return False, f"Input file not found: {args.input}"

    if not input_path.suffix.lower() == ".json":
        return False, f"Input file must be a JSON snapshot: {args.input}"

    if args.settings:
        settings_path = Path(args.settings)
        if not settings_path.exists():
            return False, f"Settings file not found: {args.settings}"
        if settings_path.suffix.lower() not in (".yaml", ".yml"):
            return False, f"Settings file must be YAML: {args.settings}"

    # Check/create output directory
    output_path = Path(args.output)
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return False, f"Cannot create output directory: {e}"

    if args.calib:
        try:
            parse_calibration_string(args.calib)
        except ValueError as e:
            return False, str(e)

    if args.ceiling_height is not None:
        if not MIN_CEILING_HEIGHT_ARG_MM <= args.ceiling_height <= MAX_CEILING_HEIGHT_ARG_MM:
            return False, (
                f"Ceiling height must be between {MIN_CEILING_HEIGHT_ARG_MM} and "
                f"{MAX_CEILING_HEIGHT_ARG_MM} mm: {args.ceiling_height}"
            )

    if args.no_json and args.no_csv:
        return False, "Nothing to write: --no-json and --no-csv both given"

    return True, ""


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse and validate command-line arguments.

    Args:
        args: Optional list of arguments (uses sys.argv if None)

    Returns:
        Parsed and validated arguments
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    is_valid, error_msg = validate_args(parsed)
    if not is_valid:
        parser.error(error_msg)

    return parsed


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI."""
    args = parse_args(argv)

    # Import pipeline and run
    from .pipeline import run_pipeline

    try:
        run_pipeline(args)
    except KeyboardInterrupt:
        print("\nProcessing cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
