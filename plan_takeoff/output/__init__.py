# Output generation module

from .csv_writer import (
    write_estimate_to_csv,
    write_measurements_to_csv,
    generate_estimate_csv_filename,
    generate_measurements_csv_filename,
)

from .json_writer import (
    PIPELINE_VERSION,
    build_output_json,
    write_estimate_to_json,
    generate_json_filename,
)

__all__ = [
    # CSV
    "write_estimate_to_csv",
    "write_measurements_to_csv",
    "generate_estimate_csv_filename",
    "generate_measurements_csv_filename",
    # JSON
    "PIPELINE_VERSION",
    "build_output_json",
    "write_estimate_to_json",
    "generate_json_filename",
]
