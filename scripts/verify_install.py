#!/usr/bin/env python
"""
Plan Takeoff - Installation Verification Script

Run this script to verify all dependencies are correctly installed.
"""

import sys
from pathlib import Path

# Add project root to path for package import
sys.path.insert(0, str(Path(__file__).parent.parent))


def check_package(name: str, import_name: str = None, version_attr: str = "__version__") -> tuple[bool, str]:
    """Check if a package is installed and return version."""
    import_name = import_name or name
    try:
        module = __import__(import_name)
        version = getattr(module, version_attr, "unknown")
        return True, str(version)
    except ImportError as e:
        return False, str(e)


def check_geometry() -> tuple[bool, str]:
    """Check shapely-backed polygon math on a unit square."""
    try:
        from plan_takeoff.geometry import polygon_area_and_perimeter
        area, perimeter = polygon_area_and_perimeter([(0, 0), (1, 0), (1, 1), (0, 1)])
        if abs(area - 1) > 1e-9 or abs(perimeter - 4) > 1e-9:
            return False, f"unexpected result: area={area}, perimeter={perimeter}"
        return True, "unit square ok"
    except ImportError as e:
        return False, str(e)


def check_constants() -> tuple[bool, str]:
    """Check if constants module loads correctly."""
    try:
        from plan_takeoff.constants import (
            WINDOW_HEIGHT_FACTOR,
            CLOSED_POLYLINE_EPSILON,
            ESTIMATE_UNIT_PRICES,
        )
        return True, f"loaded ({WINDOW_HEIGHT_FACTOR=:.3f}, {CLOSED_POLYLINE_EPSILON=}, {len(ESTIMATE_UNIT_PRICES)} unit prices)"
    except ImportError as e:
        return False, str(e)


def check_settings() -> tuple[bool, str]:
    """Check if settings.yaml loads correctly."""
    try:
        from plan_takeoff.config import EstimateSettings
        settings_path = Path(__file__).parent.parent / "config" / "settings.yaml"
        if not settings_path.exists():
            return False, "settings.yaml not found"
        settings = EstimateSettings.from_yaml(settings_path)
        return True, f"{len(settings.unit_prices)} unit prices"
    except (ImportError, OSError, ValueError) as e:
        return False, str(e)


def main():
    print("=" * 60)
    print("Plan Takeoff - Installation Verification")
    print("=" * 60)
    print()

    results = []

    # Core packages
    print("Core Dependencies:")
    print("-" * 40)

    packages = [
        ("shapely", "shapely", "__version__"),
        ("pyyaml", "yaml", "__version__"),
    ]

    for name, import_name, version_attr in packages:
        ok, info = check_package(name, import_name, version_attr)
        status = "PASS" if ok else "FAIL"
        print(f"  {name:25} [{status}] {info}")
        results.append((name, ok))

    print()
    print("Configuration:")
    print("-" * 40)

    checks = [
        ("geometry", check_geometry),
        ("constants.py", check_constants),
        ("settings.yaml", check_settings),
    ]

    for name, check in checks:
        ok, info = check()
        status = "PASS" if ok else "FAIL"
        print(f"  {name:25} [{status}] {info}")
        results.append((name, ok))

    print()
    print("=" * 60)

    # Summary
    passed = sum(1 for _, ok in results if ok)
    total = len(results)

    if passed == total:
        print(f"ALL CHECKS PASSED ({passed}/{total})")
        print("Environment is ready.")
        return 0
    else:
        failed = [name for name, ok in results if not ok]
        print(f"SOME CHECKS FAILED ({passed}/{total})")
        print(f"Failed: {', '.join(failed)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
