"""
Estimate Settings Module

Overridable business assumptions for quantity and estimate calculations.

Defaults come from constants.py. A settings file only needs the keys it
changes:

    unit_prices:
      tiling: 950
    window_height_factor: 0.5
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple, Optional, Any, Union

import yaml

from .constants import (
    EstimateRow,
    ESTIMATE_UNIT_PRICES,
    WINDOW_HEIGHT_FACTOR,
    OPENING_DEDUP_LENGTH_DECIMALS,
    WET_ROOM_TYPE_NAMES,
    CORNER_UNIT_MARKERS,
)

logger = logging.getLogger(__name__)


@dataclass
class EstimateSettings:
    """
    Tunable values of the estimate.

    Attributes:
        unit_prices: Price per unit for each fixed estimate row
        window_height_factor: Share of ceiling height used for window work
        opening_dedup_decimals: Pixel precision for matching paired openings
        wet_room_type_names: Room type names (lowercase) that get tiling
        corner_unit_markers: Unit substrings that switch baseboards to
            per-corner counting
        default_ceiling_height_mm: Used when the project has none
    """
    unit_prices: Dict[str, float] = field(
        default_factory=lambda: dict(ESTIMATE_UNIT_PRICES)
    )
    window_height_factor: float = WINDOW_HEIGHT_FACTOR
    opening_dedup_decimals: int = OPENING_DEDUP_LENGTH_DECIMALS
    wet_room_type_names: Tuple[str, ...] = WET_ROOM_TYPE_NAMES
    corner_unit_markers: Tuple[str, ...] = CORNER_UNIT_MARKERS
    default_ceiling_height_mm: Optional[float] = None

    def unit_price(self, row: str) -> float:
        return float(self.unit_prices.get(row, ESTIMATE_UNIT_PRICES.get(row, 0.0)))

    def is_wet_room_type(self, type_name: Optional[str]) -> bool:
        if not type_name:
            return False
        return type_name.strip().lower() in self.wet_room_type_names

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EstimateSettings":
        """
        Build settings from a mapping, keeping defaults for absent keys.

        Raises:
            ValueError: Unknown estimate row in unit_prices, or a
                non-positive window height factor
        """
        data = dict(data or {})

        unknown = [k for k in data if k not in cls.__dataclass_fields__]
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")

        kwargs = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}

        if "unit_prices" in kwargs:
            overrides = kwargs["unit_prices"] or {}
            bad_rows = [row for row in overrides if row not in EstimateRow.ORDER]
            if bad_rows:
                raise ValueError(f"Unknown estimate rows in unit_prices: {', '.join(bad_rows)}")
            prices = dict(ESTIMATE_UNIT_PRICES)
            prices.update({row: float(price) for row, price in overrides.items()})
            kwargs["unit_prices"] = prices

        if "window_height_factor" in kwargs:
            factor = float(kwargs["window_height_factor"])
            if factor <= 0:
                raise ValueError(f"window_height_factor must be positive, got {factor}")
            kwargs["window_height_factor"] = factor

        for key in ("wet_room_type_names", "corner_unit_markers"):
            if key in kwargs:
                kwargs[key] = tuple(str(v).lower() for v in kwargs[key])

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "EstimateSettings":
        """
        Load settings from a YAML file.

        Args:
            yaml_path: Path to YAML settings file

        Returns:
            EstimateSettings instance
        """
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a mapping: {yaml_path}")

        logger.debug(f"Loaded settings from {yaml_path}")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit_prices": dict(self.unit_prices),
            "window_height_factor": self.window_height_factor,
            "opening_dedup_decimals": self.opening_dedup_decimals,
            "wet_room_type_names": list(self.wet_room_type_names),
            "corner_unit_markers": list(self.corner_unit_markers),
            "default_ceiling_height_mm": self.default_ceiling_height_mm,
        }

    def to_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save settings to a YAML file."""
        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, allow_unicode=True, sort_keys=False)
