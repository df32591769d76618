# Consumption rule engine module

from .consumption import (
    CatalogEntry,
    QuantityContext,
    ConsumptionResult,
    ConsumptionSummary,
    is_corner_unit,
    resolve_basis,
    evaluate_entry,
    select_catalog,
    evaluate_catalog,
    summarize_results,
)

__all__ = [
    "CatalogEntry",
    "QuantityContext",
    "ConsumptionResult",
    "ConsumptionSummary",
    "is_corner_unit",
    "resolve_basis",
    "evaluate_entry",
    "select_catalog",
    "evaluate_catalog",
    "summarize_results",
]
