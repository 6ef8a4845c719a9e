# Shared utilities — formatters, validators
from trendwave.utils.formatters import (
    format_currency,
    format_pct,
    format_ratio,
    format_symbol,
)
from trendwave.utils.validators import validate_period, validate_symbol

__all__ = [
    "format_currency",
    "format_pct",
    "format_ratio",
    "format_symbol",
    "validate_period",
    "validate_symbol",
]
