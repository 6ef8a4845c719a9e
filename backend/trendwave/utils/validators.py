"""
Trendwave — Input Validators

Reusable validation helpers for symbols and indicator periods.
Raise ValueError on invalid input; sequence inputs are never validated here
because engines degrade them to empty results instead.
"""

from __future__ import annotations

import re

# BTC, ETH-USD, SOL-USDT, 1INCH-EUR
_SYMBOL_RE = re.compile(r"^[A-Z0-9]{2,10}(-[A-Z]{2,5})?$")


def validate_symbol(raw: str) -> str:
    """Clean and validate a crypto trading symbol.

    Returns the normalized symbol or raises ValueError.

    >>> validate_symbol('btc-usd')
    'BTC-USD'
    """
    symbol = (raw or "").strip().upper()
    if not symbol:
        raise ValueError("Symbol cannot be empty")
    if not _SYMBOL_RE.match(symbol):
        raise ValueError(
            f"Invalid symbol '{symbol}'. Expected a base asset, "
            f"optionally followed by a quote currency (e.g. BTC-USD)"
        )
    return symbol


def validate_period(period: int) -> int:
    """Ensure an indicator period is a positive integer.

    >>> validate_period(14)
    14
    """
    if isinstance(period, bool) or not isinstance(period, int):
        raise ValueError(f"Period must be an integer, got {type(period).__name__}")
    if period < 1:
        raise ValueError(f"Period must be greater than 0, got {period}")
    return period
