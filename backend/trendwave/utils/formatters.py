"""
Trendwave — Shared Formatters

Human-readable formatting for prices, percentages and symbols. Used when
building alert and notification messages. Presentation rounding lives here
only; engines compare at full precision.
"""

from __future__ import annotations


def format_currency(value: float | int, decimals: int = 2) -> str:
    """Format a numeric value as USD currency.

    >>> format_currency(1234.5)
    '$1,234.50'
    >>> format_currency(-789.1)
    '-$789.10'
    """
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_pct(value: float | int, decimals: int = 2, show_sign: bool = True) -> str:
    """Format a value as a percentage with optional sign.

    >>> format_pct(12.5)
    '+12.50%'
    >>> format_pct(-3.1, decimals=1)
    '-3.1%'
    """
    if show_sign and value > 0:
        return f"+{value:.{decimals}f}%"
    return f"{value:.{decimals}f}%"


def format_ratio(ratio: float, decimals: int = 1) -> str:
    """Format a 0-1 ratio as an unsigned percentage.

    >>> format_ratio(0.618)
    '61.8%'
    """
    return format_pct(ratio * 100, decimals=decimals, show_sign=False)


def format_symbol(raw: str) -> str:
    """Normalize a trading symbol to uppercase, stripped of whitespace.

    >>> format_symbol('  btc-usd ')
    'BTC-USD'
    """
    return raw.strip().upper()
