"""
Trendwave — Fibonacci Calculator

Price-level math from two- or three-point anchors. Stateless. Levels are kept
at full precision; `round_for_display` is the only place rounding happens.
"""

from __future__ import annotations

from trendwave.models import FibonacciKind, FibonacciLevels

RETRACEMENT_RATIOS: tuple[float, ...] = (0.236, 0.382, 0.5, 0.618, 0.786)
EXTENSION_RATIOS: tuple[float, ...] = (1.272, 1.618, 2.618)


def ratios_for(kind: FibonacciKind) -> tuple[float, ...]:
    return RETRACEMENT_RATIOS if kind == FibonacciKind.RETRACEMENT else EXTENSION_RATIOS


def round_for_display(levels: FibonacciLevels, decimals: int = 2) -> dict[float, float]:
    """Chart-label rounding of a level set."""
    return {ratio: round(price, decimals) for ratio, price in levels.levels.items()}


class FibonacciCalculator:
    """Retracement and extension levels.

    Usage:
        fib = FibonacciCalculator()
        fib.levels(165, 100, FibonacciKind.RETRACEMENT).levels[0.618]  # 124.83
    """

    def levels(self, high: float, low: float, kind: FibonacciKind) -> FibonacciLevels:
        """Levels across a high/low range.

        Retracement: high - range * ratio. Extension: low + range * ratio.
        """
        span = high - low
        ratios = ratios_for(kind)

        if kind == FibonacciKind.RETRACEMENT:
            levels = {ratio: high - span * ratio for ratio in ratios}
        else:
            levels = {ratio: low + span * ratio for ratio in ratios}

        return FibonacciLevels(kind=kind, ratios=list(ratios), levels=levels)

    def extensions(self, wave1_start: float, wave1_end: float, wave2_end: float) -> FibonacciLevels:
        """Wave projections measured from the end of wave 2.

        The wave-1 length is added for an up-move and subtracted for a down-move.
        """
        wave1_length = abs(wave1_end - wave1_start)
        uptrend = wave1_end > wave1_start

        levels: dict[float, float] = {}
        for ratio in EXTENSION_RATIOS:
            offset = wave1_length * ratio
            levels[ratio] = wave2_end + offset if uptrend else wave2_end - offset

        return FibonacciLevels(
            kind=FibonacciKind.EXTENSION,
            ratios=list(EXTENSION_RATIOS),
            levels=levels,
        )
