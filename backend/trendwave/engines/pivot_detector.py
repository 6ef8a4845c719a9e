"""
Trendwave — Pivot Detection

Extracts alternating local highs and lows from an OHLC series. Two named
strategies are available:

  StrictExtremum         — a candle is a pivot when its high (low) is the
                           extreme of a symmetric lookback window.
  TrendReversalFallback  — a pivot at every change of close-to-close direction,
                           plus explicit start and end anchors. Used when the
                           strict pass yields fewer than FALLBACK_PIVOT_THRESHOLD
                           pivots, which is common on short series.

Pure functions of the input; no state survives a call.
"""

from __future__ import annotations

import enum
from typing import Sequence

import numpy as np
import structlog

from trendwave.models import Candle, Pivot, PivotKind

log = structlog.get_logger(__name__)

FALLBACK_PIVOT_THRESHOLD = 4
MAX_LOOKBACK = 2


class PivotStrategy(str, enum.Enum):
    STRICT_EXTREMUM = "strict_extremum"
    TREND_REVERSAL_FALLBACK = "trend_reversal_fallback"


class PivotDetector:
    """Local extremum finder for wave analysis.

    Usage:
        detector = PivotDetector()
        pivots = detector.find_pivots(candles)
    """

    def __init__(
        self,
        fallback_threshold: int = FALLBACK_PIVOT_THRESHOLD,
        max_lookback: int = MAX_LOOKBACK,
    ):
        self.fallback_threshold = fallback_threshold
        self.max_lookback = max_lookback

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    def find_pivots(self, candles: Sequence[Candle]) -> list[Pivot]:
        """Alternating High/Low pivots, strict strategy first."""
        pivots, _ = self.find_pivots_with_strategy(candles)
        return pivots

    def find_pivots_with_strategy(self, candles: Sequence[Candle]) -> tuple[list[Pivot], PivotStrategy]:
        """Pivots plus the strategy that produced them."""
        if not candles:
            return [], PivotStrategy.STRICT_EXTREMUM

        strict = self.strict_extremum(candles)
        if len(strict) >= self.fallback_threshold:
            return strict, PivotStrategy.STRICT_EXTREMUM

        log.debug(
            "pivots.fallback",
            strict_count=len(strict),
            threshold=self.fallback_threshold,
            candles=len(candles),
        )
        return self.trend_reversal(candles), PivotStrategy.TREND_REVERSAL_FALLBACK

    def lookback_for(self, n: int) -> int:
        """Adaptive symmetric lookback: min(max_lookback, n // 4)."""
        return min(self.max_lookback, n // 4)

    def strict_extremum(self, candles: Sequence[Candle]) -> list[Pivot]:
        """Candles whose high/low is the extreme of [i-L, i+L]."""
        n = len(candles)
        if n == 0:
            return []

        h = np.array([c.high for c in candles], dtype=float)
        l = np.array([c.low for c in candles], dtype=float)
        lookback = self.lookback_for(n)

        pivots: list[Pivot] = []
        for i in range(lookback, n - lookback):
            lo, hi = i - lookback, i + lookback + 1
            if h[i] >= h[lo:hi].max():
                pivots.append(self._pivot(candles[i], i, float(h[i]), PivotKind.HIGH))
            elif l[i] <= l[lo:hi].min():
                pivots.append(self._pivot(candles[i], i, float(l[i]), PivotKind.LOW))

        return self._alternate(pivots)

    def trend_reversal(self, candles: Sequence[Candle]) -> list[Pivot]:
        """Pivots at close-direction changes, anchored at both ends."""
        n = len(candles)
        if n == 0:
            return []

        c = np.array([x.close for x in candles], dtype=float)
        rising = np.diff(c) > 0  # rising[k]: close[k+1] > close[k]

        first = candles[0]
        start_kind = PivotKind.LOW if n > 1 and rising[0] else PivotKind.HIGH
        pivots = [self._pivot(first, 0, first.close, start_kind)]

        for i in range(1, n - 1):
            came_up = bool(rising[i - 1])
            goes_up = bool(rising[i])
            if came_up == goes_up:
                continue
            candle = candles[i]
            if came_up:
                pivots.append(self._pivot(candle, i, candle.high, PivotKind.HIGH))
            else:
                pivots.append(self._pivot(candle, i, candle.low, PivotKind.LOW))

        if n > 1:
            last = candles[-1]
            end_kind = PivotKind.HIGH if rising[-1] else PivotKind.LOW
            pivots.append(self._pivot(last, n - 1, last.close, end_kind))

        return self._alternate(pivots)

    # ──────────────────────────────────────────
    # Private Helpers
    # ──────────────────────────────────────────

    @staticmethod
    def _pivot(candle: Candle, index: int, price: float, kind: PivotKind) -> Pivot:
        return Pivot(timestamp=candle.timestamp, price=float(price), index=index, kind=kind)

    @staticmethod
    def _alternate(pivots: list[Pivot]) -> list[Pivot]:
        """Collapse runs of same-kind pivots to their most extreme member."""
        result: list[Pivot] = []
        for pivot in pivots:
            if result and result[-1].kind == pivot.kind:
                prev = result[-1]
                more_extreme = (
                    pivot.price > prev.price
                    if pivot.kind == PivotKind.HIGH
                    else pivot.price < prev.price
                )
                if more_extreme:
                    result[-1] = pivot
                continue
            result.append(pivot)
        return result
