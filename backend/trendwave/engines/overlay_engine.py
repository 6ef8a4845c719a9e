"""
Trendwave — Chart-Overlay Indicator Calculator

Full-series indicators for chart overlays, computed with the `ta` library on
a pandas close series. Every output list is aligned to the input and holds
None where the indicator window is not yet filled.

MACD here is the fixed 12/26/9 convention (MacdFixedPeriods). The streaming
engine's `macd_scaled_period` is a different indicator and is never
substituted for this one.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from ta.momentum import RSIIndicator
from ta.trend import MACD, EMAIndicator, SMAIndicator
from ta.volatility import BollingerBands

from trendwave.models import BollingerSeries, Candle, MacdFixedPeriods
from trendwave.utils.validators import validate_period

MACD_FIXED_PERIODS = (12, 26, 9)


class OverlayIndicatorCalculator:
    """Batch indicators over a close-price series.

    Usage:
        calc = OverlayIndicatorCalculator()
        closes = calc.closes(candles)
        sma_20 = calc.sma(closes, 20)
        macd = calc.macd_fixed_periods(closes)
    """

    def sma(self, closes: Sequence[float], period: int) -> list[Optional[float]]:
        validate_period(period)
        series = SMAIndicator(close=self._series(closes), window=period, fillna=False).sma_indicator()
        return self._to_list(series)

    def ema(self, closes: Sequence[float], period: int) -> list[Optional[float]]:
        validate_period(period)
        series = EMAIndicator(close=self._series(closes), window=period, fillna=False).ema_indicator()
        return self._to_list(series)

    def rsi(self, closes: Sequence[float], period: int = 14) -> list[Optional[float]]:
        validate_period(period)
        series = RSIIndicator(close=self._series(closes), window=period, fillna=False).rsi()
        return self._to_list(series)

    def bollinger_bands(
        self,
        closes: Sequence[float],
        period: int = 20,
        num_std: float = 2.0,
    ) -> BollingerSeries:
        """Bands from the rolling mean ± num_std · population σ."""
        validate_period(period)
        bb = BollingerBands(close=self._series(closes), window=period, window_dev=num_std, fillna=False)
        return BollingerSeries(
            upper=self._to_list(bb.bollinger_hband()),
            middle=self._to_list(bb.bollinger_mavg()),
            lower=self._to_list(bb.bollinger_lband()),
        )

    def macd_fixed_periods(self, closes: Sequence[float]) -> MacdFixedPeriods:
        """MACD(12, 26) with a 9-period signal line."""
        fast, slow, signal = MACD_FIXED_PERIODS
        macd = MACD(
            close=self._series(closes),
            window_slow=slow,
            window_fast=fast,
            window_sign=signal,
            fillna=False,
        )
        return MacdFixedPeriods(
            fast=fast,
            slow=slow,
            signal_period=signal,
            macd=self._to_list(macd.macd()),
            signal=self._to_list(macd.macd_signal()),
            histogram=self._to_list(macd.macd_diff()),
        )

    @staticmethod
    def closes(candles: Sequence[Candle]) -> list[float]:
        return [c.close for c in candles]

    # ──────────────────────────────────────────
    # Private Helpers
    # ──────────────────────────────────────────

    @staticmethod
    def _series(closes: Sequence[float]) -> pd.Series:
        return pd.Series(list(closes), dtype=float)

    @staticmethod
    def _to_list(series: pd.Series) -> list[Optional[float]]:
        """NaN / inf positions become None."""
        values = series.to_numpy(dtype=float)
        return [float(v) if np.isfinite(v) else None for v in values]
