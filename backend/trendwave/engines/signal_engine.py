"""
Trendwave — Trading Signal Generator

Turns the strongest detected wave pattern into a trade plan: direction,
macro and micro entries, an ATR-buffered stop, Fibonacci take-profit
targets and the risk/reward between them.

  Direction:  impulse follows wave 1, corrective follows wave C.
              A strong trend against that direction downgrades to HOLD.
  Stop:       2 × ATR(14) from price, bounded by the pattern extreme.
  Target:     161.8% / 261.8% extensions of the pattern range (BUY),
              just under the pattern low (SELL).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

import pandas as pd
import structlog
from ta.momentum import ROCIndicator
from ta.trend import SMAIndicator
from ta.volatility import AverageTrueRange

from trendwave.engines.fibonacci import FibonacciCalculator
from trendwave.models import (
    Candle,
    ExpectedMove,
    FibonacciKind,
    MacroEntry,
    MicroEntry,
    PatternKind,
    SignalStrength,
    SignalType,
    StopLoss,
    StopLossType,
    TakeProfit,
    TechnicalFactors,
    TimeAnalysis,
    TradingSignal,
    TrendAlignment,
    VolatilityWindow,
    WaveDirection,
    WavePattern,
)
from trendwave.utils.formatters import format_symbol
from trendwave.utils.validators import validate_period

log = structlog.get_logger(__name__)

MIN_CANDLES = 20
TREND_WINDOW = 20
MOMENTUM_WINDOW = 9  # ten closes
ATR_PERIOD = 14
AVERAGE_ATR_PERIOD = 20

MIN_PATTERN_CONFIDENCE = 0.5
STRONG_TREND = 0.7
VOLUME_SURGE = 1.2
MOMENTUM_THRESHOLD = 0.02
FIBONACCI_ALIGNMENT = 0.01
ATR_STOP_MULTIPLIER = 2.0

MICRO_CONFIRMATIONS = (
    "Volume spike above 20-period average",
    "RSI oversold bounce (< 35)",
    "MACD bullish crossover",
    "Price action: Higher low formation",
)


@dataclass(frozen=True)
class MarketContext:
    """Trend, volume and momentum read from the recent candles."""

    trend_direction: Optional[WaveDirection]  # None when price sits on the SMA
    trend_strength: float
    volume_confirming: bool
    momentum: float  # rate of change over MOMENTUM_WINDOW, as a fraction


class TradingSignalGenerator:
    """Trade plan from wave patterns plus the candle history behind them.

    Usage:
        patterns = WavePatternAnalyzer().detect_all(candles)
        signal = TradingSignalGenerator().generate("BTC", candles, patterns)
        if signal and signal.signal_type == SignalType.BUY:
            place_order(signal.micro_entry.level, signal.stop_loss.level)
    """

    def __init__(
        self,
        fibonacci: Optional[FibonacciCalculator] = None,
        atr_period: int = ATR_PERIOD,
        min_pattern_confidence: float = MIN_PATTERN_CONFIDENCE,
    ):
        validate_period(atr_period)
        self.fibonacci = fibonacci or FibonacciCalculator()
        self.atr_period = atr_period
        self.min_pattern_confidence = min_pattern_confidence

    def generate(
        self,
        symbol: str,
        candles: Sequence[Candle],
        patterns: Sequence[WavePattern],
        now: Optional[datetime] = None,
    ) -> Optional[TradingSignal]:
        """Signal for the highest-confidence pattern, or None.

        None when fewer than 20 candles are given or no pattern clears the
        confidence floor.
        """
        if len(candles) < MIN_CANDLES or not patterns:
            return None

        primary = self.select_primary_pattern(patterns)
        if primary is None:
            log.debug("signal.no_qualified_pattern", patterns=len(patterns))
            return None

        symbol = format_symbol(symbol)
        now = now or datetime.now(timezone.utc)
        frame = self.candle_frame(candles)
        current = float(frame["close"].iloc[-1])

        atr = self.atr(frame, self.atr_period)
        average_atr = self.atr(frame, min(AVERAGE_ATR_PERIOD, len(frame) - 1))
        context = self.market_context(frame)
        signal_type, confidence = self._classify(primary, context)

        micro_entry = self._micro_entry(primary, current)
        stop_loss = self._stop_loss(primary, current, atr, signal_type)
        take_profit = self._take_profit(primary, current, signal_type)

        signal = TradingSignal(
            id=f"signal_{symbol}_{int(now.timestamp() * 1000)}",
            timestamp=now,
            symbol=symbol,
            current_price=current,
            pattern_id=primary.id,
            signal_type=signal_type,
            signal_strength=self._strength(confidence),
            confidence=confidence,
            macro_entry=self._macro_entry(primary, current),
            micro_entry=micro_entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            atr=atr,
            risk_reward_ratio=self.risk_reward(micro_entry.level, take_profit.primary, stop_loss.level),
            expected_move=self._expected_move(primary, current),
            technical_factors=TechnicalFactors(
                trend_alignment=self._alignment(primary, context),
                volume_confirmation=context.volume_confirming,
                fibonacci_alignment=self._fibonacci_aligned(primary, current),
                wave_count_validity=primary.confidence,
            ),
            time_analysis=TimeAnalysis(
                cycle_position=self._cycle_position(primary),
                volatility_window=self.volatility_window(atr, average_atr),
                market_session=self.market_session(now),
                recommended_hold_time=self._hold_time(primary, signal_type),
            ),
        )

        log.info(
            "signal.generated",
            symbol=symbol,
            signal_type=signal_type.value,
            confidence=round(confidence, 3),
            pattern_id=primary.id,
        )
        return signal

    def select_primary_pattern(self, patterns: Sequence[WavePattern]) -> Optional[WavePattern]:
        """Highest confidence above the floor; the earliest wins a tie."""
        qualified = [p for p in patterns if p.confidence > self.min_pattern_confidence]
        if not qualified:
            return None
        return max(qualified, key=lambda p: p.confidence)

    # ──────────────────────────────────────────
    # Market Context
    # ──────────────────────────────────────────

    @staticmethod
    def atr(frame: pd.DataFrame, period: int) -> float:
        """Wilder ATR at the last bar; 0.0 without period + 1 bars."""
        if period < 1 or len(frame) < period + 1:
            return 0.0
        series = AverageTrueRange(
            frame["high"], frame["low"], frame["close"], window=period
        ).average_true_range()
        return float(series.iloc[-1])

    @staticmethod
    def market_context(frame: pd.DataFrame) -> MarketContext:
        closes = frame["close"]
        current = float(closes.iloc[-1])
        sma = float(SMAIndicator(closes, window=TREND_WINDOW).sma_indicator().iloc[-1])

        strength = min(abs(current - sma) / sma * 10, 1.0) if sma else 0.0
        if current > sma:
            direction = WaveDirection.UP
        elif current < sma:
            direction = WaveDirection.DOWN
        else:
            direction = None

        volumes = frame["volume"].iloc[-TREND_WINDOW:]
        volume_confirming = bool(volumes.iloc[-1] > volumes.mean() * VOLUME_SURGE)

        roc = ROCIndicator(closes, window=MOMENTUM_WINDOW).roc().iloc[-1]
        momentum = float(roc) / 100 if pd.notna(roc) else 0.0

        return MarketContext(
            trend_direction=direction,
            trend_strength=strength,
            volume_confirming=volume_confirming,
            momentum=momentum,
        )

    @staticmethod
    def volatility_window(atr: float, average_atr: float) -> VolatilityWindow:
        if atr > average_atr * 1.5:
            return VolatilityWindow.HIGH
        if atr < average_atr * 0.7:
            return VolatilityWindow.LOW
        return VolatilityWindow.MEDIUM

    @staticmethod
    def market_session(now: datetime) -> str:
        """Session label for the UTC hour; earlier checks win on overlap."""
        hour = now.astimezone(timezone.utc).hour
        if 9 <= hour < 16:
            return "US Session"
        if 3 <= hour < 12:
            return "European Session"
        if hour >= 21 or hour < 6:
            return "Asian Session"
        return "Overlap Session"

    @staticmethod
    def pattern_direction(pattern: WavePattern) -> WaveDirection:
        if pattern.kind == PatternKind.IMPULSE:
            return pattern.waves[0].direction
        return pattern.last_wave.direction

    @staticmethod
    def risk_reward(entry: float, take_profit: float, stop: float) -> float:
        risk = abs(entry - stop)
        reward = abs(take_profit - entry)
        return reward / (risk or 1)

    # ──────────────────────────────────────────
    # Classification
    # ──────────────────────────────────────────

    def _classify(self, pattern: WavePattern, context: MarketContext) -> tuple[SignalType, float]:
        direction = self.pattern_direction(pattern)
        signal_type = SignalType.BUY if direction == WaveDirection.UP else SignalType.SELL
        confidence = 0.5 + (0.2 if pattern.kind == PatternKind.IMPULSE else 0.1)

        if context.trend_strength > STRONG_TREND:
            confidence += 0.2
            if context.trend_direction == direction:
                confidence += 0.1
            else:
                signal_type = SignalType.HOLD

        if context.volume_confirming:
            confidence += 0.15

        if signal_type == SignalType.BUY and context.momentum > MOMENTUM_THRESHOLD:
            confidence += 0.1
        elif signal_type == SignalType.SELL and context.momentum < -MOMENTUM_THRESHOLD:
            confidence += 0.1

        confidence += pattern.confidence * 0.25
        return signal_type, min(confidence, 1.0)

    @staticmethod
    def _strength(confidence: float) -> SignalStrength:
        if confidence >= 0.8:
            return SignalStrength.STRONG
        if confidence >= 0.6:
            return SignalStrength.MODERATE
        return SignalStrength.WEAK

    def _alignment(self, pattern: WavePattern, context: MarketContext) -> TrendAlignment:
        if context.trend_direction is None:
            return TrendAlignment.SIDEWAYS
        if context.trend_direction == self.pattern_direction(pattern):
            return TrendAlignment.WITH
        return TrendAlignment.AGAINST

    # ──────────────────────────────────────────
    # Entries & Exits
    # ──────────────────────────────────────────

    @staticmethod
    def _macro_entry(pattern: WavePattern, current: float) -> MacroEntry:
        if pattern.kind == PatternKind.IMPULSE:
            levels = pattern.fibonacci_levels.levels
            level = levels.get(0.618) or levels.get(0.5) or current * 0.98
            return MacroEntry(
                level=level,
                reasoning="Elliott Wave late impulse entry at 61.8% Fibonacci retracement",
                timeframe="Daily/4H",
                wave_position=f"Wave {pattern.last_wave.label.value} of impulse pattern",
            )
        return MacroEntry(
            level=pattern.price_range.high * 1.005,
            reasoning="Corrective pattern breakout above resistance with volume confirmation",
            timeframe="Daily/4H",
            wave_position="Post-correction impulse entry",
        )

    @staticmethod
    def _micro_entry(pattern: WavePattern, current: float) -> MicroEntry:
        level = pattern.fibonacci_levels.levels.get(0.236) or current * 0.995
        return MicroEntry(
            level=level,
            reasoning="Micro pullback to 23.6% Fib level with bullish divergence",
            confirmation_required=list(MICRO_CONFIRMATIONS),
            optimal_time_to_enter="Wait for 15-minute candle close above micro level with volume",
        )

    @staticmethod
    def _stop_loss(
        pattern: WavePattern,
        current: float,
        atr: float,
        signal_type: SignalType,
    ) -> StopLoss:
        levels = pattern.fibonacci_levels.levels

        if signal_type == SignalType.BUY:
            atr_stop = current - atr * ATR_STOP_MULTIPLIER
            fib_stop = levels.get(0.618) or current * 0.95
            level = min(pattern.price_range.low * 0.98, max(atr_stop, fib_stop))
            return StopLoss(
                level=level,
                percentage=(current - level) / current * 100,
                reasoning="Below Elliott Wave pattern low with 2 ATR buffer and Fibonacci support",
                type=StopLossType.ATR_BASED,
            )

        if signal_type == SignalType.SELL:
            atr_stop = current + atr * ATR_STOP_MULTIPLIER
            fib_stop = levels.get(0.382) or current * 1.05
            level = max(pattern.price_range.high * 1.02, min(atr_stop, fib_stop))
            return StopLoss(
                level=level,
                percentage=(level - current) / current * 100,
                reasoning="Above Elliott Wave pattern high with 2 ATR buffer",
                type=StopLossType.ATR_BASED,
            )

        return StopLoss(
            level=current * 0.95,
            percentage=5.0,
            reasoning="Conservative 5% stop for neutral position",
            type=StopLossType.FIXED,
        )

    def _take_profit(
        self,
        pattern: WavePattern,
        current: float,
        signal_type: SignalType,
    ) -> TakeProfit:
        high, low = pattern.price_range.high, pattern.price_range.low

        if signal_type == SignalType.BUY:
            extensions = self.fibonacci.levels(high, low, FibonacciKind.EXTENSION).levels
            primary = extensions[1.618]
            return TakeProfit(
                primary=primary,
                secondary=extensions[2.618],
                percentage=(primary - current) / current * 100,
                fibonacci_level=1.618,
                reasoning="161.8% Fibonacci extension target based on Elliott Wave projection",
            )

        if signal_type == SignalType.SELL:
            primary = low * 0.98
            return TakeProfit(
                primary=primary,
                percentage=(current - primary) / current * 100,
                fibonacci_level=0.618,
                reasoning="Pattern support break with 61.8% retracement target",
            )

        return TakeProfit(
            primary=current * 1.05,
            percentage=5.0,
            fibonacci_level=1.0,
            reasoning="Conservative 5% target for neutral position",
        )

    @staticmethod
    def _expected_move(pattern: WavePattern, current: float) -> ExpectedMove:
        swing = (pattern.price_range.high - pattern.price_range.low) * 0.618
        return ExpectedMove(
            bullish_target=current + swing,
            bearish_target=current - swing,
            neutral_zone=(current * 0.98, current * 1.02),
        )

    # ──────────────────────────────────────────
    # Private Helpers
    # ──────────────────────────────────────────

    @staticmethod
    def _fibonacci_aligned(pattern: WavePattern, current: float) -> bool:
        return any(
            abs(current - level) / current < FIBONACCI_ALIGNMENT
            for level in pattern.fibonacci_levels.levels.values()
        )

    @staticmethod
    def _cycle_position(pattern: WavePattern) -> str:
        label = pattern.last_wave.label.value
        if pattern.kind == PatternKind.IMPULSE:
            return f"Wave {label} of 5-wave impulse"
        return f"Wave {label} of 3-wave correction"

    @staticmethod
    def _hold_time(pattern: WavePattern, signal_type: SignalType) -> str:
        if pattern.kind == PatternKind.IMPULSE and signal_type == SignalType.BUY:
            return "3-7 days (swing trade)"
        if pattern.kind == PatternKind.CORRECTIVE:
            return "1-3 days (short-term)"
        return "1-2 days (cautious)"

    @staticmethod
    def candle_frame(candles: Sequence[Candle]) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "high": [c.high for c in candles],
                "low": [c.low for c in candles],
                "close": [c.close for c in candles],
                "volume": [c.volume for c in candles],
            },
            dtype=float,
        )
