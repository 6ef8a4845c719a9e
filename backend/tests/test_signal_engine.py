"""
Trendwave — Trading Signal Generator Tests

Tests for:
- Guards (short history, no qualifying pattern) and primary pattern choice
- BUY plan from an up impulse: entries, ATR stop, extension targets
- SELL plan from a falling ABC correction
- HOLD when a strong trend runs against the pattern
- ATR, market context, volatility window and session helpers
"""

from datetime import datetime, timezone

import pytest

from conftest import make_candles

NOW = datetime(2024, 1, 1, 10, tzinfo=timezone.utc)


def _flat_history(close, n=20):
    """n candles closing at `close` with a constant true range of 2."""
    return make_candles([(close, close + 1, close - 1, close)] * n)


def _impulse(impulse_candles):
    from trendwave.engines.wave_engine import WavePatternAnalyzer
    return WavePatternAnalyzer().detect_impulse_waves(impulse_candles)[0]


def _correction(abc_candles):
    from trendwave.engines.wave_engine import WavePatternAnalyzer
    return WavePatternAnalyzer().detect_corrective_waves(abc_candles)[0]


# ════════════════════════════════════════════════
#  GUARDS
# ════════════════════════════════════════════════


class TestGuards:

    def test_short_history_returns_none(self, impulse_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        pattern = _impulse(impulse_candles)
        assert TradingSignalGenerator().generate("BTC", _flat_history(150, n=19), [pattern], now=NOW) is None

    def test_no_patterns_returns_none(self):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        assert TradingSignalGenerator().generate("BTC", _flat_history(150), [], now=NOW) is None

    def test_low_confidence_patterns_ignored(self, impulse_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        weak = _impulse(impulse_candles).model_copy(update={"confidence": 0.5})
        assert TradingSignalGenerator().generate("BTC", _flat_history(150), [weak], now=NOW) is None

    def test_primary_pattern_is_most_confident(self, impulse_candles, abc_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        impulse, correction = _impulse(impulse_candles), _correction(abc_candles)
        generator = TradingSignalGenerator()
        assert generator.select_primary_pattern([correction, impulse]) is impulse

        signal = generator.generate("btc", _flat_history(150), [correction, impulse], now=NOW)
        assert signal.pattern_id == impulse.id
        assert signal.symbol == "BTC"

    def test_non_positive_atr_period_rejected(self):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        with pytest.raises(ValueError):
            TradingSignalGenerator(atr_period=0)


# ════════════════════════════════════════════════
#  SIGNAL PLANS
# ════════════════════════════════════════════════


class TestBuySignal:
    """Up impulse 100 → 165 (confidence 0.85) against a flat 150 market."""

    def test_classification(self, impulse_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        from trendwave.models import SignalStrength, SignalType, TrendAlignment

        signal = TradingSignalGenerator().generate("BTC", _flat_history(150), [_impulse(impulse_candles)], now=NOW)
        assert signal.signal_type == SignalType.BUY
        assert signal.confidence == pytest.approx(0.5 + 0.2 + 0.85 * 0.25)
        assert signal.signal_strength == SignalStrength.STRONG
        assert signal.technical_factors.trend_alignment == TrendAlignment.SIDEWAYS
        assert signal.technical_factors.volume_confirmation is False
        assert signal.technical_factors.wave_count_validity == pytest.approx(0.85)
        assert signal.id == f"signal_BTC_{int(NOW.timestamp() * 1000)}"

    def test_entries(self, impulse_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        signal = TradingSignalGenerator().generate("BTC", _flat_history(150), [_impulse(impulse_candles)], now=NOW)
        assert signal.macro_entry.level == pytest.approx(165 - 65 * 0.618)
        assert signal.macro_entry.wave_position == "Wave 5 of impulse pattern"
        assert signal.micro_entry.level == pytest.approx(165 - 65 * 0.236)
        assert len(signal.micro_entry.confirmation_required) == 4

    def test_stop_and_targets(self, impulse_candles):
        """The 2-ATR stop (146) sits above the pattern low, so 98% of the low wins."""
        from trendwave.engines.signal_engine import TradingSignalGenerator
        from trendwave.models import StopLossType

        signal = TradingSignalGenerator().generate("BTC", _flat_history(150), [_impulse(impulse_candles)], now=NOW)
        assert signal.atr == pytest.approx(2.0)
        assert signal.stop_loss.type == StopLossType.ATR_BASED
        assert signal.stop_loss.level == pytest.approx(98.0)
        assert signal.stop_loss.percentage == pytest.approx((150 - 98) / 150 * 100)

        assert signal.take_profit.primary == pytest.approx(100 + 65 * 1.618)
        assert signal.take_profit.secondary == pytest.approx(100 + 65 * 2.618)
        assert signal.take_profit.fibonacci_level == 1.618

        entry = 165 - 65 * 0.236
        expected_rr = (100 + 65 * 1.618 - entry) / (entry - 98)
        assert signal.risk_reward_ratio == pytest.approx(expected_rr)

    def test_context_fields(self, impulse_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        from trendwave.models import VolatilityWindow

        signal = TradingSignalGenerator().generate("BTC", _flat_history(150), [_impulse(impulse_candles)], now=NOW)
        assert signal.technical_factors.fibonacci_alignment is True  # 23.6% level at 149.66
        assert signal.expected_move.bullish_target == pytest.approx(150 + 65 * 0.618)
        assert signal.expected_move.neutral_zone == pytest.approx((147.0, 153.0))
        assert signal.time_analysis.cycle_position == "Wave 5 of 5-wave impulse"
        assert signal.time_analysis.volatility_window == VolatilityWindow.MEDIUM
        assert signal.time_analysis.market_session == "US Session"
        assert signal.time_analysis.recommended_hold_time == "3-7 days (swing trade)"

    def test_volume_surge_adds_confidence(self, impulse_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        history = _flat_history(150)
        history[-1] = history[-1].model_copy(update={"volume": 2_000.0})
        signal = TradingSignalGenerator().generate("BTC", history, [_impulse(impulse_candles)], now=NOW)
        assert signal.technical_factors.volume_confirmation is True
        assert signal.confidence == pytest.approx(1.0)


class TestSellSignal:
    """Falling ABC 165 → 128 (confidence 2/3) against a flat 130 market."""

    def test_plan(self, abc_candles):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        from trendwave.models import SignalStrength, SignalType

        signal = TradingSignalGenerator().generate("ETH", _flat_history(130), [_correction(abc_candles)], now=NOW)
        assert signal.signal_type == SignalType.SELL
        assert signal.confidence == pytest.approx(0.6 + (2 / 3) * 0.25)
        assert signal.signal_strength == SignalStrength.MODERATE

        assert signal.macro_entry.level == pytest.approx(165 * 1.005)
        assert signal.macro_entry.wave_position == "Post-correction impulse entry"
        assert signal.stop_loss.level == pytest.approx(165 * 1.02)
        assert signal.take_profit.primary == pytest.approx(128 * 0.98)
        assert signal.take_profit.secondary is None
        assert signal.technical_factors.fibonacci_alignment is False
        assert signal.time_analysis.cycle_position == "Wave C of 3-wave correction"
        assert signal.time_analysis.recommended_hold_time == "1-3 days (short-term)"


class TestHoldSignal:

    def test_strong_opposing_trend_downgrades_to_hold(self, impulse_candles):
        """Closes drop from 150 to 100 on the last bar: a strong downtrend against an up impulse."""
        from trendwave.engines.signal_engine import TradingSignalGenerator
        from trendwave.models import SignalType, StopLossType, TrendAlignment

        history = _flat_history(150, n=19) + make_candles([(150, 150, 100, 100)])
        signal = TradingSignalGenerator().generate("BTC", history, [_impulse(impulse_candles)], now=NOW)
        assert signal.signal_type == SignalType.HOLD
        assert signal.technical_factors.trend_alignment == TrendAlignment.AGAINST
        assert signal.confidence == pytest.approx(1.0)
        assert signal.stop_loss.type == StopLossType.FIXED
        assert signal.stop_loss.level == pytest.approx(95.0)
        assert signal.take_profit.primary == pytest.approx(105.0)
        assert signal.time_analysis.recommended_hold_time == "1-2 days (cautious)"


# ════════════════════════════════════════════════
#  HELPERS
# ════════════════════════════════════════════════


class TestHelpers:

    def test_atr_needs_period_plus_one_bars(self):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        frame = TradingSignalGenerator.candle_frame(_flat_history(150))
        assert TradingSignalGenerator.atr(frame, 14) == pytest.approx(2.0)
        assert TradingSignalGenerator.atr(frame.iloc[:14], 14) == 0.0

    def test_market_context_uptrend(self):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        from trendwave.models import WaveDirection

        closes = list(range(100, 120))
        frame = TradingSignalGenerator.candle_frame(make_candles([(c, c, c, c) for c in closes]))
        context = TradingSignalGenerator.market_context(frame)
        assert context.trend_direction == WaveDirection.UP
        assert context.trend_strength == pytest.approx((119 - 109.5) / 109.5 * 10)
        assert context.momentum == pytest.approx((119 - 110) / 110)
        assert context.volume_confirming is False

    @pytest.mark.parametrize("atr,average,expected", [
        (2.0, 1.0, "HIGH"),
        (0.5, 1.0, "LOW"),
        (1.0, 1.0, "MEDIUM"),
    ])
    def test_volatility_window(self, atr, average, expected):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        assert TradingSignalGenerator.volatility_window(atr, average).value == expected

    @pytest.mark.parametrize("hour,expected", [
        (10, "US Session"),
        (4, "European Session"),
        (22, "Asian Session"),
        (18, "Overlap Session"),
    ])
    def test_market_session(self, hour, expected):
        from trendwave.engines.signal_engine import TradingSignalGenerator

        now = datetime(2024, 1, 1, hour, tzinfo=timezone.utc)
        assert TradingSignalGenerator.market_session(now) == expected

    def test_risk_reward_with_zero_risk(self):
        from trendwave.engines.signal_engine import TradingSignalGenerator
        assert TradingSignalGenerator.risk_reward(100.0, 110.0, 100.0) == pytest.approx(10.0)
