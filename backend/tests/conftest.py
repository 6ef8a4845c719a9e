"""Shared candle builders and clocks for the trendwave test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from trendwave.models import Candle, PriceTick

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_candles(rows, start=T0, step=timedelta(hours=1)):
    """Candles from (open, high, low, close) tuples."""
    return [
        Candle(timestamp=start + i * step, open=o, high=h, low=l, close=c, volume=1_000.0)
        for i, (o, h, l, c) in enumerate(rows)
    ]


def make_ticks(prices, symbol="BTC", start=T0, step=timedelta(minutes=1)):
    return [
        PriceTick(symbol=symbol, price=p, timestamp=start + i * step)
        for i, p in enumerate(prices)
    ]


class FakeClock:
    """Monotonic clock stand-in; advance it instead of sleeping."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def impulse_candles():
    """Six-candle 5-leg up zig-zag: 100 → 120 → 110 → 150 → 140 → 165."""
    closes = [100, 120, 110, 150, 140, 165]
    highs = [100, 120, 120, 150, 150, 165]
    lows = [100, 100, 110, 110, 140, 140]
    opens = [100] + closes[:-1]
    return make_candles(list(zip(opens, highs, lows, closes)))


@pytest.fixture
def abc_candles():
    """Four-candle ABC decline: 165 → 140 → 158 → 128."""
    return make_candles([
        (165, 165, 165, 165),
        (165, 167, 140, 142),
        (142, 158, 140, 155),
        (155, 157, 125, 128),
    ])


@pytest.fixture
def zigzag_candles():
    """Twenty candles oscillating 10 ↔ 14 with a four-bar cycle."""
    cycle = [10, 12, 14, 12]
    closes = [cycle[i % 4] for i in range(20)]
    return make_candles([(c, c + 0.5, c - 0.5, c) for c in closes])


@pytest.fixture
def clock():
    return FakeClock()
