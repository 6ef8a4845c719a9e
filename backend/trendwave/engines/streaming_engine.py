"""
Trendwave — Streaming Indicator Engine

Incremental indicator state keyed by (symbol, indicator, period). Each tick
updates a bounded price window and the kind-specific accumulators instead of
recomputing the full series.

  SMA         mean of the last `period` samples
  EMA         SMA-seeded, then price·m + ema·(1−m) with m = 2/(period+1)
  RSI         Wilder smoothing of average gain / loss
  BOLLINGER   middle band (SMA) plus retained population σ
  MACD        EMA(period) − EMA(2·period)  (period-scaled convention)
  STOCHASTIC  %K over the last `period` samples
  WILLIAMS_R  %R over the last `period` samples

A value is None until the window holds enough samples; that is "not yet
available", never an error. State for one key has a single writer; hosts
driving concurrent ticks for the same key must serialize them.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence, Union

import numpy as np
import structlog

from trendwave.models import (
    BollingerBandsValue,
    Candle,
    IndicatorKind,
    IndicatorValue,
    PriceTick,
)
from trendwave.notifications.events import EventEmitter
from trendwave.utils.formatters import format_symbol
from trendwave.utils.validators import validate_period

log = structlog.get_logger(__name__)

MIN_WINDOW_CAPACITY = 100

Sample = Union[PriceTick, Candle]


@dataclass(frozen=True)
class IndicatorKey:
    symbol: str
    kind: IndicatorKind
    period: int


@dataclass
class IndicatorState:
    """Bounded price window plus the accumulators one indicator needs."""

    key: IndicatorKey
    prices: deque = field(default_factory=deque)
    last_value: Optional[float] = None
    last_timestamp: Optional[datetime] = None
    # EMA / MACD fast leg
    ema: Optional[float] = None
    # MACD slow leg
    slow_ema: Optional[float] = None
    # RSI (Wilder)
    avg_gain: Optional[float] = None
    avg_loss: Optional[float] = None
    # Bollinger
    std_dev: Optional[float] = None

    @property
    def capacity(self) -> int:
        return self.prices.maxlen or 0

    @property
    def has_value(self) -> bool:
        return self.last_value is not None


def window_capacity(period: int) -> int:
    return max(2 * period, MIN_WINDOW_CAPACITY)


def required_samples(kind: IndicatorKind, period: int) -> int:
    """Window length at which the first value becomes available."""
    if kind == IndicatorKind.RSI:
        return period + 1
    if kind == IndicatorKind.MACD_SCALED_PERIOD:
        return 2 * period
    return period


class StreamingIndicatorEngine:
    """Owned, per-key incremental indicator state.

    Usage:
        engine = StreamingIndicatorEngine()
        engine.initialize("BTC", IndicatorKind.RSI, 14, seed=candles)
        handle = engine.subscribe("BTC", IndicatorKind.RSI, 14, on_value)
        engine.update("BTC", IndicatorKind.RSI, 14, tick)
    """

    def __init__(self):
        self._states: dict[IndicatorKey, IndicatorState] = {}
        self._emitters: dict[IndicatorKey, EventEmitter[IndicatorValue]] = {}
        self._handles: dict[int, IndicatorKey] = {}

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def initialize(
        self,
        symbol: str,
        kind: IndicatorKind,
        period: int,
        seed: Optional[Iterable[Sample]] = None,
    ) -> IndicatorState:
        """Create (or replace) the state for a key, optionally seeded.

        Seed samples are sorted by timestamp; only the newest `capacity`
        survive. The value stays None when the seed is too short.
        """
        validate_period(period)
        key = self._key(symbol, kind, period)
        state = IndicatorState(key=key, prices=deque(maxlen=window_capacity(period)))

        samples = sorted(seed or [], key=lambda s: s.timestamp)
        for sample in samples:
            state.prices.append(self._price_of(sample))
        if samples:
            state.last_timestamp = samples[-1].timestamp

        self._bootstrap(state)
        self._states[key] = state

        log.info(
            "streaming.initialized",
            symbol=key.symbol,
            kind=kind.value,
            period=period,
            samples=len(state.prices),
            ready=state.has_value,
        )
        return state

    def update(
        self,
        symbol: str,
        kind: IndicatorKind,
        period: int,
        sample: Sample,
    ) -> Optional[IndicatorValue]:
        """Feed one sample. Returns the new value, or None when unavailable.

        A key with no state is initialized from this single sample and the
        call returns None: one sample cannot seed a period-length baseline.
        """
        key = self._key(symbol, kind, period)
        state = self._states.get(key)
        if state is None:
            self.initialize(symbol, kind, period, seed=[sample])
            log.debug("streaming.auto_initialized", symbol=key.symbol, kind=kind.value, period=period)
            return None

        price = self._price_of(sample)
        state.prices.append(price)
        state.last_timestamp = sample.timestamp
        self._advance(state, price)

        if state.last_value is None:
            return None

        value = IndicatorValue(
            symbol=key.symbol,
            kind=kind,
            period=period,
            value=state.last_value,
            timestamp=sample.timestamp,
        )
        emitter = self._emitters.get(key)
        if emitter is not None:
            emitter.emit(value)
        return value

    def clear(self) -> None:
        """Drop every state and subscription."""
        count = len(self._states)
        self._states.clear()
        for emitter in self._emitters.values():
            emitter.clear()
        self._emitters.clear()
        self._handles.clear()
        log.info("streaming.cleared", states=count)

    def remove(self, symbol: str, kind: IndicatorKind, period: int) -> bool:
        """Drop one key's state and its subscribers."""
        key = self._key(symbol, kind, period)
        existed = self._states.pop(key, None) is not None
        emitter = self._emitters.pop(key, None)
        if emitter is not None:
            emitter.clear()
        self._handles = {h: k for h, k in self._handles.items() if k != key}
        return existed

    # ──────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────

    def current_value(self, symbol: str, kind: IndicatorKind, period: int) -> Optional[float]:
        state = self._states.get(self._key(symbol, kind, period))
        return state.last_value if state is not None else None

    def get_state(self, key: IndicatorKey) -> Optional[IndicatorState]:
        return self._states.get(key)

    def keys(self) -> list[IndicatorKey]:
        return list(self._states)

    def bollinger_bands(
        self,
        symbol: str,
        period: int,
        num_std: float = 2.0,
    ) -> Optional[BollingerBandsValue]:
        """Upper/middle/lower bands from the retained middle band and σ."""
        state = self._states.get(self._key(symbol, IndicatorKind.BOLLINGER, period))
        if state is None or state.last_value is None or state.std_dev is None:
            return None

        middle = state.last_value
        return BollingerBandsValue(
            upper=middle + num_std * state.std_dev,
            middle=middle,
            lower=middle - num_std * state.std_dev,
            std_dev=state.std_dev,
        )

    # ──────────────────────────────────────────
    # Subscriptions
    # ──────────────────────────────────────────

    def subscribe(
        self,
        symbol: str,
        kind: IndicatorKind,
        period: int,
        callback: Callable[[IndicatorValue], object],
    ) -> int:
        key = self._key(symbol, kind, period)
        emitter = self._emitters.get(key)
        if emitter is None:
            emitter = EventEmitter(name=f"indicator:{key.symbol}:{kind.value}:{period}")
            self._emitters[key] = emitter
        handle = emitter.subscribe(callback)
        self._handles[handle] = key
        return handle

    def unsubscribe(self, handle: int) -> bool:
        key = self._handles.pop(handle, None)
        if key is None:
            return False
        emitter = self._emitters.get(key)
        return emitter is not None and emitter.unsubscribe(handle)

    # ──────────────────────────────────────────
    # Recurrences
    # ──────────────────────────────────────────

    def _bootstrap(self, state: IndicatorState) -> None:
        """Compute accumulators and the value from the whole window."""
        kind, period = state.key.kind, state.key.period
        prices = list(state.prices)
        state.last_value = None

        if len(prices) < required_samples(kind, period):
            return

        if kind == IndicatorKind.EMA:
            state.ema = self._seed_ema(prices, period)
            state.last_value = state.ema
        elif kind == IndicatorKind.MACD_SCALED_PERIOD:
            state.ema = self._seed_ema(prices, period)
            state.slow_ema = self._seed_ema(prices, 2 * period)
            state.last_value = state.ema - state.slow_ema
        elif kind == IndicatorKind.RSI:
            deltas = np.diff(prices[-(period + 1):])
            state.avg_gain = float(np.clip(deltas, 0, None).mean())
            state.avg_loss = float(np.clip(-deltas, 0, None).mean())
            state.last_value = self._rsi(state.avg_gain, state.avg_loss)
        else:
            state.last_value = self._window_value(state, prices)

    def _advance(self, state: IndicatorState, price: float) -> None:
        """Apply one new price (already appended to the window)."""
        kind, period = state.key.kind, state.key.period

        if kind == IndicatorKind.EMA:
            if state.ema is None:
                self._bootstrap(state)
                return
            state.ema = self._ema_step(state.ema, price, period)
            state.last_value = state.ema

        elif kind == IndicatorKind.MACD_SCALED_PERIOD:
            if state.ema is None or state.slow_ema is None:
                self._bootstrap(state)
                return
            state.ema = self._ema_step(state.ema, price, period)
            state.slow_ema = self._ema_step(state.slow_ema, price, 2 * period)
            state.last_value = state.ema - state.slow_ema

        elif kind == IndicatorKind.RSI:
            # Explicit bootstrap flag: a legitimate zero average must not re-seed
            if state.avg_gain is None or state.avg_loss is None:
                self._bootstrap(state)
                return
            change = price - state.prices[-2]
            gain = max(change, 0.0)
            loss = max(-change, 0.0)
            state.avg_gain = (state.avg_gain * (period - 1) + gain) / period
            state.avg_loss = (state.avg_loss * (period - 1) + loss) / period
            state.last_value = self._rsi(state.avg_gain, state.avg_loss)

        else:
            prices = list(state.prices)
            if len(prices) < period:
                state.last_value = None
                return
            state.last_value = self._window_value(state, prices)

    def _window_value(self, state: IndicatorState, prices: Sequence[float]) -> float:
        """Indicators that depend only on the last `period` samples."""
        kind, period = state.key.kind, state.key.period
        window = np.asarray(prices[-period:], dtype=float)

        if kind == IndicatorKind.SMA:
            return float(window.mean())

        if kind == IndicatorKind.BOLLINGER:
            state.std_dev = float(np.std(window))  # population σ (ddof=0)
            return float(window.mean())

        high, low, last = float(window.max()), float(window.min()), float(window[-1])
        if kind == IndicatorKind.STOCHASTIC:
            if high == low:
                return 50.0
            return (last - low) / (high - low) * 100
        if kind == IndicatorKind.WILLIAMS_R:
            if high == low:
                return -50.0
            return (high - last) / (high - low) * -100

        raise ValueError(f"Unsupported window indicator: {kind}")

    # ──────────────────────────────────────────
    # Private Helpers
    # ──────────────────────────────────────────

    @staticmethod
    def _key(symbol: str, kind: IndicatorKind, period: int) -> IndicatorKey:
        return IndicatorKey(symbol=format_symbol(symbol), kind=IndicatorKind(kind), period=period)

    @staticmethod
    def _price_of(sample: Sample) -> float:
        if isinstance(sample, Candle):
            return float(sample.close)
        return float(sample.price)

    @staticmethod
    def _ema_step(ema: float, price: float, period: int) -> float:
        multiplier = 2 / (period + 1)
        return price * multiplier + ema * (1 - multiplier)

    @classmethod
    def _seed_ema(cls, prices: Sequence[float], period: int) -> float:
        """SMA of the first `period` samples, then the recurrence forward."""
        ema = sum(prices[:period]) / period
        for price in prices[period:]:
            ema = cls._ema_step(ema, price, period)
        return ema

    @staticmethod
    def _rsi(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0:
            return 100.0 if avg_gain > 0 else 50.0
        rs = avg_gain / avg_loss
        return 100 - 100 / (1 + rs)
