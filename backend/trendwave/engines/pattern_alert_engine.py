"""
Trendwave — Elliott Wave Pattern Alerts

Runs wave detection on a candle history and turns the result into three
alert kinds, all gated by one cooldown ledger with type-prefixed keys:

  pattern_detected   a pattern not seen in the previous run for (symbol, kind)
  fibonacci_level    price within 2% of a watched retracement level
  wave_target        price within 1% of the final wave's end price

Each pattern is checked in isolation: a failure in one is logged and the
rest of the batch still completes.
"""

from __future__ import annotations

import math
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Sequence

import structlog

from trendwave.config import Settings
from trendwave.engines.alert_engine import Clock, CooldownLedger
from trendwave.engines.wave_engine import WavePatternAnalyzer
from trendwave.models import (
    AlertCondition,
    AlertSeverity,
    AlertStatus,
    Candle,
    PatternAlert,
    PatternAlertConfig,
    PatternAlertType,
    PatternKind,
    PriceAlert,
    WavePattern,
)
from trendwave.utils.formatters import format_currency, format_ratio, format_symbol

log = structlog.get_logger(__name__)

FIBONACCI_PROXIMITY = 0.02
WAVE_TARGET_PROXIMITY = 0.01
HIGH_CONFIDENCE = 0.8

PATTERN_ALERT_TTL = timedelta(hours=24)
FIBONACCI_ALERT_TTL = timedelta(hours=6)
WAVE_TARGET_ALERT_TTL = timedelta(hours=12)


class PatternAlertOrchestrator:
    """Pattern, Fibonacci-level and wave-target alerts for one or more symbols.

    Usage:
        orchestrator = PatternAlertOrchestrator()
        alerts = orchestrator.analyze_and_alert("BTC", candles, current_price=64250.0)
    """

    def __init__(
        self,
        analyzer: Optional[WavePatternAnalyzer] = None,
        ledger: Optional[CooldownLedger] = None,
        clock: Clock = time.monotonic,
        fibonacci_proximity: float = FIBONACCI_PROXIMITY,
        wave_target_proximity: float = WAVE_TARGET_PROXIMITY,
    ):
        self.analyzer = analyzer or WavePatternAnalyzer()
        self.ledger = ledger if ledger is not None else CooldownLedger()
        self.clock = clock
        self.fibonacci_proximity = fibonacci_proximity
        self.wave_target_proximity = wave_target_proximity
        # (symbol, kind) → most recent pattern of that kind
        self._active: dict[tuple[str, PatternKind], WavePattern] = {}

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "PatternAlertOrchestrator":
        return cls(
            fibonacci_proximity=settings.fibonacci_proximity_pct,
            wave_target_proximity=settings.wave_target_proximity_pct,
            **kwargs,
        )

    @staticmethod
    def config_from_settings(settings: Settings) -> PatternAlertConfig:
        return PatternAlertConfig(
            enabled=settings.pattern_alerts_enabled,
            minimum_confidence=settings.pattern_min_confidence,
            fibonacci_levels_to_watch=settings.pattern_fibonacci_level_list,
            cooldown_minutes=settings.pattern_cooldown_minutes,
        )

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    def analyze_and_alert(
        self,
        symbol: str,
        candles: Sequence[Candle],
        current_price: float,
        config: Optional[PatternAlertConfig] = None,
    ) -> list[PatternAlert]:
        """Detect patterns and emit every alert that is out of cooldown."""
        config = config or PatternAlertConfig()
        if not config.enabled or not candles:
            return []

        symbol = format_symbol(symbol)
        try:
            patterns = self.analyzer.detect_all(candles)
        except Exception as exc:
            log.warning("pattern_alert.detection_failed", symbol=symbol, error=str(exc))
            return []

        qualified = [p for p in patterns if p.confidence >= config.minimum_confidence]

        alerts: list[PatternAlert] = []
        alerts += self._check_each(qualified, lambda p: self._pattern_detected(symbol, p, config))
        alerts += self._check_each(qualified, lambda p: self._fibonacci_levels(symbol, p, current_price, config))
        alerts += self._check_each(qualified, lambda p: self._wave_target(symbol, p, current_price, config))

        self._track(symbol, patterns)

        if alerts:
            log.info(
                "pattern_alert.emitted",
                symbol=symbol,
                count=len(alerts),
                patterns=len(patterns),
                qualified=len(qualified),
            )
        return alerts

    def get_active_patterns(self, symbol: str) -> list[WavePattern]:
        symbol = format_symbol(symbol)
        return [p for (s, _), p in self._active.items() if s == symbol]

    def clear_history(self) -> None:
        """Drop cooldown history and pattern tracking."""
        self.ledger.clear()
        self._active.clear()

    @staticmethod
    def convert_to_standard_alerts(
        alerts: Iterable[PatternAlert],
        current_price: float,
    ) -> list[PriceAlert]:
        """Price alerts for the Fibonacci-level and wave-target alerts.

        The condition points from the current price towards the target.
        Pattern-detected alerts have no price target and are skipped.
        """
        converted: list[PriceAlert] = []
        for alert in alerts:
            if alert.pattern_alert_type == PatternAlertType.PATTERN_DETECTED:
                continue
            condition = (
                AlertCondition.PRICE_ABOVE
                if alert.target_value >= current_price
                else AlertCondition.PRICE_BELOW
            )
            converted.append(PriceAlert(
                id=alert.id,
                symbol=alert.symbol,
                condition=condition,
                target_value=alert.target_value,
                message=alert.message,
                severity=alert.severity,
                status=alert.status,
                cooldown_seconds=alert.cooldown_seconds,
                created_at=alert.created_at,
            ))
        return converted

    # ──────────────────────────────────────────
    # Checks
    # ──────────────────────────────────────────

    def _pattern_detected(
        self,
        symbol: str,
        pattern: WavePattern,
        config: PatternAlertConfig,
    ) -> list[PatternAlert]:
        key = ("pattern", symbol, pattern.id)
        if self._in_cooldown(key, config):
            return []

        previous = self._active.get((symbol, pattern.kind))
        if previous is not None and previous.id == pattern.id:
            return []

        is_impulse = pattern.kind == PatternKind.IMPULSE
        alert = self._alert(
            symbol,
            pattern,
            config,
            pattern_alert_type=PatternAlertType.PATTERN_DETECTED,
            condition=AlertCondition.IMPULSE_DETECTED if is_impulse else AlertCondition.CORRECTIVE_DETECTED,
            target_value=pattern.last_wave.end.price,
            message=self._pattern_message(pattern),
            severity=AlertSeverity.WARNING if pattern.confidence >= HIGH_CONFIDENCE else AlertSeverity.INFO,
            ttl=PATTERN_ALERT_TTL,
        )
        self.ledger.record(key, self.clock())
        return [alert]

    def _fibonacci_levels(
        self,
        symbol: str,
        pattern: WavePattern,
        current_price: float,
        config: PatternAlertConfig,
    ) -> list[PatternAlert]:
        alerts: list[PatternAlert] = []
        for ratio, level in pattern.fibonacci_levels.levels.items():
            if not _watched(ratio, config.fibonacci_levels_to_watch):
                continue
            if level <= 0 or abs(current_price - level) / level > self.fibonacci_proximity:
                continue

            key = ("fibonacci", symbol, ratio, math.floor(level))
            if self._in_cooldown(key, config):
                continue

            alerts.append(self._alert(
                symbol,
                pattern,
                config,
                pattern_alert_type=PatternAlertType.FIBONACCI_LEVEL,
                condition=AlertCondition.FIBONACCI_LEVEL_APPROACHED,
                target_value=level,
                message=(
                    f"{symbol} approaching Fibonacci {format_ratio(ratio)} level at "
                    f"{format_currency(level)} (current: {format_currency(current_price)})"
                ),
                severity=AlertSeverity.INFO,
                ttl=FIBONACCI_ALERT_TTL,
                fibonacci_level=ratio,
            ))
            self.ledger.record(key, self.clock())
        return alerts

    def _wave_target(
        self,
        symbol: str,
        pattern: WavePattern,
        current_price: float,
        config: PatternAlertConfig,
    ) -> list[PatternAlert]:
        wave = pattern.last_wave
        target = wave.end.price
        if target <= 0 or abs(current_price - target) / target > self.wave_target_proximity:
            return []

        key = ("wave", symbol, wave.label.value, math.floor(target))
        if self._in_cooldown(key, config):
            return []

        alert = self._alert(
            symbol,
            pattern,
            config,
            pattern_alert_type=PatternAlertType.WAVE_TARGET,
            condition=AlertCondition.WAVE_TARGET_REACHED,
            target_value=target,
            message=(
                f"{symbol} reached Wave {wave.label.value} target at "
                f"{format_currency(target)} ({pattern.kind.value} pattern)"
            ),
            severity=AlertSeverity.WARNING,
            ttl=WAVE_TARGET_ALERT_TTL,
            wave_label=wave.label,
        )
        self.ledger.record(key, self.clock())
        return [alert]

    # ──────────────────────────────────────────
    # Private Helpers
    # ──────────────────────────────────────────

    def _check_each(
        self,
        patterns: Sequence[WavePattern],
        check: Callable[[WavePattern], list[PatternAlert]],
    ) -> list[PatternAlert]:
        alerts: list[PatternAlert] = []
        for pattern in patterns:
            try:
                alerts.extend(check(pattern))
            except Exception as exc:
                log.warning(
                    "pattern_alert.evaluation_failed",
                    pattern_id=pattern.id,
                    error=str(exc),
                )
        return alerts

    def _in_cooldown(self, key: tuple, config: PatternAlertConfig) -> bool:
        return self.ledger.is_in_cooldown(key, config.cooldown_minutes * 60, self.clock())

    def _track(self, symbol: str, patterns: Sequence[WavePattern]) -> None:
        """Replace (never merge) the tracked patterns for a symbol."""
        self._active = {k: p for k, p in self._active.items() if k[0] != symbol}
        for pattern in patterns:
            self._active[(symbol, pattern.kind)] = pattern

    @staticmethod
    def _alert(
        symbol: str,
        pattern: WavePattern,
        config: PatternAlertConfig,
        *,
        pattern_alert_type: PatternAlertType,
        ttl: timedelta,
        **fields,
    ) -> PatternAlert:
        now = datetime.now(timezone.utc)
        return PatternAlert(
            id=f"{pattern_alert_type.value}-{symbol}-{uuid.uuid4().hex[:12]}",
            symbol=symbol,
            status=AlertStatus.ACTIVE,
            cooldown_seconds=int(config.cooldown_minutes * 60),
            created_at=now,
            expires_at=now + ttl,
            pattern_alert_type=pattern_alert_type,
            pattern_kind=pattern.kind,
            pattern_id=pattern.id,
            minimum_confidence=config.minimum_confidence,
            **fields,
        )

    @staticmethod
    def _pattern_message(pattern: WavePattern) -> str:
        kind = "5-wave impulse" if pattern.kind == PatternKind.IMPULSE else "ABC corrective"
        low = format_currency(pattern.price_range.low)
        high = format_currency(pattern.price_range.high)
        return f"New {kind} pattern detected with {format_ratio(pattern.confidence)} confidence ({low} - {high})"


def _watched(ratio: float, watched: Sequence[float]) -> bool:
    return any(math.isclose(ratio, w, abs_tol=1e-9) for w in watched)
