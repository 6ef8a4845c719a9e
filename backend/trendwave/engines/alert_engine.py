"""
Trendwave — Alert Evaluator

Threshold predicates plus a monotonic-clock cooldown ledger.

  Above family (price/indicator/rsi_above): value ≥ target
  Below family (price/indicator/rsi_below): value ≤ target
  Pattern family: never satisfied here; produced by the pattern orchestrator.

A triggered alert records `now` in the ledger; the same alert cannot fire
again until its cooldown window has elapsed. A window of 0 never suppresses.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Hashable, Optional

import structlog

from trendwave.config import Settings
from trendwave.models import (
    ABOVE_CONDITIONS,
    BELOW_CONDITIONS,
    AlertBase,
    AlertCondition,
    AlertStatus,
    Notification,
)

log = structlog.get_logger(__name__)

DEFAULT_COOLDOWN_SECONDS = 30

Clock = Callable[[], float]


class CooldownLedger:
    """alert identity → last trigger time (monotonic seconds)."""

    def __init__(self):
        self._last: dict[Hashable, float] = {}

    def is_in_cooldown(self, key: Hashable, window_seconds: float, now: float) -> bool:
        last = self._last.get(key)
        if last is None:
            return False
        return now - last < window_seconds

    def record(self, key: Hashable, now: float) -> None:
        self._last[key] = now

    def last_triggered(self, key: Hashable) -> Optional[float]:
        return self._last.get(key)

    def clear(self) -> None:
        self._last.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._last

    def __len__(self) -> int:
        return len(self._last)


class AlertEvaluator:
    """Condition predicate + cooldown gate.

    Usage:
        evaluator = AlertEvaluator()
        if evaluator.evaluate(alert, price):
            store.add(evaluator.create_notification(alert, price))
    """

    def __init__(
        self,
        ledger: Optional[CooldownLedger] = None,
        clock: Clock = time.monotonic,
        default_cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
    ):
        self.ledger = ledger if ledger is not None else CooldownLedger()
        self.clock = clock
        self.default_cooldown_seconds = default_cooldown_seconds

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "AlertEvaluator":
        return cls(default_cooldown_seconds=settings.alert_default_cooldown_seconds, **kwargs)

    def evaluate(self, alert: AlertBase, current_value: float) -> bool:
        """True when the condition holds and the alert is out of cooldown."""
        if alert.status == AlertStatus.INACTIVE:
            return False
        if not self.condition_met(alert.condition, current_value, alert.target_value):
            return False

        now = self.clock()
        window = self.cooldown_for(alert)
        if self.ledger.is_in_cooldown(alert.id, window, now):
            log.debug("alert.suppressed", alert_id=alert.id, symbol=alert.symbol, cooldown=window)
            return False

        self.ledger.record(alert.id, now)
        log.info(
            "alert.triggered",
            alert_id=alert.id,
            symbol=alert.symbol,
            condition=alert.condition.value,
            value=current_value,
            target=alert.target_value,
        )
        return True

    @staticmethod
    def condition_met(condition: AlertCondition, value: float, target: float) -> bool:
        if condition in ABOVE_CONDITIONS:
            return value >= target
        if condition in BELOW_CONDITIONS:
            return value <= target
        return False

    def cooldown_for(self, alert: AlertBase) -> float:
        if alert.cooldown_seconds is not None:
            return alert.cooldown_seconds
        return self.default_cooldown_seconds

    def is_in_cooldown(self, alert: AlertBase) -> bool:
        return self.ledger.is_in_cooldown(alert.id, self.cooldown_for(alert), self.clock())

    @staticmethod
    def create_notification(alert: AlertBase, current_value: float) -> Notification:
        """Unread snapshot of the alert at trigger time."""
        return Notification(
            id=uuid.uuid4().hex,
            alert_id=alert.id,
            symbol=alert.symbol,
            message=alert.message or _default_message(alert, current_value),
            severity=alert.severity,
            triggered_at=datetime.now(timezone.utc),
            current_value=current_value,
            target_value=alert.target_value,
            condition=alert.condition,
        )

    def reset(self) -> None:
        self.ledger.clear()


def _default_message(alert: AlertBase, current_value: float) -> str:
    condition = alert.condition.value.replace("_", " ")
    return f"{alert.symbol} {condition} {alert.target_value:g} (now {current_value:g})"
