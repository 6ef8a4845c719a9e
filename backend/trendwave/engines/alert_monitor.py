"""
Trendwave — Alert Monitor

Glue between live data and notifications: evaluates batches of alerts
against price ticks or indicator values, and stores a notification for every
alert that fires. One failing alert never blocks the rest of the batch.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence

import structlog

from trendwave.engines.alert_engine import AlertEvaluator
from trendwave.engines.streaming_engine import StreamingIndicatorEngine
from trendwave.models import (
    AlertBase,
    IndicatorAlert,
    IndicatorKind,
    IndicatorValue,
    Notification,
    PatternAlert,
    PriceAlert,
)
from trendwave.notifications.store import NotificationStore
from trendwave.utils.formatters import format_symbol

log = structlog.get_logger(__name__)

AlertsProvider = Callable[[], Iterable[IndicatorAlert]]


class AlertMonitor:
    """Evaluates alerts and fills a notification store.

    Usage:
        monitor = AlertMonitor()
        monitor.check_price("BTC", 64_250.0, price_alerts)
        monitor.attach_to_engine(engine, "BTC", IndicatorKind.RSI, 14, lambda: rsi_alerts)
    """

    def __init__(
        self,
        evaluator: Optional[AlertEvaluator] = None,
        store: Optional[NotificationStore] = None,
    ):
        self.evaluator = evaluator or AlertEvaluator()
        self.store = store if store is not None else NotificationStore()
        # alert id → TRIGGERED copy from its latest firing
        self.triggered: dict[str, AlertBase] = {}

    def check_price(
        self,
        symbol: str,
        price: float,
        alerts: Iterable[AlertBase],
    ) -> list[Notification]:
        """Evaluate the price alerts registered for a symbol."""
        symbol = format_symbol(symbol)
        relevant = [
            a for a in alerts
            if isinstance(a, PriceAlert) and format_symbol(a.symbol) == symbol
        ]
        return self._evaluate_batch(relevant, price)

    def check_indicator(
        self,
        value: IndicatorValue,
        alerts: Iterable[AlertBase],
    ) -> list[Notification]:
        """Evaluate indicator alerts that watch exactly this (symbol, kind, period)."""
        relevant = [
            a for a in alerts
            if isinstance(a, IndicatorAlert)
            and format_symbol(a.symbol) == value.symbol
            and a.indicator_kind == value.kind
            and a.period == value.period
        ]
        return self._evaluate_batch(relevant, value.value)

    def attach_to_engine(
        self,
        engine: StreamingIndicatorEngine,
        symbol: str,
        kind: IndicatorKind,
        period: int,
        alerts_provider: AlertsProvider,
    ) -> int:
        """Evaluate indicator alerts on every engine update. Returns the handle."""

        def on_value(value: IndicatorValue) -> None:
            self.check_indicator(value, alerts_provider())

        return engine.subscribe(symbol, kind, period, on_value)

    def publish_pattern_alerts(
        self,
        alerts: Sequence[PatternAlert],
        current_price: float,
    ) -> list[Notification]:
        """Pattern alerts arrive pre-gated by their own cooldown; store them directly."""
        notifications: list[Notification] = []
        for alert in alerts:
            try:
                notification = self.evaluator.create_notification(alert, current_price)
            except Exception as exc:
                log.warning("alert_monitor.publish_failed", alert_id=alert.id, error=str(exc))
                continue
            self.store.add(notification)
            notifications.append(notification)
        return notifications

    def reset(self) -> None:
        """Clear notifications and cooldown history together."""
        self.store.clear()
        self.evaluator.reset()
        self.triggered.clear()
        log.info("alert_monitor.reset")

    # ── Internals ──

    def _evaluate_batch(self, alerts: Sequence[AlertBase], value: float) -> list[Notification]:
        notifications: list[Notification] = []
        for alert in alerts:
            try:
                if not self.evaluator.evaluate(alert, value):
                    continue
                notification = self.evaluator.create_notification(alert, value)
                self.triggered[alert.id] = alert.mark_triggered(value, at=notification.triggered_at)
            except Exception as exc:
                log.warning(
                    "alert_monitor.evaluation_failed",
                    alert_id=alert.id,
                    symbol=alert.symbol,
                    error=str(exc),
                )
                continue
            self.store.add(notification)
            notifications.append(notification)
        return notifications
