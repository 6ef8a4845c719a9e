"""
Trendwave — Alert Evaluator Tests

Tests for:
- Boundary-inclusive above / below predicates
- Cooldown window (explicit, default, zero)
- Inactive and pattern-family alerts
- Notification snapshots
- Triggered-state copies
"""

import pytest


def _price_alert(condition="price_above", target=100.0, **kwargs):
    from trendwave.models import AlertCondition, PriceAlert
    return PriceAlert(
        id=kwargs.pop("id", "a1"),
        symbol="BTC",
        condition=AlertCondition(condition),
        target_value=target,
        **kwargs,
    )


# ════════════════════════════════════════════════
#  PREDICATES
# ════════════════════════════════════════════════


class TestPredicates:

    @pytest.mark.parametrize("condition,value,expected", [
        ("price_above", 100.0, True),
        ("price_above", 99.99, False),
        ("price_below", 100.0, True),
        ("price_below", 100.01, False),
        ("rsi_above", 70.0, False),
        ("rsi_below", 30.0, True),
        ("indicator_above", 150.0, True),
        ("indicator_below", 150.0, False),
    ])
    def test_condition_met(self, condition, value, expected):
        from trendwave.engines.alert_engine import AlertEvaluator
        from trendwave.models import AlertCondition

        target = {"rsi_above": 80.0, "rsi_below": 30.0}.get(condition, 100.0)
        assert AlertEvaluator.condition_met(AlertCondition(condition), value, target) is expected

    def test_pattern_conditions_never_met(self):
        from trendwave.engines.alert_engine import AlertEvaluator
        from trendwave.models import AlertCondition

        for condition in (
            AlertCondition.IMPULSE_DETECTED,
            AlertCondition.CORRECTIVE_DETECTED,
            AlertCondition.FIBONACCI_LEVEL_APPROACHED,
            AlertCondition.WAVE_TARGET_REACHED,
        ):
            assert AlertEvaluator.condition_met(condition, 1e9, 0.0) is False

    def test_inactive_alert_never_triggers(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator
        from trendwave.models import AlertStatus

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert(status=AlertStatus.INACTIVE)
        assert evaluator.evaluate(alert, 500.0) is False
        assert len(evaluator.ledger) == 0


# ════════════════════════════════════════════════
#  COOLDOWN
# ════════════════════════════════════════════════


class TestCooldown:

    def test_ten_second_window(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert(cooldown_seconds=10)

        assert evaluator.evaluate(alert, 101.0) is True
        clock.advance(9)
        assert evaluator.evaluate(alert, 101.0) is False
        clock.advance(2)
        assert evaluator.evaluate(alert, 101.0) is True

    def test_zero_window_never_suppresses(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert(cooldown_seconds=0)
        assert all(evaluator.evaluate(alert, 101.0) for _ in range(5))

    def test_default_window_is_thirty_seconds(self, clock):
        from trendwave.engines.alert_engine import DEFAULT_COOLDOWN_SECONDS, AlertEvaluator

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert()
        assert DEFAULT_COOLDOWN_SECONDS == 30
        assert evaluator.cooldown_for(alert) == 30

        assert evaluator.evaluate(alert, 101.0) is True
        clock.advance(29)
        assert evaluator.evaluate(alert, 101.0) is False
        assert evaluator.is_in_cooldown(alert) is True
        clock.advance(1)
        assert evaluator.evaluate(alert, 101.0) is True

    def test_false_predicate_does_not_touch_ledger(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert()
        assert evaluator.evaluate(alert, 50.0) is False
        assert "a1" not in evaluator.ledger

    def test_alerts_have_independent_windows(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator

        evaluator = AlertEvaluator(clock=clock)
        first = _price_alert(id="a1")
        second = _price_alert(id="a2")
        assert evaluator.evaluate(first, 101.0) is True
        assert evaluator.evaluate(second, 101.0) is True
        assert evaluator.evaluate(first, 101.0) is False

    def test_reset_clears_ledger(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert()
        evaluator.evaluate(alert, 101.0)
        evaluator.reset()
        assert evaluator.evaluate(alert, 101.0) is True


class TestCooldownLedger:

    def test_absent_key_not_in_cooldown(self):
        from trendwave.engines.alert_engine import CooldownLedger

        ledger = CooldownLedger()
        assert ledger.is_in_cooldown("missing", 60, now=0.0) is False
        assert ledger.last_triggered("missing") is None

    def test_record_and_expire(self):
        from trendwave.engines.alert_engine import CooldownLedger

        ledger = CooldownLedger()
        ledger.record(("fibonacci", "BTC", 0.5, 146), now=10.0)
        assert ledger.is_in_cooldown(("fibonacci", "BTC", 0.5, 146), 5, now=14.9) is True
        assert ledger.is_in_cooldown(("fibonacci", "BTC", 0.5, 146), 5, now=15.0) is False
        assert len(ledger) == 1


# ════════════════════════════════════════════════
#  NOTIFICATIONS
# ════════════════════════════════════════════════


class TestCreateNotification:

    def test_snapshot_fields(self):
        from trendwave.engines.alert_engine import AlertEvaluator
        from trendwave.models import AlertSeverity

        alert = _price_alert(message="BTC broke 100", severity=AlertSeverity.WARNING)
        notification = AlertEvaluator.create_notification(alert, 101.5)
        assert notification.alert_id == "a1"
        assert notification.symbol == "BTC"
        assert notification.message == "BTC broke 100"
        assert notification.severity == AlertSeverity.WARNING
        assert notification.current_value == 101.5
        assert notification.target_value == 100.0
        assert notification.condition == alert.condition
        assert notification.is_read is False
        assert notification.triggered_at.tzinfo is not None

    def test_unique_ids_and_default_message(self):
        from trendwave.engines.alert_engine import AlertEvaluator

        alert = _price_alert()
        first = AlertEvaluator.create_notification(alert, 101.0)
        second = AlertEvaluator.create_notification(alert, 101.0)
        assert first.id != second.id
        assert "BTC" in first.message
        assert "price above" in first.message


# ════════════════════════════════════════════════
#  TRIGGER STATE
# ════════════════════════════════════════════════


class TestTriggerState:

    def test_mark_triggered_returns_copy(self):
        from datetime import datetime, timezone

        from trendwave.models import AlertStatus

        alert = _price_alert()
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        triggered = alert.mark_triggered(101.0, at=at)

        assert triggered.status == AlertStatus.TRIGGERED
        assert triggered.triggered_at == at
        assert triggered.triggered_value == 101.0
        assert alert.status == AlertStatus.ACTIVE
        assert alert.triggered_at is None

    def test_triggered_status_keeps_cooldown_semantics(self, clock):
        from trendwave.engines.alert_engine import AlertEvaluator
        from trendwave.models import AlertStatus

        evaluator = AlertEvaluator(clock=clock)
        alert = _price_alert(cooldown_seconds=10)
        assert evaluator.evaluate(alert, 101.0) is True

        triggered = alert.mark_triggered(101.0)
        assert evaluator.evaluate(triggered, 101.0) is False
        clock.advance(10)
        assert evaluator.evaluate(triggered, 101.0) is True

        restored = triggered.reactivate()
        assert restored.status == AlertStatus.ACTIVE
        assert restored.triggered_value is None
