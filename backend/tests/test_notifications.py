"""
Trendwave — Notification Store & Listener Registry Tests

Tests for:
- Insertion order, mark-read, dismiss, clear
- Full-snapshot broadcasting to every subscriber
- Failing subscriber isolation
- Handle-based unsubscribe
"""

from datetime import datetime, timezone


def _notification(nid, symbol="BTC"):
    from trendwave.models import AlertCondition, AlertSeverity, Notification
    return Notification(
        id=nid,
        alert_id=f"alert-{nid}",
        symbol=symbol,
        message=f"{symbol} crossed",
        severity=AlertSeverity.INFO,
        triggered_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        current_value=101.0,
        target_value=100.0,
        condition=AlertCondition.PRICE_ABOVE,
    )


# ════════════════════════════════════════════════
#  EVENT EMITTER
# ════════════════════════════════════════════════


class TestEventEmitter:

    def test_emit_in_subscription_order(self):
        from trendwave.notifications.events import EventEmitter

        emitter = EventEmitter()
        calls = []
        emitter.subscribe(lambda p: calls.append(("first", p)))
        emitter.subscribe(lambda p: calls.append(("second", p)))
        assert emitter.emit(7) == 2
        assert calls == [("first", 7), ("second", 7)]

    def test_failing_listener_is_isolated(self):
        from trendwave.notifications.events import EventEmitter

        def boom(_payload):
            raise RuntimeError("nope")

        emitter = EventEmitter()
        received = []
        emitter.subscribe(boom)
        emitter.subscribe(received.append)
        assert emitter.emit("x") == 1
        assert received == ["x"]

    def test_handles_are_unique_across_emitters(self):
        from trendwave.notifications.events import EventEmitter

        a, b = EventEmitter(), EventEmitter()
        handle_a = a.subscribe(print)
        handle_b = b.subscribe(print)
        assert handle_a != handle_b
        assert b.unsubscribe(handle_a) is False
        assert handle_a in a


# ════════════════════════════════════════════════
#  NOTIFICATION STORE
# ════════════════════════════════════════════════


class TestNotificationStore:

    def test_add_keeps_insertion_order(self):
        from trendwave.notifications.store import NotificationStore

        store = NotificationStore()
        for nid in ("n1", "n2", "n3"):
            store.add(_notification(nid))
        assert [n.id for n in store.get_all()] == ["n1", "n2", "n3"]
        assert store.unread_count == 3

    def test_mark_read(self):
        from trendwave.notifications.store import NotificationStore

        store = NotificationStore()
        store.add(_notification("n1"))
        store.add(_notification("n2"))
        assert store.mark_read("n1") is True
        assert store.mark_read("missing") is False
        assert [n.id for n in store.get_unread()] == ["n2"]
        assert store.mark_all_read() == 1
        assert store.unread_count == 0

    def test_dismiss_broadcasts_shorter_snapshot(self):
        from trendwave.notifications.store import NotificationStore

        store = NotificationStore()
        for nid in ("n1", "n2", "n3"):
            store.add(_notification(nid))

        first, second = [], []
        store.subscribe(first.append)
        store.subscribe(second.append)

        assert store.dismiss("n2") is True
        assert [n.id for n in first[-1]] == ["n1", "n3"]
        assert [n.id for n in second[-1]] == ["n1", "n3"]
        assert store.dismiss("n2") is False
        assert len(first) == 1

    def test_every_mutation_broadcasts(self):
        from trendwave.notifications.store import NotificationStore

        store = NotificationStore()
        snapshots = []
        store.subscribe(snapshots.append)

        store.add(_notification("n1"))
        store.mark_read("n1")
        store.clear()
        assert [len(s) for s in snapshots] == [1, 1, 0]
        assert snapshots[1][0].is_read is True

    def test_failing_subscriber_does_not_corrupt_store(self):
        from trendwave.notifications.store import NotificationStore

        def boom(_snapshot):
            raise ValueError("bad listener")

        store = NotificationStore()
        received = []
        store.subscribe(boom)
        store.subscribe(received.append)

        store.add(_notification("n1"))
        assert len(store) == 1
        assert [n.id for n in received[-1]] == ["n1"]

    def test_snapshots_are_copies(self):
        from trendwave.notifications.store import NotificationStore

        store = NotificationStore()
        store.add(_notification("n1"))
        snapshot = store.get_all()
        snapshot[0].is_read = True
        snapshot.clear()
        assert len(store) == 1
        assert store.get_all()[0].is_read is False

    def test_unsubscribe(self):
        from trendwave.notifications.store import NotificationStore

        store = NotificationStore()
        received = []
        handle = store.subscribe(received.append)
        assert store.unsubscribe(handle) is True
        store.add(_notification("n1"))
        assert received == []
