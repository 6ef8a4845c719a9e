"""
Trendwave — Notification Store

Insertion-ordered in-memory notifications. Every mutation broadcasts the
full current snapshot (not a diff) to all subscribers, synchronously.
"""

from __future__ import annotations

from typing import Callable

import structlog

from trendwave.models import Notification
from trendwave.notifications.events import EventEmitter

log = structlog.get_logger(__name__)

Snapshot = list[Notification]


class NotificationStore:
    """Owned notification list with snapshot broadcasting.

    Usage:
        store = NotificationStore()
        handle = store.subscribe(lambda snapshot: render(snapshot))
        store.add(notification)
        store.dismiss(notification.id)
    """

    def __init__(self):
        self._items: list[Notification] = []
        self._events: EventEmitter[Snapshot] = EventEmitter(name="notifications")

    # ── Mutations ──

    def add(self, notification: Notification) -> None:
        self._items.append(notification)
        log.debug("notifications.added", id=notification.id, symbol=notification.symbol)
        self._broadcast()

    def mark_read(self, notification_id: str) -> bool:
        for i, item in enumerate(self._items):
            if item.id == notification_id:
                if not item.is_read:
                    self._items[i] = item.model_copy(update={"is_read": True})
                self._broadcast()
                return True
        return False

    def mark_all_read(self) -> int:
        changed = 0
        for i, item in enumerate(self._items):
            if not item.is_read:
                self._items[i] = item.model_copy(update={"is_read": True})
                changed += 1
        if changed:
            self._broadcast()
        return changed

    def dismiss(self, notification_id: str) -> bool:
        remaining = [n for n in self._items if n.id != notification_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._broadcast()
        return True

    def clear(self) -> None:
        self._items = []
        self._broadcast()

    # ── Queries ──

    def get_all(self) -> Snapshot:
        return self._snapshot()

    def get_unread(self) -> Snapshot:
        return [n.model_copy() for n in self._items if not n.is_read]

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.is_read)

    def __len__(self) -> int:
        return len(self._items)

    # ── Subscriptions ──

    def subscribe(self, listener: Callable[[Snapshot], object]) -> int:
        return self._events.subscribe(listener)

    def unsubscribe(self, handle: int) -> bool:
        return self._events.unsubscribe(handle)

    # ── Internals ──

    def _snapshot(self) -> Snapshot:
        return [n.model_copy() for n in self._items]

    def _broadcast(self) -> None:
        self._events.emit(self._snapshot())
