"""
Trendwave — Listener Registry

Synchronous publish/subscribe used by the notification store and the
streaming indicator engine. A listener that raises is logged and skipped;
the remaining listeners still receive the event.
"""

from __future__ import annotations

import itertools
from typing import Any, Callable, Generic, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")

# Handles are unique per process so a handle can never unsubscribe a
# listener on a different emitter by accident.
_handle_counter = itertools.count(1)


class EventEmitter(Generic[T]):
    """Ordered listener registry with handle-based unsubscribe.

    Usage:
        emitter = EventEmitter(name="notifications")
        handle = emitter.subscribe(print)
        emitter.emit(payload)
        emitter.unsubscribe(handle)
    """

    def __init__(self, name: str = "events"):
        self.name = name
        self._listeners: dict[int, Callable[[T], Any]] = {}

    def subscribe(self, listener: Callable[[T], Any]) -> int:
        handle = next(_handle_counter)
        self._listeners[handle] = listener
        return handle

    def unsubscribe(self, handle: int) -> bool:
        return self._listeners.pop(handle, None) is not None

    def emit(self, payload: T) -> int:
        """Deliver payload to every listener. Returns the number that succeeded."""
        delivered = 0
        for handle, listener in list(self._listeners.items()):
            try:
                listener(payload)
                delivered += 1
            except Exception as exc:
                log.warning(
                    "events.listener_failed",
                    emitter=self.name,
                    handle=handle,
                    error=str(exc),
                )
        return delivered

    def clear(self) -> None:
        self._listeners.clear()

    def __contains__(self, handle: int) -> bool:
        return handle in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)
