# In-app notification store, listener registry, and push forwarding (Discord, Telegram)
from trendwave.notifications.dispatcher import (
    DiscordNotifier,
    NotificationDispatcher,
    NotificationForwarder,
    TelegramNotifier,
)
from trendwave.notifications.events import EventEmitter
from trendwave.notifications.store import NotificationStore

__all__ = [
    "DiscordNotifier",
    "EventEmitter",
    "NotificationDispatcher",
    "NotificationForwarder",
    "NotificationStore",
    "TelegramNotifier",
]
