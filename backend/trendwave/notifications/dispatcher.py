"""
Trendwave — Multi-Channel Notification Dispatcher

Forwards notifications to Discord (webhook) and Telegram (bot API).
Channels are auto-skipped when credentials are not configured. Delivery
failures are logged and reported per channel, never raised.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Optional

import httpx
import structlog

from trendwave.config import Settings, get_settings
from trendwave.models import AlertSeverity, Notification
from trendwave.notifications.store import Snapshot
from trendwave.utils.formatters import format_currency

log = structlog.get_logger(__name__)

# Discord embed colour palette
_SEVERITY_COLORS: dict[AlertSeverity, int] = {
    AlertSeverity.INFO: 0x5865F2,      # blurple
    AlertSeverity.WARNING: 0xFFAA00,   # amber
    AlertSeverity.CRITICAL: 0xFF4444,  # red
}

_SEVERITY_EMOJI: dict[AlertSeverity, str] = {
    AlertSeverity.INFO: "📈",
    AlertSeverity.WARNING: "⚠️",
    AlertSeverity.CRITICAL: "🚨",
}


def _title(notification: Notification) -> str:
    condition = notification.condition.value.replace("_", " ").title()
    return f"{notification.symbol} — {condition}"


def _details(notification: Notification) -> str:
    return (
        f"{notification.message}\n"
        f"Current: {format_currency(notification.current_value)} · "
        f"Target: {format_currency(notification.target_value)}"
    )


# ──────────────────────────────────────────────
# Channel Notifiers
# ──────────────────────────────────────────────


class DiscordNotifier:
    """Send rich embed messages via Discord webhook."""

    def __init__(self, webhook_url: str, client: httpx.Client):
        self._url = webhook_url
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._url)

    def send(self, notification: Notification) -> bool:
        if not self.configured:
            return False

        emoji = _SEVERITY_EMOJI.get(notification.severity, "📌")
        payload = {
            "embeds": [
                {
                    "title": f"{emoji} {_title(notification)}",
                    "description": _details(notification),
                    "color": _SEVERITY_COLORS.get(notification.severity, 0x5865F2),
                    "timestamp": notification.triggered_at.isoformat(),
                    "footer": {"text": "Trendwave"},
                }
            ]
        }

        try:
            resp = self._client.post(self._url, json=payload)
            resp.raise_for_status()
            log.info("notification.discord.sent", id=notification.id, symbol=notification.symbol)
            return True
        except Exception as exc:
            log.error("notification.discord.failed", id=notification.id, error=str(exc))
            return False


class TelegramNotifier:
    """Send messages via Telegram Bot API."""

    API_BASE = "https://api.telegram.org"

    def __init__(self, bot_token: str, chat_id: str, client: httpx.Client):
        self._token = bot_token
        self._chat_id = chat_id
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._token and self._chat_id)

    def send(self, notification: Notification) -> bool:
        if not self.configured:
            return False

        emoji = _SEVERITY_EMOJI.get(notification.severity, "📌")
        text = f"{emoji} *{_title(notification)}*\n\n{_details(notification)}"

        url = f"{self.API_BASE}/bot{self._token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "Markdown",
        }

        try:
            resp = self._client.post(url, json=payload)
            resp.raise_for_status()
            log.info("notification.telegram.sent", id=notification.id, symbol=notification.symbol)
            return True
        except Exception as exc:
            log.error("notification.telegram.failed", id=notification.id, error=str(exc))
            return False


# ──────────────────────────────────────────────
# Dispatcher
# ──────────────────────────────────────────────


class NotificationDispatcher:
    """Fan-out delivery to all configured notification channels.

    Usage::

        dispatcher = NotificationDispatcher(get_settings())
        dispatcher.send(notification)
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.Client] = None):
        settings = settings or get_settings()
        self._client = client or httpx.Client(timeout=settings.notification_timeout_seconds)
        self._channels = [
            DiscordNotifier(settings.discord_webhook_url, self._client),
            TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id, self._client),
        ]

    def send(self, notification: Notification) -> dict[str, bool]:
        """Send to all configured channels. Returns delivery status per channel."""
        results: dict[str, bool] = {}
        for channel in self._channels:
            name = type(channel).__name__
            if channel.configured:
                results[name] = channel.send(notification)
            else:
                results[name] = False
        return results

    @property
    def active_channels(self) -> list[str]:
        return [type(c).__name__ for c in self._channels if c.configured]

    def close(self) -> None:
        self._client.close()


class NotificationForwarder:
    """Store subscriber that pushes each newly added notification once.

    Deliveries are handed to a worker thread, so the store broadcast (and a
    streaming update that triggered it) never waits on an HTTP round trip.

    Usage::

        forwarder = NotificationForwarder(dispatcher)
        store.subscribe(forwarder)
        ...
        forwarder.close()
    """

    def __init__(self, dispatcher: NotificationDispatcher, executor: Optional[Executor] = None):
        self.dispatcher = dispatcher
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="trendwave-notify")
        self._pending: list[Future] = []
        self._seen: set[str] = set()

    def __call__(self, snapshot: Snapshot) -> None:
        current = {n.id for n in snapshot}
        for notification in snapshot:
            if notification.id in self._seen:
                continue
            self._seen.add(notification.id)
            self._pending.append(self._executor.submit(self._deliver, notification))
        # Forget dismissed ids so the set stays bounded by the store size
        self._seen &= current
        self._pending = [f for f in self._pending if not f.done()]

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every queued delivery has finished (or timeout)."""
        wait(self._pending, timeout=timeout)
        self._pending = [f for f in self._pending if not f.done()]

    def close(self) -> None:
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _deliver(self, notification: Notification) -> dict[str, bool]:
        results = self.dispatcher.send(notification)
        log.debug("notification.forwarded", id=notification.id, results=results)
        return results
