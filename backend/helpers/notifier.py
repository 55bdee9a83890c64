"""
Notification boundary for notify_team and send_message actions.
"""

import logging
from typing import Dict, List, Optional, Protocol

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

SUPPORTED_CHANNELS = ("email", "sms", "push")


class Notifier(Protocol):
    async def notify(self, message: str, recipients: Optional[List[str]] = None) -> None:
        ...

    async def send(self, recipient: str, message: str, channel: str) -> None:
        ...


class LoggingNotifier:
    """Logs notifications and keeps them for inspection."""

    def __init__(self):
        self.sent: List[Dict[str, object]] = []

    async def notify(self, message: str, recipients: Optional[List[str]] = None) -> None:
        logger.info(f"[ACTION] Team notification to {recipients or 'default channel'}: {message}")
        self.sent.append({"kind": "notify", "message": message, "recipients": recipients})

    async def send(self, recipient: str, message: str, channel: str) -> None:
        logger.info(f"[ACTION] {channel} message to {recipient}: {message}")
        self.sent.append({"kind": channel, "message": message, "recipients": [recipient]})


class WebhookNotifier:
    """Posts notifications to a Slack-style incoming webhook ({"text": ...})."""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    async def _post(self, text: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.webhook_url, json={"text": text})
            response.raise_for_status()

    async def notify(self, message: str, recipients: Optional[List[str]] = None) -> None:
        prefix = f"{' '.join(recipients)} " if recipients else ""
        await self._post(f"{prefix}{message}")

    async def send(self, recipient: str, message: str, channel: str) -> None:
        await self._post(f"[{channel}] {recipient}: {message}")
