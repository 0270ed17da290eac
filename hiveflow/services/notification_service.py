"""Notification delivery for notification nodes.

Discord and Slack messages are posted to incoming webhooks with httpx;
email goes through SMTP. Misconfiguration and rejected deliveries raise
NotificationError. Transport failures and 5xx responses raise
NotificationDeliveryError, which is also a ConnectionError so that nodes
configured with retries try again.
"""

from __future__ import annotations

import asyncio
import smtplib
import time
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Any

import httpx

from hiveflow.core.config import Settings, get_settings
from hiveflow.core.logging import get_logger
from hiveflow.models.enums import NotificationChannel
from hiveflow.services.workflow.interfaces import NotificationRequest

logger = get_logger(__name__)

DISCORD_COLOR = "#5865F2"
SLACK_COLOR = "#36a64f"


class NotificationError(Exception):
    """Raised when a notification cannot be delivered."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotificationDeliveryError(NotificationError, ConnectionError):
    """Raised for transport failures that may succeed on retry."""


def parse_color(color: str) -> int:
    """Convert a ``#rrggbb`` color to the integer Discord expects."""
    return int(color.lstrip("#"), 16)


class WebhookNotifier:
    """Notifier for Discord, Slack and email.

    Webhook URLs come from the request first, then from settings.

    Example:
        >>> notifier = WebhookNotifier(settings)
        >>> await notifier.send(
        ...     NotificationRequest(channel=NotificationChannel.SLACK, message="Deployed")
        ... )
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.NOTIFICATION_TIMEOUT_SECONDS),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, request: NotificationRequest) -> None:
        match NotificationChannel(request.channel):
            case NotificationChannel.DISCORD:
                await self._send_discord(request)
            case NotificationChannel.SLACK:
                await self._send_slack(request)
            case NotificationChannel.EMAIL:
                await self._send_email(request)

        logger.info(
            f"Sent {request.channel} notification",
            extra={"context": {"channel": str(request.channel), "title": request.title}},
        )

    async def _send_discord(self, request: NotificationRequest) -> None:
        url = request.webhook_url or self.settings.DISCORD_WEBHOOK_URL
        if not url:
            raise NotificationError("Discord webhook URL not configured")

        payload: dict[str, Any]
        if request.title:
            payload = {
                "embeds": [
                    {
                        "title": request.title,
                        "description": request.message,
                        "color": parse_color(DISCORD_COLOR),
                        "timestamp": datetime.now(UTC).isoformat(),
                    }
                ]
            }
        else:
            payload = {"content": request.message}

        await self._post("Discord", url, payload)

    async def _send_slack(self, request: NotificationRequest) -> None:
        url = request.webhook_url or self.settings.SLACK_WEBHOOK_URL
        if not url:
            raise NotificationError("Slack webhook URL not configured")

        payload: dict[str, Any] = {"text": request.title or request.message}
        if request.title:
            payload["attachments"] = [
                {
                    "title": request.title,
                    "text": request.message,
                    "color": SLACK_COLOR,
                    "ts": int(time.time()),
                }
            ]

        await self._post("Slack", url, payload)

    async def _post(self, service: str, url: str, payload: dict[str, Any]) -> None:
        client = await self._get_client()
        try:
            response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(
                f"{service} notification failed: {e}"
            ) from e

        if response.is_success:
            return
        message = f"{service} notification failed: {response.status_code} {response.text}"
        if response.is_server_error:
            raise NotificationDeliveryError(message)
        raise NotificationError(message)

    async def _send_email(self, request: NotificationRequest) -> None:
        if not self.settings.SMTP_HOST:
            raise NotificationError("SMTP host not configured")
        if not request.email_to:
            raise NotificationError("Email recipient not configured")

        message = EmailMessage()
        message["Subject"] = request.title or "Workflow notification"
        message["From"] = self.settings.SMTP_FROM
        message["To"] = request.email_to
        message.set_content(request.message)

        try:
            await asyncio.to_thread(self._deliver_email, message)
        except OSError as e:
            raise NotificationDeliveryError(f"Email notification failed: {e}") from e

    def _deliver_email(self, message: EmailMessage) -> None:
        settings = self.settings
        assert settings.SMTP_HOST is not None
        with smtplib.SMTP(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        ) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(message)


__all__ = [
    "NotificationDeliveryError",
    "NotificationError",
    "WebhookNotifier",
    "parse_color",
]
