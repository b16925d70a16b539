"""Outbound email delivery."""

import logging
from typing import Optional, Protocol

import httpx

from ..core.config import Settings
from ..core.observability import metrics_collector
from .email_templates import EmailMessage

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when the email provider rejects or cannot take a message."""


class Notifier(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None:
        ...


class LogOnlyNotifier:
    """Logs messages instead of sending them; used when no API key is set."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info("Email delivery disabled, logging message", extra={"to": to, "subject": subject})


class ResendNotifier:
    """Sends email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def send(self, to: str, subject: str, html: str) -> None:
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Email delivery to {to} failed: {e}") from e

        logger.info("Email sent", extra={"to": to, "subject": subject})


def build_notifier(settings: Settings) -> Notifier:
    """Pick the delivery channel for the configured environment."""
    if settings.resend_api_key:
        return ResendNotifier(
            api_key=settings.resend_api_key,
            sender=settings.sender_email,
            api_url=settings.resend_api_url,
            timeout=settings.notification_timeout_seconds,
        )
    return LogOnlyNotifier()


async def notify_safely(notifier: Notifier, to: str, message: EmailMessage) -> bool:
    """
    Send an email without letting delivery problems reach the caller.

    Returns:
        True if the notifier accepted the message
    """
    if not to:
        return False

    try:
        await notifier.send(to, message.subject, message.html)
        return True
    except Exception as e:
        metrics_collector.record_notification_failure()
        logger.warning(
            "Failed to send notification",
            extra={"to": to, "subject": message.subject, "error": str(e)},
        )
        return False
