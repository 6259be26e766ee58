"""Notification sinks: where fired callback reminders are delivered."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from callbook.schemas.reminders import CallbackNotification

if TYPE_CHECKING:
    from callbook.core.config import Settings

logger = logging.getLogger(__name__)


class NotificationDeliveryError(Exception):
    """Raised when a sink could not hand a reminder to its destination."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotificationSink(Protocol):
    """Destination for fired reminders."""

    async def deliver(self, notification: CallbackNotification) -> None:
        """Deliver one reminder; raise on failure."""


class LoggingNotificationSink:
    """Writes reminders to the application log. Used when no webhook is configured."""

    async def deliver(self, notification: CallbackNotification) -> None:
        logger.info(
            "Callback reminder: %s",
            notification.body,
            extra={
                "job_id": notification.job_id,
                "record_id": notification.record_id,
                "owner_id": notification.owner_id,
                "due_at": notification.due_at.isoformat(),
            },
        )


class WebhookNotificationSink:
    """POSTs each reminder as JSON to a fixed URL."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    async def deliver(self, notification: CallbackNotification) -> None:
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    self.url, json=notification.to_payload(), timeout=self.timeout
                )
        except httpx.TimeoutException as e:
            raise NotificationDeliveryError(f"Webhook timed out: {e!s}") from e
        except httpx.RequestError as e:
            raise NotificationDeliveryError(f"Webhook unreachable: {e!s}") from e
        if resp.status_code >= 300:
            raise NotificationDeliveryError(
                f"Webhook returned status {resp.status_code}",
                status_code=resp.status_code,
            )


def build_notification_sink(settings: Settings) -> NotificationSink:
    """Webhook sink when NOTIFY_WEBHOOK_URL is set, logging sink otherwise."""
    if settings.NOTIFY_WEBHOOK_URL:
        return WebhookNotificationSink(
            settings.NOTIFY_WEBHOOK_URL,
            timeout=settings.NOTIFY_REQUEST_TIMEOUT_SEC,
        )
    return LoggingNotificationSink()
