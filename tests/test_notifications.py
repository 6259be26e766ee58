"""Tests for notification sinks: webhook delivery (httpx mocked) and sink selection."""

import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from callbook.schemas.reminders import CallbackNotification
from callbook.services.notifications import (
    LoggingNotificationSink,
    NotificationDeliveryError,
    WebhookNotificationSink,
    build_notification_sink,
)

WEBHOOK_URL = "https://hooks.example.test/callbacks"


def _notification() -> CallbackNotification:
    return CallbackNotification(
        job_id=5,
        record_id=9,
        owner_id=2,
        body="Time to call: Ana Rojas",
        phone="(xxx) xxx-4567",
        due_at=datetime(2026, 10, 20, 15, 0, tzinfo=timezone.utc),
        fired_at=datetime(2026, 10, 20, 15, 0, 1, tzinfo=timezone.utc),
    )


def _client_returning(mock_client_class: MagicMock, post: AsyncMock) -> MagicMock:
    mock_instance = MagicMock()
    mock_instance.post = post
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_instance


class TestWebhookSink(unittest.IsolatedAsyncioTestCase):
    """WebhookNotificationSink posts the camelCase payload and raises on failure."""

    @patch("callbook.services.notifications.httpx.AsyncClient")
    async def test_posts_payload(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(return_value=MagicMock(status_code=204))
        _client_returning(mock_client_class, post)

        await WebhookNotificationSink(WEBHOOK_URL, timeout=3).deliver(_notification())

        post.assert_awaited_once()
        args, kwargs = post.call_args
        self.assertEqual(args[0], WEBHOOK_URL)
        self.assertEqual(kwargs["timeout"], 3)
        payload = kwargs["json"]
        self.assertEqual(payload["jobId"], 5)
        self.assertEqual(payload["recordId"], 9)
        self.assertEqual(payload["title"], "Callback Reminder")
        self.assertEqual(payload["phone"], "(xxx) xxx-4567")
        self.assertTrue(payload["dueAt"].startswith("2026-10-20T15:00:00"))

    @patch("callbook.services.notifications.httpx.AsyncClient")
    async def test_error_status_raises(self, mock_client_class: MagicMock) -> None:
        _client_returning(mock_client_class, AsyncMock(return_value=MagicMock(status_code=500)))
        with self.assertRaises(NotificationDeliveryError) as ctx:
            await WebhookNotificationSink(WEBHOOK_URL).deliver(_notification())
        self.assertEqual(ctx.exception.status_code, 500)

    @patch("callbook.services.notifications.httpx.AsyncClient")
    async def test_timeout_raises(self, mock_client_class: MagicMock) -> None:
        _client_returning(
            mock_client_class, AsyncMock(side_effect=httpx.ReadTimeout("too slow"))
        )
        with self.assertRaises(NotificationDeliveryError):
            await WebhookNotificationSink(WEBHOOK_URL).deliver(_notification())

    @patch("callbook.services.notifications.httpx.AsyncClient")
    async def test_unreachable_raises(self, mock_client_class: MagicMock) -> None:
        _client_returning(
            mock_client_class, AsyncMock(side_effect=httpx.ConnectError("refused"))
        )
        with self.assertRaises(NotificationDeliveryError):
            await WebhookNotificationSink(WEBHOOK_URL).deliver(_notification())


class TestLoggingSink(unittest.IsolatedAsyncioTestCase):

    async def test_logs_reminder(self) -> None:
        with self.assertLogs("callbook.services.notifications", level="INFO") as logs:
            await LoggingNotificationSink().deliver(_notification())
        self.assertIn("Time to call: Ana Rojas", logs.output[0])


class TestBuildNotificationSink(unittest.TestCase):

    def test_webhook_when_configured(self) -> None:
        settings = MagicMock()
        settings.NOTIFY_WEBHOOK_URL = WEBHOOK_URL
        settings.NOTIFY_REQUEST_TIMEOUT_SEC = 4
        sink = build_notification_sink(settings)
        self.assertIsInstance(sink, WebhookNotificationSink)
        self.assertEqual(sink.timeout, 4)

    def test_logging_otherwise(self) -> None:
        settings = MagicMock()
        settings.NOTIFY_WEBHOOK_URL = None
        self.assertIsInstance(build_notification_sink(settings), LoggingNotificationSink)


if __name__ == "__main__":
    unittest.main()
