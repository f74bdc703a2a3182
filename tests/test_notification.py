"""Unit tests for app.services.notification: password reset trigger against a mocked httpx client."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from app.services.notification import NotificationError, send_password_reset
from tests.support import make_settings


class TestSendPasswordReset(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings(
            NOTIFICATION_SERVICE_URL="http://notifications.test/",
            NOTIFICATION_REQUEST_TIMEOUT_SEC=5,
        )

    def _mock_client(self, mock_client_class: MagicMock, post: AsyncMock) -> None:
        mock_instance = MagicMock()
        mock_instance.post = post
        mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_instance)
        mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)

    @patch("app.services.notification.httpx.AsyncClient")
    def test_posts_urgent_trigger(self, mock_client_class: MagicMock) -> None:
        resp = MagicMock()
        resp.status_code = 200
        post = AsyncMock(return_value=resp)
        self._mock_client(mock_client_class, post)

        asyncio.run(send_password_reset(7, "Test User", "abc123", self.settings))

        post.assert_awaited_once()
        url = post.await_args.args[0]
        self.assertEqual(url, "http://notifications.test/api/v1/notifications/trigger/urgent")
        payload = post.await_args.kwargs["json"]
        self.assertEqual(payload["userId"], 7)
        self.assertEqual(payload["type"], "PASSWORD_RESET")
        self.assertEqual(payload["channels"], ["EMAIL"])
        self.assertIn("abc123", payload["message"])
        self.assertIn("60 minutes", payload["message"])
        self.assertEqual(post.await_args.kwargs["timeout"], 5)

    @patch("app.services.notification.httpx.AsyncClient")
    def test_error_status_raises(self, mock_client_class: MagicMock) -> None:
        resp = MagicMock()
        resp.status_code = 503
        resp.text = "down for maintenance"
        self._mock_client(mock_client_class, AsyncMock(return_value=resp))

        with self.assertRaises(NotificationError) as ctx:
            asyncio.run(send_password_reset(7, "Test User", "abc123", self.settings))
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertIn("down for maintenance", ctx.exception.message)

    @patch("app.services.notification.httpx.AsyncClient")
    def test_timeout_raises(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        self._mock_client(mock_client_class, post)

        with self.assertRaises(NotificationError) as ctx:
            asyncio.run(send_password_reset(7, "Test User", "abc123", self.settings))
        self.assertIn("timed out", ctx.exception.message)
        self.assertIsNone(ctx.exception.status_code)

    @patch("app.services.notification.httpx.AsyncClient")
    def test_unreachable_raises(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        self._mock_client(mock_client_class, post)

        with self.assertRaises(NotificationError) as ctx:
            asyncio.run(send_password_reset(7, "Test User", "abc123", self.settings))
        self.assertIn("unreachable", ctx.exception.message)

    def test_unconfigured_service(self) -> None:
        settings = MagicMock()
        settings.NOTIFICATION_SERVICE_URL = ""
        with self.assertRaises(NotificationError):
            asyncio.run(send_password_reset(7, "Test User", "abc123", settings))


if __name__ == "__main__":
    unittest.main()
