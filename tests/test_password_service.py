"""Tests for app.services.password: forgot, reset, and change password flows."""

import asyncio
import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

from app.core.errors import UnauthenticatedError, ValidationFailedError
from app.core.security import verify_password
from app.models import PasswordHistory, PasswordResetToken, User
from app.schemas.auth import Identity
from app.services.notification import NotificationError
from app.services.password import change_password, forgot_password, reset_password
from tests.support import DEFAULT_PASSWORD, add_user, make_session_factory, make_settings

NEW_PASSWORD = "NewPassword456!"


class PasswordServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.db = make_session_factory()()
        self.user = add_user(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _issue_token(self, token: str = "reset-token", **fields: object) -> PasswordResetToken:
        row = PasswordResetToken(
            email=self.user.email,
            token=token,
            expires_at=fields.pop("expires_at", datetime.now(UTC) + timedelta(hours=1)),
            **fields,
        )
        self.db.add(row)
        self.db.commit()
        return row


class TestForgotPassword(PasswordServiceTestCase):
    @patch("app.services.password.send_password_reset", new_callable=AsyncMock)
    def test_registered_email_creates_token_and_notifies(self, mock_send: AsyncMock) -> None:
        asyncio.run(forgot_password(self.db, self.user.email, self.settings))

        row = self.db.query(PasswordResetToken).one()
        self.assertEqual(row.email, self.user.email)
        self.assertEqual(len(row.token), 64)
        self.assertFalse(row.is_used)
        mock_send.assert_awaited_once()
        args = mock_send.await_args.args
        self.assertEqual(args[0], self.user.id)
        self.assertEqual(args[2], row.token)

    @patch("app.services.password.send_password_reset", new_callable=AsyncMock)
    def test_unknown_email_is_silent(self, mock_send: AsyncMock) -> None:
        asyncio.run(forgot_password(self.db, "ghost@example.com", self.settings))
        self.assertEqual(self.db.query(PasswordResetToken).count(), 0)
        mock_send.assert_not_awaited()

    def test_email_is_required(self) -> None:
        for email in (None, "", "   "):
            with self.assertRaises(ValidationFailedError):
                asyncio.run(forgot_password(self.db, email, self.settings))

    @patch("app.services.password.send_password_reset", new_callable=AsyncMock)
    def test_notification_failure_keeps_token(self, mock_send: AsyncMock) -> None:
        mock_send.side_effect = NotificationError("Notification service timed out")
        with self.assertLogs("app.services.password", level="ERROR"):
            asyncio.run(forgot_password(self.db, self.user.email, self.settings))
        self.assertEqual(self.db.query(PasswordResetToken).count(), 1)


class TestResetPassword(PasswordServiceTestCase):
    def test_valid_token_sets_password_once(self) -> None:
        self._issue_token()
        reset_password(self.db, "reset-token", NEW_PASSWORD, NEW_PASSWORD, self.settings)

        user = self.db.get(User, self.user.id)
        self.assertTrue(verify_password(NEW_PASSWORD, user.password))
        self.assertFalse(user.must_change_password)
        self.assertIsNotNone(user.password_changed_at)
        self.assertEqual(self.db.query(PasswordHistory).count(), 1)
        row = self.db.query(PasswordResetToken).one()
        self.assertTrue(row.is_used)
        self.assertIsNotNone(row.used_at)

        with self.assertRaises(ValidationFailedError) as ctx:
            reset_password(self.db, "reset-token", "Another789!", "Another789!", self.settings)
        self.assertEqual(ctx.exception.message, "Invalid or expired reset token")

    def test_expired_and_unknown_tokens(self) -> None:
        self._issue_token(expires_at=datetime.now(UTC) - timedelta(seconds=1))
        for token in ("reset-token", "never-issued"):
            with self.assertRaises(ValidationFailedError) as ctx:
                reset_password(self.db, token, NEW_PASSWORD, NEW_PASSWORD, self.settings)
            self.assertEqual(ctx.exception.message, "Invalid or expired reset token")

    def test_mismatch_and_weak_passwords_leave_token_unused(self) -> None:
        self._issue_token()
        with self.assertRaises(ValidationFailedError) as mismatch:
            reset_password(self.db, "reset-token", NEW_PASSWORD, "Different456!", self.settings)
        self.assertEqual(mismatch.exception.message, "Passwords do not match")
        with self.assertRaises(ValidationFailedError) as weak:
            reset_password(self.db, "reset-token", "weak", "weak", self.settings)
        self.assertEqual(weak.exception.message, "Password is too weak")

        self.assertFalse(self.db.query(PasswordResetToken).one().is_used)
        self.assertTrue(verify_password(DEFAULT_PASSWORD, self.db.get(User, self.user.id).password))


class TestChangePassword(PasswordServiceTestCase):
    def _identity(self) -> Identity:
        return Identity(id=self.user.id, username=self.user.username, email=self.user.email)

    def test_changes_password_and_records_history(self) -> None:
        change_password(
            self.db, self._identity(), DEFAULT_PASSWORD, NEW_PASSWORD, NEW_PASSWORD, self.settings
        )
        user = self.db.get(User, self.user.id)
        self.assertTrue(verify_password(NEW_PASSWORD, user.password))
        self.assertEqual(self.db.query(PasswordHistory).count(), 1)

    def test_wrong_current_password(self) -> None:
        with self.assertRaises(UnauthenticatedError) as ctx:
            change_password(
                self.db, self._identity(), "Wrong123!", NEW_PASSWORD, NEW_PASSWORD, self.settings
            )
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(self.db.query(PasswordHistory).count(), 0)
        self.assertTrue(verify_password(DEFAULT_PASSWORD, self.db.get(User, self.user.id).password))

    def test_policy_applies(self) -> None:
        with self.assertRaises(ValidationFailedError):
            change_password(
                self.db, self._identity(), DEFAULT_PASSWORD, "alllowercase1!", "alllowercase1!", self.settings
            )


if __name__ == "__main__":
    unittest.main()
