"""Outbound notifications via the notification service (password reset emails)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

TRIGGER_URGENT_PATH = "/api/v1/notifications/trigger/urgent"


class NotificationError(Exception):
    """Raised when a notification could not be handed to the notification service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _password_reset_payload(user_id: int, name: str, token: str, expire_minutes: int) -> dict[str, Any]:
    return {
        "userId": user_id,
        "type": "PASSWORD_RESET",
        "title": "Password reset request",
        "message": (
            f"Hello {name}, use the following token to reset your password: {token}. "
            f"This token is valid for {expire_minutes} minutes."
        ),
        "category": "SYSTEM",
        "channels": ["EMAIL"],
    }


async def send_password_reset(user_id: int, name: str, token: str, settings: Settings) -> None:
    """
    Ask the notification service to email a password reset token.

    Raises NotificationError when the service is not configured, unreachable,
    or answers with an error status.
    """
    base_url = (settings.NOTIFICATION_SERVICE_URL or "").strip().rstrip("/")
    if not base_url:
        raise NotificationError("Notification service is not configured.")
    url = f"{base_url}{TRIGGER_URGENT_PATH}"
    payload = _password_reset_payload(
        user_id, name, token, settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
    )
    timeout = max(1.0, min(120.0, settings.NOTIFICATION_REQUEST_TIMEOUT_SEC))

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(url, json=payload, timeout=timeout)
    except httpx.TimeoutException as e:
        raise NotificationError(f"Notification service timed out: {e}") from e
    except httpx.HTTPError as e:
        raise NotificationError(f"Notification service unreachable: {e}") from e

    if resp.status_code >= 400:
        detail = resp.text[:500] if resp.text else "Unknown error"
        raise NotificationError(
            f"Notification service returned {resp.status_code}: {detail}",
            resp.status_code,
        )
