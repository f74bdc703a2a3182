"""Forgot / reset / change password flows."""

import logging
import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import transaction
from app.core.errors import NotFoundError, UnauthenticatedError, ValidationFailedError
from app.core.security import hash_password, password_meets_policy, verify_password
from app.models import PasswordHistory, PasswordResetToken, User
from app.models.base import as_utc, utcnow
from app.schemas.auth import Identity
from app.services.notification import NotificationError, send_password_reset

logger = logging.getLogger(__name__)

# Same response whether or not the email is registered.
FORGOT_PASSWORD_MESSAGE = "If your email is registered, you will receive a reset link"
RESET_TOKEN_BYTES = 32


def _check_new_password(new_password: str, confirm_password: str, cfg: Settings) -> None:
    if new_password != confirm_password:
        raise ValidationFailedError("Passwords do not match")
    if not password_meets_policy(new_password, cfg):
        raise ValidationFailedError("Password is too weak")


def _apply_new_password(db: Session, user: User, password_hash: str) -> None:
    """Stage the password update and its history row; caller owns the transaction."""
    user.password = password_hash
    user.must_change_password = False
    user.password_changed_at = utcnow()
    db.add(PasswordHistory(user_id=user.id, password_hash=password_hash))


async def forgot_password(db: Session, email: str | None, cfg: Settings | None = None) -> None:
    """
    Issue a reset token for a registered email and try to notify the user.

    Unknown emails succeed silently without creating a token. A failed
    notification is logged; the stored token stays valid.
    """
    cfg = cfg or get_settings()
    if not email or not email.strip():
        raise ValidationFailedError("Email is required")
    email = email.strip()

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        return

    token = secrets.token_hex(RESET_TOKEN_BYTES)
    with transaction(db):
        db.add(
            PasswordResetToken(
                email=email,
                token=token,
                expires_at=utcnow() + timedelta(minutes=cfg.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES),
            )
        )

    try:
        await send_password_reset(user.id, user.name, token, cfg)
    except NotificationError as e:
        logger.error(
            "Failed to send password reset email",
            extra={"user_id": user.id, "reason": (e.message or str(e))[:500]},
        )


def reset_password(
    db: Session,
    token: str,
    new_password: str,
    confirm_password: str,
    cfg: Settings | None = None,
) -> None:
    """Set a new password using a one-time reset token. Unknown, used and expired tokens fail alike."""
    cfg = cfg or get_settings()
    _check_new_password(new_password, confirm_password, cfg)

    reset_token = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()
    if reset_token is None or reset_token.is_used or as_utc(reset_token.expires_at) < utcnow():
        raise ValidationFailedError("Invalid or expired reset token")

    user = db.query(User).filter(User.email == reset_token.email).first()
    if user is None:
        raise NotFoundError("User not found")

    password_hash = hash_password(new_password)
    with transaction(db):
        _apply_new_password(db, user, password_hash)
        reset_token.is_used = True
        reset_token.used_at = utcnow()
    logger.info("Password reset", extra={"user_id": user.id})


def change_password(
    db: Session,
    identity: Identity,
    current_password: str,
    new_password: str,
    confirm_password: str,
    cfg: Settings | None = None,
) -> None:
    """Change the caller's password after verifying the current one."""
    cfg = cfg or get_settings()
    _check_new_password(new_password, confirm_password, cfg)

    user = db.get(User, identity.id)
    if user is None or not verify_password(current_password, user.password):
        raise UnauthenticatedError("Invalid current password")

    password_hash = hash_password(new_password)
    with transaction(db):
        _apply_new_password(db, user, password_hash)
    logger.info("Password changed", extra={"user_id": user.id})
