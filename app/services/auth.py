"""Login with lockout, access token refresh, and logout."""

import logging
from datetime import timedelta

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import transaction
from app.core.errors import (
    AccountLockedError,
    UnauthenticatedError,
    ValidationFailedError,
)
from app.core.security import create_access_token, create_refresh_token, verify_password
from app.models import LoginHistory, LoginStatus, RefreshToken, User
from app.models.base import as_utc, utcnow
from app.schemas.auth import LoginData, LoginRequest, RefreshData, TokenPair, UserSummary

logger = logging.getLogger(__name__)

# Unknown user and wrong password share this message so accounts cannot be enumerated.
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_REFRESH_TOKEN_MESSAGE = "Invalid or expired refresh token"


def _find_login_user(db: Session, login: str) -> User | None:
    """Exact, case-sensitive match on username or email."""
    return db.query(User).filter(or_(User.username == login, User.email == login)).first()


def _record_failed_login(
    db: Session,
    user: User,
    cfg: Settings,
    client_ip: str,
    user_agent: str | None,
) -> None:
    """
    Bump the failure counter (locking at the threshold) and audit it, in one commit.

    The increment runs in SQL so concurrent failures against the same account
    each count; the lock decision uses the value the database returns.
    """
    locked_until = None
    with transaction(db):
        db.query(User).filter(User.id == user.id).update(
            {User.failed_login_attempts: func.coalesce(User.failed_login_attempts, 0) + 1},
            synchronize_session=False,
        )
        attempts = db.query(User.failed_login_attempts).filter(User.id == user.id).scalar()
        if attempts >= cfg.MAX_LOGIN_ATTEMPTS:
            locked_until = utcnow() + timedelta(minutes=cfg.ACCOUNT_LOCKOUT_MINUTES)
        db.query(User).filter(User.id == user.id).update(
            {User.locked_until: locked_until},
            synchronize_session=False,
        )
        db.add(
            LoginHistory(
                user_id=user.id,
                ip_address=client_ip,
                user_agent=user_agent,
                status=LoginStatus.FAILED_INVALID_CREDENTIALS,
                fail_reason="Invalid password",
            )
        )

    if locked_until is not None:
        logger.warning(
            "Account locked after repeated failed logins",
            extra={
                "user_id": user.id,
                "failed_attempts": attempts,
                "locked_until": locked_until.isoformat(),
            },
        )
    else:
        logger.info(
            "Failed login",
            extra={"user_id": user.id, "failed_attempts": attempts},
        )


def login(
    db: Session,
    credentials: LoginRequest,
    client_ip: str,
    user_agent: str | None = None,
    cfg: Settings | None = None,
) -> LoginData:
    """
    Authenticate with username/email and password.

    On success the account's failure counter and lock are reset, a refresh
    token is stored, and both tokens are returned pre-authorized
    (isAuthorized false). On a wrong password the failure counter and audit
    row are committed before UnauthenticatedError is raised.
    """
    cfg = cfg or get_settings()

    user = _find_login_user(db, credentials.username)
    if user is None:
        raise UnauthenticatedError(INVALID_CREDENTIALS_MESSAGE)

    if not user.is_active:
        raise UnauthenticatedError("Account is inactive")

    locked_until = as_utc(user.locked_until)
    if locked_until is not None and locked_until > utcnow():
        raise AccountLockedError(f"Account is locked until {locked_until.isoformat()}")

    if not verify_password(credentials.password, user.password):
        _record_failed_login(db, user, cfg, client_ip, user_agent)
        raise UnauthenticatedError(INVALID_CREDENTIALS_MESSAGE)

    with transaction(db):
        now = utcnow()
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login_at = now
        user.last_login_ip = client_ip

        roles = user.role_codes
        claims = {
            "id": user.id,
            "username": user.username,
            "roles": roles,
            "isAuthorized": False,
        }
        access_token = create_access_token(claims, cfg)
        refresh_token = create_refresh_token(claims, cfg)

        db.add(
            RefreshToken(
                user_id=user.id,
                token=refresh_token,
                device_info=user_agent,
                ip_address=client_ip,
                expires_at=now + timedelta(days=cfg.REFRESH_TOKEN_EXPIRE_DAYS),
            )
        )
        db.add(
            LoginHistory(
                user_id=user.id,
                ip_address=client_ip,
                user_agent=user_agent,
                status=LoginStatus.SUCCESS,
            )
        )

    logger.info("Login successful", extra={"user_id": user.id, "roles": ",".join(roles)})
    return LoginData(
        user=UserSummary(
            id=user.id,
            username=user.username,
            name=user.name,
            email=user.email,
            roles=roles,
        ),
        tokens=TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=cfg.access_token_expire_seconds,
        ),
    )


def refresh_auth(db: Session, token: str | None, cfg: Settings | None = None) -> RefreshData:
    """
    Exchange a stored refresh token for a new pre-authorized access token.

    Unknown, revoked and expired tokens all fail with the same message.
    The refresh token itself is not rotated.
    """
    cfg = cfg or get_settings()
    if not token:
        raise ValidationFailedError("Refresh token is required")

    stored = db.query(RefreshToken).filter(RefreshToken.token == token).first()
    if stored is None or stored.is_revoked or as_utc(stored.expires_at) < utcnow():
        raise UnauthenticatedError(INVALID_REFRESH_TOKEN_MESSAGE)

    user = stored.user
    access_token = create_access_token(
        {
            "id": user.id,
            "username": user.username,
            "roles": user.role_codes,
            "isAuthorized": False,
        },
        cfg,
    )
    return RefreshData(access_token=access_token, expires_in=cfg.access_token_expire_seconds)


def logout(db: Session, refresh_token: str | None) -> int:
    """Revoke every stored row matching the token. Empty token is a no-op. Returns rows revoked."""
    if not refresh_token:
        return 0
    with transaction(db):
        revoked = (
            db.query(RefreshToken)
            .filter(RefreshToken.token == refresh_token, RefreshToken.is_revoked.is_(False))
            .update(
                {RefreshToken.is_revoked: True, RefreshToken.revoked_at: utcnow()},
                synchronize_session=False,
            )
        )
    return revoked
