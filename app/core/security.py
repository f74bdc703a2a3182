"""Password hashing, password policy, and the access/refresh JWT codec."""

import re
import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import bcrypt
import jwt

from app.core.config import Settings, settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

PASSWORD_SPECIAL_CHARS = "@$!%*?&"
_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_DIGIT_RE = re.compile(r"\d")
_SPECIAL_RE = re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARS)}]")


class TokenKind(str, Enum):
    """Signing domain of a token; each kind has its own secret and lifetime."""

    ACCESS = "access"
    REFRESH = "refresh"


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def password_meets_policy(password: str, cfg: Settings | None = None) -> bool:
    """
    Return True if the password satisfies every enabled strength requirement.

    Minimum length always applies; uppercase, lowercase, digit and special
    character (one of @$!%*?&) are each checked only when toggled on.
    """
    cfg = cfg or settings
    if password is None or len(password) < cfg.PASSWORD_MIN_LENGTH:
        return False
    if cfg.PASSWORD_REQUIRE_UPPERCASE and not _UPPER_RE.search(password):
        return False
    if cfg.PASSWORD_REQUIRE_LOWERCASE and not _LOWER_RE.search(password):
        return False
    if cfg.PASSWORD_REQUIRE_NUMBER and not _DIGIT_RE.search(password):
        return False
    if cfg.PASSWORD_REQUIRE_SPECIAL and not _SPECIAL_RE.search(password):
        return False
    return True


def _secret_for(kind: TokenKind, cfg: Settings) -> str:
    if kind is TokenKind.REFRESH:
        return cfg.JWT_REFRESH_SECRET.get_secret_value()
    return cfg.JWT_ACCESS_SECRET.get_secret_value()


def _identity_claims(claims: dict[str, Any]) -> dict[str, Any]:
    missing = [key for key in ("id", "username", "roles") if key not in claims]
    if missing:
        raise ValueError(f"Token claims missing required keys: {', '.join(missing)}")
    return {
        "id": claims["id"],
        "username": claims["username"],
        "roles": sorted(set(claims["roles"])),
        "isAuthorized": bool(claims.get("isAuthorized", False)),
    }


def create_access_token(claims: dict[str, Any], cfg: Settings | None = None) -> str:
    """
    Sign a short-lived access token carrying {id, username, roles, isAuthorized}.

    isAuthorized defaults to False when omitted.
    """
    cfg = cfg or settings
    now = datetime.now(UTC)
    payload = _identity_claims(claims)
    payload["iat"] = now
    payload["exp"] = now + timedelta(minutes=cfg.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(payload, _secret_for(TokenKind.ACCESS, cfg), algorithm=cfg.JWT_ALGORITHM)


def create_refresh_token(claims: dict[str, Any], cfg: Settings | None = None) -> str:
    """Sign a long-lived refresh token with the refresh secret. Not authorization-bearing."""
    cfg = cfg or settings
    now = datetime.now(UTC)
    payload = _identity_claims(claims)
    payload["isAuthorized"] = False
    # jti keeps tokens minted in the same second for the same user distinct.
    payload["jti"] = uuid.uuid4().hex
    payload["iat"] = now
    payload["exp"] = now + timedelta(days=cfg.REFRESH_TOKEN_EXPIRE_DAYS)
    return jwt.encode(payload, _secret_for(TokenKind.REFRESH, cfg), algorithm=cfg.JWT_ALGORITHM)


def verify_token(
    token: str,
    kind: TokenKind = TokenKind.ACCESS,
    cfg: Settings | None = None,
) -> dict[str, Any] | None:
    """
    Decode and validate a token of the given kind.

    Returns the claims, or None on bad signature, malformed structure or expiry.
    """
    cfg = cfg or settings
    if not token:
        return None
    try:
        return jwt.decode(token, _secret_for(kind, cfg), algorithms=[cfg.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
