"""
Session authentication: turn a bearer access token into an immutable Identity.

The authorization-stage gate lives here: a pre-authorized token (isAuthorized
false) is accepted only when the caller explicitly allows it, which only the
authorization exchange endpoint does.
"""

from collections.abc import Iterable

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import ForbiddenError, UnauthenticatedError
from app.core.security import TokenKind, verify_token
from app.models import User
from app.schemas.auth import Identity

SUPERADMIN_ROLE = "SUPERADMIN"


def roles_permit(roles: Iterable[str], allowed: Iterable[str]) -> bool:
    """True if the held roles intersect the allow-list, or include SUPERADMIN."""
    held = frozenset(roles)
    if SUPERADMIN_ROLE in held:
        return True
    return not held.isdisjoint(allowed)


def ensure_roles(identity: Identity | None, allowed: Iterable[str]) -> Identity:
    """Role guard: 401 without an identity, 403 when no held role is allowed."""
    if identity is None:
        raise UnauthenticatedError("Unauthorized")
    if not roles_permit(identity.roles, allowed):
        raise ForbiddenError("Forbidden: You do not have permission to access this resource")
    return identity


def load_identity(db: Session, user_id: int) -> Identity | None:
    """Build an Identity from the live user record, or None if missing or inactive."""
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return Identity(
        id=user.id,
        username=user.username,
        email=user.email,
        roles=frozenset(user.role_codes),
    )


def authenticate_access_token(
    db: Session,
    token: str | None,
    *,
    allow_pre_authorized: bool = False,
    cfg: Settings | None = None,
) -> Identity:
    """
    Validate an access token and return the caller's Identity.

    Raises UnauthenticatedError for a missing/invalid/expired token or a missing
    or inactive user, and ForbiddenError for a pre-authorized token when
    allow_pre_authorized is False. Role codes come from the live record, not
    from the token claims.
    """
    if not token:
        raise UnauthenticatedError("Unauthorized: No token provided")

    claims = verify_token(token, TokenKind.ACCESS, cfg)
    if claims is None:
        raise UnauthenticatedError("Unauthorized: Invalid or expired token")

    if not claims.get("isAuthorized", False) and not allow_pre_authorized:
        raise ForbiddenError(
            "Forbidden: Token is not authorized. Please hit /auth/authorize first."
        )

    try:
        user_id = int(claims.get("id"))
    except (TypeError, ValueError):
        raise UnauthenticatedError("Unauthorized: Invalid or expired token")

    identity = load_identity(db, user_id)
    if identity is None:
        raise UnauthenticatedError("Unauthorized: User not found or inactive")
    return identity
