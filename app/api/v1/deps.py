"""Request dependencies: session authentication, role guard, internal key, client metadata."""

import hmac
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import ConfigurationError, UnauthenticatedError
from app.schemas.auth import Identity
from app.services.session import authenticate_access_token, ensure_roles

security = HTTPBearer(auto_error=False)


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is None:
        return None
    return credentials.credentials


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> Identity:
    """Dependency: require an authorized Bearer token (isAuthorized true) and an active user."""
    return authenticate_access_token(db, _bearer_token(credentials), cfg=cfg)


def get_pre_authorized_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> Identity:
    """
    Dependency for the authorization exchange endpoint only: also accepts a
    pre-authorized token (isAuthorized false) issued by login or refresh.
    """
    return authenticate_access_token(
        db, _bearer_token(credentials), allow_pre_authorized=True, cfg=cfg
    )


def require_roles(*allowed: str) -> Callable[..., Identity]:
    """Dependency factory: require one of the given role codes (SUPERADMIN always passes)."""
    allowed_codes = frozenset(allowed)

    def dependency(identity: Annotated[Identity, Depends(get_current_identity)]) -> Identity:
        return ensure_roles(identity, allowed_codes)

    return dependency


def require_internal_key(
    cfg: Annotated[Settings, Depends(get_settings)],
    x_internal_key: Annotated[str | None, Header()] = None,
) -> None:
    """Dependency: trusted internal callers present the shared secret in x-internal-key."""
    if cfg.INTERNAL_API_KEY is None or not cfg.INTERNAL_API_KEY.get_secret_value():
        raise ConfigurationError("Internal API Key is not configured")
    expected = cfg.INTERNAL_API_KEY.get_secret_value()
    if not x_internal_key or not hmac.compare_digest(
        x_internal_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise UnauthenticatedError("Unauthorized internal access")


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client and request.client.host else "unknown"
