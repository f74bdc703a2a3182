"""Authorization exchange: aggregate module permissions and mint the authorized token."""

from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import UnauthenticatedError
from app.core.security import create_access_token
from app.models import Module, ModuleAccess, Role
from app.models.role import ACCESS_FLAGS
from app.schemas.auth import AuthorizeData, Identity, ModulePermissions


def aggregate_permissions(rows: Iterable[tuple[str, Any]]) -> dict[str, ModulePermissions]:
    """
    Fold (module_code, grant) rows into one flag set per module.

    Each flag is OR-ed independently across every row for the module, so a user
    holding several roles gets the union of their grants. Row order does not
    matter, duplicate grants for the same pair are kept and OR-ed too, and
    modules without any row are absent from the result.
    """
    merged: dict[str, dict[str, bool]] = {}
    for module_code, grant in rows:
        flags = merged.setdefault(module_code, dict.fromkeys(ACCESS_FLAGS, False))
        for flag in ACCESS_FLAGS:
            flags[flag] = flags[flag] or bool(getattr(grant, flag, False))
    return {code: ModulePermissions(**flags) for code, flags in merged.items()}


def fetch_module_grants(db: Session, role_codes: Iterable[str]) -> list[tuple[str, ModuleAccess]]:
    """ModuleAccess rows on active, non-deleted modules for the given role codes."""
    codes = sorted(set(role_codes))
    if not codes:
        return []
    rows = (
        db.query(Module.code, ModuleAccess)
        .join(Module, ModuleAccess.module_id == Module.id)
        .join(Role, ModuleAccess.role_id == Role.id)
        .filter(
            Role.code.in_(codes),
            Module.is_active.is_(True),
            Module.deleted_at.is_(None),
        )
        .all()
    )
    return [(code, grant) for code, grant in rows]


def authorize_session(
    db: Session,
    identity: Identity | None,
    cfg: Settings | None = None,
) -> AuthorizeData:
    """
    Second stage of login: return an authorized access token and the permission map.

    This is the only place an access token with isAuthorized true is issued.
    """
    if identity is None:
        raise UnauthenticatedError("Unauthorized")
    cfg = cfg or get_settings()

    permissions = aggregate_permissions(fetch_module_grants(db, identity.roles))
    access_token = create_access_token(
        {
            "id": identity.id,
            "username": identity.username,
            "roles": sorted(identity.roles),
            "isAuthorized": True,
        },
        cfg,
    )
    return AuthorizeData(access_token=access_token, permissions=permissions)
