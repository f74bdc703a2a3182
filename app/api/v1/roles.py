"""Role management routes. Reads need an authorized session; writes need SUPERADMIN."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_identity, require_roles
from app.core.database import get_db
from app.schemas.auth import Identity
from app.schemas.common import ApiResponse
from app.schemas.role import (
    ModuleAccessOut,
    ModuleAccessUpdate,
    RoleCreate,
    RoleList,
    RoleOut,
    RoleUpdate,
)
from app.services import roles as role_service
from app.services.session import SUPERADMIN_ROLE

router = APIRouter()
require_superadmin = require_roles(SUPERADMIN_ROLE)


def _header_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@router.get("", response_model=ApiResponse[RoleList])
def get_roles(
    db: Annotated[Session, Depends(get_db)],
    _identity: Annotated[Identity, Depends(get_current_identity)],
    x_paging_offset: Annotated[str | None, Header()] = None,
    x_paging_limit: Annotated[str | None, Header()] = None,
    x_paging_search: Annotated[str | None, Header()] = None,
) -> ApiResponse[RoleList]:
    """List roles; paging and search come from x-paging-* headers."""
    data = role_service.list_roles(
        db,
        offset=_header_int(x_paging_offset, 0),
        limit=_header_int(x_paging_limit, role_service.DEFAULT_PAGE_LIMIT) or role_service.DEFAULT_PAGE_LIMIT,
        search=x_paging_search,
    )
    return ApiResponse[RoleList](message="Roles retrieved", data=data)


@router.post("", response_model=ApiResponse[RoleOut], status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[RoleOut]:
    data = role_service.create_role(db, body, actor_id=identity.id)
    return ApiResponse[RoleOut](message="Role created", data=data)


@router.put("/{role_id}", response_model=ApiResponse[RoleOut])
def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[RoleOut]:
    data = role_service.update_role(db, role_id, body, actor_id=identity.id)
    return ApiResponse[RoleOut](message="Role updated", data=data)


@router.delete("/{role_id}", response_model=ApiResponse[None])
def delete_role(
    role_id: int,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[None]:
    role_service.delete_role(db, role_id, actor_id=identity.id)
    return ApiResponse[None](message="Role deleted successfully")


@router.get("/{role_id}/access", response_model=ApiResponse[list[ModuleAccessOut]])
def get_role_access(
    role_id: int,
    db: Annotated[Session, Depends(get_db)],
    _identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[list[ModuleAccessOut]]:
    data = role_service.list_module_access(db, role_id)
    return ApiResponse[list[ModuleAccessOut]](message="Module access retrieved", data=data)


@router.put("/{role_id}/access", response_model=ApiResponse[list[ModuleAccessOut]])
def put_role_access(
    role_id: int,
    body: ModuleAccessUpdate,
    db: Annotated[Session, Depends(get_db)],
    _identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[list[ModuleAccessOut]]:
    """Set capability flags per module for this role (one grant row per role/module pair)."""
    data = role_service.set_module_access(db, role_id, body.grants)
    return ApiResponse[list[ModuleAccessOut]](message="Module access updated", data=data)
