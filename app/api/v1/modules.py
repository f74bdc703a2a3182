"""Module management routes. Reads need an authorized session; writes need SUPERADMIN."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_identity, require_roles
from app.core.database import get_db
from app.schemas.auth import Identity
from app.schemas.common import ApiResponse
from app.schemas.module import ModuleCreate, ModuleNode, ModuleOut, ModuleUpdate
from app.services import modules as module_service
from app.services.session import SUPERADMIN_ROLE

router = APIRouter()
require_superadmin = require_roles(SUPERADMIN_ROLE)


@router.get("", response_model=ApiResponse[list[ModuleNode]])
def get_modules(
    db: Annotated[Session, Depends(get_db)],
    _identity: Annotated[Identity, Depends(get_current_identity)],
    hierarchical: Annotated[bool, Query()] = False,
    include_inactive: Annotated[bool, Query(alias="includeInactive")] = False,
) -> ApiResponse[list[ModuleNode]]:
    data = module_service.list_modules(
        db, hierarchical=hierarchical, include_inactive=include_inactive
    )
    message = "Modules retrieved (hierarchical)" if hierarchical else "Modules retrieved"
    return ApiResponse[list[ModuleNode]](message=message, data=data)


@router.post("", response_model=ApiResponse[ModuleOut], status_code=status.HTTP_201_CREATED)
def create_module(
    body: ModuleCreate,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[ModuleOut]:
    data = module_service.create_module(db, body, actor_id=identity.id)
    return ApiResponse[ModuleOut](message="Module created", data=data)


@router.put("/{module_id}", response_model=ApiResponse[ModuleOut])
def update_module(
    module_id: int,
    body: ModuleUpdate,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[ModuleOut]:
    data = module_service.update_module(db, module_id, body, actor_id=identity.id)
    return ApiResponse[ModuleOut](message="Module updated", data=data)


@router.delete("/{module_id}", response_model=ApiResponse[None])
def delete_module(
    module_id: int,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[Identity, Depends(require_superadmin)],
) -> ApiResponse[None]:
    module_service.delete_module(db, module_id, actor_id=identity.id)
    return ApiResponse[None](message="Module deleted successfully")
