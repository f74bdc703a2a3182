"""Schemas for role management and role -> module access grants."""

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, Pagination


def _upper_code(v: str) -> str:
    return v.strip().upper()


class RoleCreate(CamelModel):
    code: str = Field(..., min_length=2, max_length=50)
    name: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    level: int = Field(default=0, ge=0, le=100)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return _upper_code(v)


class RoleUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    level: int | None = Field(default=None, ge=0, le=100)
    is_active: bool | None = None


class RoleOut(CamelModel):
    id: int
    code: str
    name: str
    description: str | None = None
    level: int
    is_system: bool
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RoleList(CamelModel):
    items: list[RoleOut]
    pagination: Pagination


class ModuleAccessGrant(CamelModel):
    """Flags to set for one module on a role. Omitted flags default to False."""

    module_id: int
    can_view: bool = False
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False
    can_view_all: bool = False
    can_download: bool = False
    can_approve: bool = False


class ModuleAccessUpdate(CamelModel):
    grants: list[ModuleAccessGrant] = Field(..., max_length=500)


class ModuleAccessOut(ModuleAccessGrant):
    id: int
    role_id: int
    module_code: str
