"""Schemas for module management."""

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.common import CamelModel


class ModuleCreate(CamelModel):
    code: str = Field(..., min_length=2, max_length=50)
    name: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    icon: str | None = Field(default=None, max_length=50)
    path: str | None = Field(default=None, max_length=200)
    parent_id: int | None = None
    order: int = Field(default=0, ge=0)
    is_active: bool = True
    is_visible: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class ModuleUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    icon: str | None = Field(default=None, max_length=50)
    path: str | None = Field(default=None, max_length=200)
    parent_id: int | None = None
    order: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    is_visible: bool | None = None


class ModuleOut(CamelModel):
    id: int
    code: str
    name: str
    description: str | None = None
    icon: str | None = None
    path: str | None = None
    parent_id: int | None = None
    order: int
    is_active: bool
    is_visible: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ModuleNode(ModuleOut):
    """Module with its children, for hierarchical listings."""

    children: list["ModuleNode"] = Field(default_factory=list)
