"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthorizeData,
    Identity,
    InternalUser,
    LoginData,
    LoginRequest,
    LogoutRequest,
    ModulePermissions,
    RefreshData,
    TokenPair,
    UserSummary,
)
from app.schemas.common import ApiResponse, CamelModel, ErrorResponse, Pagination
from app.schemas.health import HealthResponse
from app.schemas.module import ModuleCreate, ModuleNode, ModuleOut, ModuleUpdate
from app.schemas.password import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from app.schemas.role import (
    ModuleAccessGrant,
    ModuleAccessOut,
    ModuleAccessUpdate,
    RoleCreate,
    RoleList,
    RoleOut,
    RoleUpdate,
)

__all__ = [
    "ApiResponse",
    "AuthorizeData",
    "CamelModel",
    "ChangePasswordRequest",
    "ErrorResponse",
    "ForgotPasswordRequest",
    "HealthResponse",
    "Identity",
    "InternalUser",
    "LoginData",
    "LoginRequest",
    "LogoutRequest",
    "ModuleAccessGrant",
    "ModuleAccessOut",
    "ModuleAccessUpdate",
    "ModuleCreate",
    "ModuleNode",
    "ModuleOut",
    "ModulePermissions",
    "ModuleUpdate",
    "Pagination",
    "RefreshData",
    "ResetPasswordRequest",
    "RoleCreate",
    "RoleList",
    "RoleOut",
    "RoleUpdate",
    "TokenPair",
    "UserSummary",
]
