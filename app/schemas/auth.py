"""Request/response schemas for login, token refresh, logout, and session authorization."""

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import CamelModel


class Identity(BaseModel):
    """
    Authenticated caller, derived from the live user record for one request.

    Immutable; handlers receive it as a parameter instead of reading request state.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    roles: frozenset[str] = Field(default_factory=frozenset)


class LoginRequest(CamelModel):
    """Credentials for login. `username` accepts either the username or the email."""

    username: str = Field(..., min_length=3, max_length=255, description="Username or email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")
    app_code: str | None = Field(default=None, description="Calling application code")
    remember_me: bool | None = Field(default=None, description="Client-side hint only")


class UserSummary(CamelModel):
    """Sanitized user returned after login (no password hash)."""

    id: int
    username: str
    name: str
    email: str
    roles: list[str]


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class LoginData(CamelModel):
    user: UserSummary
    tokens: TokenPair


class RefreshData(CamelModel):
    access_token: str
    expires_in: int


class LogoutRequest(CamelModel):
    refresh_token: str | None = None


class ModulePermissions(CamelModel):
    """Aggregated capability flags on one module."""

    can_view: bool = False
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False
    can_view_all: bool = False
    can_download: bool = False
    can_approve: bool = False


class AuthorizeData(CamelModel):
    """Authorized token plus the permission map (module code -> flags)."""

    access_token: str
    permissions: dict[str, ModulePermissions]


class InternalUser(CamelModel):
    """User fields exposed to trusted internal callers."""

    id: int
    username: str
    name: str
    email: str
    is_active: bool
