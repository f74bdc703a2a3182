"""Login, token refresh, logout, session authorization, password flows, internal user lookup."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from app.api.v1.deps import (
    get_client_ip,
    get_current_identity,
    get_pre_authorized_identity,
    require_internal_key,
)
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.models import User
from app.schemas.auth import (
    AuthorizeData,
    Identity,
    InternalUser,
    LoginData,
    LoginRequest,
    LogoutRequest,
    RefreshData,
)
from app.schemas.common import ApiResponse
from app.schemas.password import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from app.services import auth as auth_service
from app.services import password as password_service
from app.services.authorization import authorize_session

router = APIRouter()


@router.post("/login", response_model=ApiResponse[LoginData])
def login(
    body: LoginRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[LoginData]:
    """
    Authenticate with username (or email) and password.

    Returns a pre-authorized access token; call GET /auth/authorize with it to
    obtain the authorized token and the permission map.
    """
    data = auth_service.login(
        db,
        body,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        cfg=cfg,
    )
    return ApiResponse[LoginData](message="Login successful", data=data)


@router.post("/logout", response_model=ApiResponse[None])
def logout(
    body: LogoutRequest,
    db: Annotated[Session, Depends(get_db)],
    _identity: Annotated[Identity, Depends(get_current_identity)],
) -> ApiResponse[None]:
    """Revoke the given refresh token. Unknown or missing tokens still succeed."""
    auth_service.logout(db, body.refresh_token)
    return ApiResponse[None](message="Logout successful")


@router.get("/token/refresh", response_model=ApiResponse[RefreshData])
def refresh_token(
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
    x_refresh_token: Annotated[str | None, Header()] = None,
) -> ApiResponse[RefreshData]:
    """Issue a new pre-authorized access token from the refresh token in x-refresh-token."""
    data = auth_service.refresh_auth(db, x_refresh_token, cfg)
    return ApiResponse[RefreshData](message="Token refreshed", data=data)


@router.get("/authorize", response_model=ApiResponse[AuthorizeData])
def authorize(
    identity: Annotated[Identity, Depends(get_pre_authorized_identity)],
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[AuthorizeData]:
    """Exchange a pre-authorized token for an authorized one plus module permissions."""
    data = authorize_session(db, identity, cfg)
    return ApiResponse[AuthorizeData](message="Session authorized", data=data)


@router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[None]:
    await password_service.forgot_password(db, body.email, cfg)
    return ApiResponse[None](message=password_service.FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=ApiResponse[None])
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[None]:
    password_service.reset_password(
        db, body.token, body.new_password, body.confirm_password, cfg
    )
    return ApiResponse[None](message="Password has been reset successfully")


@router.post("/change-password", response_model=ApiResponse[None])
def change_password(
    body: ChangePasswordRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[None]:
    password_service.change_password(
        db,
        identity,
        body.current_password,
        body.new_password,
        body.confirm_password,
        cfg,
    )
    return ApiResponse[None](message="Password changed successfully")


@router.get(
    "/internal/user/{user_id}",
    response_model=ApiResponse[InternalUser],
    dependencies=[Depends(require_internal_key)],
)
def get_user_for_internal(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[InternalUser]:
    """User lookup for trusted services; guarded by x-internal-key, not a user token."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return ApiResponse[InternalUser](message="User found", data=InternalUser.model_validate(user))
