"""Request schemas for the forgot/reset/change password flows."""

from pydantic import Field

from app.schemas.common import CamelModel


class ForgotPasswordRequest(CamelModel):
    email: str | None = Field(default=None, max_length=255)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., max_length=128)
    confirm_password: str = Field(..., max_length=128)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., max_length=128)
    confirm_password: str = Field(..., max_length=128)
