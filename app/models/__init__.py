"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.role import Module, ModuleAccess, Role
from app.models.token import LoginHistory, LoginStatus, PasswordResetToken, RefreshToken
from app.models.user import PasswordHistory, User, UserRole

__all__ = [
    "Base",
    "LoginHistory",
    "LoginStatus",
    "Module",
    "ModuleAccess",
    "PasswordHistory",
    "PasswordResetToken",
    "RefreshToken",
    "Role",
    "User",
    "UserRole",
]
