"""Shared helpers: in-memory SQLite database, seed data, and an API client wired to it."""

from datetime import UTC, datetime

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import get_db
from app.core.security import hash_password
from app.models import Base, Module, ModuleAccess, Role, User, UserRole

DEFAULT_PASSWORD = "Password123!"


def make_settings(**overrides: object) -> Settings:
    """Settings isolated from the environment, with optional overrides."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "INTERNAL_API_KEY": "test-internal-key",
        "NOTIFICATION_SERVICE_URL": "http://notifications.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker:
    """
    Fresh in-memory database shared by every connection (StaticPool), so the
    TestClient's worker threads see the same schema and rows.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_client(session_factory: sessionmaker, settings: Settings | None = None) -> TestClient:
    """TestClient for the app with get_db (and optionally settings) overridden."""
    from app.core.config import get_settings
    from app.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    if settings is not None:
        app.dependency_overrides[get_settings] = lambda: settings
    else:
        app.dependency_overrides.pop(get_settings, None)
    return TestClient(app, raise_server_exceptions=False)


def clear_overrides() -> None:
    from app.main import app

    app.dependency_overrides.clear()


def add_role(db: Session, code: str, *, is_system: bool = False, is_active: bool = True) -> Role:
    role = Role(code=code, name=f"{code.title()} role", is_system=is_system, is_active=is_active)
    db.add(role)
    db.commit()
    return role


def add_module(
    db: Session,
    code: str,
    *,
    parent: Module | None = None,
    order: int = 0,
    is_active: bool = True,
) -> Module:
    module = Module(
        code=code,
        name=f"{code.title()} module",
        parent_id=parent.id if parent else None,
        order=order,
        is_active=is_active,
    )
    db.add(module)
    db.commit()
    return module


def grant(db: Session, role: Role, module: Module, **flags: bool) -> ModuleAccess:
    access = ModuleAccess(role_id=role.id, module_id=module.id, **flags)
    db.add(access)
    db.commit()
    return access


def add_user(
    db: Session,
    username: str = "testuser",
    *,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    roles: list[Role] | None = None,
    is_active: bool = True,
    failed_login_attempts: int = 0,
    locked_until: datetime | None = None,
) -> User:
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        name=username.title(),
        password=hash_password(password),
        is_active=is_active,
        failed_login_attempts=failed_login_attempts,
        locked_until=locked_until,
    )
    db.add(user)
    db.flush()
    for role in roles or []:
        db.add(UserRole(user_id=user.id, role_id=role.id))
    db.commit()
    return user


def aware(value: datetime | None) -> datetime | None:
    """SQLite returns naive datetimes; compare everything in UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
