"""Role management and role -> module access grants."""

import math

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.database import transaction
from app.core.errors import ForbiddenError, NotFoundError, ValidationFailedError
from app.models import Module, ModuleAccess, Role
from app.models.base import utcnow
from app.models.role import ACCESS_FLAGS
from app.schemas.common import Pagination
from app.schemas.role import (
    ModuleAccessGrant,
    ModuleAccessOut,
    RoleCreate,
    RoleList,
    RoleOut,
    RoleUpdate,
)

DEFAULT_PAGE_LIMIT = 25
MAX_PAGE_LIMIT = 100
# Update fields that may be explicitly cleared with null.
CLEARABLE_FIELDS = frozenset({"description"})


def _get_live_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None or role.deleted_at is not None:
        raise NotFoundError("Role not found")
    return role


def list_roles(db: Session, offset: int = 0, limit: int = DEFAULT_PAGE_LIMIT, search: str | None = None) -> RoleList:
    """Non-deleted roles, newest first, optionally filtered by name/code substring."""
    offset = max(0, offset)
    limit = max(1, min(MAX_PAGE_LIMIT, limit))
    query = db.query(Role).filter(Role.deleted_at.is_(None))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Role.name.ilike(pattern), Role.code.ilike(pattern)))

    total = query.count()
    items = query.order_by(Role.created_at.desc(), Role.id.desc()).offset(offset).limit(limit).all()
    return RoleList(
        items=[RoleOut.model_validate(r) for r in items],
        pagination=Pagination(
            offset=offset,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


def create_role(db: Session, body: RoleCreate, actor_id: int) -> RoleOut:
    existing = db.query(Role).filter(Role.code == body.code).first()
    if existing is not None:
        raise ValidationFailedError("Role code already exists")
    role = Role(
        code=body.code,
        name=body.name,
        description=body.description,
        level=body.level,
        is_active=body.is_active,
        created_by=actor_id,
    )
    with transaction(db):
        db.add(role)
    db.refresh(role)
    return RoleOut.model_validate(role)


def update_role(db: Session, role_id: int, body: RoleUpdate, actor_id: int) -> RoleOut:
    role = _get_live_role(db, role_id)
    if role.is_system:
        raise ForbiddenError("System roles cannot be modified")
    with transaction(db):
        for field, value in body.model_dump(exclude_unset=True).items():
            if value is None and field not in CLEARABLE_FIELDS:
                continue
            setattr(role, field, value)
        role.updated_by = actor_id
    db.refresh(role)
    return RoleOut.model_validate(role)


def delete_role(db: Session, role_id: int, actor_id: int) -> None:
    """Soft delete: stamp deleted_at and deactivate."""
    role = _get_live_role(db, role_id)
    if role.is_system:
        raise ForbiddenError("System roles cannot be deleted")
    with transaction(db):
        role.deleted_at = utcnow()
        role.is_active = False
        role.updated_by = actor_id


def _access_out(grant: ModuleAccess, module_code: str) -> ModuleAccessOut:
    return ModuleAccessOut(
        id=grant.id,
        role_id=grant.role_id,
        module_id=grant.module_id,
        module_code=module_code,
        **{flag: bool(getattr(grant, flag)) for flag in ACCESS_FLAGS},
    )


def list_module_access(db: Session, role_id: int) -> list[ModuleAccessOut]:
    _get_live_role(db, role_id)
    rows = (
        db.query(ModuleAccess, Module.code)
        .join(Module, ModuleAccess.module_id == Module.id)
        .filter(ModuleAccess.role_id == role_id)
        .order_by(Module.order, Module.id)
        .all()
    )
    return [_access_out(grant, code) for grant, code in rows]


def set_module_access(db: Session, role_id: int, grants: list[ModuleAccessGrant]) -> list[ModuleAccessOut]:
    """Upsert one grant row per (role, module); modules not listed are left untouched."""
    _get_live_role(db, role_id)
    module_ids = {g.module_id for g in grants}
    known: set[int] = set()
    if module_ids:
        modules = db.query(Module).filter(Module.id.in_(module_ids), Module.deleted_at.is_(None)).all()
        known = {m.id for m in modules}
    unknown = sorted(module_ids - known)
    if unknown:
        raise NotFoundError(f"Module not found: {', '.join(str(i) for i in unknown)}")

    existing = {
        row.module_id: row
        for row in db.query(ModuleAccess).filter(ModuleAccess.role_id == role_id).all()
    }
    with transaction(db):
        for grant in grants:
            row = existing.get(grant.module_id)
            if row is None:
                row = ModuleAccess(role_id=role_id, module_id=grant.module_id)
                db.add(row)
                existing[grant.module_id] = row
            for flag in ACCESS_FLAGS:
                setattr(row, flag, getattr(grant, flag))
    return list_module_access(db, role_id)
