"""Module management: flat and hierarchical listing, create, update, soft delete."""

from sqlalchemy.orm import Session

from app.core.database import transaction
from app.core.errors import NotFoundError, ValidationFailedError
from app.models import Module
from app.models.base import utcnow
from app.schemas.module import ModuleCreate, ModuleNode, ModuleOut, ModuleUpdate

# Update fields that may be explicitly cleared with null; parent_id null moves a module to the root.
CLEARABLE_FIELDS = frozenset({"description", "icon", "path", "parent_id"})


def _get_live_module(db: Session, module_id: int) -> Module:
    module = db.get(Module, module_id)
    if module is None or module.deleted_at is not None:
        raise NotFoundError("Module not found")
    return module


def _is_ancestor(db: Session, module_id: int, start_id: int) -> bool:
    """True if module_id appears on the parent chain starting at start_id."""
    seen: set[int] = set()
    current: int | None = start_id
    while current is not None and current not in seen:
        if current == module_id:
            return True
        seen.add(current)
        current = db.query(Module.parent_id).filter(Module.id == current).scalar()
    return False


def build_hierarchy(modules: list[ModuleOut]) -> list[ModuleNode]:
    """
    Arrange modules into a tree by parent_id, keeping input order among siblings.

    Modules whose parent is not in the list are treated as roots.
    """
    nodes = {m.id: ModuleNode(**m.model_dump()) for m in modules}
    roots: list[ModuleNode] = []
    for m in modules:
        node = nodes[m.id]
        parent = nodes.get(m.parent_id) if m.parent_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def list_modules(
    db: Session,
    hierarchical: bool = False,
    include_inactive: bool = False,
) -> list[ModuleNode]:
    """Non-deleted modules ordered by `order`; flat listings carry empty children."""
    query = db.query(Module).filter(Module.deleted_at.is_(None))
    if not include_inactive:
        query = query.filter(Module.is_active.is_(True))
    modules = [ModuleOut.model_validate(m) for m in query.order_by(Module.order, Module.id).all()]
    if hierarchical:
        return build_hierarchy(modules)
    return [ModuleNode(**m.model_dump()) for m in modules]


def create_module(db: Session, body: ModuleCreate, actor_id: int) -> ModuleOut:
    if db.query(Module).filter(Module.code == body.code).first() is not None:
        raise ValidationFailedError("Module code already exists")
    if body.parent_id is not None:
        _get_live_module(db, body.parent_id)
    module = Module(**body.model_dump(), created_by=actor_id)
    with transaction(db):
        db.add(module)
    db.refresh(module)
    return ModuleOut.model_validate(module)


def update_module(db: Session, module_id: int, body: ModuleUpdate, actor_id: int) -> ModuleOut:
    module = _get_live_module(db, module_id)
    changes = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field in CLEARABLE_FIELDS
    }
    parent_id = changes.get("parent_id")
    if parent_id is not None:
        if parent_id == module_id:
            raise ValidationFailedError("A module cannot be its own parent")
        _get_live_module(db, parent_id)
        if _is_ancestor(db, module_id, parent_id):
            raise ValidationFailedError("A module cannot be its own ancestor")
    with transaction(db):
        for field, value in changes.items():
            setattr(module, field, value)
        module.updated_by = actor_id
    db.refresh(module)
    return ModuleOut.model_validate(module)


def delete_module(db: Session, module_id: int, actor_id: int) -> None:
    """Soft delete: stamp deleted_at and deactivate."""
    module = _get_live_module(db, module_id)
    with transaction(db):
        module.deleted_at = utcnow()
        module.is_active = False
        module.updated_by = actor_id
