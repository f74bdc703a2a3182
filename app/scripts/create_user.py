"""
Create a user and optionally seed the SUPERADMIN role and default modules. Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [--name NAME] [--role CODE ...] [--seed]
Example (first administrator):
  python -m app.scripts.create_user admin admin@example.com 'S3cure!pass' --role SUPERADMIN --seed
"""
import argparse
import logging
import sys

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import SessionLocal, transaction
from app.core.security import hash_password, password_meets_policy
from app.models import Module, ModuleAccess, Role, User, UserRole
from app.models.role import ACCESS_FLAGS
from app.services.session import SUPERADMIN_ROLE

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

DEFAULT_MODULES = (
    {"code": "DASHBOARD", "name": "Dashboard", "icon": "LayoutDashboard", "path": "/dashboard", "order": 1},
    {"code": "ROLES", "name": "Role Management", "icon": "Shield", "path": "/master/roles", "order": 2},
    {"code": "MODULES", "name": "Module Management", "icon": "Package", "path": "/master/modules", "order": 3},
    {"code": "USERS", "name": "User Management", "icon": "Users", "path": "/master/users", "order": 4},
)


def seed_defaults(db: Session) -> None:
    """Upsert the SUPERADMIN system role, default modules, and full access for SUPERADMIN."""
    with transaction(db):
        role = db.query(Role).filter(Role.code == SUPERADMIN_ROLE).first()
        if role is None:
            role = Role(
                code=SUPERADMIN_ROLE,
                name="Super Administrator",
                description="Full access to all modules",
                level=100,
                is_system=True,
            )
            db.add(role)
            db.flush()

        for defaults in DEFAULT_MODULES:
            module = db.query(Module).filter(Module.code == defaults["code"]).first()
            if module is None:
                module = Module(**defaults)
                db.add(module)
                db.flush()
            access = (
                db.query(ModuleAccess)
                .filter(ModuleAccess.role_id == role.id, ModuleAccess.module_id == module.id)
                .first()
            )
            if access is None:
                access = ModuleAccess(role_id=role.id, module_id=module.id)
                db.add(access)
            for flag in ACCESS_FLAGS:
                setattr(access, flag, True)
    logger.info("Seeded %s role and %d default modules.", SUPERADMIN_ROLE, len(DEFAULT_MODULES))


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a user (no registration UI).")
    parser.add_argument("username", help="Username (3-255 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password; must satisfy the configured strength policy")
    parser.add_argument("--name", default="", help="Display name")
    parser.add_argument("--role", action="append", default=[], help="Role code to assign (repeatable)")
    parser.add_argument("--seed", action="store_true", help="Seed SUPERADMIN role and default modules first")
    args = parser.parse_args()

    username = args.username.strip()
    email = args.email.strip()
    if len(username) < 3 or len(username) > 255:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if "@" not in email:
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not password_meets_policy(args.password, get_settings()):
        print("Password is too weak.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if args.seed:
            seed_defaults(db)

        existing = db.query(User).filter((User.username == username) | (User.email == email)).first()
        if existing:
            print(f"User '{username}' or email '{email}' already exists.", file=sys.stderr)
            return 1

        codes = sorted({code.strip().upper() for code in args.role if code.strip()})
        roles = db.query(Role).filter(Role.code.in_(codes), Role.deleted_at.is_(None)).all() if codes else []
        missing = set(codes) - {r.code for r in roles}
        if missing:
            print(f"Unknown role code(s): {', '.join(sorted(missing))}", file=sys.stderr)
            return 1

        with transaction(db):
            user = User(
                username=username,
                email=email,
                name=args.name or username,
                password=hash_password(args.password),
                is_email_verified=True,
            )
            db.add(user)
            db.flush()
            for role in roles:
                db.add(UserRole(user_id=user.id, role_id=role.id))
        print(f"Created user '{username}' with roles {codes or '[]'}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
