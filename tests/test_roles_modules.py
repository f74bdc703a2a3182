"""Tests for role and module management services and their routes."""

import unittest

from app.core.errors import ForbiddenError, NotFoundError, ValidationFailedError
from app.models import ModuleAccess, Role
from app.schemas.module import ModuleCreate, ModuleOut, ModuleUpdate
from app.schemas.role import ModuleAccessGrant, RoleCreate, RoleUpdate
from app.services import modules as module_service
from app.services import roles as role_service
from tests.support import (
    add_module,
    add_role,
    add_user,
    clear_overrides,
    grant,
    make_client,
    make_session_factory,
    make_settings,
)


class TestRoleService(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.system = add_role(self.db, "SUPERADMIN", is_system=True)

    def tearDown(self) -> None:
        self.db.close()

    def test_create_normalizes_code_and_rejects_duplicates(self) -> None:
        role = role_service.create_role(self.db, RoleCreate(code=" auditor ", name="Auditor"), actor_id=1)
        self.assertEqual(role.code, "AUDITOR")
        self.assertFalse(role.is_system)
        with self.assertRaises(ValidationFailedError):
            role_service.create_role(self.db, RoleCreate(code="AUDITOR", name="Again"), actor_id=1)

    def test_system_roles_are_protected(self) -> None:
        with self.assertRaises(ForbiddenError):
            role_service.update_role(self.db, self.system.id, RoleUpdate(name="Renamed"), actor_id=1)
        with self.assertRaises(ForbiddenError):
            role_service.delete_role(self.db, self.system.id, actor_id=1)

    def test_update_only_touches_given_fields(self) -> None:
        role = add_role(self.db, "STAFF")
        out = role_service.update_role(self.db, role.id, RoleUpdate(level=10), actor_id=3)
        self.assertEqual(out.level, 10)
        self.assertEqual(out.name, "Staff role")
        self.assertEqual(self.db.get(Role, role.id).updated_by, 3)

    def test_soft_delete_hides_role(self) -> None:
        role = add_role(self.db, "TEMP")
        role_service.delete_role(self.db, role.id, actor_id=1)

        row = self.db.get(Role, role.id)
        self.assertIsNotNone(row.deleted_at)
        self.assertFalse(row.is_active)
        codes = [r.code for r in role_service.list_roles(self.db).items]
        self.assertNotIn("TEMP", codes)
        with self.assertRaises(NotFoundError):
            role_service.delete_role(self.db, role.id, actor_id=1)

    def test_list_paging_and_search(self) -> None:
        for code in ("ALPHA", "BETA", "GAMMA"):
            add_role(self.db, code)

        page = role_service.list_roles(self.db, offset=0, limit=2)
        self.assertEqual(len(page.items), 2)
        self.assertEqual(page.pagination.total, 4)
        self.assertEqual(page.pagination.total_pages, 2)

        found = role_service.list_roles(self.db, search="bet")
        self.assertEqual([r.code for r in found.items], ["BETA"])

        clamped = role_service.list_roles(self.db, offset=-5, limit=1000)
        self.assertEqual(clamped.pagination.offset, 0)
        self.assertEqual(clamped.pagination.limit, role_service.MAX_PAGE_LIMIT)

    def test_set_module_access_upserts(self) -> None:
        role = add_role(self.db, "STAFF")
        reports = add_module(self.db, "REPORTS")
        billing = add_module(self.db, "BILLING", order=1)
        grant(self.db, role, reports, can_view=True)

        out = role_service.set_module_access(
            self.db,
            role.id,
            [
                ModuleAccessGrant(module_id=reports.id, can_create=True),
                ModuleAccessGrant(module_id=billing.id, can_view=True),
            ],
        )

        self.assertEqual(self.db.query(ModuleAccess).count(), 2)
        by_code = {a.module_code: a for a in out}
        self.assertFalse(by_code["REPORTS"].can_view)
        self.assertTrue(by_code["REPORTS"].can_create)
        self.assertTrue(by_code["BILLING"].can_view)

    def test_set_module_access_unknown_module(self) -> None:
        role = add_role(self.db, "STAFF")
        with self.assertRaises(NotFoundError):
            role_service.set_module_access(self.db, role.id, [ModuleAccessGrant(module_id=404)])
        self.assertEqual(self.db.query(ModuleAccess).count(), 0)


class TestModuleService(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()

    def test_hierarchical_listing(self) -> None:
        master = add_module(self.db, "MASTER", order=1)
        add_module(self.db, "ROLES", parent=master, order=2)
        add_module(self.db, "USERS", parent=master, order=1)
        add_module(self.db, "DASHBOARD", order=0)
        add_module(self.db, "LEGACY", order=5, is_active=False)

        tree = module_service.list_modules(self.db, hierarchical=True)
        self.assertEqual([n.code for n in tree], ["DASHBOARD", "MASTER"])
        self.assertEqual([c.code for c in tree[1].children], ["USERS", "ROLES"])

        flat = module_service.list_modules(self.db)
        self.assertEqual(len(flat), 4)
        self.assertTrue(all(n.children == [] for n in flat))

        everything = module_service.list_modules(self.db, include_inactive=True)
        self.assertIn("LEGACY", [n.code for n in everything])

    def test_reparenting_cannot_create_a_cycle(self) -> None:
        first = add_module(self.db, "AAA")
        second = add_module(self.db, "BBB")
        third = add_module(self.db, "CCC")
        module_service.update_module(self.db, first.id, ModuleUpdate(parent_id=second.id), actor_id=1)
        module_service.update_module(self.db, second.id, ModuleUpdate(parent_id=third.id), actor_id=1)

        for child_id in (second.id, first.id):
            with self.assertRaises(ValidationFailedError) as ctx:
                module_service.update_module(self.db, third.id, ModuleUpdate(parent_id=child_id), actor_id=1)
            self.assertEqual(ctx.exception.message, "A module cannot be its own ancestor")

        tree = module_service.list_modules(self.db, hierarchical=True)
        self.assertEqual([n.code for n in tree], ["CCC"])
        self.assertEqual(tree[0].children[0].children[0].code, "AAA")

    def test_orphans_become_roots(self) -> None:
        rows = [
            ModuleOut(id=2, code="CHILD", name="Child", parent_id=99, order=0, is_active=True, is_visible=True),
        ]
        self.assertEqual([n.code for n in module_service.build_hierarchy(rows)], ["CHILD"])

    def test_create_update_delete(self) -> None:
        parent = module_service.create_module(self.db, ModuleCreate(code="master", name="Master"), actor_id=1)
        self.assertEqual(parent.code, "MASTER")
        child = module_service.create_module(
            self.db, ModuleCreate(code="ROLES", name="Roles", parent_id=parent.id), actor_id=1
        )
        self.assertEqual(child.parent_id, parent.id)

        with self.assertRaises(ValidationFailedError):
            module_service.create_module(self.db, ModuleCreate(code="ROLES", name="Dup"), actor_id=1)
        with self.assertRaises(NotFoundError):
            module_service.create_module(self.db, ModuleCreate(code="X1", name="Xxx", parent_id=999), actor_id=1)
        with self.assertRaises(ValidationFailedError):
            module_service.update_module(self.db, child.id, ModuleUpdate(parent_id=child.id), actor_id=1)

        updated = module_service.update_module(self.db, child.id, ModuleUpdate(order=4), actor_id=2)
        self.assertEqual(updated.order, 4)

        module_service.delete_module(self.db, child.id, actor_id=1)
        codes = [m.code for m in module_service.list_modules(self.db, include_inactive=True)]
        self.assertEqual(codes, ["MASTER"])


class TestManagementRoutes(unittest.TestCase):
    def setUp(self) -> None:
        from app.core.security import create_access_token

        session_factory = make_session_factory()
        db = session_factory()
        try:
            superadmin = add_role(db, "SUPERADMIN", is_system=True)
            admin = add_role(db, "ADMIN")
            add_module(db, "REPORTS")
            root_id = add_user(db, "root", roles=[superadmin]).id
            alice_id = add_user(db, "alice", roles=[admin]).id
        finally:
            db.close()
        settings = make_settings()
        self.client = make_client(session_factory, settings)

        def token(user_id: int, username: str) -> dict[str, str]:
            access = create_access_token(
                {"id": user_id, "username": username, "roles": [], "isAuthorized": True}, settings
            )
            return {"Authorization": f"Bearer {access}"}

        self.root = token(root_id, "root")
        self.alice = token(alice_id, "alice")

    def tearDown(self) -> None:
        clear_overrides()

    def test_role_writes_need_superadmin(self) -> None:
        body = {"code": "auditor", "name": "Auditor"}
        self.assertEqual(self.client.post("/api/v1/roles", json=body, headers=self.alice).status_code, 403)

        resp = self.client.post("/api/v1/roles", json=body, headers=self.root)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["data"]["code"], "AUDITOR")
        self.assertEqual(resp.json()["message"], "Role created")

    def test_system_role_delete_is_forbidden(self) -> None:
        listing = self.client.get("/api/v1/roles", headers=self.alice).json()["data"]
        superadmin = next(r for r in listing["items"] if r["code"] == "SUPERADMIN")
        self.assertIs(superadmin["isSystem"], True)

        resp = self.client.delete(f"/api/v1/roles/{superadmin['id']}", headers=self.root)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "System roles cannot be deleted")

    def test_paging_headers(self) -> None:
        resp = self.client.get(
            "/api/v1/roles",
            headers={**self.alice, "x-paging-limit": "1", "x-paging-search": "admin"},
        )
        data = resp.json()["data"]
        self.assertEqual(data["pagination"]["limit"], 1)
        self.assertEqual(data["pagination"]["totalPages"], 2)
        self.assertEqual(len(data["items"]), 1)

    def test_role_access_roundtrip_through_routes(self) -> None:
        modules = self.client.get("/api/v1/modules", headers=self.alice).json()["data"]
        reports_id = modules[0]["id"]
        roles = self.client.get("/api/v1/roles", headers=self.root).json()["data"]["items"]
        admin_id = next(r["id"] for r in roles if r["code"] == "ADMIN")

        resp = self.client.put(
            f"/api/v1/roles/{admin_id}/access",
            json={"grants": [{"moduleId": reports_id, "canView": True, "canApprove": True}]},
            headers=self.root,
        )
        self.assertEqual(resp.status_code, 200)
        access = resp.json()["data"]
        self.assertEqual(access[0]["moduleCode"], "REPORTS")
        self.assertIs(access[0]["canApprove"], True)
        self.assertIs(access[0]["canDelete"], False)

    def test_modules_hierarchical_query(self) -> None:
        resp = self.client.get("/api/v1/modules?hierarchical=true", headers=self.alice)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Modules retrieved (hierarchical)")
        self.assertEqual(resp.json()["data"][0]["children"], [])


if __name__ == "__main__":
    unittest.main()
