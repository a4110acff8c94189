"""Unit tests for configuration reconciliation.

These tests verify that:
- Configured roles and permissions exist after a run
- Running twice changes nothing the second time
- Links from configuration are re-synced while manual links survive
- Orphans are deleted only on request, guarded by principal references
"""

from uuid import UUID

import pytest

from gatekeeper.core.constants import GrantSource
from gatekeeper.core.errors import (
    InUseError,
    PermissionNotFoundError,
    RoleNotFoundError,
    ValidationError,
)
from gatekeeper.core.permissions import PermissionStore, ReconciliationEngine
from gatekeeper.modules.authorization import RoleAssignmentService


pytestmark = pytest.mark.unit


ROLES = {
    "admin": ["assign_permission_to_user", "index_roles"],
    "member": [],
}


async def snapshot(store: PermissionStore) -> tuple[dict[str, list[str]], list[str]]:
    """Role -> permission names and all permission names currently stored."""
    roles = {role.name: role.permission_names for role in await store.list_roles()}
    permissions = [permission.name for permission in await store.list_permissions()]
    return roles, permissions


class TestReconcile:
    """Tests for additive reconciliation."""

    async def test_creates_configured_roles_and_permissions(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Every configured name exists with its permissions attached."""
        report = await reconciler.reconcile(ROLES, extra_permissions=["export_reports"])

        assert sorted(report.created_roles) == ["admin", "member"]
        assert report.created_permissions == [
            "assign_permission_to_user",
            "export_reports",
            "index_roles",
        ]
        assert report.attached == {"admin": ["assign_permission_to_user", "index_roles"]}

        admin = await store.find_role_by_name("admin")
        assert admin.permission_names == ["assign_permission_to_user", "index_roles"]
        member = await store.find_role_by_name("member")
        assert member.permission_names == []
        await store.find_permission_by_name("export_reports")

    async def test_config_links_are_marked(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Links created by reconciliation carry the config source."""
        await reconciler.reconcile(ROLES)

        links = await store.get_role_permissions("admin")
        assert set(links.values()) == {GrantSource.CONFIG}

    async def test_second_run_is_a_no_op(self, reconciler: ReconciliationEngine):
        """Reconciling the same input again reports no changes."""
        await reconciler.reconcile(ROLES)

        report = await reconciler.reconcile(ROLES)

        assert report.changed is False

    async def test_single_permission_shorthand(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A bare permission name stands for a one-element list."""
        await reconciler.reconcile({"reader": "read_articles"})

        role = await store.find_role_by_name("reader")
        assert role.permission_names == ["read_articles"]

    async def test_removed_role_keeps_existing_without_config_links(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Dropping a role from the config empties it but does not delete it."""
        await reconciler.reconcile({**ROLES, "somenewrole": ["somenewpermission"]})

        report = await reconciler.reconcile(ROLES)

        assert report.detached == {"somenewrole": ["somenewpermission"]}
        role = await store.find_role_by_name("somenewrole")
        assert role.permission_names == []
        await store.find_permission_by_name("somenewpermission")

    async def test_removed_permission_is_detached(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A permission dropped from a role's list is detached from it."""
        await reconciler.reconcile(ROLES)

        await reconciler.reconcile({"admin": ["index_roles"], "member": []})

        admin = await store.find_role_by_name("admin")
        assert admin.permission_names == ["index_roles"]

    async def test_manual_links_survive(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Permissions attached by hand are not removed by a plain run."""
        await reconciler.reconcile(ROLES, extra_permissions=["export_reports"])
        await store.attach_permissions_to_role("member", ["export_reports"])

        report = await reconciler.reconcile(ROLES, extra_permissions=["export_reports"])

        assert report.changed is False
        member = await store.find_role_by_name("member")
        assert member.permission_names == ["export_reports"]

    async def test_invalid_input_writes_nothing(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Malformed input is rejected before touching the store."""
        with pytest.raises(ValidationError) as exc_info:
            await reconciler.reconcile({"admin": [""]})

        assert exc_info.value.details["errors"]
        assert await store.list_roles() == []


class TestReconcileDeleteOrphans:
    """Tests for reconciliation with orphan deletion."""

    async def test_deletes_orphan_roles_and_permissions(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Unconfigured roles and permissions are deleted."""
        await reconciler.reconcile({**ROLES, "somenewrole": ["somenewpermission"]})

        report = await reconciler.reconcile(ROLES, delete_orphans=True)

        assert report.deleted_roles == ["somenewrole"]
        assert report.deleted_permissions == ["somenewpermission"]
        with pytest.raises(RoleNotFoundError):
            await store.find_role_by_name("somenewrole")
        assert {p.name for p in await store.list_permissions()} == {
            "assign_permission_to_user",
            "index_roles",
        }

    async def test_trims_manual_links(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Kept roles end up with exactly their configured permissions."""
        await reconciler.reconcile(ROLES)
        await store.attach_permissions_to_role("member", ["index_roles"])

        report = await reconciler.reconcile(ROLES, delete_orphans=True)

        assert report.detached == {"member": ["index_roles"]}
        member = await store.find_role_by_name("member")
        assert member.permission_names == []

    async def test_role_held_by_principal_is_in_use(
        self, reconciler: ReconciliationEngine, store: PermissionStore, user_id: UUID
    ):
        """An orphan role still assigned blocks deletion unless cascading."""
        await reconciler.reconcile({**ROLES, "legacy": []})
        await store.assign_role_to_user(user_id, "legacy")

        with pytest.raises(InUseError):
            await reconciler.reconcile(ROLES, delete_orphans=True)
        assert await store.principal_has_role(user_id, "legacy") is True

        report = await reconciler.reconcile(ROLES, delete_orphans=True, cascade=True)

        assert report.deleted_roles == ["legacy"]
        assert await store.get_principal_roles(user_id) == set()

    async def test_permission_granted_to_principal_is_in_use(
        self, reconciler: ReconciliationEngine, store: PermissionStore, user_id: UUID
    ):
        """An orphan permission still granted directly blocks deletion."""
        await reconciler.reconcile(ROLES, extra_permissions=["legacy_permission"])
        await store.grant_permission_to_user(user_id, "legacy_permission")

        with pytest.raises(InUseError) as exc_info:
            await reconciler.reconcile(ROLES, delete_orphans=True)

        assert exc_info.value.details["resource_id"] == "legacy_permission"

    async def test_result_matches_configuration(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """After a deleting run the store mirrors the configuration."""
        await reconciler.reconcile({"a": ["x", "y"], "b": "z"}, extra_permissions=["w"])
        await store.attach_permissions_to_role("b", ["x"])

        await reconciler.reconcile(ROLES, delete_orphans=True)

        roles = {role.name: role.permission_names for role in await store.list_roles()}
        assert roles == {
            "admin": ["assign_permission_to_user", "index_roles"],
            "member": [],
        }


class TestReconcileProperties:
    """Tests for the reconciliation guarantees end to end."""

    async def test_role_lifecycle(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A role is created, trimmed, emptied and finally deleted."""
        await reconciler.reconcile(
            {"somenewrole": ["somepermission", "somepermission2"]}, delete_orphans=True
        )
        role = await store.find_role_by_name("somenewrole")
        assert role.permission_names == ["somepermission", "somepermission2"]

        await reconciler.reconcile(
            {"somenewrole": ["somepermission2"]},
            extra_permissions=["somepermission"],
            delete_orphans=True,
        )
        role = await store.find_role_by_name("somenewrole")
        assert role.permission_names == ["somepermission2"]
        await store.find_permission_by_name("somepermission")

        await reconciler.reconcile({})
        role = await store.find_role_by_name("somenewrole")
        assert role.permission_names == []

        report = await reconciler.reconcile({}, delete_orphans=True)

        assert report.deleted_roles == ["somenewrole"]
        with pytest.raises(RoleNotFoundError):
            await store.find_role_by_name("somenewrole")
        with pytest.raises(PermissionNotFoundError):
            await store.find_permission_by_name("somepermission")
        with pytest.raises(PermissionNotFoundError):
            await store.find_permission_by_name("somepermission2")

    async def test_empty_config_removes_nothing(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """Without delete_orphans every existing role and permission survives."""
        await reconciler.reconcile(ROLES, extra_permissions=["export_reports"])
        roles_before, permissions_before = await snapshot(store)

        report = await reconciler.reconcile({})

        roles_after, permissions_after = await snapshot(store)
        assert set(roles_after) == set(roles_before)
        assert permissions_after == permissions_before
        assert report.deleted_roles == []
        assert report.deleted_permissions == []

    async def test_deleting_run_twice_is_a_no_op(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A repeated deleting run leaves the same state and reports nothing."""
        await reconciler.reconcile({"legacy": ["old_permission"]})
        await reconciler.reconcile(ROLES, extra_permissions=["export_reports"], delete_orphans=True)
        state = await snapshot(store)

        report = await reconciler.reconcile(
            ROLES, extra_permissions=["export_reports"], delete_orphans=True
        )

        assert report.changed is False
        assert await snapshot(store) == state

    async def test_removed_permission_kept_by_extras(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A permission dropped from a role survives while listed standalone."""
        await reconciler.reconcile({"editor": ["publish", "review"]})

        report = await reconciler.reconcile(
            {"editor": ["review"]}, extra_permissions=["publish"], delete_orphans=True
        )

        editor = await store.find_role_by_name("editor")
        assert editor.permission_names == ["review"]
        assert report.deleted_permissions == []
        await store.find_permission_by_name("publish")

    async def test_removed_permission_kept_by_another_role(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A permission dropped from one role survives while another role has it."""
        await reconciler.reconcile({"editor": ["publish"], "author": ["publish"]})

        await reconciler.reconcile({"editor": [], "author": ["publish"]}, delete_orphans=True)

        editor = await store.find_role_by_name("editor")
        author = await store.find_role_by_name("author")
        assert editor.permission_names == []
        assert author.permission_names == ["publish"]

    async def test_removed_permission_referenced_nowhere_is_deleted(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A permission no longer listed anywhere is deleted."""
        await reconciler.reconcile({"editor": ["publish", "review"]})

        report = await reconciler.reconcile({"editor": ["review"]}, delete_orphans=True)

        assert report.deleted_permissions == ["publish"]
        with pytest.raises(PermissionNotFoundError):
            await store.find_permission_by_name("publish")

    async def test_single_extra_permission(
        self, reconciler: ReconciliationEngine, store: PermissionStore
    ):
        """A bare string of extra permissions is one permission name."""
        report = await reconciler.reconcile({}, "export")

        assert report.created_permissions == ["export"]
        assert [p.name for p in await store.list_permissions()] == ["export"]


class TestReconcileAfterAdministrativeGrant:
    """Tests for links an administrator attached over configured ones."""

    async def test_admin_grant_survives_config_removal(
        self, reconciler: ReconciliationEngine, store: PermissionStore, user_id: UUID
    ):
        """Re-granting a configured permission makes it outlive the configuration."""
        await reconciler.reconcile(
            {"admin": ["assign_permission_to_role"], "editor": ["publish"]}
        )
        await store.assign_role_to_user(user_id, "admin")
        service = RoleAssignmentService(store)

        await service.assign_permissions_to_role(user_id, "editor", ["publish"])
        assert await store.get_role_permissions("editor") == {"publish": GrantSource.MANUAL}

        report = await reconciler.reconcile(
            {"admin": ["assign_permission_to_role"], "editor": []},
            extra_permissions=["publish"],
        )

        assert report.detached == {}
        editor = await store.find_role_by_name("editor")
        assert editor.permission_names == ["publish"]

    async def test_admin_grant_trimmed_by_deleting_run(
        self, reconciler: ReconciliationEngine, store: PermissionStore, user_id: UUID
    ):
        """A deleting run still trims the role to its configured permissions."""
        await reconciler.reconcile(
            {"admin": ["assign_permission_to_role"], "editor": ["publish"]}
        )
        await store.assign_role_to_user(user_id, "admin")
        await RoleAssignmentService(store).assign_permissions_to_role(
            user_id, "editor", ["publish"]
        )

        await reconciler.reconcile(
            {"admin": ["assign_permission_to_role"], "editor": []},
            extra_permissions=["publish"],
            delete_orphans=True,
        )

        editor = await store.find_role_by_name("editor")
        assert editor.permission_names == []
