"""Reconciliation of declarative role/permission configuration into the store.

A run brings the persisted roles and permissions into correspondence with
an ``AuthorizationConfig``:

- every configured permission and role exists afterwards, and every role
  holds its configured permissions;
- links previously attached from configuration but no longer listed are
  detached, while links attached by administrative actions are kept;
- with ``delete_orphans`` roles and permissions absent from the
  configuration are deleted and kept roles are trimmed to exactly their
  configured permissions.

Each step is its own store transaction. An interrupted run leaves a valid
store and running it again completes the work.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog

from gatekeeper.core.constants import GrantSource
from gatekeeper.core.permissions.schemas import AuthorizationConfig
from gatekeeper.core.permissions.store import PermissionStore


logger = structlog.get_logger()


@dataclass
class ReconciliationReport:
    """Changes applied by a reconciliation run."""

    delete_orphans: bool = False
    created_permissions: list[str] = field(default_factory=list)
    created_roles: list[str] = field(default_factory=list)
    attached: dict[str, list[str]] = field(default_factory=dict)
    detached: dict[str, list[str]] = field(default_factory=dict)
    deleted_roles: list[str] = field(default_factory=list)
    deleted_permissions: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether the run modified the store at all."""
        return any(
            (
                self.created_permissions,
                self.created_roles,
                self.attached,
                self.detached,
                self.deleted_roles,
                self.deleted_permissions,
            )
        )


class ReconciliationEngine:
    """Synchronizes an ``AuthorizationConfig`` into a ``PermissionStore``."""

    def __init__(self, store: PermissionStore) -> None:
        self.store = store

    async def reconcile(
        self,
        roles: Mapping[str, str | Iterable[str]],
        extra_permissions: str | Iterable[str] = (),
        delete_orphans: bool = False,
        cascade: bool = False,
    ) -> ReconciliationReport:
        """Reconcile a raw role map and standalone permission list.

        Args:
            roles: Role name -> permission name or names
            extra_permissions: Permission name or names that must exist without a role
            delete_orphans: Delete roles and permissions absent from the input
            cascade: When deleting, also remove them from principals holding them

        Returns:
            Report of the applied changes

        Raises:
            ValidationError: If the input is malformed
            InUseError: If an orphan is still held by a principal and
                ``cascade`` is False
        """
        if isinstance(extra_permissions, str):
            extra_permissions = [extra_permissions]
        config = AuthorizationConfig.from_mapping(
            {"roles": dict(roles), "permissions": list(extra_permissions)}
        )
        return await self.reconcile_config(config, delete_orphans=delete_orphans, cascade=cascade)

    async def reconcile_config(
        self,
        config: AuthorizationConfig,
        delete_orphans: bool = False,
        cascade: bool = False,
    ) -> ReconciliationReport:
        """Reconcile a validated configuration. See :meth:`reconcile`."""
        report = ReconciliationReport(delete_orphans=delete_orphans)
        log = logger.bind(delete_orphans=delete_orphans, cascade=cascade)
        log.info(
            "reconcile_started",
            roles=sorted(config.roles),
            permissions=len(config.desired_permissions),
        )

        existing_permissions = {p.name for p in await self.store.list_permissions()}
        existing_roles = {r.name for r in await self.store.list_roles()}

        desired_permissions = config.desired_permissions
        for name in sorted(desired_permissions):
            await self.store.find_or_create_permission(name)
            if name not in existing_permissions:
                report.created_permissions.append(name)

        for role_name, permissions in config.roles.items():
            await self.store.find_or_create_role(role_name)
            if role_name not in existing_roles:
                report.created_roles.append(role_name)

            attached = await self.store.attach_permissions_to_role(
                role_name, permissions, source=GrantSource.CONFIG
            )
            if attached:
                report.attached[role_name] = attached

        await self._detach_stale_links(config, report)

        if delete_orphans:
            await self._delete_orphans(config, report, cascade=cascade)

        log.info(
            "reconcile_completed",
            changed=report.changed,
            created_permissions=report.created_permissions,
            created_roles=report.created_roles,
            deleted_roles=report.deleted_roles,
            deleted_permissions=report.deleted_permissions,
        )
        return report

    async def _detach_stale_links(
        self, config: AuthorizationConfig, report: ReconciliationReport
    ) -> None:
        """Detach links the configuration no longer asks for.

        Config-sourced links are always re-synced. Manual links are only
        removed from kept roles when orphans are being deleted.
        """
        for role in await self.store.list_roles():
            if report.delete_orphans and role.name not in config.roles:
                continue  # the whole role goes away

            configured = set(config.roles.get(role.name, ()))
            links = await self.store.get_role_permissions(role.name)
            stale = [
                name
                for name, source in links.items()
                if name not in configured
                and (report.delete_orphans or source == GrantSource.CONFIG)
            ]
            if not stale:
                continue

            detached = await self.store.detach_permissions_from_role(role.name, stale)
            if detached:
                report.detached[role.name] = detached

    async def _delete_orphans(
        self,
        config: AuthorizationConfig,
        report: ReconciliationReport,
        cascade: bool,
    ) -> None:
        """Delete roles and permissions absent from the configuration.

        Stops at the first ``InUseError``.
        """
        for role in await self.store.list_roles():
            if role.name not in config.roles:
                await self.store.delete_role(role.name, cascade=cascade)
                report.deleted_roles.append(role.name)

        desired_permissions = config.desired_permissions
        for permission in await self.store.list_permissions():
            if permission.name not in desired_permissions:
                await self.store.delete_permission(permission.name, cascade=cascade)
                report.deleted_permissions.append(permission.name)
