"""Role assignment service for privileged authorization operations."""

from collections.abc import Iterable
from uuid import UUID

import structlog

from gatekeeper.core.constants import GrantSource
from gatekeeper.core.permissions import (
    PermissionChecker,
    PermissionStore,
    RoleRead,
    require_permission,
)
from gatekeeper.modules.authorization.definitions import AuthorizationPermission


logger = structlog.get_logger()


def _as_names(permissions: str | Iterable[str]) -> list[str]:
    """Accept a single permission name or any iterable of names."""
    if isinstance(permissions, str):
        return [permissions]
    return list(dict.fromkeys(permissions))


class RoleAssignmentService:
    """Service for granting permissions and roles.

    The permission-granting operations are themselves protected: the
    caller's permission is checked before anything is written.
    """

    def __init__(self, store: PermissionStore, checker: PermissionChecker | None = None) -> None:
        self.store = store
        self.checker = checker or PermissionChecker(store)

    @require_permission(AuthorizationPermission.ASSIGN_PERMISSION_TO_USER)
    async def assign_permission_to_user(
        self,
        caller_id: UUID,
        user_id: UUID,
        permissions: str | Iterable[str],
    ) -> list[str]:
        """Grant one or more existing permissions directly to a principal.

        Args:
            caller_id: The acting principal
            user_id: The principal receiving the permissions
            permissions: A permission name or names

        Returns:
            Names of the permissions that were newly granted

        Raises:
            AccessDeniedError: If the caller lacks ``assign_permission_to_user``
            PermissionNotFoundError: If any permission does not exist
        """
        names = _as_names(permissions)
        # Resolve every name first so an unknown one grants nothing
        for name in names:
            await self.store.find_permission_by_name(name)

        granted = [name for name in names if await self.store.grant_permission_to_user(user_id, name)]

        logger.info(
            "permissions_assigned_to_user",
            caller_id=str(caller_id),
            user_id=str(user_id),
            permissions=names,
        )
        return granted

    @require_permission(AuthorizationPermission.ASSIGN_PERMISSION_TO_ROLE)
    async def assign_permissions_to_role(
        self,
        caller_id: UUID,
        role: str,
        permissions: str | Iterable[str],
    ) -> list[str]:
        """Attach one or more existing permissions to a role.

        Missing permissions are never created here; they must exist
        already, through reconciliation or explicit creation.

        Args:
            caller_id: The acting principal
            role: The role name
            permissions: A permission name or names

        Returns:
            Names of the permissions that were newly attached

        Raises:
            AccessDeniedError: If the caller lacks ``assign_permission_to_role``
            RoleNotFoundError: If the role does not exist
            PermissionNotFoundError: If any permission does not exist
        """
        names = _as_names(permissions)
        attached = await self.store.attach_permissions_to_role(
            role, names, source=GrantSource.MANUAL
        )

        logger.info(
            "permissions_assigned_to_role",
            caller_id=str(caller_id),
            role=role,
            permissions=names,
        )
        return attached

    async def assign_role(self, user_id: UUID, role: str) -> bool:
        """Assign a role to a principal.

        Callers are expected to have authorized the operation already.

        Returns:
            True if the principal did not hold the role before

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        return await self.store.assign_role_to_user(user_id, role)

    async def revoke_role(self, user_id: UUID, role: str) -> bool:
        """Remove a role from a principal.

        Returns:
            True if the principal held the role

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        return await self.store.remove_role_from_user(user_id, role)

    @require_permission(AuthorizationPermission.INDEX_ROLES)
    async def list_roles(self, caller_id: UUID) -> list[RoleRead]:
        """List every role with its permission names.

        Raises:
            AccessDeniedError: If the caller lacks ``index_roles``
        """
        roles = await self.store.list_roles()
        return [RoleRead(name=role.name, permissions=role.permission_names) for role in roles]
