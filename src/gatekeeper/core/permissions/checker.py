"""Permission checking logic.

This module provides the access check that gates protected operations:
a principal holds a permission when it is granted directly or through
any role the principal holds.
"""

from collections.abc import Iterable
from typing import NoReturn
from uuid import UUID

import structlog

from gatekeeper.core.errors import AccessDeniedError
from gatekeeper.core.permissions.store import PermissionStore


logger = structlog.get_logger()


class PermissionChecker:
    """Service for checking principal permissions.

    Every check reads the store; nothing is cached between calls.
    """

    def __init__(self, store: PermissionStore) -> None:
        self.store = store

    async def has_permission(self, user_id: UUID, permission: str) -> bool:
        """Check if a principal has a specific permission.

        Args:
            user_id: The principal's UUID
            permission: The permission name

        Returns:
            True if the permission is granted directly or via a held role
        """
        return await self.store.principal_has_permission(user_id, permission)

    async def has_any_permission(self, user_id: UUID, permissions: Iterable[str]) -> bool:
        """Check if a principal has at least one of the permissions."""
        wanted = set(permissions)
        if not wanted:
            return False
        held = await self.store.get_principal_permissions(user_id)
        return not wanted.isdisjoint(held)

    async def has_all_permissions(self, user_id: UUID, permissions: Iterable[str]) -> bool:
        """Check if a principal has every one of the permissions."""
        held = await self.store.get_principal_permissions(user_id)
        return set(permissions) <= held

    async def has_role(self, user_id: UUID, role: str) -> bool:
        """Check if a principal holds a role."""
        return await self.store.principal_has_role(user_id, role)

    async def get_user_permissions(self, user_id: UUID) -> set[str]:
        """Get all permissions for a principal.

        Returns:
            Direct permissions united with the permissions of every held role
        """
        return await self.store.get_principal_permissions(user_id)

    async def authorize(self, user_id: UUID, permission: str) -> None:
        """Require a permission.

        Raises:
            AccessDeniedError: If the principal lacks the permission
        """
        if not await self.has_permission(user_id, permission):
            self._deny(user_id, [permission])

    async def authorize_any(self, user_id: UUID, permissions: Iterable[str]) -> None:
        """Require at least one of the permissions.

        Raises:
            AccessDeniedError: If the principal holds none of them
        """
        wanted = list(permissions)
        if not await self.has_any_permission(user_id, wanted):
            self._deny(user_id, wanted)

    async def authorize_all(self, user_id: UUID, permissions: Iterable[str]) -> None:
        """Require every one of the permissions.

        Raises:
            AccessDeniedError: If the principal lacks any of them
        """
        wanted = list(permissions)
        if not await self.has_all_permissions(user_id, wanted):
            self._deny(user_id, wanted)

    @staticmethod
    def _deny(user_id: UUID, permissions: list[str]) -> NoReturn:
        logger.warning("access_denied", user_id=str(user_id), permissions=permissions)
        raise AccessDeniedError(user_id, permissions)


class PrincipalPermissions:
    """Permission view of a single principal.

    Gives any principal object the "has permissions" capability without
    it inheriting from a framework user model.

    Usage:
        perms = PrincipalPermissions(checker, user.id)
        if await perms.has_permission("index_roles"):
            ...
    """

    def __init__(self, checker: PermissionChecker, principal_id: UUID) -> None:
        self.checker = checker
        self.principal_id = principal_id

    async def has_permission(self, permission: str) -> bool:
        return await self.checker.has_permission(self.principal_id, permission)

    async def has_role(self, role: str) -> bool:
        return await self.checker.has_role(self.principal_id, role)

    async def permissions(self) -> set[str]:
        return await self.checker.get_user_permissions(self.principal_id)

    async def roles(self) -> set[str]:
        return await self.checker.store.get_principal_roles(self.principal_id)

    async def authorize(self, permission: str) -> None:
        await self.checker.authorize(self.principal_id, permission)
