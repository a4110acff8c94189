"""Persistence for roles, permissions and their assignments.

Every public coroutine of :class:`PermissionStore` runs in its own
transaction, so each create/attach/detach/grant/delete either fully
applies or leaves the store untouched.
"""

from collections.abc import Iterable
from typing import TypeVar
from uuid import UUID

import structlog
from sqlalchemy import ColumnElement, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatekeeper.core.constants import GrantSource
from gatekeeper.core.errors import (
    ConflictError,
    InUseError,
    PermissionNotFoundError,
    RoleNotFoundError,
)
from gatekeeper.core.permissions.models import (
    Permission,
    Role,
    RolePermission,
    UserPermission,
    UserRole,
)
from gatekeeper.core.permissions.schemas import validate_name


logger = structlog.get_logger()

EntityT = TypeVar("EntityT", Permission, Role)


class PermissionStore:
    """Repository for roles, permissions and principal assignments.

    Handles all database interactions for the authorization models.
    Lookups by name raise ``PermissionNotFoundError`` / ``RoleNotFoundError``
    when the entity does not exist.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Internal lookups (within an open session)
    # ------------------------------------------------------------------

    @staticmethod
    async def _get_by_name(
        session: AsyncSession, model: type[EntityT], name: str
    ) -> EntityT | None:
        result = await session.execute(select(model).where(model.name == name))
        return result.scalar_one_or_none()

    async def _get_permission(self, session: AsyncSession, name: str) -> Permission | None:
        return await self._get_by_name(session, Permission, name)

    async def _get_role(self, session: AsyncSession, name: str) -> Role | None:
        return await self._get_by_name(session, Role, name)

    async def _require_permission(self, session: AsyncSession, name: str) -> Permission:
        permission = await self._get_permission(session, name)
        if permission is None:
            raise PermissionNotFoundError(name)
        return permission

    async def _require_role(self, session: AsyncSession, name: str) -> Role:
        role = await self._get_role(session, name)
        if role is None:
            raise RoleNotFoundError(name)
        return role

    async def _require_permissions(
        self, session: AsyncSession, names: Iterable[str]
    ) -> list[Permission]:
        """Load every named permission, failing on the first missing one."""
        wanted = list(dict.fromkeys(names))
        if not wanted:
            return []
        result = await session.execute(select(Permission).where(Permission.name.in_(wanted)))
        found = {permission.name: permission for permission in result.scalars()}
        for name in wanted:
            if name not in found:
                raise PermissionNotFoundError(name)
        return [found[name] for name in wanted]

    @staticmethod
    async def _insert(session: AsyncSession, model: type[EntityT], name: str) -> EntityT:
        entity = model(name=name)
        session.add(entity)
        await session.flush()
        if isinstance(entity, Role):
            await session.refresh(entity, attribute_names=["permissions"])
        return entity

    async def _find_or_create(self, model: type[EntityT], name: str) -> EntityT:
        async with self.session_factory.begin() as session:
            entity = await self._get_by_name(session, model, name)
            if entity is not None:
                return entity
            entity = await self._insert(session, model, name)

        logger.info(f"{model.__tablename__[:-1]}_created", name=name)
        return entity

    async def _create(self, model: type[EntityT], name: str) -> EntityT:
        kind = model.__tablename__[:-1]

        def conflict() -> ConflictError:
            return ConflictError(
                f"{kind.title()} already exists",
                error_code=f"{kind}_exists",
                details={"name": name},
            )

        try:
            async with self.session_factory.begin() as session:
                if await self._get_by_name(session, model, name) is not None:
                    raise conflict()
                entity = await self._insert(session, model, name)
        except IntegrityError:
            # Lost a race with a concurrent create
            raise conflict() from None

        logger.info(f"{kind}_created", name=name)
        return entity

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def find_or_create_permission(self, name: str) -> Permission:
        """Get a permission by name, creating it if it does not exist.

        Args:
            name: The permission name; surrounding whitespace is stripped

        Returns:
            The existing or newly created permission

        Raises:
            ValidationError: If the name is empty or too long
        """
        name = validate_name("permission", name)
        try:
            return await self._find_or_create(Permission, name)
        except IntegrityError:
            # Created concurrently by another caller
            return await self.find_permission_by_name(name)

    async def create_permission(self, name: str) -> Permission:
        """Create a new permission.

        Raises:
            ConflictError: If a permission with this name already exists
        """
        name = validate_name("permission", name)
        return await self._create(Permission, name)

    async def find_permission_by_name(self, name: str) -> Permission:
        """Get a permission by name.

        Raises:
            PermissionNotFoundError: If no permission has this name
        """
        async with self.session_factory() as session:
            return await self._require_permission(session, name)

    async def list_permissions(self) -> list[Permission]:
        """List all permissions ordered by name."""
        async with self.session_factory() as session:
            result = await session.execute(select(Permission).order_by(Permission.name))
            return list(result.scalars().all())

    async def delete_permission(self, name: str, cascade: bool = False) -> None:
        """Delete a permission and its role links.

        Args:
            name: The permission name
            cascade: Also revoke the permission from principals holding it directly

        Raises:
            PermissionNotFoundError: If no permission has this name
            InUseError: If principals hold it directly and ``cascade`` is False
        """
        async with self.session_factory.begin() as session:
            permission = await self._require_permission(session, name)

            holders = await session.scalar(
                select(func.count())
                .select_from(UserPermission)
                .where(UserPermission.permission_id == permission.id)
            )
            if holders and not cascade:
                raise InUseError("permission", name, holders=holders)

            await session.execute(
                delete(UserPermission).where(UserPermission.permission_id == permission.id)
            )
            await session.execute(
                delete(RolePermission).where(RolePermission.permission_id == permission.id)
            )
            await session.delete(permission)

        logger.info("permission_deleted", name=name, revoked_from=holders or 0)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def find_or_create_role(self, name: str) -> Role:
        """Get a role by name, creating it if it does not exist.

        Args:
            name: The role name; surrounding whitespace is stripped

        Returns:
            The existing or newly created role, with permissions loaded

        Raises:
            ValidationError: If the name is empty or too long
        """
        name = validate_name("role", name)
        try:
            return await self._find_or_create(Role, name)
        except IntegrityError:
            # Created concurrently by another caller
            return await self.find_role_by_name(name)

    async def create_role(self, name: str) -> Role:
        """Create a new role.

        Raises:
            ConflictError: If a role with this name already exists
        """
        name = validate_name("role", name)
        return await self._create(Role, name)

    async def find_role_by_name(self, name: str) -> Role:
        """Get a role by name with its permissions loaded.

        Raises:
            RoleNotFoundError: If no role has this name
        """
        async with self.session_factory() as session:
            return await self._require_role(session, name)

    async def list_roles(self) -> list[Role]:
        """List all roles with their permissions, ordered by name."""
        async with self.session_factory() as session:
            result = await session.execute(select(Role).order_by(Role.name))
            return list(result.scalars().all())

    async def delete_role(self, name: str, cascade: bool = False) -> None:
        """Delete a role and its permission links.

        Args:
            name: The role name
            cascade: Also remove the role from principals holding it

        Raises:
            RoleNotFoundError: If no role has this name
            InUseError: If principals hold the role and ``cascade`` is False
        """
        async with self.session_factory.begin() as session:
            role = await self._require_role(session, name)

            holders = await session.scalar(
                select(func.count()).select_from(UserRole).where(UserRole.role_id == role.id)
            )
            if holders and not cascade:
                raise InUseError("role", name, holders=holders)

            await session.execute(delete(UserRole).where(UserRole.role_id == role.id))
            await session.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
            await session.delete(role)

        logger.info("role_deleted", name=name, removed_from=holders or 0)

    # ------------------------------------------------------------------
    # Role <-> permission links
    # ------------------------------------------------------------------

    async def attach_permissions_to_role(
        self,
        role_name: str,
        permission_names: Iterable[str],
        source: GrantSource = GrantSource.MANUAL,
    ) -> list[str]:
        """Attach permissions to a role.

        Attaching is idempotent: links that already exist are not duplicated.
        A manual attach over a link created by reconciliation marks the link
        manual, so later reconciliation runs keep it; a config attach never
        downgrades a manual link. Nothing is attached unless every named
        permission exists.

        Args:
            role_name: The role name
            permission_names: Names of existing permissions to attach
            source: Origin recorded on the links

        Returns:
            Names of the permissions that were newly attached

        Raises:
            RoleNotFoundError: If the role does not exist
            PermissionNotFoundError: If any permission does not exist
        """
        source = GrantSource(source)
        async with self.session_factory.begin() as session:
            role = await self._require_role(session, role_name)
            permissions = await self._require_permissions(session, permission_names)

            result = await session.execute(
                select(RolePermission).where(RolePermission.role_id == role.id)
            )
            linked = {link.permission_id: link for link in result.scalars()}

            attached = []
            claimed = []
            for permission in permissions:
                link = linked.get(permission.id)
                if link is None:
                    session.add(
                        RolePermission(
                            role_id=role.id,
                            permission_id=permission.id,
                            source=source.value,
                        )
                    )
                    attached.append(permission.name)
                elif source == GrantSource.MANUAL and link.source != GrantSource.MANUAL:
                    link.source = source.value
                    claimed.append(permission.name)

        if attached:
            logger.info(
                "permissions_attached_to_role",
                role=role_name,
                permissions=attached,
                source=source.value,
            )
        if claimed:
            logger.info("role_permissions_marked_manual", role=role_name, permissions=claimed)
        return attached

    async def detach_permissions_from_role(
        self, role_name: str, permission_names: Iterable[str]
    ) -> list[str]:
        """Detach permissions from a role.

        Names that are unknown or not attached are ignored.

        Returns:
            Names of the permissions that were detached

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        names = list(dict.fromkeys(permission_names))
        async with self.session_factory.begin() as session:
            role = await self._require_role(session, role_name)
            if not names:
                return []

            result = await session.execute(
                select(Permission.id, Permission.name)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .where(RolePermission.role_id == role.id, Permission.name.in_(names))
            )
            rows = result.all()
            if rows:
                await session.execute(
                    delete(RolePermission).where(
                        RolePermission.role_id == role.id,
                        RolePermission.permission_id.in_([row.id for row in rows]),
                    )
                )

        detached = sorted(row.name for row in rows)
        if detached:
            logger.info("permissions_detached_from_role", role=role_name, permissions=detached)
        return detached

    async def get_role_permissions(self, role_name: str) -> dict[str, GrantSource]:
        """Get a role's permissions together with the origin of each link.

        Returns:
            Mapping of permission name to the link's ``GrantSource``

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        async with self.session_factory() as session:
            role = await self._require_role(session, role_name)
            result = await session.execute(
                select(Permission.name, RolePermission.source)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .where(RolePermission.role_id == role.id)
            )
            return {name: GrantSource(source) for name, source in result.all()}

    # ------------------------------------------------------------------
    # Principal assignments
    # ------------------------------------------------------------------

    async def grant_permission_to_user(self, user_id: UUID, permission_name: str) -> bool:
        """Grant a permission directly to a principal.

        Returns:
            True if a new grant was made, False if it already existed

        Raises:
            PermissionNotFoundError: If the permission does not exist
        """
        try:
            async with self.session_factory.begin() as session:
                permission = await self._require_permission(session, permission_name)
                existing = await session.get(UserPermission, (user_id, permission.id))
                if existing is not None:
                    return False
                session.add(UserPermission(user_id=user_id, permission_id=permission.id))
        except IntegrityError:
            # Granted concurrently by another caller
            return False

        logger.info("permission_granted_to_user", user_id=str(user_id), permission=permission_name)
        return True

    async def revoke_permission_from_user(self, user_id: UUID, permission_name: str) -> bool:
        """Revoke a permission granted directly to a principal.

        Returns:
            True if a grant was removed

        Raises:
            PermissionNotFoundError: If the permission does not exist
        """
        async with self.session_factory.begin() as session:
            permission = await self._require_permission(session, permission_name)
            result = await session.execute(
                delete(UserPermission).where(
                    UserPermission.user_id == user_id,
                    UserPermission.permission_id == permission.id,
                )
            )

        revoked = bool(result.rowcount)
        if revoked:
            logger.info(
                "permission_revoked_from_user", user_id=str(user_id), permission=permission_name
            )
        return revoked

    async def assign_role_to_user(self, user_id: UUID, role_name: str) -> bool:
        """Assign a role to a principal.

        Assigning a role the principal already holds is a no-op.

        Returns:
            True if a new assignment was made, False if it already existed

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        try:
            async with self.session_factory.begin() as session:
                role = await self._require_role(session, role_name)
                existing = await session.get(UserRole, (user_id, role.id))
                if existing is not None:
                    return False
                session.add(UserRole(user_id=user_id, role_id=role.id))
        except IntegrityError:
            # Assigned concurrently by another caller
            return False

        logger.info("role_assigned_to_user", user_id=str(user_id), role=role_name)
        return True

    async def remove_role_from_user(self, user_id: UUID, role_name: str) -> bool:
        """Remove a role from a principal.

        Returns:
            True if an assignment was removed

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        async with self.session_factory.begin() as session:
            role = await self._require_role(session, role_name)
            result = await session.execute(
                delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role.id)
            )

        removed = bool(result.rowcount)
        if removed:
            logger.info("role_removed_from_user", user_id=str(user_id), role=role_name)
        return removed

    # ------------------------------------------------------------------
    # Principal queries
    # ------------------------------------------------------------------

    @staticmethod
    def _effective_permission_filter(user_id: UUID) -> ColumnElement[bool]:
        """Filter matching permissions held directly or through a role."""
        direct = select(UserPermission.permission_id).where(UserPermission.user_id == user_id)
        via_roles = (
            select(RolePermission.permission_id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .where(UserRole.user_id == user_id)
        )
        return or_(Permission.id.in_(direct), Permission.id.in_(via_roles))

    async def principal_has_permission(self, user_id: UUID, permission_name: str) -> bool:
        """Check if a principal holds a permission directly or via a role.

        The check is a single query, so it sees one consistent snapshot.
        """
        async with self.session_factory() as session:
            count = await session.scalar(
                select(func.count())
                .select_from(Permission)
                .where(
                    Permission.name == permission_name,
                    self._effective_permission_filter(user_id),
                )
            )
        return bool(count)

    async def get_principal_permissions(self, user_id: UUID) -> set[str]:
        """Get a principal's effective permission names."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Permission.name).where(self._effective_permission_filter(user_id))
            )
            return set(result.scalars().all())

    async def principal_has_role(self, user_id: UUID, role_name: str) -> bool:
        """Check if a principal holds a role."""
        async with self.session_factory() as session:
            count = await session.scalar(
                select(func.count())
                .select_from(UserRole)
                .join(Role, Role.id == UserRole.role_id)
                .where(UserRole.user_id == user_id, Role.name == role_name)
            )
        return bool(count)

    async def get_principal_roles(self, user_id: UUID) -> set[str]:
        """Get the names of the roles a principal holds."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Role.name)
                .join(UserRole, UserRole.role_id == Role.id)
                .where(UserRole.user_id == user_id)
            )
            return set(result.scalars().all())
