"""Permission system database models.

This module defines the RBAC (Role-Based Access Control) models:
- Permission: A named capability checked before a protected action
- Role: A named set of permissions
- RolePermission: Junction table linking roles to permissions
- UserPermission: Junction table for permissions granted directly to a principal
- UserRole: Junction table linking principals to roles

Principals are owned by the caller; they are referenced here only by
their UUID, so the ``user_id`` columns carry no foreign key.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatekeeper.core.constants import (
    MAX_GRANT_SOURCE_LENGTH,
    MAX_PERMISSION_NAME_LENGTH,
    MAX_ROLE_NAME_LENGTH,
    GrantSource,
)
from gatekeeper.core.database.base import Base, TimestampMixin, UUIDMixin


class Permission(Base, UUIDMixin, TimestampMixin):
    """Permission model representing an atomic capability.

    Attributes:
        name: Unique permission name (e.g., "assign_permission_to_user")
    """

    __tablename__ = "permissions"

    name: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_NAME_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )

    # Relationships
    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary="role_permissions",
        back_populates="permissions",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Permission({self.name})>"


class Role(Base, UUIDMixin, TimestampMixin):
    """Role model representing a named set of permissions.

    Attributes:
        name: Unique role name (e.g., "admin", "member", "guest")

    Links to permissions are written through ``RolePermission`` rows so
    that their origin is recorded; ``permissions`` is a read-only view.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )

    # Relationships
    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary="role_permissions",
        back_populates="roles",
        viewonly=True,
        lazy="selectin",
        order_by="Permission.name",
    )

    @property
    def permission_names(self) -> list[str]:
        """Return the names of this role's permissions."""
        return [permission.name for permission in self.permissions]

    def has_permission(self, name: str) -> bool:
        """Check if this role grants the named permission.

        Args:
            name: Permission name to check

        Returns:
            True if the permission is attached to this role
        """
        return name in self.permission_names

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"


class RolePermission(Base, TimestampMixin):
    """Junction table linking roles to permissions.

    ``source`` records whether the link was attached by reconciliation
    ("config") or by an administrative action ("manual").
    """

    __tablename__ = "role_permissions"

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    source: Mapped[str] = mapped_column(
        String(MAX_GRANT_SOURCE_LENGTH),
        nullable=False,
        default=GrantSource.MANUAL.value,
    )

    def __repr__(self) -> str:
        return (
            f"<RolePermission(role_id={self.role_id}, "
            f"permission_id={self.permission_id}, source={self.source})>"
        )


class UserPermission(Base, TimestampMixin):
    """Junction table for permissions granted directly to a principal."""

    __tablename__ = "user_permissions"

    user_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<UserPermission(user_id={self.user_id}, permission_id={self.permission_id})>"


class UserRole(Base, TimestampMixin):
    """Junction table linking principals to roles.

    A principal can hold multiple roles, and their effective permissions
    are their direct permissions plus the union of all their roles'
    permissions.
    """

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        index=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"
