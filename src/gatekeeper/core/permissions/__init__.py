"""Permission system for role-based access control (RBAC)."""

from gatekeeper.core.permissions.checker import PermissionChecker, PrincipalPermissions
from gatekeeper.core.permissions.decorators import require_any_permission, require_permission
from gatekeeper.core.permissions.models import (
    Permission,
    Role,
    RolePermission,
    UserPermission,
    UserRole,
)
from gatekeeper.core.permissions.reconcile import ReconciliationEngine, ReconciliationReport
from gatekeeper.core.permissions.schemas import (
    AuthorizationConfig,
    RoleRead,
    load_authorization_config,
)
from gatekeeper.core.permissions.store import PermissionStore


__all__ = [
    # Configuration
    "AuthorizationConfig",
    # Models
    "Permission",
    # Checker
    "PermissionChecker",
    # Store
    "PermissionStore",
    "PrincipalPermissions",
    # Reconciliation
    "ReconciliationEngine",
    "ReconciliationReport",
    "Role",
    "RolePermission",
    "RoleRead",
    "UserPermission",
    "UserRole",
    "load_authorization_config",
    "require_any_permission",
    # Decorators
    "require_permission",
]
