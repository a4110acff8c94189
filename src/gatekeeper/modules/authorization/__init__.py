"""Authorization module: role assignment and default role handling."""

from gatekeeper.modules.authorization.definitions import (
    DEFAULT_AUTHORIZATION_CONFIG,
    AuthorizationPermission,
    Roles,
    get_authorization_config,
)
from gatekeeper.modules.authorization.events import (
    DefaultRoleAssigner,
    PrincipalCreated,
    publish_principal_created,
)
from gatekeeper.modules.authorization.services import RoleAssignmentService


__all__ = [
    "DEFAULT_AUTHORIZATION_CONFIG",
    "AuthorizationPermission",
    "DefaultRoleAssigner",
    "PrincipalCreated",
    "RoleAssignmentService",
    "Roles",
    "get_authorization_config",
    "publish_principal_created",
]
