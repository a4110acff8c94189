"""Built-in permission and role names and the default configuration."""

from enum import StrEnum

from gatekeeper.config import Settings
from gatekeeper.core.permissions.schemas import AuthorizationConfig, load_authorization_config


class AuthorizationPermission(StrEnum):
    """Permissions guarding the authorization module's own actions."""

    ASSIGN_PERMISSION_TO_USER = "assign_permission_to_user"
    ASSIGN_PERMISSION_TO_ROLE = "assign_permission_to_role"
    INDEX_ROLES = "index_roles"


class Roles(StrEnum):
    """Roles every installation starts with."""

    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


DEFAULT_AUTHORIZATION_CONFIG = AuthorizationConfig(
    roles={
        Roles.ADMIN.value: [permission.value for permission in AuthorizationPermission],
        Roles.MEMBER.value: [],
        Roles.GUEST.value: [],
    },
    default_role=Roles.MEMBER.value,
)


def get_authorization_config(settings: Settings) -> AuthorizationConfig:
    """Resolve the authorization configuration for this process.

    Reads ``settings.authorization_config_path`` when set and falls back
    to the built-in configuration otherwise. ``settings.default_role``
    overrides the configured default role.

    Raises:
        NotFoundError: If the configured file does not exist
        ValidationError: If the file is malformed
    """
    if settings.authorization_config_path is not None:
        config = load_authorization_config(settings.authorization_config_path)
    else:
        config = DEFAULT_AUTHORIZATION_CONFIG

    if settings.default_role:
        config = config.model_copy(update={"default_role": settings.default_role})
    return config
