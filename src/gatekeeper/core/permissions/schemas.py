"""Pydantic schemas for the authorization configuration and role listings."""

from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from gatekeeper.core.constants import MAX_PERMISSION_NAME_LENGTH, MAX_ROLE_NAME_LENGTH
from gatekeeper.core.errors import NotFoundError, ValidationError


RoleName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
]
PermissionName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_PERMISSION_NAME_LENGTH),
]

_NAME_ADAPTERS: dict[str, TypeAdapter[str]] = {
    "role": TypeAdapter(RoleName),
    "permission": TypeAdapter(PermissionName),
}


def _field_errors(
    error: PydanticValidationError, field: str | None = None
) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{"field", "message", "type"}`` entries."""
    return [
        {
            "field": ".".join(str(part) for part in e["loc"]) or field or "<root>",
            "message": e["msg"],
            "type": e["type"],
        }
        for e in error.errors()
    ]


def validate_name(kind: str, name: object) -> str:
    """Normalize a role or permission name.

    Applies the same rules as names in ``AuthorizationConfig``: surrounding
    whitespace is stripped and the length must fit the column.

    Args:
        kind: "role" or "permission"
        name: The candidate name

    Returns:
        The normalized name

    Raises:
        ValidationError: If the name is not a non-empty string of valid length
    """
    try:
        return _NAME_ADAPTERS[kind].validate_python(name)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {kind} name", errors=_field_errors(e, kind)) from e


class AuthorizationConfig(BaseModel):
    """Declarative authorization configuration.

    Example (YAML):

        roles:
          admin: [assign_permission_to_user, assign_permission_to_role]
          member: read_articles       # shorthand for a single permission
          guest: []
        permissions: [export_reports]  # standalone permissions
        default_role: member
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    roles: dict[RoleName, list[PermissionName]] = Field(
        default_factory=dict,
        description="Role name -> permission names",
    )
    permissions: list[PermissionName] = Field(
        default_factory=list,
        description="Standalone permissions not tied to any role",
    )
    default_role: RoleName | None = Field(
        None, description="Role assigned to every newly created principal"
    )

    @field_validator("roles", mode="before")
    @classmethod
    def normalize_role_permissions(cls, v: Any) -> Any:
        """Accept a single permission name in place of a list."""
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            return v
        normalized: dict[Any, Any] = {}
        for role, permissions in v.items():
            if permissions is None:
                normalized[role] = []
            elif isinstance(permissions, str):
                normalized[role] = [permissions]
            elif isinstance(permissions, (set, frozenset, tuple)):
                normalized[role] = list(permissions)
            else:
                normalized[role] = permissions
        return normalized

    @field_validator("permissions", mode="before")
    @classmethod
    def normalize_permissions(cls, v: Any) -> Any:
        """Accept a single name, a set or nothing for the standalone list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, (set, frozenset, tuple)):
            return list(v)
        return v

    @property
    def desired_permissions(self) -> set[str]:
        """Every permission referenced by a role or listed standalone."""
        desired = set(self.permissions)
        for permissions in self.roles.values():
            desired.update(permissions)
        return desired

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AuthorizationConfig":
        """Validate a raw mapping.

        Raises:
            ValidationError: If the configuration is malformed
        """
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid authorization configuration", errors=_field_errors(e)
            ) from e


def load_authorization_config(path: Path) -> AuthorizationConfig:
    """Load an authorization configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        The validated configuration

    Raises:
        NotFoundError: If the file does not exist
        ValidationError: If the file is not valid YAML or not a valid configuration
    """
    if not path.exists():
        raise NotFoundError(
            f"Authorization configuration not found: {path}",
            resource="config",
            resource_id=str(path),
        )

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ValidationError(
            f"Authorization configuration is not valid YAML: {path}",
            errors=[{"field": "<file>", "message": str(e), "type": "yaml_error"}],
        ) from e

    if not isinstance(data, Mapping):
        raise ValidationError(
            "Authorization configuration must be a mapping",
            errors=[{"field": "<root>", "message": f"Got {type(data).__name__}"}],
        )

    return AuthorizationConfig.from_mapping(data)


class RoleRead(BaseModel):
    """Role listing entry."""

    name: str
    permissions: list[str] = Field(default_factory=list)
