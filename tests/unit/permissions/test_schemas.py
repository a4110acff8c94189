"""Unit tests for authorization configuration schemas."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from gatekeeper.core.errors import NotFoundError, ValidationError
from gatekeeper.core.permissions import AuthorizationConfig, load_authorization_config


pytestmark = pytest.mark.unit


class TestAuthorizationConfig:
    """Tests for AuthorizationConfig validation."""

    def test_accepts_lists(self):
        """Role permission lists are kept as given."""
        config = AuthorizationConfig.from_mapping(
            {"roles": {"admin": ["a", "b"], "guest": []}, "default_role": "guest"}
        )

        assert config.roles == {"admin": ["a", "b"], "guest": []}
        assert config.default_role == "guest"

    def test_single_permission_shorthand(self):
        """A bare string is a one-element list."""
        config = AuthorizationConfig.from_mapping({"roles": {"member": "read"}})

        assert config.roles == {"member": ["read"]}

    def test_null_permissions(self):
        """A role with no value has no permissions."""
        config = AuthorizationConfig.from_mapping({"roles": {"guest": None}, "permissions": None})

        assert config.roles == {"guest": []}
        assert config.permissions == []

    def test_desired_permissions(self):
        """Role and standalone permissions are combined."""
        config = AuthorizationConfig.from_mapping(
            {"roles": {"admin": ["a", "b"], "member": "b"}, "permissions": "c"}
        )

        assert config.desired_permissions == {"a", "b", "c"}

    def test_strips_names(self):
        """Surrounding whitespace is removed from names."""
        config = AuthorizationConfig.from_mapping({"roles": {" admin ": [" a "]}})

        assert config.roles == {"admin": ["a"]}

    @pytest.mark.parametrize(
        "data",
        [
            {"roles": {"admin": [""]}},
            {"roles": {"admin": [1]}},
            {"roles": ["admin"]},
            {"unknown": True},
        ],
    )
    def test_rejects_malformed(self, data):
        """Malformed configuration raises our ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            AuthorizationConfig.from_mapping(data)

        errors = exc_info.value.details["errors"]
        assert errors
        assert all({"field", "message", "type"} <= set(error) for error in errors)

    def test_is_frozen(self):
        """Validated configuration cannot be mutated."""
        config = AuthorizationConfig.from_mapping({})

        with pytest.raises(PydanticValidationError):
            config.default_role = "admin"


class TestLoadAuthorizationConfig:
    """Tests for loading configuration from YAML."""

    def test_loads_yaml(self, tmp_path: Path):
        """A YAML file is parsed and validated."""
        path = tmp_path / "authorization.yaml"
        path.write_text(
            "roles:\n"
            "  admin: [index_roles, assign_permission_to_role]\n"
            "  member: read_articles\n"
            "permissions: [export_reports]\n"
            "default_role: member\n"
        )

        config = load_authorization_config(path)

        assert config.roles["member"] == ["read_articles"]
        assert config.permissions == ["export_reports"]
        assert config.default_role == "member"

    def test_empty_file(self, tmp_path: Path):
        """An empty file is an empty configuration."""
        path = tmp_path / "authorization.yaml"
        path.write_text("")

        assert load_authorization_config(path).roles == {}

    def test_missing_file(self, tmp_path: Path):
        """A missing file raises NotFoundError."""
        with pytest.raises(NotFoundError):
            load_authorization_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        """Unparseable YAML raises ValidationError."""
        path = tmp_path / "authorization.yaml"
        path.write_text("roles: [unclosed\n")

        with pytest.raises(ValidationError):
            load_authorization_config(path)

    def test_non_mapping(self, tmp_path: Path):
        """A top-level list is rejected."""
        path = tmp_path / "authorization.yaml"
        path.write_text("- admin\n- member\n")

        with pytest.raises(ValidationError):
            load_authorization_config(path)
