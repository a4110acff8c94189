"""Domain exceptions for the authorization layer.

Every exception carries a machine-readable ``error_code`` and an HTTP-style
``status_code`` so that any transport can surface it unchanged, and can be
rendered as an RFC 7807 Problem Details document by
:func:`gatekeeper.core.errors.handlers.to_problem_detail`.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Role not found", resource="role", resource_id="admin")
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class PermissionNotFoundError(NotFoundError):
    """Raised when a permission referenced by name does not exist."""

    message = "Permission not found"
    error_code = "permission_not_found"

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name
        super().__init__(
            f"There is no permission named '{name}'",
            resource="permission",
            resource_id=name,
            **kwargs,
        )


class RoleNotFoundError(NotFoundError):
    """Raised when a role referenced by name does not exist."""

    message = "Role not found"
    error_code = "role_not_found"

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name
        super().__init__(
            f"There is no role named '{name}'",
            resource="role",
            resource_id=name,
            **kwargs,
        )


class ConflictError(AppException):
    """Raised when there's a conflict with existing data.

    Example:
        raise ConflictError("Role already exists", details={"name": name})
    """

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class InUseError(ConflictError):
    """Raised when deleting a role or permission still held by a principal.

    Example:
        raise InUseError("permission", "publish", holders=3)
    """

    message = "Resource is still in use"
    error_code = "in_use"

    def __init__(self, resource: str, name: str, holders: int = 0) -> None:
        super().__init__(
            f"Cannot delete {resource} '{name}': still held by {holders} principal(s)",
            details={"resource": resource, "resource_id": name, "holders": holders},
        )


class ValidationError(AppException):
    """Raised when configuration or input data fails validation.

    Example:
        raise ValidationError(
            "Invalid authorization configuration",
            errors=[{"field": "roles.admin", "message": "Input should be a valid string"}]
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class ForbiddenError(AppException):
    """Raised when a principal lacks permission to perform an action.

    Example:
        raise ForbiddenError(
            "Insufficient permissions",
            details={"required_permission": "index_roles"}
        )
    """

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class AccessDeniedError(ForbiddenError):
    """Raised when an authorization precondition fails."""

    error_code = "permission_denied"

    def __init__(self, principal_id: Any, permissions: list[str], **kwargs: Any) -> None:
        self.principal_id = principal_id
        self.permissions = permissions
        super().__init__(
            f"Missing required permission: {', '.join(permissions)}",
            details={
                "principal_id": str(principal_id),
                "required_permissions": permissions,
            },
            **kwargs,
        )
