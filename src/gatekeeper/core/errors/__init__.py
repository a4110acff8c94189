"""Error handling module with RFC 7807 Problem Details."""

from gatekeeper.core.errors.exceptions import (
    AccessDeniedError,
    AppException,
    ConflictError,
    ForbiddenError,
    InUseError,
    NotFoundError,
    PermissionNotFoundError,
    RoleNotFoundError,
    ValidationError,
)
from gatekeeper.core.errors.handlers import FieldError, ProblemDetail, to_problem_detail


__all__ = [
    "AccessDeniedError",
    # Exceptions
    "AppException",
    "ConflictError",
    # Rendering
    "FieldError",
    "ForbiddenError",
    "InUseError",
    "NotFoundError",
    "PermissionNotFoundError",
    "ProblemDetail",
    "RoleNotFoundError",
    "ValidationError",
    "to_problem_detail",
]
