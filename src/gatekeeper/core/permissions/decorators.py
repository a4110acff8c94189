"""Permission decorators for protected actions.

A protected action is any coroutine that receives the acting principal
as a ``caller_id`` argument and can reach a ``PermissionChecker``, either
as a ``checker`` argument or as ``self.checker`` on the object the method
is bound to. The check runs before the wrapped coroutine, so a denied
caller never reaches the action's body.
"""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar
from uuid import UUID

from gatekeeper.core.errors import ForbiddenError


if TYPE_CHECKING:
    from gatekeeper.core.permissions.checker import PermissionChecker


P = ParamSpec("P")
R = TypeVar("R")


def _get_caller_and_checker(
    signature: inspect.Signature,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> tuple["UUID | None", "PermissionChecker | None"]:
    """Extract the caller id and permission checker from call arguments.

    Args:
        signature: Signature of the wrapped function
        args: Positional arguments of the call
        kwargs: Keyword arguments of the call

    Returns:
        Tuple of (caller_id, checker)
    """
    bound = signature.bind_partial(*args, **kwargs)
    caller_id = bound.arguments.get("caller_id")
    checker = bound.arguments.get("checker")
    if checker is None and "self" in bound.arguments:
        checker = getattr(bound.arguments["self"], "checker", None)
    return caller_id, checker


def _guard(
    permissions: list[str],
    require_all: bool,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            caller_id, checker = _get_caller_and_checker(signature, args, kwargs)

            if caller_id is None:
                raise ForbiddenError(
                    "Authentication required",
                    error_code="auth_required",
                )

            if checker is None:
                raise ForbiddenError(
                    "Permission check failed",
                    error_code="permission_check_failed",
                )

            if require_all:
                await checker.authorize_all(caller_id, permissions)
            else:
                await checker.authorize_any(caller_id, permissions)

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_permission(
    *permissions: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires every listed permission.

    Usage:
        class ReportService:
            def __init__(self, checker: PermissionChecker) -> None:
                self.checker = checker

            @require_permission("export_reports")
            async def export(self, caller_id: UUID, report_id: UUID) -> bytes:
                ...

    Args:
        permissions: Permission names the caller must hold

    Returns:
        Decorator function

    Raises:
        AccessDeniedError: If the caller lacks a required permission
        ForbiddenError: If no caller or checker can be found
    """
    return _guard([str(p) for p in permissions], require_all=True)


def require_any_permission(
    permissions: list[str],
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires any one of the specified permissions.

    Usage:
        @require_any_permission(["index_roles", "assign_permission_to_role"])
        async def list_roles(caller_id: UUID, checker: PermissionChecker):
            ...

    Args:
        permissions: Permission names, one of which the caller must hold

    Returns:
        Decorator function
    """
    return _guard([str(p) for p in permissions], require_all=False)
