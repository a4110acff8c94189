"""RFC 7807 Problem Details rendering.

Transports (the CLI, an HTTP layer, a message consumer) turn
``AppException`` instances into a ``ProblemDetail`` so that every failure
is reported in the same structured form.

See: https://tools.ietf.org/html/rfc7807
"""

from typing import Any

import structlog
from pydantic import BaseModel

from gatekeeper.core.errors.exceptions import AppException


logger = structlog.get_logger()

ERROR_TYPE_BASE_URI = "urn:gatekeeper:error"


class FieldError(BaseModel):
    """Represents a single field validation error."""

    field: str
    message: str
    type: str | None = None


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: Reference identifying this specific occurrence
        errors: List of field-level errors (for validation errors)
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[FieldError] | None = None

    model_config = {"extra": "allow"}


def to_problem_detail(exc: AppException, instance: str | None = None) -> ProblemDetail:
    """Convert an application exception to a Problem Details document.

    Args:
        exc: The exception to render
        instance: Optional identifier of the failing operation

    Returns:
        The Problem Details document, with ``exc.details`` merged in
    """
    logger.warning(
        "app_exception",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        instance=instance,
        details=exc.details,
    )

    extra: dict[str, Any] = {
        key: value for key, value in exc.details.items() if key != "errors"
    }
    errors = exc.details.get("errors")

    return ProblemDetail(
        type=f"{ERROR_TYPE_BASE_URI}:{exc.error_code}",
        title=exc.error_code.replace("_", " ").title(),
        status=exc.status_code,
        detail=exc.message,
        instance=instance,
        errors=[FieldError(**error) for error in errors] if errors else None,
        **extra,
    )
