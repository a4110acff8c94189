"""Default role assignment for newly created principals.

The account subsystem publishes a ``PrincipalCreated`` message when a
principal is created; the ``assign_default_role`` job consumes it and
hands it to ``DefaultRoleAssigner``. Delivery may be at-least-once, so
handling the same message twice must be harmless.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog

from gatekeeper.core.errors import ValidationError
from gatekeeper.core.jobs.registry import enqueue
from gatekeeper.core.permissions import AuthorizationConfig, PermissionStore


logger = structlog.get_logger()

ASSIGN_DEFAULT_ROLE_JOB = "assign_default_role"


@dataclass(frozen=True)
class PrincipalCreated:
    """A principal has been created."""

    principal_id: UUID


class DefaultRoleAssigner:
    """Assigns the configured default role on ``PrincipalCreated``."""

    def __init__(self, store: PermissionStore, default_role: str) -> None:
        self.store = store
        self.default_role = default_role

    @classmethod
    def from_config(
        cls, store: PermissionStore, config: AuthorizationConfig
    ) -> "DefaultRoleAssigner":
        """Build an assigner for the configuration's default role.

        Raises:
            ValidationError: If the configuration has no default role
        """
        if not config.default_role:
            raise ValidationError(
                "No default role configured",
                errors=[{"field": "default_role", "message": "Field required"}],
            )
        return cls(store, config.default_role)

    async def handle(self, event: PrincipalCreated) -> bool:
        """Assign the default role to the new principal.

        Already holding the role is not an error.

        Returns:
            True if the role was newly assigned

        Raises:
            RoleNotFoundError: If the default role does not exist
        """
        assigned = await self.store.assign_role_to_user(event.principal_id, self.default_role)
        logger.info(
            "default_role_assigned",
            user_id=str(event.principal_id),
            role=self.default_role,
            already_held=not assigned,
        )
        return assigned


async def publish_principal_created(principal_id: UUID) -> Any:
    """Publish a ``PrincipalCreated`` message onto the job queue.

    The job ID is derived from the principal, so publishing twice for
    the same principal while the first job is pending enqueues it once.

    Returns:
        The enqueued job, or None if it was already queued
    """
    return await enqueue(
        ASSIGN_DEFAULT_ROLE_JOB,
        str(principal_id),
        _job_id=f"principal-created:{principal_id}",
    )
