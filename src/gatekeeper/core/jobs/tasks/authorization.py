"""Authorization tasks consumed from the job queue."""

from typing import Any
from uuid import UUID

from gatekeeper.modules.authorization.events import DefaultRoleAssigner, PrincipalCreated


async def assign_default_role(ctx: dict[str, Any], principal_id: str) -> bool:
    """Give a newly created principal the configured default role.

    Args:
        ctx: Worker context containing the default role assigner
        principal_id: UUID of the new principal, as a string

    Returns:
        True if the role was newly assigned, False if already held
    """
    assigner: DefaultRoleAssigner = ctx["default_role_assigner"]
    return await assigner.handle(PrincipalCreated(principal_id=UUID(principal_id)))
