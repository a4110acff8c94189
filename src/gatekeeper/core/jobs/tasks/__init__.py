"""Background job tasks."""

from gatekeeper.core.jobs.tasks.authorization import assign_default_role


__all__ = [
    "assign_default_role",
]
