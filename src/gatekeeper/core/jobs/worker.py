"""ARQ worker configuration.

Defines the worker settings including registered jobs
and startup/shutdown hooks.
"""

from typing import Any, ClassVar

import structlog

from gatekeeper.config import get_settings
from gatekeeper.core.database import create_engine, create_session_factory
from gatekeeper.core.jobs.tasks import assign_default_role
from gatekeeper.core.jobs.utils import get_redis_settings
from gatekeeper.core.permissions import PermissionStore
from gatekeeper.modules.authorization.definitions import get_authorization_config
from gatekeeper.modules.authorization.events import DefaultRoleAssigner


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources for the worker.

    Called once when the worker starts. Sets up the database
    connection and the default role assigner used by jobs.

    Args:
        ctx: Worker context dict (shared across all jobs)

    Raises:
        ValidationError: If the configuration names no default role
    """
    settings = get_settings()
    log = structlog.get_logger()
    log.info("worker_startup", environment=settings.environment)

    engine = create_engine(settings)
    store = PermissionStore(create_session_factory(engine))
    config = get_authorization_config(settings)

    # Store in context for job access
    ctx["db_engine"] = engine
    ctx["permission_store"] = store
    ctx["default_role_assigner"] = DefaultRoleAssigner.from_config(store, config)

    log.info("worker_startup_complete", default_role=config.default_role)


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when the worker stops.

    Args:
        ctx: Worker context dict
    """
    log = structlog.get_logger()
    log.info("worker_shutdown")

    engine = ctx.get("db_engine")
    if engine:
        await engine.dispose()
        log.info("database_engine_disposed")

    log.info("worker_shutdown_complete")


class WorkerSettings:
    """ARQ worker settings.

    Run the worker with:
        arq gatekeeper.core.jobs.worker.WorkerSettings
    """

    # Registered job functions
    functions: ClassVar[list[Any]] = [
        assign_default_role,
    ]

    # Worker lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Redis connection
    redis_settings = get_redis_settings()

    # Worker configuration
    max_jobs = 10  # Maximum concurrent jobs
    job_timeout = 60
    keep_result = 3600  # Keep results for 1 hour
    retry_jobs = True  # Delivery is at-least-once; the job is idempotent
    max_tries = 3  # Maximum retry attempts
