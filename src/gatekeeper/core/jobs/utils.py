"""Shared utilities for job infrastructure.

Provides common functionality used by both the worker and registry modules.
"""

from arq.connections import RedisSettings

from gatekeeper.config import Settings, get_settings


def get_redis_settings(settings: Settings | None = None) -> RedisSettings:
    """Get Redis settings for ARQ from app configuration.

    Args:
        settings: Settings to use (defaults to the cached process settings)

    Returns:
        ARQ RedisSettings instance
    """
    settings = settings or get_settings()
    return RedisSettings.from_dsn(str(settings.redis_url))
