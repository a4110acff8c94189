"""Async database engine and session factory construction."""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gatekeeper.config import Settings, get_settings


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create the async engine for the configured database.

    Args:
        settings: Settings to use (defaults to the cached process settings)

    Returns:
        An AsyncEngine bound to ``settings.database_url``
    """
    settings = settings or get_settings()

    options: dict[str, Any] = {"echo": settings.database_echo}
    if settings.is_sqlite:
        # sqlite3 waits this long on a locked database before failing
        options["connect_args"] = {"timeout": settings.database_timeout}
    else:
        options.update(
            pool_timeout=settings.database_timeout,
            pool_pre_ping=True,  # Verify connections before use
        )

    return create_async_engine(settings.database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
