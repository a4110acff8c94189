"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gatekeeper.core.database import Base, create_session_factory
from gatekeeper.core.permissions import (
    PermissionChecker,
    PermissionStore,
    ReconciliationEngine,
)
from gatekeeper.modules.authorization import DEFAULT_AUTHORIZATION_CONFIG


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite database file unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'gatekeeper-test.sqlite'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with all tables."""
    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> PermissionStore:
    """Permission store backed by the test database."""
    return PermissionStore(session_factory)


@pytest.fixture
def checker(store: PermissionStore) -> PermissionChecker:
    """Permission checker reading the test store."""
    return PermissionChecker(store)


@pytest.fixture
def reconciler(store: PermissionStore) -> ReconciliationEngine:
    """Reconciliation engine writing to the test store."""
    return ReconciliationEngine(store)


@pytest.fixture
async def default_roles(reconciler: ReconciliationEngine) -> None:
    """Reconcile the built-in roles into the test store."""
    await reconciler.reconcile_config(DEFAULT_AUTHORIZATION_CONFIG, delete_orphans=True)


@pytest.fixture
def user_id() -> UUID:
    """Identifier of the principal under test."""
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    """Identifier of a second principal."""
    return uuid4()
