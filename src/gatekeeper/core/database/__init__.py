"""Database layer - engine and session management, base models, and mixins."""

from gatekeeper.core.database.base import Base, TimestampMixin, UUIDMixin
from gatekeeper.core.database.session import create_engine, create_session_factory


__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "create_engine",
    "create_session_factory",
]
