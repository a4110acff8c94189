"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import RedisDsn, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gatekeeper.core.constants import DEFAULT_DATABASE_TIMEOUT


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every variable is read with the ``GATEKEEPER_`` prefix, e.g.
    ``GATEKEEPER_DATABASE_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="GATEKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Gatekeeper"
    environment: str = "development"  # development, staging, production

    # Database
    database_url: str = "sqlite+aiosqlite:///./gatekeeper.sqlite"
    database_echo: bool = False
    database_timeout: float = DEFAULT_DATABASE_TIMEOUT

    # Redis (principal-created job queue)
    redis_url: RedisDsn = RedisDsn("redis://localhost:6379")

    # Authorization
    authorization_config_path: Path | None = None
    default_role: str | None = None

    # Observability
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the log level name.

        Raises:
            ValueError: If the level is not a standard logging level
        """
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
