"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        GAMEDESK_DB_HOST: Database host (default: localhost)
        GAMEDESK_DB_PORT: Database port (default: 5432)
        GAMEDESK_DB_DATABASE: Database name (default: gamedesk)
        GAMEDESK_DB_USERNAME: Database user (default: gamedesk)
        GAMEDESK_DB_PASSWORD: Database password (required in production)
        GAMEDESK_DB_URL: Full SQLAlchemy URL, overrides the fields above
        GAMEDESK_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        GAMEDESK_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="GAMEDESK_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="gamedesk", description="Database name")
    username: str = Field(default="gamedesk", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    url: SecretStr | None = Field(
        default=None,
        description="Full async SQLAlchemy URL (e.g. sqlite+aiosqlite:///outbox.db)",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class OutboxSettings(BaseSettings):
    """Outbox dispatcher settings.

    Environment variables:
        GAMEDESK_OUTBOX_ENABLED: Start the dispatcher with the API (default: true)
        GAMEDESK_OUTBOX_POLL_INTERVAL_SECONDS: Delay between polls (default: 10)
        GAMEDESK_OUTBOX_CLEANUP_INTERVAL_SECONDS: Delay between cleanups (default: 3600)
        GAMEDESK_OUTBOX_RETENTION_DAYS: Age after which processed messages are deleted (default: 7)
        GAMEDESK_OUTBOX_BATCH_SIZE: Maximum messages per poll (default: 100)
        GAMEDESK_OUTBOX_DISPATCH_TIMEOUT_SECONDS: Per-message dispatch bound (default: 30)
        GAMEDESK_OUTBOX_MAX_DISPATCH_ATTEMPTS: Dead-letter after this many failures (default: unset)
        GAMEDESK_OUTBOX_DEAD_LETTER_MALFORMED_PAYLOADS: Dead-letter undecodable payloads (default: true)
        GAMEDESK_OUTBOX_SHUTDOWN_GRACE_SECONDS: Wait for in-flight work on stop (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="GAMEDESK_OUTBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(default=True, description="Run the dispatcher")
    poll_interval_seconds: float = Field(
        default=10.0,
        description="Delay between polls of the outbox",
        gt=0,
    )
    cleanup_interval_seconds: float = Field(
        default=3600.0,
        description="Delay between cleanups of processed messages",
        gt=0,
    )
    retention_days: float = Field(
        default=7.0,
        description="How long processed messages are kept",
        gt=0,
    )
    batch_size: int = Field(
        default=100,
        description="Maximum messages fetched per poll",
        ge=1,
        le=10000,
    )
    dispatch_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound on deserializing and dispatching one message",
        gt=0,
    )
    max_dispatch_attempts: int | None = Field(
        default=None,
        description="Failed dispatches before dead-lettering (unset retries forever)",
        ge=1,
    )
    dead_letter_malformed_payloads: bool = Field(
        default=True,
        description="Dead-letter payloads that fail to deserialize",
    )
    shutdown_grace_seconds: float = Field(
        default=10.0,
        description="How long stop() waits for in-flight work",
        ge=0,
    )

    @property
    def retention(self) -> timedelta:
        """Retention window as a timedelta."""
        return timedelta(days=self.retention_days)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="GameDesk API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def outbox(self) -> OutboxSettings:
        """Get outbox settings."""
        return get_outbox_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_outbox_settings() -> OutboxSettings:
    """Get cached outbox settings."""
    return OutboxSettings()
