"""
Application settings using Pydantic Settings v2.

Environment variables are loaded from .env file and can be overridden
by actual environment variables.

Both the root folder and the store location are consumed by the indexing
pipeline; the process host validates them before a run starts.
"""

from pathlib import Path
from typing import Annotated

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def find_env_file() -> str:
    """
    Find .env file in current directory or parent directory.

    Returns:
        Path to .env file (current dir, parent dir, or default ".env")
    """
    current = Path.cwd() / ".env"
    parent = Path.cwd().parent / ".env"

    if current.exists():
        return str(current)
    elif parent.exists():
        return str(parent)
    else:
        # Fallback to default (will use environment variables only)
        return ".env"


class DatabaseSettings(BaseSettings):
    """Index store configuration"""

    database_url: Annotated[
        str | None,
        Field(
            default=None,
            description="SQLAlchemy async connection URL (e.g. postgresql+asyncpg://...)",
            validation_alias="GALACTIC_DATABASE_URL",
        ),
    ]
    sqlite_path: Annotated[
        str,
        Field(
            default="../.dbdata/sqlite/galactic.db",
            description="Path to SQLite database file, used when no URL is configured",
            validation_alias="GALACTIC_SQLITE_PATH",
        ),
    ]
    run_migrations: Annotated[
        bool,
        Field(
            default=True,
            description="Create the Directories/Files tables before indexing",
            validation_alias="GALACTIC_RUN_MIGRATIONS",
        ),
    ]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        """Store connection URL.

        Returns:
            The explicit URL when configured, otherwise an async SQLite URL
            with an absolute path.
        """
        if self.database_url:
            return self.database_url

        # Resolve to absolute path (handles relative paths from any working directory)
        abs_path = Path(self.sqlite_path).resolve()
        # Ensure parent directory exists
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+aiosqlite:///{abs_path}"

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


class IndexerSettings(BaseSettings):
    """Indexing pipeline configuration.

    The walker pushes discovered entries onto a bounded queue; the worker
    pool reconciles at most ``max_concurrency`` of them against the store
    at any one time.
    """

    root_folder: Annotated[
        str | None,
        Field(
            default=None,
            description="Root directory to index",
            validation_alias="GALACTIC_ROOT_FOLDER",
        ),
    ]
    queue_capacity: Annotated[
        int,
        Field(
            default=100,
            ge=1,
            le=10000,
            description="Maximum discovered entries waiting to be reconciled",
            validation_alias="GALACTIC_QUEUE_CAPACITY",
        ),
    ]
    max_concurrency: Annotated[
        int,
        Field(
            default=4,
            ge=1,
            le=64,
            description="Maximum reconciliations in flight",
            validation_alias="GALACTIC_MAX_CONCURRENCY",
        ),
    ]

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


class AppSettings(BaseSettings):
    """Main application settings"""

    # Logging
    log_level: Annotated[
        str,
        Field(
            default="info",
            description="Log level: debug, info, warning, error",
            validation_alias="GALACTIC_LOG_LEVEL",
        ),
    ]
    log_format: Annotated[
        str,
        Field(
            default="text",
            description="Log format: json, text",
            validation_alias="GALACTIC_LOG_FORMAT",
        ),
    ]

    # Nested settings
    database: Annotated[
        DatabaseSettings, Field(default_factory=DatabaseSettings, description="Store settings")
    ]
    indexer: Annotated[
        IndexerSettings, Field(default_factory=IndexerSettings, description="Pipeline settings")
    ]

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept the common aliases loguru does not know about."""
        level = str(v).strip().lower()
        if level == "warn":
            return "warning"
        if level not in {"trace", "debug", "info", "success", "warning", "error", "critical"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        fmt = str(v).strip().lower()
        if fmt not in {"json", "text"}:
            raise ValueError(f"Log format must be 'json' or 'text'. Got: {v}")
        return fmt

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance (singleton, loaded once at import)
settings = AppSettings()
