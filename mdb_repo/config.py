"""
Configuration management for MDB_REPO.

Settings are read from environment variables (and an optional ``.env`` file)
using Pydantic Settings. Repositories fall back to ``get_settings()`` when no
explicit settings object is passed, so tuning knobs such as the settle delay
or the cursor batch cap can be changed without code edits.

Example:
    # Using environment variables
    settings = get_settings()
    settings.validate_connection()

    # Or explicit values (tests, scripts)
    settings = RepositorySettings(settle_delay_ms=0, transaction_threshold=5)
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_BULK_CHUNK_SIZE,
    DEFAULT_FLUSH_CHUNK_SIZE,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    DEFAULT_SETTLE_DELAY_MS,
    DEFAULT_TRANSACTION_THRESHOLD,
    INDEX_NAME_SEPARATOR,
    MAX_CURSOR_BATCHES,
)
from .exceptions import ConfigurationError


class RepositorySettings(BaseSettings):
    """
    Repository layer configuration with automatic validation.

    Connection values use the conventional ``MONGO_URI`` / ``DB_NAME``
    variables; everything else is prefixed with ``MDB_REPO_``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MDB_REPO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Connection
    mongo_uri: str = Field(
        default="", validation_alias="mongo_uri", description="MongoDB connection URI"
    )
    db_name: str = Field(default="", validation_alias="db_name", description="Database name")
    max_pool_size: int = Field(
        default=DEFAULT_MAX_POOL_SIZE, ge=1, description="Maximum connection pool size"
    )
    min_pool_size: int = Field(
        default=DEFAULT_MIN_POOL_SIZE, ge=1, description="Minimum connection pool size"
    )
    server_selection_timeout_ms: int = Field(
        default=DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
        ge=1000,
        description="Server selection timeout in milliseconds",
    )
    max_idle_time_ms: int = Field(
        default=DEFAULT_MAX_IDLE_TIME_MS,
        ge=0,
        description="Maximum idle time before a pooled connection is closed",
    )

    # Writes
    settle_delay_ms: int = Field(
        default=DEFAULT_SETTLE_DELAY_MS,
        ge=0,
        description="Delay applied after the first insertion of a document",
    )
    bulk_chunk_size: int = Field(
        default=DEFAULT_BULK_CHUNK_SIZE, ge=1, description="Group size for chunked bulk writes"
    )
    flush_chunk_size: int = Field(
        default=DEFAULT_FLUSH_CHUNK_SIZE,
        ge=1,
        description="Group size used when a transaction buffer flushes",
    )
    transaction_threshold: int = Field(
        default=DEFAULT_TRANSACTION_THRESHOLD,
        ge=1,
        description="Pending inserts + deletes that trigger a buffer flush",
    )

    # Reads
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE, ge=1, description="Documents per streamed cursor batch"
    )
    max_cursor_batches: int = Field(
        default=MAX_CURSOR_BATCHES,
        ge=1,
        description="Hard cap on batches pulled by one batch cursor",
    )

    # Indexes
    index_name_separator: str = Field(
        default=INDEX_NAME_SEPARATOR,
        min_length=1,
        description="Separator used to derive an index's short name",
    )

    @property
    def settle_delay_seconds(self) -> float:
        return self.settle_delay_ms / 1000

    def validate_connection(self) -> None:
        """
        Validate the connection part of the configuration.

        Raises:
            ConfigurationError: If required connection values are missing or inconsistent
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGO_URI environment variable or pass directly)",
                config_key="mongo_uri",
            )

        if not self.db_name:
            raise ConfigurationError(
                "db_name is required (set DB_NAME environment variable or pass directly)",
                config_key="db_name",
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )


@lru_cache(maxsize=1)
def get_settings() -> RepositorySettings:
    """Get the process-wide settings instance (read once from the environment)."""
    return RepositorySettings()
