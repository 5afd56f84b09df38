"""Configuration models for the feed synchronization engine."""

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteSourceConfig(BaseModel):
    """Configuration for the remote paginated feed."""

    base_url: HttpUrl = Field(
        default="https://jsonplaceholder.typicode.com/posts",
        validate_default=True,
        description="Endpoint returning a JSON array of posts",
    )
    timeout_seconds: float = Field(
        default=10.0, gt=0.0, le=300.0, description="Per-request transport timeout"
    )
    max_retries: int = Field(
        default=2, ge=0, le=10, description="Transport retries before a fetch fails"
    )
    retry_base_delay: float = Field(
        default=0.5, ge=0.0, le=30.0, description="Initial backoff delay in seconds"
    )


class StoreConfig(BaseModel):
    """Configuration for the local record store."""

    backend: Literal["sqlite", "memory"] = Field(
        default="sqlite", description="Record store implementation"
    )
    path: str = Field(
        default="data/feed.db", description="SQLite database path (':memory:' for ephemeral)"
    )


class SyncConfig(BaseModel):
    """Configuration for the sync engine."""

    page_size: int = Field(default=20, ge=1, le=100, description="Records requested per page")
    prefetch_distance: int = Field(
        default=5,
        ge=0,
        description="Rows from the end of the list at which the next page is requested",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the FEEDSYNC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    remote: RemoteSourceConfig = Field(default_factory=RemoteSourceConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
