"""Configuration settings for Tenant Sync."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrchestratorConfig(BaseModel):
    """Configuration for the sync orchestrator.

    Controls history windows, stale-run recovery, concurrency and
    how script locks are scoped.
    """

    # History windows
    initial_window_days: int = Field(
        default=7,
        ge=1,
        description="Days of history fetched on a script's first run",
    )
    backfill_chunk_days: int = Field(
        default=7,
        ge=1,
        description="Days of older history fetched per backfill step",
    )

    # Recovery
    stale_run_threshold_minutes: int = Field(
        default=30,
        ge=1,
        description="RUNNING records older than this are marked FAILED",
    )

    # Concurrency
    max_concurrent_graphs: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Tenant/data-source graphs executed in parallel",
    )
    max_concurrent_scripts: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Scripts executed in parallel within one graph",
    )
    connector_timeout_seconds: int | None = Field(
        default=3600,
        ge=1,
        description="Per-invocation connector timeout (None disables)",
    )

    # Locking
    lock_scope: Literal["script", "data_source"] = Field(
        default="script",
        description=(
            "'script' locks provider:resource, so data sources of one provider take "
            "turns; 'data_source' adds the data source id so they run in parallel"
        ),
    )
    lock_lease_seconds: int = Field(
        default=300,
        ge=5,
        description="Lease length for stores without advisory locks",
    )

    @property
    def initial_window(self) -> timedelta:
        """Get the initial window as a timedelta."""
        return timedelta(days=self.initial_window_days)

    @property
    def backfill_chunk(self) -> timedelta:
        """Get the backfill chunk as a timedelta."""
        return timedelta(days=self.backfill_chunk_days)

    @property
    def stale_run_threshold(self) -> timedelta:
        """Get the stale-run threshold as a timedelta."""
        return timedelta(minutes=self.stale_run_threshold_minutes)

    @property
    def connector_timeout(self) -> float | None:
        """Get the connector timeout in seconds, or None."""
        if self.connector_timeout_seconds is None:
            return None
        return float(self.connector_timeout_seconds)

    @property
    def lock_lease(self) -> timedelta:
        """Get the lease length as a timedelta."""
        return timedelta(seconds=self.lock_lease_seconds)

    @property
    def connection_pool_size(self) -> int:
        """Pooled connections for a full sweep.

        Every script slot may pin one connection for its advisory lock and
        use another for its session, plus the global lock and batch writes.
        """
        return 2 * self.max_concurrent_graphs * self.max_concurrent_scripts + 2


class SchedulerConfig(BaseModel):
    """Configuration for the sweep scheduler."""

    interval_minutes: int = Field(
        default=15,
        ge=1,
        description="Minutes between orchestrator sweeps",
    )
    run_on_start: bool = Field(
        default=True,
        description="Run a sweep immediately when the scheduler starts",
    )
    cron: str | None = Field(
        default=None,
        description="Crontab expression (e.g. '*/15 * * * *'); overrides interval_minutes",
    )

    @field_validator("cron")
    @classmethod
    def validate_cron(cls, v: str | None) -> str | None:
        """Reject expressions the scheduler cannot parse."""
        if v is not None:
            CronTrigger.from_crontab(v)
        return v

    @property
    def interval(self) -> timedelta:
        """Get the interval as a timedelta."""
        return timedelta(minutes=self.interval_minutes)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./tenant_sync.db",
        description="Async database connection string (SQLite or PostgreSQL)",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Orchestration
    # --------------------------------------------------------------------------
    orchestrator: OrchestratorConfig = Field(
        default_factory=OrchestratorConfig,
        description="Sync orchestrator configuration",
    )
    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig,
        description="Polling scheduler configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
