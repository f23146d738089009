"""SQLAlchemy ORM models for Tenant Sync."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)
from sqlalchemy.types import JSON

from .types import UTCDateTime, utc_now


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map = {datetime: UTCDateTime()}


def new_uuid() -> str:
    """Generate a string UUID primary key."""
    return str(uuid.uuid4())


class RunStatus(str, Enum):
    """Lifecycle status of a script run record."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class BatchStatus(str, Enum):
    """Lifecycle status of an orchestrator sweep."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ------------------------------------------------------------------------------
# Tenant model
# ------------------------------------------------------------------------------
class Tenant(Base):
    """An independent organization whose data sources are synced."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(200))
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)

    data_sources: Mapped[list["DataSource"]] = relationship(
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id='{self.id}', name='{self.name}')>"


# ------------------------------------------------------------------------------
# DataSource model
# ------------------------------------------------------------------------------
class DataSource(Base):
    """One configured connector instance (e.g. a GitHub org) for a tenant."""

    __tablename__ = "data_sources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    tenant_id: Mapped[str] = mapped_column(ForeignKey("tenants.id", ondelete="CASCADE"))
    provider: Mapped[str] = mapped_column(String(50))  # e.g., "github"
    name: Mapped[str] = mapped_column(String(200))
    is_enabled: Mapped[bool] = mapped_column(default=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)

    tenant: Mapped[Tenant] = relationship(back_populates="data_sources")
    configs: Mapped[list["DataSourceConfig"]] = relationship(
        back_populates="data_source",
        cascade="all, delete-orphan",
    )
    runs: Mapped[list["DataSourceRun"]] = relationship(
        back_populates="data_source",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_data_sources_tenant_id", "tenant_id"),)

    def __repr__(self) -> str:
        return f"<DataSource(id='{self.id}', provider='{self.provider}', name='{self.name}')>"


class DataSourceConfig(Base):
    """Key/value configuration entry for a data source (tokens, org names, ...)."""

    __tablename__ = "data_source_configs"

    id: Mapped[int] = mapped_column(primary_key=True)
    data_source_id: Mapped[str] = mapped_column(
        ForeignKey("data_sources.id", ondelete="CASCADE")
    )
    key: Mapped[str] = mapped_column(String(100))  # e.g., "GITHUB_TOKEN"
    value: Mapped[str] = mapped_column(Text)
    is_secret: Mapped[bool] = mapped_column(default=False)

    data_source: Mapped[DataSource] = relationship(back_populates="configs")

    __table_args__ = (
        UniqueConstraint("data_source_id", "key", name="uq_data_source_config_key"),
    )

    def __repr__(self) -> str:
        return f"<DataSourceConfig(data_source_id='{self.data_source_id}', key='{self.key}')>"


# ------------------------------------------------------------------------------
# Run tracking
# ------------------------------------------------------------------------------
class DataSourceRun(Base):
    """Run record for one (data source, script) pair.

    Upserted across batches rather than appended. The watermark columns
    are written only on successful completion so they survive the reset
    to RUNNING at the start of the next attempt.
    """

    __tablename__ = "data_source_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    data_source_id: Mapped[str] = mapped_column(
        ForeignKey("data_sources.id", ondelete="CASCADE")
    )
    script_name: Mapped[str] = mapped_column(String(200))  # e.g., "github:commit"
    import_batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    status: Mapped[RunStatus] = mapped_column(default=RunStatus.RUNNING)

    started_at: Mapped[datetime] = mapped_column(default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(nullable=True)

    # Watermarks
    last_fetched_data_at: Mapped[datetime | None] = mapped_column(nullable=True)
    earliest_fetched_data_at: Mapped[datetime | None] = mapped_column(nullable=True)

    records_imported: Mapped[int] = mapped_column(default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    data_source: Mapped[DataSource] = relationship(back_populates="runs")

    __table_args__ = (
        UniqueConstraint("data_source_id", "script_name", name="uq_data_source_script"),
        Index("ix_data_source_runs_status", "status"),
    )

    @property
    def has_history(self) -> bool:
        """True once at least one attempt has completed successfully."""
        return self.last_fetched_data_at is not None

    def __repr__(self) -> str:
        return (
            f"<DataSourceRun(id={self.id}, data_source_id='{self.data_source_id}', "
            f"script='{self.script_name}', status={self.status.value})>"
        )


class ImportBatch(Base):
    """One orchestrator sweep across all tenants and data sources."""

    __tablename__ = "import_batches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    triggered_by: Mapped[str] = mapped_column(String(100), default="scheduler")
    status: Mapped[BatchStatus] = mapped_column(default=BatchStatus.RUNNING)
    started_at: Mapped[datetime] = mapped_column(default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    scripts_executed: Mapped[int] = mapped_column(default=0)
    scripts_failed: Mapped[int] = mapped_column(default=0)
    scripts_skipped: Mapped[int] = mapped_column(default=0)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return f"<ImportBatch(id='{self.id}', status={self.status.value})>"


class SyncLock(Base):
    """Lease row backing the lock manager on stores without advisory locks."""

    __tablename__ = "sync_locks"

    lock_key: Mapped[str] = mapped_column(String(300), primary_key=True)
    holder_id: Mapped[str] = mapped_column(String(100))
    acquired_at: Mapped[datetime] = mapped_column(default=utc_now)
    expires_at: Mapped[datetime] = mapped_column()

    def __repr__(self) -> str:
        return f"<SyncLock(key='{self.lock_key}', holder='{self.holder_id}')>"


# ------------------------------------------------------------------------------
# Connector storage
# ------------------------------------------------------------------------------
class Repository(Base):
    """Source-code repository imported from a provider."""

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    data_source_id: Mapped[str] = mapped_column(
        ForeignKey("data_sources.id", ondelete="CASCADE")
    )
    owner: Mapped[str] = mapped_column(String(100))  # e.g., "acme"
    name: Mapped[str] = mapped_column(String(100))  # e.g., "widgets"
    full_name: Mapped[str] = mapped_column(String(200))  # "acme/widgets"
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    language: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stars: Mapped[int] = mapped_column(default=0)
    forks: Mapped[int] = mapped_column(default=0)
    is_private: Mapped[bool] = mapped_column(default=False)
    is_archived: Mapped[bool] = mapped_column(default=False)
    pushed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(nullable=True)

    commits: Mapped[list["Commit"]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("data_source_id", "full_name", name="uq_data_source_repository"),
    )

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, full_name='{self.full_name}')>"


class Commit(Base):
    """Commit imported from a repository."""

    __tablename__ = "commits"

    id: Mapped[int] = mapped_column(primary_key=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id", ondelete="CASCADE"))
    sha: Mapped[str] = mapped_column(String(40))
    message: Mapped[str] = mapped_column(Text, default="")
    author_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    author_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    author_login: Mapped[str | None] = mapped_column(String(100), nullable=True)
    committed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    repository: Mapped[Repository] = relationship(back_populates="commits")

    __table_args__ = (
        UniqueConstraint("repository_id", "sha", name="uq_repository_commit_sha"),
        Index("ix_commits_committed_at", "committed_at"),
    )

    def __repr__(self) -> str:
        return f"<Commit(id={self.id}, sha='{self.sha[:7]}')>"
