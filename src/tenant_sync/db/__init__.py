"""Database module for Tenant Sync."""

from tenant_sync.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    dispose_engine,
    get_engine,
    get_session,
    get_session_factory,
)
from tenant_sync.db.models import (
    Base,
    BatchStatus,
    Commit,
    DataSource,
    DataSourceConfig,
    DataSourceRun,
    ImportBatch,
    Repository,
    RunStatus,
    SyncLock,
    Tenant,
)

__all__ = [
    # Models
    "Base",
    "BatchStatus",
    "Commit",
    "DataSource",
    "DataSourceConfig",
    "DataSourceRun",
    "ImportBatch",
    "Repository",
    "RunStatus",
    "SyncLock",
    "Tenant",
    # Engine
    "build_engine",
    "build_session_factory",
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
]
