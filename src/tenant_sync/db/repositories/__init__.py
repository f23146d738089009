"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .base import BaseRepository
from .batch import ImportBatchRepository
from .commit import CommitRepository
from .lock import SyncLockRepository
from .repository import RepositoryRepository
from .run import DataSourceRunRepository
from .tenant import DataSourceRepository, TenantRepository

__all__ = [
    "BaseRepository",
    "CommitRepository",
    "DataSourceRepository",
    "DataSourceRunRepository",
    "ImportBatchRepository",
    "RepositoryRepository",
    "SyncLockRepository",
    "TenantRepository",
]
