"""Script descriptors and per-invocation execution context.

A script is a thin connector that imports one resource type for one
provider. The orchestrator only sees the descriptor: what the script
produces, what it depends on, how much history it wants, and the
coroutine that does the work.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

ConnectorFn = Callable[["AsyncSession", "ExecutionContext"], Awaitable[int | None]]
"""Connector coroutine: ``run(session, context)`` returning records imported."""


@dataclass(frozen=True)
class SyncScript:
    """Immutable descriptor for one connector script.

    Instances are hashable so they can key the per-graph script map.
    """

    provider_name: str
    """Provider the script belongs to (e.g. "github")."""

    resource_name: str
    """Resource the script produces (e.g. "commit")."""

    run: ConnectorFn = field(compare=False, repr=False)
    """Connector coroutine."""

    depends_on: tuple[str, ...] = ()
    """Resource names or script identities that must complete first."""

    retention_window: timedelta = timedelta(days=90)
    """How far back history should eventually be backfilled."""

    name: str | None = None
    """Optional explicit identity when resource names collide across providers."""

    @property
    def identity(self) -> str:
        """Unique script identity within a graph."""
        return self.name or f"{self.provider_name}:{self.resource_name}"

    @property
    def lock_key(self) -> str:
        """Advisory lock key shared by every worker running this script."""
        return f"{self.provider_name}:{self.resource_name}"


@dataclass(frozen=True)
class TenantDataSource:
    """An enabled data source with its fully resolved config map."""

    tenant_id: str
    data_source_id: str
    provider: str
    env: Mapping[str, str] = field(default_factory=dict)
    name: str = ""


@dataclass(frozen=True)
class ExecutionContext:
    """Parameters for one connector invocation over one date range."""

    tenant_id: str
    data_source_id: str
    provider: str
    env: Mapping[str, str]
    start_date: datetime
    end_date: datetime
    run_id: int
    batch_id: str

    @classmethod
    def for_range(
        cls,
        source: TenantDataSource,
        *,
        start_date: datetime,
        end_date: datetime,
        run_id: int,
        batch_id: str,
    ) -> ExecutionContext:
        """Build a context for one date-range segment of a data source."""
        return cls(
            tenant_id=source.tenant_id,
            data_source_id=source.data_source_id,
            provider=source.provider,
            env=source.env,
            start_date=start_date,
            end_date=end_date,
            run_id=run_id,
            batch_id=batch_id,
        )
