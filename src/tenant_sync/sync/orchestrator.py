"""Batch Orchestrator - one sweep across all tenants and data sources.

Loads the enabled data sources, resolves each provider's scripts into a
dependency graph, and runs one graph per data source in parallel.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_sync.config import OrchestratorConfig, Settings, get_settings
from tenant_sync.db.models import BatchStatus
from tenant_sync.db.repositories import DataSourceRepository, ImportBatchRepository
from tenant_sync.db.types import utc_now
from tenant_sync.exceptions import StoreUnavailableError, UnknownProviderError
from tenant_sync.logging import LogContext, bind_data_source, get_logger

from .date_range import DateRangeCalculator
from .dependency_graph import build_dependency_graph
from .execution_graph import ExecutionGraphRunner
from .executor import ScriptExecutor
from .locks import LockManager, create_lock_manager
from .registry import ScriptRegistry
from .results import OrchestratorResult, TenantFailure, describe_error
from .run_tracker import RunTracker
from .scripts import TenantDataSource
from .tenant_config import TenantConfigLookup

logger = get_logger(__name__)

GLOBAL_LOCK_KEY = "global_orchestrator_lock"


def contended_providers(sources: list[TenantDataSource]) -> list[str]:
    """Providers with more than one data source in this sweep."""
    counts = Counter(source.provider for source in sources)
    return sorted(provider for provider, count in counts.items() if count > 1)


class BatchOrchestrator:
    """Top-level entry point for a sync sweep.

    Only one sweep runs at a time across the fleet: a sweep that cannot
    take the global lock returns immediately with ``lock_acquired=False``.

    Usage:
        orchestrator = BatchOrchestrator.from_settings()
        result = await orchestrator.run(triggered_by="cli")
        print(result.to_dict()["summary"])
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lock_manager: LockManager,
        registry: ScriptRegistry,
        *,
        config: OrchestratorConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        tenant_lookup: TenantConfigLookup | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session_factory: Factory for short-lived store sessions
            lock_manager: Distributed try-lock backend
            registry: Scripts available per provider
            config: Orchestrator settings (defaults to OrchestratorConfig())
            clock: Source of the current time
            tenant_lookup: Data source lookup (defaults to the store lookup)
        """
        self._config = config or OrchestratorConfig()
        self._session_factory = session_factory
        self._locks = lock_manager
        self._registry = registry
        self._clock = clock
        self._tenant_lookup = tenant_lookup or TenantConfigLookup(session_factory)
        self._run_tracker = RunTracker(
            session_factory,
            clock=clock,
            stale_threshold=self._config.stale_run_threshold,
        )
        self._executor = ScriptExecutor(
            lock_manager,
            self._run_tracker,
            DateRangeCalculator.from_config(session_factory, self._config, clock=clock),
            session_factory,
            clock=clock,
            connector_timeout=self._config.connector_timeout,
            lock_scope=self._config.lock_scope,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> BatchOrchestrator:
        """Build an orchestrator wired to the configured database."""
        from tenant_sync.db.engine import get_engine, get_session_factory

        settings = settings or get_settings()
        session_factory = get_session_factory()
        return cls(
            session_factory,
            create_lock_manager(
                get_engine(), session_factory, lease=settings.orchestrator.lock_lease
            ),
            ScriptRegistry.default(),
            config=settings.orchestrator,
        )

    @property
    def run_tracker(self) -> RunTracker:
        return self._run_tracker

    @property
    def executor(self) -> ScriptExecutor:
        return self._executor

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    async def run(self, triggered_by: str = "scheduler") -> OrchestratorResult:
        """Run one sweep.

        Args:
            triggered_by: Who started the sweep (stored on the batch record)

        Returns:
            OrchestratorResult with per-script outcomes and counts

        Raises:
            StoreUnavailableError: If the store cannot be reached while
                preparing the batch or loading data sources
        """
        start_time = time.monotonic()

        if not await self._locks.acquire(GLOBAL_LOCK_KEY):
            logger.info("Another orchestrator sweep is already running; skipping")
            return OrchestratorResult(lock_acquired=False)

        batch_id = str(uuid.uuid4())
        result = OrchestratorResult(batch_id=batch_id)
        try:
            with LogContext(batch_id=batch_id):
                await self._run_batch(result, batch_id, triggered_by)
        finally:
            result.execution_time_ms = int((time.monotonic() - start_time) * 1000)
            await self._locks.release(GLOBAL_LOCK_KEY)

        logger.info(
            "Batch {} finished: {} executed, {} failed, {} skipped in {}ms",
            batch_id,
            result.scripts_executed,
            result.scripts_failed,
            result.scripts_skipped,
            result.execution_time_ms,
        )
        return result

    async def _run_batch(
        self,
        result: OrchestratorResult,
        batch_id: str,
        triggered_by: str,
    ) -> None:
        batch_created = False
        try:
            result.stale_runs_cleaned = await self._run_tracker.cleanup_stale_runs()
            async with self._session_factory() as session:
                await ImportBatchRepository(session).create(batch_id, triggered_by, self._clock())
                await session.commit()
            batch_created = True
            sources = await self._tenant_lookup.load()
        except SQLAlchemyError as e:
            logger.error("Store unavailable, aborting batch {}: {}", batch_id, e)
            if batch_created:
                await self._finalize_batch_quietly(result, BatchStatus.FAILED)
            raise StoreUnavailableError(f"Store unavailable: {e}") from e

        logger.info("Batch {} started: {} data source(s)", batch_id, len(sources))
        shared = contended_providers(sources) if self._config.lock_scope == "script" else []
        if shared:
            logger.info(
                "Data sources of provider(s) {} share script locks and will skip while "
                "another holds them; set ORCHESTRATOR__LOCK_SCOPE=data_source to run "
                "them in parallel",
                ", ".join(shared),
            )

        semaphore = asyncio.Semaphore(self._config.max_concurrent_graphs)
        outcomes = await asyncio.gather(
            *(self._run_data_source(source, batch_id, result, semaphore) for source in sources)
        )
        synced = [source.data_source_id for source, ran in zip(sources, outcomes) if ran]
        result.data_sources_processed = len(synced)

        try:
            async with self._session_factory() as session:
                await DataSourceRepository(session).update_last_sync_at(synced, self._clock())
                await ImportBatchRepository(session).finalize(
                    batch_id, status=BatchStatus.COMPLETED, **self._batch_counts(result)
                )
                await session.commit()
        except SQLAlchemyError as e:
            # Run records are already committed; the summary is still returned
            logger.error("Could not record the end of batch {}: {}", batch_id, e)
            await self._finalize_batch_quietly(result, BatchStatus.FAILED)

    async def _run_data_source(
        self,
        source: TenantDataSource,
        batch_id: str,
        result: OrchestratorResult,
        semaphore: asyncio.Semaphore,
    ) -> bool:
        """Run the script graph for one data source.

        Returns:
            True if the graph ran to completion (script failures included)
        """
        log = bind_data_source(source.tenant_id, source.data_source_id)
        async with semaphore:
            try:
                scripts = self._registry.get_scripts(source.provider)
                runner = ExecutionGraphRunner(
                    self._executor,
                    {script: source for script in scripts},
                    build_dependency_graph(scripts),
                    result.results,
                    result.errors,
                    batch_id,
                    max_concurrency=self._config.max_concurrent_scripts,
                )
                log.debug("Running {} script(s) for provider {}", len(scripts), source.provider)
                await runner.run()
            except UnknownProviderError as e:
                log.warning("Skipping data source {}: {}", source.data_source_id, e)
                result.tenant_failures.append(
                    TenantFailure(source.tenant_id, source.data_source_id, str(e))
                )
                return False
            except Exception as e:
                log.exception(
                    "Sync failed for tenant {} data source {}",
                    source.tenant_id,
                    source.data_source_id,
                )
                result.tenant_failures.append(
                    TenantFailure(source.tenant_id, source.data_source_id, describe_error(e))
                )
                return False
        return True

    # -------------------------------------------------------------------------
    # Batch record
    # -------------------------------------------------------------------------

    def _batch_counts(self, result: OrchestratorResult) -> dict[str, Any]:
        return {
            "completed_at": self._clock(),
            "scripts_executed": result.scripts_executed,
            "scripts_failed": result.scripts_failed,
            "scripts_skipped": result.scripts_skipped,
            "errors": [e.to_dict() for e in result.errors],
        }

    async def _finalize_batch_quietly(self, result: OrchestratorResult, status: BatchStatus) -> None:
        """Best-effort finalize while the store is already failing."""
        try:
            async with self._session_factory() as session:
                await ImportBatchRepository(session).finalize(
                    result.batch_id or "", status=status, **self._batch_counts(result)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Could not mark batch {} as {}: {}", result.batch_id, status.value, e)
