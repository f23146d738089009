"""Dependency-ordered execution of one tenant/data-source script graph."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, MutableMapping, Sequence

from tenant_sync.logging import get_logger

from .dependency_graph import validate_acyclic
from .enums import ExecutionState, SkipReason
from .executor import ScriptExecutor
from .results import ScriptError, ScriptExecutionResult, describe_error
from .scripts import SyncScript, TenantDataSource

logger = get_logger(__name__)


def result_key(script: SyncScript, source: TenantDataSource) -> str:
    """Key for a script outcome in the shared results map."""
    return f"{source.data_source_id}:{script.resource_name}"


class ExecutionGraphRunner:
    """Run a script graph with dependency ordering and bounded concurrency.

    Each script waits for all its prerequisites to settle. Scripts with
    no ordering between them run concurrently, up to ``max_concurrency``
    at a time.

    A script whose prerequisite FAILED, or was itself blocked, is not
    executed and is recorded as SKIPPED with ``UPSTREAM_FAILED``. A
    prerequisite skipped for lock contention does not block dependents.

    Results and errors are written into caller-owned collections as they
    happen so partial progress survives an aborted graph.
    """

    def __init__(
        self,
        executor: ScriptExecutor,
        scripts: Mapping[SyncScript, TenantDataSource],
        graph: Mapping[str, Sequence[str]],
        results: MutableMapping[str, ScriptExecutionResult],
        errors: list[ScriptError],
        batch_id: str,
        *,
        max_concurrency: int = 5,
    ) -> None:
        """Initialize the runner.

        Args:
            executor: Executes a single script
            scripts: Script descriptor to the data source it runs for
            graph: Script identity to prerequisite identities
            results: Shared outcome map, keyed ``data_source_id:resource_name``
            errors: Shared list receiving one entry per failed script
            batch_id: Current batch identifier
            max_concurrency: Maximum scripts executing at once
        """
        self._executor = executor
        self._scripts = dict(scripts)
        self._graph = graph
        self._results = results
        self._errors = errors
        self._batch_id = batch_id
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def run(self) -> MutableMapping[str, ScriptExecutionResult]:
        """Execute every script in the graph.

        Returns:
            The shared results map

        Raises:
            DependencyCycleError: If the graph has a cycle (nothing runs)
            Exception: The first unexpected error raised by the executor,
                re-raised after every script has settled
        """
        validate_acyclic(self._graph)

        by_identity = {script.identity: script for script in self._scripts}
        settled = {identity: asyncio.Event() for identity in by_identity}
        blocking: set[str] = set()
        unexpected: list[BaseException] = []

        async def run_node(identity: str) -> None:
            script = by_identity[identity]
            source = self._scripts[script]
            prerequisites = [p for p in self._graph.get(identity, ()) if p in by_identity]
            try:
                for prerequisite in prerequisites:
                    await settled[prerequisite].wait()

                failed_upstream = [p for p in prerequisites if p in blocking]
                if failed_upstream:
                    logger.info(
                        "Skipping {} for data source {}: upstream {} did not succeed",
                        identity,
                        source.data_source_id,
                        ", ".join(failed_upstream),
                    )
                    blocking.add(identity)
                    self._record(
                        script,
                        source,
                        ScriptExecutionResult.skip(
                            identity, source.data_source_id, SkipReason.UPSTREAM_FAILED
                        ),
                    )
                    return

                async with self._semaphore:
                    try:
                        result = await self._executor.execute(script, source, self._batch_id)
                    except Exception as e:
                        logger.exception(
                            "Unexpected error executing {} for data source {}",
                            identity,
                            source.data_source_id,
                        )
                        unexpected.append(e)
                        result = ScriptExecutionResult(
                            script=identity,
                            data_source_id=source.data_source_id,
                            state=ExecutionState.FAILED,
                            error=e,
                        )

                if result.failed:
                    blocking.add(identity)
                self._record(script, source, result)
            finally:
                settled[identity].set()

        await asyncio.gather(*(run_node(identity) for identity in by_identity))

        if unexpected:
            raise unexpected[0]
        return self._results

    def _record(
        self,
        script: SyncScript,
        source: TenantDataSource,
        result: ScriptExecutionResult,
    ) -> None:
        self._results[result_key(script, source)] = result
        if result.failed:
            self._errors.append(
                ScriptError(
                    script=f"{script.provider_name}:{script.resource_name}",
                    error=describe_error(result.error),
                    data_source_id=source.data_source_id,
                )
            )
