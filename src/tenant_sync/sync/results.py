"""Result types for script execution and orchestrator sweeps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .date_range import DateRanges
from .enums import ExecutionState, SkipReason


def describe_error(error: object) -> str:
    """Render an error value for logs and the run record's text column."""
    if isinstance(error, BaseException):
        message = str(error)
        return message or type(error).__name__
    return str(error)


@dataclass
class ScriptExecutionResult:
    """Outcome of executing one script for one data source."""

    script: str
    """Script identity (provider:resource)."""

    data_source_id: str
    """Data source the script ran for."""

    state: ExecutionState
    """Terminal executor state."""

    records_imported: int = 0
    """Records reported by the connector across all invocations."""

    run_id: int | None = None
    """Run record id, when one was claimed."""

    skip_reason: SkipReason | None = None
    """Why the script was skipped (SKIPPED only)."""

    error: object | None = None
    """Original error value as raised (FAILED only)."""

    ranges: DateRanges | None = None
    """Windows computed for this attempt."""

    @property
    def success(self) -> bool:
        return self.state == ExecutionState.COMPLETED

    @property
    def skipped(self) -> bool:
        return self.state == ExecutionState.SKIPPED

    @property
    def failed(self) -> bool:
        return self.state == ExecutionState.FAILED

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return describe_error(self.error)

    @classmethod
    def skip(
        cls,
        script: str,
        data_source_id: str,
        reason: SkipReason,
        *,
        run_id: int | None = None,
    ) -> ScriptExecutionResult:
        return cls(
            script=script,
            data_source_id=data_source_id,
            state=ExecutionState.SKIPPED,
            skip_reason=reason,
            run_id=run_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "script": self.script,
            "data_source_id": self.data_source_id,
            "state": self.state.value,
            "success": self.success,
            "skipped": self.skipped,
            "records_imported": self.records_imported,
            "run_id": self.run_id,
        }
        if self.skip_reason is not None:
            data["skip_reason"] = self.skip_reason.value
        if self.error is not None:
            data["error"] = self.error_message
        if self.ranges is not None:
            data["forward"] = self.ranges.forward.to_dict() if self.ranges.forward else None
            data["backfill"] = self.ranges.backfill.to_dict() if self.ranges.backfill else None
            data["backfill_complete"] = self.ranges.backfill_complete
        return data


@dataclass(frozen=True)
class ScriptError:
    """One failed script in a batch."""

    script: str
    """Script identity (provider:resource)."""

    error: str
    """Error message."""

    data_source_id: str | None = None
    """Data source the failure belongs to."""

    def to_dict(self) -> dict[str, Any]:
        return {"script": self.script, "error": self.error, "data_source_id": self.data_source_id}


@dataclass
class TenantFailure:
    """A tenant/data-source graph that aborted as a whole."""

    tenant_id: str
    data_source_id: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "data_source_id": self.data_source_id,
            "error": self.error,
        }


@dataclass
class OrchestratorResult:
    """Summary of one orchestrator sweep.

    Counts are best effort: they cover every graph that ran, even when
    some scripts or whole tenants failed.
    """

    batch_id: str | None = None
    """Batch identifier (None when the sweep did not start)."""

    lock_acquired: bool = True
    """False when another process was already running a sweep."""

    data_sources_processed: int = 0
    """Tenant/data-source graphs that were executed."""

    results: dict[str, ScriptExecutionResult] = field(default_factory=dict)
    """Per-script outcomes keyed by ``data_source_id:resource_name``."""

    errors: list[ScriptError] = field(default_factory=list)
    """Failed scripts."""

    tenant_failures: list[TenantFailure] = field(default_factory=list)
    """Graphs that aborted."""

    stale_runs_cleaned: int = 0
    """RUNNING records failed by stale-run cleanup."""

    execution_time_ms: int = 0
    """Wall-clock duration of the sweep."""

    @property
    def scripts_executed(self) -> int:
        return sum(1 for r in self.results.values() if r.success)

    @property
    def scripts_failed(self) -> int:
        return sum(1 for r in self.results.values() if r.failed)

    @property
    def scripts_skipped(self) -> int:
        return sum(1 for r in self.results.values() if r.skipped)

    @property
    def scripts_blocked(self) -> int:
        return sum(
            1 for r in self.results.values() if r.skip_reason == SkipReason.UPSTREAM_FAILED
        )

    @property
    def records_imported(self) -> int:
        return sum(r.records_imported for r in self.results.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "summary": {
                "batch_id": self.batch_id,
                "lock_acquired": self.lock_acquired,
                "data_sources_processed": self.data_sources_processed,
                "scripts_executed": self.scripts_executed,
                "scripts_failed": self.scripts_failed,
                "scripts_skipped": self.scripts_skipped,
                "scripts_blocked": self.scripts_blocked,
                "records_imported": self.records_imported,
                "stale_runs_cleaned": self.stale_runs_cleaned,
                "execution_time_ms": self.execution_time_ms,
            },
            "errors": [e.to_dict() for e in self.errors],
            "tenant_failures": [f.to_dict() for f in self.tenant_failures],
            "scripts": {key: r.to_dict() for key, r in sorted(self.results.items())},
        }
