"""Sync orchestration: scripts, dependency graphs, locks, windows and runs."""

from .date_range import DateRange, DateRangeCalculator, DateRanges, compute_date_ranges
from .dependency_graph import build_dependency_graph, find_cycle, validate_acyclic
from .enums import ExecutionState, OutputFormat, SkipReason
from .execution_graph import ExecutionGraphRunner
from .executor import ScriptExecutor
from .locks import LeaseLockManager, LockManager, PostgresAdvisoryLockManager, create_lock_manager
from .orchestrator import GLOBAL_LOCK_KEY, BatchOrchestrator
from .registry import ScriptRegistry
from .results import OrchestratorResult, ScriptError, ScriptExecutionResult, TenantFailure
from .run_tracker import RunTracker
from .scheduler import SyncScheduler
from .scripts import ExecutionContext, SyncScript, TenantDataSource
from .tenant_config import TenantConfigLookup, build_environment

__all__ = [
    "GLOBAL_LOCK_KEY",
    "BatchOrchestrator",
    "DateRange",
    "DateRangeCalculator",
    "DateRanges",
    "ExecutionContext",
    "ExecutionGraphRunner",
    "ExecutionState",
    "LeaseLockManager",
    "LockManager",
    "OrchestratorResult",
    "OutputFormat",
    "PostgresAdvisoryLockManager",
    "RunTracker",
    "ScriptError",
    "ScriptExecutionResult",
    "ScriptExecutor",
    "ScriptRegistry",
    "SkipReason",
    "SyncScheduler",
    "SyncScript",
    "TenantConfigLookup",
    "TenantDataSource",
    "TenantFailure",
    "build_dependency_graph",
    "build_environment",
    "compute_date_ranges",
    "find_cycle",
    "validate_acyclic",
]
