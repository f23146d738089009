"""Enums for sync operations."""

from enum import Enum


class ExecutionState(str, Enum):
    """State of one script execution inside the executor.

    PENDING -> LOCK_HELD -> RANGES_COMPUTED -> RUNNING -> COMPLETED | FAILED,
    or directly to SKIPPED.
    """

    PENDING = "pending"
    LOCK_HELD = "lock_held"
    RANGES_COMPUTED = "ranges_computed"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    """Why a script was not executed in this batch."""

    LOCK_CONTENTION = "lock_contention"
    """Another worker holds the script's lock."""

    RUN_NOT_CLAIMED = "run_not_claimed"
    """The run record could not be created or claimed."""

    UPSTREAM_FAILED = "upstream_failed"
    """A prerequisite script failed or was itself blocked."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
