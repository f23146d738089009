"""Orchestrator exceptions."""


class SyncError(Exception):
    """Base exception for sync orchestration errors."""

    pass


class ConfigurationError(SyncError):
    """Raised when scripts or data sources are misconfigured."""

    pass


class DependencyCycleError(ConfigurationError):
    """Raised when script dependencies form a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class UnknownProviderError(ConfigurationError):
    """Raised when no scripts are registered for a provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"No scripts registered for provider '{provider}'")
        self.provider = provider


class RunNotFoundError(SyncError):
    """Raised when a run record id does not exist."""

    def __init__(self, run_id: int) -> None:
        super().__init__(f"Run record {run_id} not found")
        self.run_id = run_id


class StoreUnavailableError(SyncError):
    """Raised when the shared store cannot be reached.

    This is fatal for a batch: no partial progress is possible
    without store access.
    """

    pass
