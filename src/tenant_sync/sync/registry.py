"""Compiled-in registry of connector scripts per provider."""

from collections.abc import Iterable, Mapping

from tenant_sync.exceptions import UnknownProviderError
from tenant_sync.logging import get_logger

from .scripts import SyncScript

logger = get_logger(__name__)


class ScriptRegistry:
    """Holds the scripts available for each provider.

    Provider names are matched case-insensitively. Scripts keep their
    registration order, which is also the dependency tie-break order.

    Usage:
        registry = ScriptRegistry.default()
        scripts = registry.get_scripts("github")
    """

    def __init__(self, scripts: Mapping[str, Iterable[SyncScript]] | None = None) -> None:
        self._scripts: dict[str, list[SyncScript]] = {}
        for provider, provider_scripts in (scripts or {}).items():
            for script in provider_scripts:
                self.register(script, provider=provider)

    @classmethod
    def default(cls) -> "ScriptRegistry":
        """Build the registry from the bundled connectors."""
        from tenant_sync.connectors import PROVIDER_SCRIPTS

        return cls(PROVIDER_SCRIPTS)

    def register(self, script: SyncScript, *, provider: str | None = None) -> None:
        """Add a script under ``provider`` (defaults to its provider_name)."""
        key = (provider or script.provider_name).lower()
        bucket = self._scripts.setdefault(key, [])
        if any(existing.identity == script.identity for existing in bucket):
            raise ValueError(f"Script '{script.identity}' already registered for '{key}'")
        bucket.append(script)
        logger.debug("Registered script {} for provider {}", script.identity, key)

    @property
    def providers(self) -> list[str]:
        return sorted(self._scripts)

    def has_provider(self, provider: str) -> bool:
        return provider.lower() in self._scripts

    def get_scripts(self, provider: str) -> list[SyncScript]:
        """Get the scripts registered for a provider.

        Raises:
            UnknownProviderError: If nothing is registered for the provider
        """
        try:
            return list(self._scripts[provider.lower()])
        except KeyError:
            raise UnknownProviderError(provider) from None
