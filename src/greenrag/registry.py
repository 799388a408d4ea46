"""Provider registry for greenrag.

Maps ``[embedding] provider`` config strings to factory functions, e.g.
``default_registry.create("embedding", "chromadb", config)`` → ``ChromaDBEmbedder``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from greenrag.exceptions import PluginError

if TYPE_CHECKING:
    from collections.abc import Callable

    from greenrag.config import GreenragConfig

__all__ = ["ProviderRegistry", "default_registry"]

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Config-driven factory mapping ``(category, name)`` to a provider instance.

    With ``auto_discover=True`` the first lookup imports ``greenrag.embed``,
    whose module body registers the built-in embedding providers.

    Usage::

        registry = ProviderRegistry()
        registry.register("embedding", "fake", lambda cfg: FakeEmbedder())
        embedder = registry.create("embedding", "fake", config)
    """

    def __init__(self, *, auto_discover: bool = False) -> None:
        self._factories: dict[str, dict[str, Callable[[GreenragConfig], Any]]] = {}
        self._auto_discover = auto_discover
        self._discovered = False

    def register(
        self,
        category: str,
        name: str,
        factory: Callable[[GreenragConfig], Any],
    ) -> None:
        """Register a provider factory.

        Raises:
            PluginError: If ``name`` is already registered under ``category``.
        """
        providers = self._factories.setdefault(category, {})
        if name in providers:
            raise PluginError(f"Provider '{name}' already registered in category '{category}'")
        providers[name] = factory
        logger.debug("Registered provider %s/%s", category, name)

    def _ensure_discovered(self) -> None:
        if self._discovered or not self._auto_discover:
            return
        self._discovered = True
        import greenrag.embed  # noqa: F401

    def create(self, category: str, name: str, config: GreenragConfig) -> Any:
        """Create a provider instance.

        Raises:
            PluginError: If the category or name is not registered.
        """
        self._ensure_discovered()

        providers = self._factories.get(category)
        if providers is None:
            raise PluginError(
                f"Unknown provider category '{category}'. Available: {sorted(self._factories)}"
            )
        factory = providers.get(name)
        if factory is None:
            raise PluginError(
                f"Unknown provider '{name}' in category '{category}'. "
                f"Available: {sorted(providers)}"
            )

        logger.info("Creating provider %s/%s", category, name)
        return factory(config)

    def list_providers(self, category: str) -> list[str]:
        """List registered provider names for a category."""
        self._ensure_discovered()
        return sorted(self._factories.get(category, {}))

    def has_provider(self, category: str, name: str) -> bool:
        self._ensure_discovered()
        return name in self._factories.get(category, {})


default_registry = ProviderRegistry(auto_discover=True)
