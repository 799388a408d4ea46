"""Process-wide retrieval runtime with at-most-once async initialization.

The runtime owns the published ``RetrievalService``. The first
``initialize`` call starts one build task under a lock; every concurrent
caller awaits that same task, so the corpus is embedded exactly once.
A failed build is reported to every waiter as ``BootstrapError`` and
leaves the runtime uninitialized, so a later call may retry.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from greenrag.config import GreenragConfig
from greenrag.exceptions import BootstrapError, NotInitializedError
from greenrag.ingest import load_documents
from greenrag.pipeline import KnowledgePipeline
from greenrag.registry import default_registry

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from greenrag.embed.base import BaseEmbedder
    from greenrag.retrieval.service import RetrievalService

__all__ = [
    "RetrievalRuntime",
    "default_runtime",
    "get_retrieval_service",
    "initialize_from_config",
    "initialize_retrieval",
    "is_retrieval_initialized",
    "reset_retrieval",
]

logger = logging.getLogger(__name__)


class RetrievalRuntime:
    """Lock-protected, once-initialized handle on a ``RetrievalService``.

    Usage::

        runtime = RetrievalRuntime()
        service = await runtime.initialize({"pricing": pricing_md}, embedder=embedder)
        ...
        runtime.service  # same instance for the rest of the process
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[RetrievalService] | None = None
        self._service: RetrievalService | None = None

    @property
    def is_initialized(self) -> bool:
        return self._service is not None

    @property
    def service(self) -> RetrievalService:
        """The published service.

        Raises:
            NotInitializedError: If initialization has not completed.
        """
        if self._service is None:
            raise NotInitializedError(
                "Retrieval service is not initialized; await initialize() first"
            )
        return self._service

    async def initialize(
        self,
        documents: Mapping[str, str],
        config: GreenragConfig | None = None,
        embedder: BaseEmbedder | None = None,
    ) -> RetrievalService:
        """Build the service from ``{source_id: markdown}`` documents, once.

        Raises:
            BootstrapError: If the build fails.
        """
        snapshot = dict(documents)
        return await self._initialize(lambda: snapshot, config, embedder)

    async def initialize_from_paths(
        self,
        paths: list[Path],
        config: GreenragConfig | None = None,
        embedder: BaseEmbedder | None = None,
    ) -> RetrievalService:
        """Load markdown files inside the build task, then initialize.

        Raises:
            BootstrapError: If a file cannot be loaded or the build fails.
        """
        files = list(paths)
        return await self._initialize(lambda: load_documents(files), config, embedder)

    async def _initialize(
        self,
        loader: Callable[[], Mapping[str, str]],
        config: GreenragConfig | None,
        embedder: BaseEmbedder | None,
    ) -> RetrievalService:
        if self._service is not None:
            return self._service

        async with self._lock:
            if self._service is not None:
                return self._service
            if self._task is None or self._task.cancelled():
                logger.info("Starting retrieval bootstrap")
                self._task = asyncio.create_task(
                    self._build(loader, config or GreenragConfig(), embedder)
                )
            task = self._task

        # A cancelled waiter must not cancel the build the other waiters share
        return await asyncio.shield(task)

    async def _build(
        self,
        loader: Callable[[], Mapping[str, str]],
        config: GreenragConfig,
        embedder: BaseEmbedder | None,
    ) -> RetrievalService:
        try:
            documents = await asyncio.to_thread(loader)
            if embedder is None:
                embedder = default_registry.create("embedding", config.embedding.provider, config)
            service = await KnowledgePipeline(embedder=embedder, config=config).run(documents)
        except asyncio.CancelledError:
            if self._task is asyncio.current_task():
                self._task = None
            logger.warning("Retrieval bootstrap cancelled")
            raise
        except Exception as e:
            if self._task is asyncio.current_task():
                self._task = None
            logger.error("Retrieval bootstrap failed: %s", e)
            raise BootstrapError(f"Retrieval bootstrap failed: {e}") from e

        if self._task is asyncio.current_task():
            self._service = service
        logger.info("Retrieval service initialized (%d chunks)", service.store.count())
        return service

    def reset(self) -> None:
        """Discard the published service so the next ``initialize`` rebuilds.

        The published store is closed. An in-flight build is not cancelled;
        its result goes to its waiters but is not published.
        """
        if self._service is not None or self._task is not None:
            logger.info("Resetting retrieval runtime")
        if self._service is not None:
            self._service.store.close()
        self._lock = asyncio.Lock()
        self._task = None
        self._service = None


default_runtime = RetrievalRuntime()


async def initialize_retrieval(
    documents: Mapping[str, str],
    config: GreenragConfig | None = None,
    embedder: BaseEmbedder | None = None,
) -> RetrievalService:
    """Initialize the process-wide retrieval service."""
    return await default_runtime.initialize(documents, config, embedder)


async def initialize_from_config(
    config: GreenragConfig,
    base_dir: Path | None = None,
    embedder: BaseEmbedder | None = None,
) -> RetrievalService:
    """Initialize from the ``[knowledge] documents`` paths of ``config``.

    Relative paths are resolved against ``base_dir`` (default: cwd).

    Raises:
        BootstrapError: If no documents are configured or the build fails.
    """
    if not config.knowledge.documents:
        raise BootstrapError("No knowledge documents configured under [knowledge] documents")
    root = base_dir or Path.cwd()
    paths = [root / p for p in config.knowledge.documents]
    return await default_runtime.initialize_from_paths(paths, config, embedder)


def get_retrieval_service() -> RetrievalService:
    """Return the process-wide service.

    Raises:
        NotInitializedError: If bootstrap has not completed.
    """
    return default_runtime.service


def is_retrieval_initialized() -> bool:
    return default_runtime.is_initialized


def reset_retrieval() -> None:
    default_runtime.reset()
