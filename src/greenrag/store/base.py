"""Abstract base class for chunk stores."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from greenrag.types import DocumentChunk, HybridWeights, SearchFilters, SearchResult

__all__ = ["BaseStore"]

logger = logging.getLogger(__name__)


class BaseStore(ABC):
    """Base class for all chunk stores.

    A store owns an immutable, fully embedded corpus and answers three
    kinds of ranked query over it. Filters are applied before ranking, so
    ``top_k`` always counts results from the filtered population. An empty
    corpus yields empty results, never an error.
    """

    @property
    @abstractmethod
    def chunks(self) -> tuple[DocumentChunk, ...]:
        """The stored corpus, in insertion order."""

    def count(self) -> int:
        """Return the total number of chunks in the store."""
        return len(self.chunks)

    def get_chunk(self, chunk_id: str) -> DocumentChunk | None:
        """Look up a chunk by id."""
        for chunk in self.chunks:
            if chunk.id == chunk_id:
                return chunk
        return None

    def close(self) -> None:  # noqa: B027
        """Release backend resources. The store is empty afterwards."""

    @abstractmethod
    async def semantic_search(
        self,
        query: str,
        top_k: int | None = None,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Rank chunks by embedding similarity to ``query``.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            StoreError: If the underlying index fails.
        """

    @abstractmethod
    def keyword_search(
        self,
        query: str,
        top_k: int | None = None,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Rank chunks by term overlap with ``query``; never suspends."""

    @abstractmethod
    async def hybrid_search(
        self,
        query: str,
        weights: HybridWeights | None = None,
        filters: SearchFilters | None = None,
        top_k: int | None = None,
    ) -> list[SearchResult]:
        """Rank chunks by a weighted blend of semantic and keyword scores.

        Falls back to keyword-only results (``match_type`` keyword) when the
        query cannot be embedded.
        """
