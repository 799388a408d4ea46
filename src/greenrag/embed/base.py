"""Abstract base class for embedding providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from greenrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from greenrag.types import DocumentChunk

__all__ = ["BaseEmbedder"]

logger = logging.getLogger(__name__)


class BaseEmbedder(ABC):
    """Base class for all embedding providers.

    Subclasses implement ``_embed_texts``. Batching and dimension tracking
    live here. All methods block; async callers run them through
    ``asyncio.to_thread``.
    """

    batch_size: int = 64

    def __init__(self) -> None:
        self._dimension: int | None = None

    @abstractmethod
    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed ``texts`` in one provider call, preserving order.

        Raises:
            EmbeddingError: If the provider fails or returns malformed data.
        """

    def embed_chunks(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
        """Return copies of ``chunks`` carrying their embedding vectors.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
        if not chunks:
            return []
        if self.batch_size < 1:
            raise EmbeddingError(f"batch_size must be >= 1, got {self.batch_size}")

        embedded: list[DocumentChunk] = []
        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start : start + self.batch_size]
            vectors = self._checked_embed([c.content for c in batch])
            embedded.extend(
                chunk.with_embedding(vec) for chunk, vec in zip(batch, vectors, strict=True)
            )

        logger.info("Embedded %d chunks via %s", len(embedded), type(self).__name__)
        return embedded

    def embed_query(self, text: str) -> list[float]:
        """Generate an embedding for a search query.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
        return self._checked_embed([text])[0]

    @property
    def dimension(self) -> int:
        """Dimensionality of the vectors.

        First access before any embedding call probes the provider.
        """
        if self._dimension is None:
            self._dimension = len(self.embed_query("dimension probe"))
        return self._dimension

    def _checked_embed(self, texts: list[str]) -> list[list[float]]:
        vectors = self._embed_texts(texts)
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"{type(self).__name__} returned {len(vectors)} embeddings "
                f"for {len(texts)} inputs"
            )
        if vectors and self._dimension is None:
            self._dimension = len(vectors[0])
        return [[float(v) for v in vec] for vec in vectors]
