"""Abstract base class for chunking strategies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from greenrag.types import DocumentChunk

__all__ = ["BaseChunker"]

logger = logging.getLogger(__name__)


class BaseChunker(ABC):
    """Base class for all chunking strategies.

    Subclasses split one markdown document into ``DocumentChunk`` objects.
    ``chunk_corpus`` combines several documents into one corpus.
    """

    @abstractmethod
    def chunk(self, markdown: str, source: str) -> list[DocumentChunk]:
        """Split a markdown document into chunks.

        Args:
            markdown: Raw document text.
            source: Identifier of the originating document.

        Returns:
            Chunks in document order; ``total_chunks`` is the document's count.

        Raises:
            ChunkError: If chunking fails.
        """

    def chunk_corpus(self, documents: Mapping[str, str]) -> list[DocumentChunk]:
        """Chunk every document and back-fill the corpus-wide ``total_chunks``."""
        corpus: list[DocumentChunk] = []
        for source, markdown in documents.items():
            chunks = self.chunk(markdown, source)
            logger.info("  - %s: %d chunks", source, len(chunks))
            corpus.extend(chunks)

        total = len(corpus)
        logger.info("Knowledge base chunked into %d chunks", total)
        return [c.with_total_chunks(total) for c in corpus]
