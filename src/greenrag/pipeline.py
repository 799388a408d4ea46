"""Pipeline orchestrator for greenrag.

Composes chunker → embedder → store → retrieval service via constructor
injection, plus corpus statistics and filtering helpers.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from greenrag.chunk.markdown import MarkdownChunker
from greenrag.config import GreenragConfig
from greenrag.exceptions import GreenragError, PipelineError
from greenrag.ingest import load_documents
from greenrag.retrieval.service import RetrievalService
from greenrag.store.chroma import ChromaVectorStore
from greenrag.types import KnowledgeBaseStats

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from greenrag.chunk.base import BaseChunker
    from greenrag.embed.base import BaseEmbedder
    from greenrag.types import DocumentChunk, SearchFilters

__all__ = [
    "KnowledgePipeline",
    "filter_chunks",
    "knowledge_base_stats",
    "load_documents",
]

logger = logging.getLogger(__name__)


class KnowledgePipeline:
    """Turns markdown documents into a ready ``RetrievalService``.

    All dependencies are injected via the constructor, making the pipeline
    fully testable with fake implementations.

    Usage::

        pipeline = KnowledgePipeline(embedder=embedder, config=config)
        service = await pipeline.run({"pricing": pricing_md, "market": market_md})
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        config: GreenragConfig | None = None,
        chunker: BaseChunker | None = None,
    ) -> None:
        self.config = config or GreenragConfig()
        self.embedder = embedder
        self.chunker = chunker or MarkdownChunker(self.config.chunk)

    def chunk(self, documents: Mapping[str, str]) -> list[DocumentChunk]:
        """Chunk every document into one corpus."""
        return self.chunker.chunk_corpus(documents)

    async def run(self, documents: Mapping[str, str]) -> RetrievalService:
        """Run the full pipeline: chunk → embed → index.

        Raises:
            GreenragError: Subclasses raised by a stage propagate unchanged.
            PipelineError: If a stage fails with a foreign exception.
        """
        try:
            logger.info("Building knowledge base from %d documents", len(documents))
            chunks = self.chunk(documents)
            if not chunks:
                logger.warning("Knowledge base is empty: no chunk met the size thresholds")

            store = await ChromaVectorStore.build(chunks, self.embedder, self.config)
            logger.info("Knowledge base ready: %d chunks", store.count())
            return RetrievalService(store)

        except GreenragError:
            raise
        except Exception as e:
            raise PipelineError(f"Pipeline failed building knowledge base: {e}") from e


def knowledge_base_stats(chunks: Iterable[DocumentChunk]) -> KnowledgeBaseStats:
    """Count chunks and words by category, service type and source."""
    total_chunks = 0
    total_words = 0
    categories: Counter[str] = Counter()
    service_types: Counter[str] = Counter()
    sources: Counter[str] = Counter()

    for chunk in chunks:
        total_chunks += 1
        total_words += chunk.word_count
        categories[chunk.metadata.category] += 1
        if chunk.metadata.service_type:
            service_types[chunk.metadata.service_type] += 1
        sources[chunk.metadata.source] += 1

    return KnowledgeBaseStats(
        total_chunks=total_chunks,
        total_words=total_words,
        category_counts=dict(categories),
        service_type_counts=dict(service_types),
        source_distribution=dict(sources),
    )


def filter_chunks(
    chunks: Iterable[DocumentChunk], filters: SearchFilters | None
) -> list[DocumentChunk]:
    """Keep chunks satisfying every active filter field."""
    if filters is None:
        return list(chunks)
    return [c for c in chunks if filters.matches(c)]
