"""In-memory ChromaDB vector store with keyword and hybrid ranking.

The corpus is embedded once when the store is built and loaded into an
ephemeral (non-persistent) collection using cosine space. Keyword ranking
uses ``KeywordIndex``; hybrid ranking blends both, normalizing each score
set by its maximum.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any

import chromadb
from chromadb.config import Settings

from greenrag.config import GreenragConfig
from greenrag.exceptions import EmbeddingError, StoreError
from greenrag.store.base import BaseStore
from greenrag.store.keyword import KeywordIndex
from greenrag.types import DocumentChunk, HybridWeights, MatchType, SearchResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from greenrag.embed.base import BaseEmbedder
    from greenrag.types import SearchFilters

__all__ = ["ChromaVectorStore"]

logger = logging.getLogger(__name__)

_ADD_BATCH_SIZE = 512

_METADATA_FIELDS = (
    "source",
    "section",
    "category",
    "service_type",
    "pricing_category",
    "region",
    "skill_level",
    "season",
)


def _chroma_metadata(chunk: DocumentChunk) -> dict[str, Any]:
    """Flatten chunk metadata for ChromaDB, which rejects ``None`` values."""
    meta: dict[str, Any] = {
        name: getattr(chunk.metadata, name) or "" for name in _METADATA_FIELDS
    }
    meta["chunk_index"] = chunk.metadata.chunk_index
    meta["word_count"] = chunk.word_count
    return meta


def _where(filters: SearchFilters | None) -> dict[str, Any] | None:
    """Translate filters into a ChromaDB ``where`` clause."""
    if filters is None:
        return None
    clauses = [{name: value} for name, value in filters.items()]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class ChromaVectorStore(BaseStore):
    """Vector store backed by an in-memory ChromaDB collection.

    Every instance owns a uniquely named collection, so several stores can
    live in one process. Use ``build`` to create a populated store::

        store = await ChromaVectorStore.build(chunks, embedder, config)
        results = await store.hybrid_search("sod installation cost")
    """

    def __init__(self, embedder: BaseEmbedder, config: GreenragConfig | None = None) -> None:
        cfg = config or GreenragConfig()
        self._embedder = embedder
        self._top_k = cfg.search.top_k
        self._weights = cfg.search.weights()
        self._chunks: tuple[DocumentChunk, ...] = ()
        self._by_id: dict[str, DocumentChunk] = {}
        self._position: dict[str, int] = {}
        self._keyword = KeywordIndex(())
        self._built = False
        self._closed = False

        self._collection_name = f"greenrag-{uuid.uuid4().hex}"
        try:
            self._client = chromadb.EphemeralClient(settings=Settings(anonymized_telemetry=False))
            self._collection = self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,
            )
        except Exception as e:
            raise StoreError(f"Failed to initialize in-memory ChromaDB collection: {e}") from e

        logger.debug("ChromaDB collection %s created", self._collection_name)

    @classmethod
    async def build(
        cls,
        chunks: Sequence[DocumentChunk],
        embedder: BaseEmbedder,
        config: GreenragConfig | None = None,
    ) -> ChromaVectorStore:
        """Create a store and load ``chunks`` into it.

        Raises:
            EmbeddingError: If the corpus cannot be embedded.
            StoreError: If indexing fails.
        """
        store = cls(embedder, config)
        try:
            await store.load(chunks)
        except BaseException:
            store.close()
            raise
        return store

    async def load(self, chunks: Sequence[DocumentChunk]) -> None:
        """Embed and index the corpus. Runs once per store.

        Chunks that already carry an embedding are indexed as they are.

        Raises:
            StoreError: If the store is already built or ids are duplicated.
            EmbeddingError: If the embedding provider fails.
        """
        if self._built:
            raise StoreError("Store already built; create a new store to index another corpus")
        self._built = True

        ids = [c.id for c in chunks]
        if len(set(ids)) != len(ids):
            raise StoreError("Chunk ids must be unique within a corpus")

        pending = [c for c in chunks if c.embedding is None]
        embedded: dict[str, DocumentChunk] = {}
        if pending:
            vectors = await asyncio.to_thread(self._embedder.embed_chunks, pending)
            embedded = {c.id: c for c in vectors}

        corpus = tuple(embedded.get(c.id, c) for c in chunks)
        self._add_to_collection(corpus)

        self._chunks = corpus
        self._by_id = {c.id: c for c in corpus}
        self._position = {c.id: i for i, c in enumerate(corpus)}
        self._keyword = KeywordIndex(corpus)

        logger.info(
            "Vector store built: %d chunks (%d embedded now), %d keyword terms",
            len(corpus),
            len(pending),
            self._keyword.vocabulary_size,
        )

    def close(self) -> None:
        """Drop the backing collection and empty the store. Safe to call twice.

        Ephemeral collections share one in-process ChromaDB system, so a
        discarded store keeps its vectors in memory until it is closed.
        """
        if self._closed:
            return
        self._closed = True
        self._chunks = ()
        self._by_id = {}
        self._position = {}
        self._keyword = KeywordIndex(())
        try:
            self._client.delete_collection(self._collection_name)
        except Exception as e:
            logger.warning("Could not delete ChromaDB collection %s: %s", self._collection_name, e)
            return
        logger.debug("ChromaDB collection %s deleted", self._collection_name)

    def _add_to_collection(self, corpus: Sequence[DocumentChunk]) -> None:
        for start in range(0, len(corpus), _ADD_BATCH_SIZE):
            batch = corpus[start : start + _ADD_BATCH_SIZE]
            try:
                self._collection.add(
                    ids=[c.id for c in batch],
                    embeddings=[list(c.embedding or ()) for c in batch],  # type: ignore[arg-type]
                    documents=[c.content for c in batch],
                    metadatas=[_chroma_metadata(c) for c in batch],  # type: ignore[arg-type]
                )
            except Exception as e:
                raise StoreError(f"Failed to index {len(batch)} chunks: {e}") from e

    @property
    def chunks(self) -> tuple[DocumentChunk, ...]:
        return self._chunks

    def count(self) -> int:
        return len(self._chunks)

    def get_chunk(self, chunk_id: str) -> DocumentChunk | None:
        return self._by_id.get(chunk_id)

    def _population(self, filters: SearchFilters | None) -> list[DocumentChunk]:
        if filters is None:
            return list(self._chunks)
        return [c for c in self._chunks if filters.matches(c)]

    async def _semantic_ranking(
        self,
        query: str,
        n_results: int,
        filters: SearchFilters | None,
    ) -> list[tuple[str, float]]:
        """Return ``(chunk_id, similarity)`` pairs from the collection, best first."""
        query_embedding = await asyncio.to_thread(self._embedder.embed_query, query)

        try:
            results = await asyncio.to_thread(
                self._collection.query,
                query_embeddings=[query_embedding],  # type: ignore[arg-type]
                n_results=n_results,
                where=_where(filters),  # type: ignore[arg-type]
                include=["distances"],
            )
        except Exception as e:
            raise StoreError(f"Semantic search failed: {e}") from e

        raw_ids = results.get("ids")
        raw_dists = results.get("distances")
        if not raw_ids or not raw_dists:
            return []

        # Cosine distance lies in [0, 2]; similarity is clamped into [0, 1].
        return [
            (chunk_id, min(1.0, max(0.0, 1.0 - float(dist))))
            for chunk_id, dist in zip(raw_ids[0], raw_dists[0], strict=True)
            if chunk_id in self._by_id
        ]

    async def semantic_search(
        self,
        query: str,
        top_k: int | None = None,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        k = top_k if top_k is not None else self._top_k
        population = self._population(filters)
        if not population or k < 1:
            return []

        ranking = await self._semantic_ranking(query, min(k, len(population)), filters)
        logger.debug("Semantic search %r: %d results", query, len(ranking))
        return [
            SearchResult(chunk=self._by_id[cid], score=score, match_type=MatchType.SEMANTIC)
            for cid, score in ranking[:k]
        ]

    def keyword_search(
        self,
        query: str,
        top_k: int | None = None,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        k = top_k if top_k is not None else self._top_k
        population = self._population(filters)
        if not population or k < 1:
            return []

        ranking = self._keyword.rank(query, [c.id for c in population])
        logger.debug("Keyword search %r: %d matching chunks", query, len(ranking))
        return [
            SearchResult(chunk=self._by_id[cid], score=score, match_type=MatchType.KEYWORD)
            for cid, score in ranking[:k]
        ]

    async def hybrid_search(
        self,
        query: str,
        weights: HybridWeights | None = None,
        filters: SearchFilters | None = None,
        top_k: int | None = None,
    ) -> list[SearchResult]:
        w = weights or self._weights
        k = top_k if top_k is not None else self._top_k
        population = self._population(filters)
        if not population or k < 1:
            return []

        try:
            semantic = await self._semantic_ranking(query, len(population), filters)
        except EmbeddingError as e:
            logger.warning("Query embedding failed, hybrid search fell back to keywords: %s", e)
            return self.keyword_search(query, top_k=k, filters=filters)

        keyword = self._keyword.scores(query, [c.id for c in population])
        semantic_scores = dict(semantic)
        semantic_rank = {cid: rank for rank, (cid, _) in enumerate(semantic)}

        s_max = max(semantic_scores.values(), default=0.0)
        k_max = max(keyword.values(), default=0.0)
        total_weight = w.semantic_weight + w.keyword_weight

        combined: list[tuple[str, float]] = []
        for cid in semantic_scores.keys() | keyword.keys():
            s = semantic_scores.get(cid, 0.0) / s_max if s_max > 0 else 0.0
            kw = keyword.get(cid, 0.0) / k_max if k_max > 0 else 0.0
            score = (w.semantic_weight * s + w.keyword_weight * kw) / total_weight
            combined.append((cid, min(1.0, max(0.0, score))))

        unranked = len(semantic_rank)
        combined.sort(
            key=lambda item: (
                -item[1],
                semantic_rank.get(item[0], unranked),
                self._position[item[0]],
            )
        )

        logger.debug(
            "Hybrid search %r (%.2f/%.2f): %d candidates",
            query,
            w.semantic_weight,
            w.keyword_weight,
            len(combined),
        )
        return [
            SearchResult(chunk=self._by_id[cid], score=score, match_type=MatchType.HYBRID)
            for cid, score in combined[:k]
        ]
