"""Tests for greenrag.store.chroma — in-memory vector store and hybrid ranking."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from greenrag.exceptions import EmbeddingError, StoreError
from greenrag.store.chroma import ChromaVectorStore, _where
from greenrag.types import HybridWeights, MatchType, SearchFilters

if TYPE_CHECKING:
    from greenrag.types import DocumentChunk

QUERIES = [
    "sod installation cost",
    "mulch price per cu yard",
    "crew hourly labor",
    "market competition for landscaping firms",
]


class TestBuild:
    def test_count_and_lookup(self, store: ChromaVectorStore, corpus: list[DocumentChunk]):
        assert store.count() == 5
        assert [c.id for c in store.chunks] == [c.id for c in corpus]
        assert store.get_chunk("pricing_1").metadata.category == "labor"
        assert store.get_chunk("missing") is None

    def test_corpus_embedded_once(self, store: ChromaVectorStore, embedder):
        assert embedder.embed_chunks_calls == 1
        assert embedder.embedded_texts == 5
        assert all(c.embedding is not None for c in store.chunks)

    def test_pre_embedded_chunks_not_embedded_again(self, corpus, embedder):
        embedded = embedder.embed_chunks(corpus)
        store = asyncio.run(ChromaVectorStore.build(embedded, embedder))
        assert embedder.embed_chunks_calls == 1
        assert store.count() == 5

    def test_second_load_refused(self, store: ChromaVectorStore, corpus):
        with pytest.raises(StoreError, match="already built"):
            asyncio.run(store.load(corpus))

    def test_duplicate_ids_refused(self, corpus, embedder):
        with pytest.raises(StoreError, match="unique"):
            asyncio.run(ChromaVectorStore.build([corpus[0], corpus[0]], embedder))

    def test_embedding_failure_propagates(self, corpus, embedder):
        embedder.fail_chunks = True
        with pytest.raises(EmbeddingError):
            asyncio.run(ChromaVectorStore.build(corpus, embedder))

    def test_stores_are_independent(self, corpus, embedder):
        first = asyncio.run(ChromaVectorStore.build(corpus[:2], embedder))
        second = asyncio.run(ChromaVectorStore.build(corpus[2:], embedder))
        assert (first.count(), second.count()) == (2, 3)
        first.close()
        second.close()


class TestClose:
    def test_close_deletes_collection(self, store: ChromaVectorStore, corpus, embedder):
        client = store._client
        baseline = client.count_collections()

        extra = asyncio.run(ChromaVectorStore.build(corpus, embedder))
        assert client.count_collections() == baseline + 1

        extra.close()
        extra.close()
        assert client.count_collections() == baseline

    def test_closed_store_is_empty(self, corpus, embedder):
        extra = asyncio.run(ChromaVectorStore.build(corpus, embedder))
        extra.close()
        assert extra.count() == 0
        assert extra.get_chunk("pricing_0") is None
        assert asyncio.run(extra.hybrid_search("sod installation cost")) == []

    def test_failed_build_leaves_no_collection(self, store: ChromaVectorStore, corpus, embedder):
        client = store._client
        baseline = client.count_collections()

        embedder.fail_chunks = True
        with pytest.raises(EmbeddingError):
            asyncio.run(ChromaVectorStore.build(corpus, embedder))
        assert client.count_collections() == baseline


class TestWhereClause:
    def test_no_filters(self):
        assert _where(None) is None
        assert _where(SearchFilters()) is None

    def test_single_filter(self):
        assert _where(SearchFilters(category="pricing")) == {"category": "pricing"}

    def test_multiple_filters(self):
        clause = _where(SearchFilters(category="service", service_type="lawn_care"))
        assert clause == {"$and": [{"category": "service"}, {"service_type": "lawn_care"}]}


class TestSemanticSearch:
    @pytest.mark.asyncio
    async def test_results_scored_and_ordered(self, store: ChromaVectorStore):
        results = await store.semantic_search("sod installation cost", top_k=5)
        assert len(results) == 5
        assert all(r.match_type is MatchType.SEMANTIC for r in results)
        assert all(0.0 <= r.score <= 1.0 for r in results)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_top_k_capped_by_population(self, store: ChromaVectorStore):
        filters = SearchFilters(category="material")
        results = await store.semantic_search("mulch", top_k=10, filters=filters)
        assert [r.chunk.id for r in results] == ["landscaping_1"]

    @pytest.mark.asyncio
    async def test_combined_filters(self, store: ChromaVectorStore):
        filters = SearchFilters(category="pricing", service_type="lawn_care")
        results = await store.semantic_search("sod", filters=filters)
        assert [r.chunk.id for r in results] == ["pricing_0"]

    @pytest.mark.asyncio
    async def test_blocking_calls_run_in_threads(
        self, store: ChromaVectorStore, monkeypatch: pytest.MonkeyPatch
    ):
        offloaded: list[str] = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, /, *args, **kwargs):
            offloaded.append(func.__name__)
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr("greenrag.store.chroma.asyncio.to_thread", recording_to_thread)
        await store.semantic_search("mulch")
        assert offloaded == ["embed_query", "query"]

    @pytest.mark.asyncio
    async def test_no_population_returns_empty(self, store: ChromaVectorStore):
        assert await store.semantic_search("x", filters=SearchFilters(season="winter")) == []
        assert await store.semantic_search("x", top_k=0) == []

    @pytest.mark.asyncio
    async def test_query_embedding_failure_raises(self, store: ChromaVectorStore, embedder):
        embedder.fail_queries = True
        with pytest.raises(EmbeddingError):
            await store.semantic_search("sod")


class TestKeywordSearch:
    def test_only_matching_chunks(self, store: ChromaVectorStore):
        results = store.keyword_search("cedar mulch")
        assert [r.chunk.id for r in results] == ["landscaping_1"]
        assert results[0].match_type is MatchType.KEYWORD

    def test_filters_applied_before_ranking(self, store: ChromaVectorStore):
        assert store.keyword_search("sod", filters=SearchFilters(category="labor")) == [
            r for r in store.keyword_search("sod") if r.chunk.id == "pricing_1"
        ]

    def test_top_k(self, store: ChromaVectorStore):
        assert len(store.keyword_search("sod", top_k=1)) == 1
        assert store.keyword_search("sod", top_k=0) == []


class TestHybridSearch:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", QUERIES)
    async def test_scores_within_bounds(self, store: ChromaVectorStore, query: str):
        results = await store.hybrid_search(query, top_k=5)
        assert len(results) == 5
        assert all(0.0 <= r.score <= 1.0 for r in results)
        assert all(r.match_type is MatchType.HYBRID for r in results)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", QUERIES)
    async def test_semantic_only_weights_reproduce_semantic_ranking(
        self, store: ChromaVectorStore, query: str
    ):
        hybrid = await store.hybrid_search(query, HybridWeights(1.0, 0.0), top_k=5)
        semantic = await store.semantic_search(query, top_k=5)
        assert [r.chunk.id for r in hybrid] == [r.chunk.id for r in semantic]

    @pytest.mark.asyncio
    async def test_keyword_only_weights_favor_term_matches(self, store: ChromaVectorStore):
        results = await store.hybrid_search("cedar mulch", HybridWeights(0.0, 1.0))
        assert results[0].chunk.id == "landscaping_1"
        assert results[0].score == pytest.approx(1.0)
        assert all(r.score == 0.0 for r in results[1:])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", QUERIES)
    async def test_category_filter_respected(self, store: ChromaVectorStore, query: str):
        results = await store.hybrid_search(
            query, HybridWeights(), SearchFilters(category="pricing")
        )
        assert results
        assert all(r.chunk.metadata.category == "pricing" for r in results)

    @pytest.mark.asyncio
    async def test_falls_back_to_keywords_when_query_embedding_fails(
        self, store: ChromaVectorStore, embedder, caplog
    ):
        embedder.fail_queries = True
        results = await store.hybrid_search("cedar mulch")
        assert [r.chunk.id for r in results] == ["landscaping_1"]
        assert results[0].match_type is MatchType.KEYWORD
        assert "fell back to keywords" in caplog.text

    @pytest.mark.asyncio
    async def test_deterministic(self, store: ChromaVectorStore):
        first = await store.hybrid_search("sod installation cost")
        second = await store.hybrid_search("sod installation cost")
        assert first == second


class TestEmptyStore:
    @pytest.mark.asyncio
    async def test_all_searches_empty(self, embedder):
        store = await ChromaVectorStore.build([], embedder)
        assert store.count() == 0
        assert embedder.embed_chunks_calls == 0
        assert await store.semantic_search("sod") == []
        assert store.keyword_search("sod") == []
        assert await store.hybrid_search("sod") == []
