"""Shared fixtures for greenrag tests."""

from __future__ import annotations

import asyncio
import hashlib
from collections.abc import Iterator
from pathlib import Path

import pytest

from greenrag.chunk.markdown import build_corpus
from greenrag.embed.base import BaseEmbedder
from greenrag.exceptions import EmbeddingError
from greenrag.retrieval.service import RetrievalService
from greenrag.store.chroma import ChromaVectorStore
from greenrag.store.keyword import tokenize
from greenrag.types import DocumentChunk

_DIM = 256


class FakeEmbedder(BaseEmbedder):
    """Deterministic bag-of-words hashing embedder.

    Texts sharing non-stopword terms get similar vectors. The last component is a
    constant bias so no vector is ever zero. Counts calls for spying.
    """

    def __init__(self) -> None:
        super().__init__()
        self.batch_size = 16
        self.embed_chunks_calls = 0
        self.embedded_texts = 0
        self.fail_queries = False
        self.fail_chunks = False

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        vectors = []
        for text in texts:
            vec = [0.0] * _DIM
            for token in tokenize(text):
                bucket = int(hashlib.md5(token.encode()).hexdigest(), 16) % (_DIM - 1)
                vec[bucket] += 1.0
            vec[-1] = 1.0
            vectors.append(vec)
        return vectors

    def embed_chunks(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
        self.embed_chunks_calls += 1
        self.embedded_texts += len(chunks)
        if self.fail_chunks:
            raise EmbeddingError("fake provider down")
        return super().embed_chunks(chunks)

    def embed_query(self, text: str) -> list[float]:
        if self.fail_queries:
            raise EmbeddingError("fake provider down")
        return super().embed_query(text)


FIXTURES = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def documents() -> dict[str, str]:
    """Two sample documents chunking into five chunks.

    landscaping: lawn care service, mulch materials, market competition
    pricing: sod pricing, crew labor rates
    """
    return {"landscaping": read_fixture("landscaping.md"), "pricing": read_fixture("pricing.md")}


@pytest.fixture
def corpus(documents: dict[str, str]) -> list[DocumentChunk]:
    return build_corpus(documents)


@pytest.fixture
def store(corpus: list[DocumentChunk], embedder: FakeEmbedder) -> Iterator[ChromaVectorStore]:
    built = asyncio.run(ChromaVectorStore.build(corpus, embedder))
    yield built
    built.close()


@pytest.fixture
def service(store: ChromaVectorStore) -> RetrievalService:
    return RetrievalService(store)


@pytest.fixture
def short_doc() -> str:
    """A document whose only section is below the section threshold."""
    return read_fixture("short.md")


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES
