"""Chunk stores — in-memory ChromaDB collection plus keyword index."""

from greenrag.store.base import BaseStore
from greenrag.store.chroma import ChromaVectorStore
from greenrag.store.keyword import KeywordIndex, tokenize

__all__ = ["BaseStore", "ChromaVectorStore", "KeywordIndex", "tokenize"]
