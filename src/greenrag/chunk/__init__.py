"""Chunking engine — section-aware word splitting with metadata classification."""

from greenrag.chunk.base import BaseChunker
from greenrag.chunk.classify import classify
from greenrag.chunk.markdown import MarkdownChunker, build_corpus, process_document

__all__ = ["BaseChunker", "MarkdownChunker", "build_corpus", "classify", "process_document"]
