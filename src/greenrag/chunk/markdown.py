"""Section-aware markdown chunker with word budgets.

Splits a knowledge-base document into DocumentChunk objects:
- Sections are delimited by ATX headings; leading text is "Introduction"
- Thin sections (< 50 words) and thin chunks (< 30 words) are dropped
- Large sections are packed paragraph by paragraph up to the target size,
  carrying the last paragraph forward as overlap
- Oversized paragraphs fall back to sentence packing
- With ``respect_boundaries=False`` a plain sliding word window is used
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from greenrag.chunk.base import BaseChunker
from greenrag.chunk.classify import classify
from greenrag.config import ChunkConfig
from greenrag.exceptions import ChunkError
from greenrag.types import ChunkingStrategy, DocumentChunk

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "MarkdownChunker",
    "Section",
    "build_corpus",
    "parse_sections",
    "process_document",
    "split_section",
    "word_count",
]

logger = logging.getLogger(__name__)

# Heading pattern: "# Title" through "###### Title"
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")

# Blank line(s), tolerating trailing whitespace on the blank line
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t]*\n\s*")

# A sentence ends at . ! or ? followed by whitespace, so "$1.50" stays whole;
# unterminated trailing text is its own sentence
_SENTENCE_RE = re.compile(r"\S.*?(?:[.!?]+(?=\s|$)|$)", re.DOTALL)

# A paragraph above target_size * this factor is split by sentences
_OVERSIZE_FACTOR = 1.5


@dataclass(frozen=True)
class Section:
    """A heading and the raw text up to the next heading of any level."""

    title: str
    content: str
    level: int


def word_count(text: str) -> int:
    """Count whitespace-delimited tokens."""
    return len(text.split())


def parse_sections(markdown: str) -> list[Section]:
    """Split markdown into titled sections.

    Sections without any body text are omitted.
    """
    sections: list[Section] = []
    title, level = "Introduction", 0
    lines: list[str] = []

    def flush() -> None:
        content = "\n".join(lines).strip()
        if content:
            sections.append(Section(title=title, content=content, level=level))

    for line in markdown.replace("\r\n", "\n").split("\n"):
        match = _HEADING_RE.match(line)
        if match:
            flush()
            title, level = match.group(2).strip(), len(match.group(1))
            lines = []
        else:
            lines.append(line)
    flush()

    return sections


def _paragraphs(text: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK_RE.split(text) if p.strip()]


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.findall(text) if s.strip()]


def _pack_sentences(paragraph: str, target_size: int) -> list[str]:
    """Greedily pack sentences into pieces of at most ``target_size`` words."""
    pieces: list[str] = []
    current: list[str] = []
    current_words = 0

    for sentence in _sentences(paragraph):
        words = word_count(sentence)
        if current and current_words + words > target_size:
            pieces.append(" ".join(current))
            current, current_words = [sentence], words
        else:
            current.append(sentence)
            current_words += words

    if current:
        pieces.append(" ".join(current))
    return pieces


def _window_split(text: str, target_size: int, overlap: int) -> list[str]:
    words = text.split()
    step = max(target_size - overlap, 1)
    return [" ".join(words[i : i + target_size]) for i in range(0, len(words), step)]


def split_section(content: str, strategy: ChunkingStrategy) -> list[str]:
    """Split one section's text into chunk texts (before size filtering)."""
    target = strategy.target_size
    if word_count(content) <= target:
        return [content]

    if not strategy.respect_boundaries:
        return _window_split(content, target, strategy.overlap)

    pieces: list[str] = []
    current: list[str] = []
    current_words = 0

    for paragraph in _paragraphs(content):
        words = word_count(paragraph)

        if words > target * _OVERSIZE_FACTOR:
            if current:
                pieces.append("\n\n".join(current))
                current, current_words = [], 0
            pieces.extend(_pack_sentences(paragraph, target))
        elif current and current_words + words > target:
            pieces.append("\n\n".join(current))
            if strategy.overlap > 0:
                carried = current[-1]
                current = [carried, paragraph]
                current_words = word_count(carried) + words
            else:
                current, current_words = [paragraph], words
        else:
            current.append(paragraph)
            current_words += words

    if current:
        pieces.append("\n\n".join(current))

    return [p for p in pieces if p.strip()]


def _validate(strategy: ChunkingStrategy) -> None:
    if strategy.target_size < 1:
        raise ChunkError(f"target_size must be >= 1, got {strategy.target_size}")
    if strategy.overlap < 0:
        raise ChunkError(f"overlap must be >= 0, got {strategy.overlap}")


class MarkdownChunker(BaseChunker):
    """Section-aware chunker driven by ``[chunk]`` configuration."""

    def __init__(self, config: ChunkConfig | None = None) -> None:
        cfg = config or ChunkConfig()
        self.strategy = cfg.strategy()
        self.min_section_words = cfg.min_section_words
        self.min_chunk_words = cfg.min_chunk_words
        _validate(self.strategy)

    def chunk(self, markdown: str, source: str) -> list[DocumentChunk]:
        """Split a markdown document into classified chunks.

        Raises:
            ChunkError: If chunking fails.
        """
        try:
            return self._do_chunk(markdown, source)
        except ChunkError:
            raise
        except Exception as e:
            logger.error("Failed to chunk document %s: %s", source, e)
            raise ChunkError(f"Failed to chunk document {source}: {e}") from e

    def _do_chunk(self, markdown: str, source: str) -> list[DocumentChunk]:
        if not markdown.strip():
            return []

        chunks: list[DocumentChunk] = []
        index = 0

        for section in parse_sections(markdown):
            section_words = word_count(section.content)
            if section_words < self.min_section_words:
                logger.debug(
                    "Skipping section %r in %s (%d words)", section.title, source, section_words
                )
                continue

            pieces = split_section(section.content, self.strategy)
            for piece in pieces:
                words = word_count(piece)
                if words < self.min_chunk_words:
                    continue

                chunks.append(
                    DocumentChunk(
                        id=f"{source}_{index}",
                        content=piece,
                        metadata=classify(piece, section.title, source, index, len(pieces)),
                        word_count=words,
                    )
                )
                index += 1

        logger.info(
            "Chunked %s into %d chunks (target_size=%d, overlap=%d)",
            source,
            len(chunks),
            self.strategy.target_size,
            self.strategy.overlap,
        )
        return [c.with_total_chunks(len(chunks)) for c in chunks]


def _chunker_for(strategy: ChunkingStrategy | None) -> MarkdownChunker:
    s = strategy or ChunkingStrategy()
    return MarkdownChunker(
        ChunkConfig(
            target_size=s.target_size,
            overlap=s.overlap,
            respect_boundaries=s.respect_boundaries,
        )
    )


def process_document(
    markdown: str,
    source: str,
    strategy: ChunkingStrategy | None = None,
) -> list[DocumentChunk]:
    """Chunk a single document with the default thresholds."""
    return _chunker_for(strategy).chunk(markdown, source)


def build_corpus(
    documents: Mapping[str, str],
    strategy: ChunkingStrategy | None = None,
) -> list[DocumentChunk]:
    """Chunk several documents into one corpus with a shared ``total_chunks``."""
    return _chunker_for(strategy).chunk_corpus(documents)
