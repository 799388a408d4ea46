"""Deterministic keyword scoring over a chunk corpus.

An inverted index maps each term to the chunks containing it and the term
frequency there. A chunk's score for a query is the mean, over the query's
unique terms, of the saturating term frequency ``tf / (tf + 1)``, so the
score lies in [0, 1) and repeated mentions help with diminishing returns.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from greenrag.types import DocumentChunk

__all__ = ["KeywordIndex", "tokenize"]

logger = logging.getLogger(__name__)

# Letter-initial words of at least two characters.
_WORD_RE = re.compile(r"\b[a-zA-Z][a-zA-Z0-9]{1,}\b")

_STOPWORDS: frozenset[str] = frozenset(
    {
        "the",
        "and",
        "for",
        "are",
        "but",
        "not",
        "you",
        "all",
        "can",
        "had",
        "her",
        "was",
        "one",
        "our",
        "out",
        "has",
        "his",
        "how",
        "its",
        "may",
        "now",
        "see",
        "way",
        "who",
        "did",
        "get",
        "let",
        "say",
        "she",
        "too",
        "with",
        "this",
        "that",
        "from",
        "they",
        "been",
        "have",
        "will",
        "each",
        "like",
        "some",
        "them",
        "than",
        "into",
        "only",
        "when",
        "also",
        "could",
        "would",
        "there",
        "their",
        "what",
        "about",
        "which",
        "other",
        "these",
        "then",
        "just",
        "over",
        "such",
        "where",
        "very",
        "does",
        "being",
        "is",
        "it",
        "in",
        "on",
        "of",
        "to",
        "or",
        "an",
        "as",
        "at",
        "be",
        "by",
        "we",
    }
)


def tokenize(text: str) -> list[str]:
    """Split text into lowercase, stopword-filtered word tokens (with repeats)."""
    if not text:
        return []
    return [w for w in _WORD_RE.findall(text.lower()) if w not in _STOPWORDS]


def _query_terms(query: str) -> list[str]:
    return list(dict.fromkeys(tokenize(query)))


class KeywordIndex:
    """Inverted term-frequency index over a fixed list of chunks."""

    def __init__(self, chunks: Sequence[DocumentChunk]) -> None:
        self._order = {chunk.id: position for position, chunk in enumerate(chunks)}
        self._postings: dict[str, dict[str, int]] = {}
        for chunk in chunks:
            for term, tf in Counter(tokenize(chunk.content)).items():
                self._postings.setdefault(term, {})[chunk.id] = tf
        logger.debug("Keyword index built: %d terms, %d chunks", len(self._postings), len(chunks))

    @property
    def vocabulary_size(self) -> int:
        return len(self._postings)

    def scores(self, query: str, candidates: Iterable[str] | None = None) -> dict[str, float]:
        """Score chunks against ``query``.

        Args:
            query: Free-text query.
            candidates: Chunk ids to consider; ``None`` means every chunk.

        Returns:
            ``{chunk_id: score}`` for chunks with a positive score.
        """
        terms = _query_terms(query)
        if not terms:
            return {}

        allowed = set(candidates) if candidates is not None else None
        totals: dict[str, float] = {}
        for term in terms:
            for chunk_id, tf in self._postings.get(term, {}).items():
                if allowed is not None and chunk_id not in allowed:
                    continue
                totals[chunk_id] = totals.get(chunk_id, 0.0) + tf / (tf + 1)

        return {chunk_id: total / len(terms) for chunk_id, total in totals.items()}

    def rank(
        self, query: str, candidates: Iterable[str] | None = None
    ) -> list[tuple[str, float]]:
        """Return ``(chunk_id, score)`` pairs, best first, ties in corpus order."""
        scored = self.scores(query, candidates)
        return sorted(scored.items(), key=lambda item: (-item[1], self._order[item[0]]))
