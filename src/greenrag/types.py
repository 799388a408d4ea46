"""Data contracts for greenrag.

Frozen dataclasses that flow between the retrieval stages:
  markdown → ParseResult → list[DocumentChunk] → store → SearchResult
  → RetrievalContext / structured context (PricingContext, ...)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from greenrag.exceptions import RetrievalError

__all__ = [
    "ChunkingStrategy",
    "DocumentChunk",
    "DocumentMetadata",
    "HourlyRate",
    "HybridWeights",
    "KnowledgeBaseStats",
    "LaborRateInfo",
    "MatchType",
    "MaterialCostInfo",
    "ParseResult",
    "PriceRange",
    "PricingContext",
    "QualityTiers",
    "RetrievalContext",
    "RetrievalOptions",
    "SearchFilters",
    "SearchResult",
    "SearchStrategy",
    "ServiceDetails",
]


class MatchType(str, Enum):
    """How a search result was found."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


class SearchStrategy(str, Enum):
    """Ranking strategy selectable through ``RetrievalService.retrieve``."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class ParseResult:
    """Output of the markdown loader — normalized markdown with metadata."""

    doc_id: str
    content: str
    title: str = ""
    source_path: str = ""
    metadata: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ChunkingStrategy:
    """Chunk sizing, in words."""

    target_size: int = 300
    overlap: int = 50
    respect_boundaries: bool = True


@dataclass(frozen=True)
class DocumentMetadata:
    """Classification attached to every chunk at creation time."""

    source: str
    section: str
    category: str = "general"
    service_type: str | None = None
    pricing_category: str | None = None
    region: str | None = None
    skill_level: str | None = None
    season: str | None = None
    chunk_index: int = 0
    total_chunks: int = 0


@dataclass(frozen=True)
class DocumentChunk:
    """A contiguous, self-contained span of source text."""

    id: str
    content: str
    metadata: DocumentMetadata
    word_count: int
    embedding: tuple[float, ...] | None = None

    def with_embedding(self, vector: list[float] | tuple[float, ...]) -> DocumentChunk:
        """Return a copy of this chunk carrying ``vector``."""
        return replace(self, embedding=tuple(float(v) for v in vector))

    def with_total_chunks(self, total: int) -> DocumentChunk:
        """Return a copy of this chunk with ``metadata.total_chunks`` set."""
        return replace(self, metadata=replace(self.metadata, total_chunks=total))


@dataclass(frozen=True)
class SearchResult:
    """A ranked chunk: score in [0, 1], higher is better."""

    chunk: DocumentChunk
    score: float
    match_type: MatchType


@dataclass(frozen=True)
class SearchFilters:
    """Exact-match metadata predicate. Unset fields do not constrain."""

    category: str | None = None
    service_type: str | None = None
    pricing_category: str | None = None
    region: str | None = None
    season: str | None = None

    def items(self) -> list[tuple[str, str]]:
        """Return the active ``(field, value)`` constraints."""
        return [
            (name, value)
            for name, value in (
                ("category", self.category),
                ("service_type", self.service_type),
                ("pricing_category", self.pricing_category),
                ("region", self.region),
                ("season", self.season),
            )
            if value
        ]

    def matches(self, chunk: DocumentChunk) -> bool:
        """Check whether ``chunk`` satisfies every active constraint."""
        return all(getattr(chunk.metadata, name) == value for name, value in self.items())


@dataclass(frozen=True)
class HybridWeights:
    """Relative weight of the semantic and keyword scores in hybrid search."""

    semantic_weight: float = 0.7
    keyword_weight: float = 0.3

    def __post_init__(self) -> None:
        if self.semantic_weight < 0 or self.keyword_weight < 0:
            raise RetrievalError(
                f"Hybrid weights must be non-negative, got "
                f"{self.semantic_weight}/{self.keyword_weight}"
            )
        if self.semantic_weight + self.keyword_weight == 0:
            raise RetrievalError("Hybrid weights must not both be zero")


@dataclass(frozen=True)
class RetrievalOptions:
    """Options for the generic ``retrieve`` entry point."""

    top_k: int | None = None
    filters: SearchFilters | None = None
    strategy: SearchStrategy = SearchStrategy.HYBRID


@dataclass(frozen=True)
class RetrievalContext:
    """Ranked results for one query, highest score first."""

    query: str
    results: tuple[SearchResult, ...]
    total_results: int
    retrieval_time: float
    strategy: str


@dataclass(frozen=True)
class PriceRange:
    """Dollar amounts found in retrieved text. ``average`` is None on a miss."""

    low: float = 0.0
    high: float = 0.0
    average: float | None = None
    unit: str = "service"

    @property
    def midpoint(self) -> float:
        return (self.low + self.high) / 2


@dataclass(frozen=True)
class PricingContext:
    service_name: str
    price_range: PriceRange
    factors: tuple[str, ...] = ()
    region: str | None = None
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class ServiceDetails:
    name: str
    description: str
    effort_intensity: str = "moderate"
    estimated_duration: str | None = None
    prerequisites: tuple[str, ...] = ()
    best_practices: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class QualityTiers:
    budget: float
    standard: float | None
    premium: float


@dataclass(frozen=True)
class MaterialCostInfo:
    material_name: str
    cost_per_unit: float
    unit: str
    quality_tiers: QualityTiers
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class HourlyRate:
    low: float
    high: float
    average: float


@dataclass(frozen=True)
class LaborRateInfo:
    skill_level: str
    hourly_rate: HourlyRate
    region: str | None = None
    specializations: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class KnowledgeBaseStats:
    """Summary counts over a chunk corpus."""

    total_chunks: int = 0
    total_words: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)
    service_type_counts: dict[str, int] = field(default_factory=dict)
    source_distribution: dict[str, int] = field(default_factory=dict)
