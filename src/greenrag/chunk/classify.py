"""Keyword-driven metadata classifier for knowledge-base chunks.

Every field is derived by case-insensitive substring containment against
small fixed keyword tables. Tables are checked in priority order and the
first hit wins. There is no NLP model involved, so classification is a
pure function of its inputs.
"""

from __future__ import annotations

import re

from greenrag.types import DocumentMetadata

__all__ = [
    "CATEGORIES",
    "PRICING_CATEGORIES",
    "SEASONS",
    "SERVICE_TYPES",
    "SKILL_LEVELS",
    "classify",
]

# (label, section-title keywords, content keywords)
_CATEGORY_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("pricing", ("pricing",), ("cost", "price")),
    ("labor", ("labor",), ("hourly rate", "crew")),
    ("material", ("material",), ("mulch", "pavers")),
    ("service", ("service", "maintenance"), ()),
    ("market_analysis", ("market", "competition"), ()),
)

_SERVICE_TYPE_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("lawn_care", ("lawn", "mow", "grass")),
    ("hardscaping", ("patio", "walkway", "retaining wall")),
    ("planting", ("plant", "tree", "shrub")),
    ("design", ("design", "landscape architect")),
    ("irrigation", ("sprinkler", "irrigation")),
    ("xeriscaping", ("xeriscape", "drought")),
)

_PRICING_CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("premium", ("premium", "high-end", "luxury")),
    ("budget", ("budget", "basic", "low-cost")),
    ("mid-range", ("standard", "typical", "average")),
)

_SKILL_LEVEL_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("professional", ("skilled", "professional", "expert")),
    ("basic", ("unskilled", "basic labor")),
    ("specialist", ("specialist", "licensed")),
)

_SEASON_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("spring", ("spring", "april", "may")),
    ("summer", ("summer", "june", "july")),
    ("fall", ("fall", "autumn", "september")),
    ("winter", ("winter", "december", "january")),
)

_REGIONS: tuple[str, ...] = (
    "northeast",
    "southeast",
    "midwest",
    "west coast",
    "southwest",
    "pacific northwest",
)

_STATE_RE = re.compile(
    r"(california|texas|florida|new york|massachusetts|arizona|colorado)",
    re.IGNORECASE,
)

CATEGORIES: frozenset[str] = frozenset(
    {label for label, _, _ in _CATEGORY_RULES} | {"general"}
)
SERVICE_TYPES: frozenset[str] = frozenset(label for label, _ in _SERVICE_TYPE_RULES)
PRICING_CATEGORIES: frozenset[str] = frozenset(label for label, _ in _PRICING_CATEGORY_RULES)
SKILL_LEVELS: frozenset[str] = frozenset(label for label, _ in _SKILL_LEVEL_RULES)
SEASONS: frozenset[str] = frozenset(label for label, _ in _SEASON_RULES)


def _first_match(text: str, rules: tuple[tuple[str, tuple[str, ...]], ...]) -> str | None:
    for label, keywords in rules:
        if any(kw in text for kw in keywords):
            return label
    return None


def _category(content: str, title: str) -> str:
    for label, title_keywords, content_keywords in _CATEGORY_RULES:
        if any(kw in title for kw in title_keywords) or any(
            kw in content for kw in content_keywords
        ):
            return label
    return "general"


def _region(lower_content: str, content: str) -> str | None:
    for region in _REGIONS:
        if region in lower_content:
            return region
    match = _STATE_RE.search(content)
    return match.group(1) if match else None


def classify(
    content: str,
    section_title: str,
    source: str,
    chunk_index: int,
    total_chunks: int,
) -> DocumentMetadata:
    """Build the metadata for one chunk.

    ``category`` is matched against both the section title and the content
    and defaults to ``"general"``. Every other field is matched against the
    content only and left as ``None`` when nothing matches.
    """
    lower_content = content.lower()
    lower_title = section_title.lower()

    return DocumentMetadata(
        source=source,
        section=section_title,
        category=_category(lower_content, lower_title),
        service_type=_first_match(lower_content, _SERVICE_TYPE_RULES),
        pricing_category=_first_match(lower_content, _PRICING_CATEGORY_RULES),
        region=_region(lower_content, content),
        skill_level=_first_match(lower_content, _SKILL_LEVEL_RULES),
        season=_first_match(lower_content, _SEASON_RULES),
        chunk_index=chunk_index,
        total_chunks=total_chunks,
    )
