"""Best-effort extraction of structured values from retrieved chunk text.

Every function here is pure: the same results always give the same
answer, and a miss is reported through a documented default instead of
an exception. Numbers are read from natural-language text and are
advisory, not validated.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from greenrag.types import HourlyRate, MaterialCostInfo, PriceRange, QualityTiers

if TYPE_CHECKING:
    from collections.abc import Sequence

    from greenrag.types import SearchResult

__all__ = [
    "DEFAULT_HOURLY_RATE",
    "DEFAULT_INTENSITY",
    "DEFAULT_SERVICE_NAME",
    "NO_DESCRIPTION",
    "extract_best_practices",
    "extract_description",
    "extract_duration",
    "extract_effort_intensity",
    "extract_hourly_rate",
    "extract_material_cost",
    "extract_prerequisites",
    "extract_price_range",
    "extract_pricing_factors",
    "extract_region",
    "extract_service_name",
    "extract_specializations",
    "result_sources",
    "split_sentences",
]

# $1,234 or $12.34
_PRICE_RE = re.compile(r"\$[\d,]+(?:\.\d{2})?")
_MAX_PRICE = 1_000_000

_UNIT_RE = re.compile(
    r"per (sq ft|square foot|linear ft|hour|acre|tree|plant|cu yard)", re.IGNORECASE
)

# "$45 per hour", "$45-$65 per hour", "$50 hr"
_HOURLY_RATE_RE = re.compile(r"\$(\d+)(?:-\$?(\d+))?\s*(?:per\s+)?(?:hour|hr)", re.IGNORECASE)

_DURATION_RE = re.compile(r"(\d+\s*(?:-|to)\s*\d+)\s*(hours?|days?|weeks?)", re.IGNORECASE)

_SENTENCE_RE = re.compile(r"\S.*?(?:[.!?]+(?=\s|$)|$)", re.DOTALL)

_SERVICE_KEYWORDS: tuple[str, ...] = (
    "sod",
    "lawn",
    "mowing",
    "patio",
    "walkway",
    "retaining wall",
    "irrigation",
    "sprinkler",
    "tree",
    "shrub",
    "mulch",
    "design",
)

_FACTOR_KEYWORDS: tuple[str, ...] = (
    "size",
    "complexity",
    "material quality",
    "labor",
    "region",
    "location",
    "season",
    "accessibility",
    "slope",
    "soil condition",
    "design complexity",
)
_MAX_FACTORS = 5

# (intensity, keywords) in priority order
_INTENSITY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("heavy", ("heavy", "extensive", "complex")),
    ("moderate", ("moderate", "standard")),
    ("light", ("light", "simple", "basic")),
)
DEFAULT_INTENSITY = "moderate"

_PREREQUISITE_TRIGGERS: tuple[str, ...] = ("requires", "needs", "must have", "prerequisite")
_BEST_PRACTICE_TRIGGERS: tuple[str, ...] = (
    "best practice",
    "recommended",
    "should",
    "tip",
    "important",
)
_MAX_SENTENCES = 3

DEFAULT_SERVICE_NAME = "General Landscaping"
NO_DESCRIPTION = "No description available"
DEFAULT_UNIT = "service"
DEFAULT_HOURLY_RATE = HourlyRate(low=25.0, high=75.0, average=50.0)


def split_sentences(text: str) -> list[str]:
    """Split after ``.``, ``!`` or ``?`` followed by whitespace; trailing text is kept.

    Line breaks inside a sentence collapse to single spaces.
    """
    return [" ".join(s.split()) for s in _SENTENCE_RE.findall(text) if s.strip()]


def result_sources(results: Sequence[SearchResult]) -> tuple[str, ...]:
    """Distinct source identifiers of ``results`` in rank order."""
    return tuple(dict.fromkeys(r.chunk.metadata.source for r in results))


def extract_service_name(query: str, results: Sequence[SearchResult]) -> str:
    """Service keyword from the query, else the top result's service type."""
    lowered = query.lower()
    for keyword in _SERVICE_KEYWORDS:
        if keyword in lowered:
            return keyword[0].upper() + keyword[1:]

    if results and results[0].chunk.metadata.service_type:
        return results[0].chunk.metadata.service_type.replace("_", " ")
    return DEFAULT_SERVICE_NAME


def extract_price_range(results: Sequence[SearchResult]) -> PriceRange:
    """Collect every ``$`` amount across the results.

    Returns ``PriceRange(0, 0, None, "service")`` when no amount is found.
    The unit is the last ``per <unit>`` phrase seen.
    """
    prices: list[float] = []
    unit = DEFAULT_UNIT

    for result in results:
        content = result.chunk.content
        for token in _PRICE_RE.findall(content):
            digits = token.replace("$", "").replace(",", "")
            try:
                price = float(digits)
            except ValueError:
                continue
            if 0 < price < _MAX_PRICE:
                prices.append(price)

        units = _UNIT_RE.findall(content)
        if units:
            unit = units[-1]

    if not prices:
        return PriceRange()

    return PriceRange(
        low=min(prices),
        high=max(prices),
        average=sum(prices) / len(prices),
        unit=unit,
    )


def extract_pricing_factors(results: Sequence[SearchResult]) -> tuple[str, ...]:
    """Pricing-factor terms mentioned in the results, at most five."""
    found: dict[str, None] = {}
    for result in results:
        lowered = result.chunk.content.lower()
        for keyword in _FACTOR_KEYWORDS:
            if keyword in lowered:
                found.setdefault(keyword)
    return tuple(found)[:_MAX_FACTORS]


def extract_region(results: Sequence[SearchResult]) -> str | None:
    for result in results:
        if result.chunk.metadata.region:
            return result.chunk.metadata.region
    return None


def extract_description(results: Sequence[SearchResult]) -> str:
    """First two sentences of the top result."""
    if not results:
        return NO_DESCRIPTION
    content = results[0].chunk.content
    sentences = split_sentences(content) or [" ".join(content.split())]
    return " ".join(sentences[:2]).strip()


def extract_effort_intensity(results: Sequence[SearchResult]) -> str:
    """Classify effort as light, moderate or heavy from keyword presence."""
    for result in results:
        lowered = result.chunk.content.lower()
        for intensity, keywords in _INTENSITY_RULES:
            if any(kw in lowered for kw in keywords):
                return intensity
    return DEFAULT_INTENSITY


def extract_duration(results: Sequence[SearchResult]) -> str | None:
    """First ``N-M`` / ``N to M`` hours, days or weeks phrase."""
    for result in results:
        match = _DURATION_RE.search(result.chunk.content)
        if match:
            return match.group(0)
    return None


def _trigger_sentences(
    results: Sequence[SearchResult], triggers: tuple[str, ...]
) -> tuple[str, ...]:
    sentences: list[str] = []
    for result in results:
        candidates = split_sentences(result.chunk.content)
        for trigger in triggers:
            for sentence in candidates:
                if trigger in sentence.lower():
                    sentences.append(sentence)
                    break
    return tuple(sentences[:_MAX_SENTENCES])


def extract_prerequisites(results: Sequence[SearchResult]) -> tuple[str, ...]:
    return _trigger_sentences(results, _PREREQUISITE_TRIGGERS)


def extract_best_practices(results: Sequence[SearchResult]) -> tuple[str, ...]:
    return _trigger_sentences(results, _BEST_PRACTICE_TRIGGERS)


def extract_material_cost(material: str, results: Sequence[SearchResult]) -> MaterialCostInfo:
    """Price a material from its search results.

    ``cost_per_unit`` is the average, or the midpoint when no amount was found.
    """
    price = extract_price_range(results)
    return MaterialCostInfo(
        material_name=material,
        cost_per_unit=price.average if price.average is not None else price.midpoint,
        unit=price.unit,
        quality_tiers=QualityTiers(budget=price.low, standard=price.average, premium=price.high),
        sources=result_sources(results),
    )


def extract_hourly_rate(results: Sequence[SearchResult]) -> HourlyRate:
    """Hourly rates quoted as ``$N per hour`` or ``$N-$M per hour``.

    Defaults to ``DEFAULT_HOURLY_RATE`` (25 / 75 / 50) when nothing matches.
    """
    rates: list[float] = []
    for result in results:
        for low, high in _HOURLY_RATE_RE.findall(result.chunk.content):
            rates.append(float(low))
            if high:
                rates.append(float(high))

    if not rates:
        return DEFAULT_HOURLY_RATE
    return HourlyRate(low=min(rates), high=max(rates), average=sum(rates) / len(rates))


def extract_specializations(results: Sequence[SearchResult]) -> tuple[str, ...]:
    """Distinct service types covered by the results, underscores replaced."""
    found: dict[str, None] = {}
    for result in results:
        service_type = result.chunk.metadata.service_type
        if service_type:
            found.setdefault(service_type.replace("_", " "))
    return tuple(found)
