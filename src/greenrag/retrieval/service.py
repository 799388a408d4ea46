"""Retrieval service — the public query API over a built store.

Each operation pairs a tailored query string and metadata filter with the
extraction heuristics in ``greenrag.retrieval.extract``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from greenrag.exceptions import RetrievalError
from greenrag.retrieval import extract
from greenrag.types import (
    HybridWeights,
    LaborRateInfo,
    MatchType,
    PricingContext,
    RetrievalContext,
    RetrievalOptions,
    SearchFilters,
    SearchStrategy,
    ServiceDetails,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from greenrag.store.base import BaseStore
    from greenrag.types import MaterialCostInfo, SearchResult

__all__ = [
    "KEYWORD_FALLBACK_STRATEGY",
    "LABOR_WEIGHTS",
    "MATERIAL_WEIGHTS",
    "PRICING_WEIGHTS",
    "RetrievalService",
    "SERVICE_WEIGHTS",
]

logger = logging.getLogger(__name__)

PRICING_WEIGHTS = HybridWeights(semantic_weight=0.7, keyword_weight=0.3)
SERVICE_WEIGHTS = HybridWeights(semantic_weight=0.6, keyword_weight=0.4)
MATERIAL_WEIGHTS = HybridWeights(semantic_weight=0.6, keyword_weight=0.4)
LABOR_WEIGHTS = HybridWeights(semantic_weight=0.5, keyword_weight=0.5)

KEYWORD_FALLBACK_STRATEGY = "hybrid:keyword_fallback"

_INTENSITIES = frozenset({"light", "moderate", "heavy"})


def _degraded(results: Sequence[SearchResult]) -> bool:
    return bool(results) and all(r.match_type is MatchType.KEYWORD for r in results)


class RetrievalService:
    """Read-only façade answering pricing, service, material and labor queries.

    The service never mutates its store, so one instance can serve any
    number of concurrent queries.
    """

    def __init__(self, store: BaseStore) -> None:
        self._store = store

    @property
    def store(self) -> BaseStore:
        return self._store

    async def retrieve_pricing_context(self, query: str) -> PricingContext:
        """Price range, unit, factors and region for a pricing question."""
        results = await self._store.hybrid_search(
            query, PRICING_WEIGHTS, SearchFilters(category="pricing")
        )
        logger.debug("Pricing query %r matched %d chunks", query, len(results))

        return PricingContext(
            service_name=extract.extract_service_name(query, results),
            price_range=extract.extract_price_range(results),
            factors=extract.extract_pricing_factors(results),
            region=extract.extract_region(results),
            sources=extract.result_sources(results),
        )

    async def retrieve_service_details(
        self, service_type: str, intensity: str | None = None
    ) -> ServiceDetails:
        """Describe a service type.

        Args:
            service_type: Service type label, e.g. ``"lawn_care"``.
            intensity: Caller-known effort intensity; overrides extraction.

        Raises:
            RetrievalError: If ``intensity`` is not light, moderate or heavy.
        """
        if intensity is not None and intensity not in _INTENSITIES:
            raise RetrievalError(
                f"intensity must be one of {sorted(_INTENSITIES)}, got {intensity!r}"
            )

        results = await self._store.hybrid_search(
            f"{service_type} service description details",
            SERVICE_WEIGHTS,
            SearchFilters(category="service", service_type=service_type),
        )

        return ServiceDetails(
            name=service_type.replace("_", " "),
            description=extract.extract_description(results),
            effort_intensity=intensity or extract.extract_effort_intensity(results),
            estimated_duration=extract.extract_duration(results),
            prerequisites=extract.extract_prerequisites(results),
            best_practices=extract.extract_best_practices(results),
            sources=extract.result_sources(results),
        )

    async def _material_cost(self, material: str) -> MaterialCostInfo | None:
        results = await self._store.hybrid_search(
            f"{material} cost price per unit",
            MATERIAL_WEIGHTS,
            SearchFilters(category="material"),
        )
        if not results:
            logger.debug("No material chunks for %r", material)
            return None
        return extract.extract_material_cost(material, results)

    async def retrieve_material_costs(self, materials: Sequence[str]) -> list[MaterialCostInfo]:
        """Cost per unit and quality tiers for each material, in input order.

        Materials with no search results are left out.
        """
        costs = await asyncio.gather(*(self._material_cost(m) for m in materials))
        return [c for c in costs if c is not None]

    async def retrieve_labor_rates(
        self, region: str | None = None, skill_level: str | None = None
    ) -> LaborRateInfo:
        """Hourly labor rates; region and skill level only shape the query text."""
        query = " ".join(f"labor rates hourly {skill_level or ''} {region or ''}".split())
        results = await self._store.hybrid_search(
            query, LABOR_WEIGHTS, SearchFilters(category="labor")
        )

        return LaborRateInfo(
            skill_level=skill_level or "general",
            hourly_rate=extract.extract_hourly_rate(results),
            region=region,
            specializations=extract.extract_specializations(results),
            sources=extract.result_sources(results),
        )

    async def retrieve(
        self, query: str, options: RetrievalOptions | None = None
    ) -> RetrievalContext:
        """Run one search with an explicit strategy.

        ``strategy`` on the returned context is the strategy name, or
        ``"hybrid:keyword_fallback"`` when hybrid search had to fall back to
        keyword ranking.
        """
        opts = options or RetrievalOptions()
        try:
            strategy = SearchStrategy(opts.strategy)
        except ValueError as e:
            raise RetrievalError(f"Unknown search strategy: {opts.strategy!r}") from e
        start = time.perf_counter()

        if strategy is SearchStrategy.SEMANTIC:
            results = await self._store.semantic_search(query, opts.top_k, opts.filters)
        elif strategy is SearchStrategy.KEYWORD:
            results = self._store.keyword_search(query, opts.top_k, opts.filters)
        else:
            results = await self._store.hybrid_search(
                query, filters=opts.filters, top_k=opts.top_k
            )

        elapsed_ms = (time.perf_counter() - start) * 1000
        label = strategy.value
        if strategy is SearchStrategy.HYBRID and _degraded(results):
            label = KEYWORD_FALLBACK_STRATEGY

        logger.debug(
            "retrieve %r [%s]: %d results in %.1f ms", query, label, len(results), elapsed_ms
        )
        return RetrievalContext(
            query=query,
            results=tuple(results),
            total_results=len(results),
            retrieval_time=elapsed_ms,
            strategy=label,
        )
