"""Tests for greenrag.retrieval.service — structured retrieval over the sample corpus."""

from __future__ import annotations

import asyncio

import pytest

from greenrag.chunk.markdown import build_corpus
from greenrag.exceptions import RetrievalError
from greenrag.retrieval.service import KEYWORD_FALLBACK_STRATEGY, RetrievalService
from greenrag.store.chroma import ChromaVectorStore
from greenrag.types import MatchType, RetrievalOptions, SearchFilters, SearchStrategy


class TestPricingContext:
    @pytest.mark.asyncio
    async def test_sod_price_range(self, service: RetrievalService):
        pricing = await service.retrieve_pricing_context("sod installation cost")
        assert pricing.service_name == "Sod"
        assert pricing.price_range.low == pytest.approx(1.50)
        assert pricing.price_range.high == pytest.approx(2.00)
        assert pricing.price_range.average == pytest.approx(1.75)
        assert "sq ft" in pricing.price_range.unit
        assert pricing.factors == ("size", "slope", "soil condition")
        assert pricing.region is None
        assert pricing.sources == ("pricing",)

    @pytest.mark.asyncio
    async def test_repeated_calls_agree(self, service: RetrievalService):
        first = await service.retrieve_pricing_context("sod installation cost")
        second = await service.retrieve_pricing_context("sod installation cost")
        assert first == second


class TestLaborRates:
    @pytest.mark.asyncio
    async def test_crew_rates(self, service: RetrievalService):
        labor = await service.retrieve_labor_rates()
        assert labor.hourly_rate.low == 45
        assert labor.hourly_rate.high == 65
        assert labor.hourly_rate.average == 55
        assert labor.skill_level == "general"
        assert labor.sources == ("pricing",)

    @pytest.mark.asyncio
    async def test_region_and_skill_echoed(self, service: RetrievalService):
        labor = await service.retrieve_labor_rates(region="midwest", skill_level="specialist")
        assert labor.region == "midwest"
        assert labor.skill_level == "specialist"

    @pytest.mark.asyncio
    async def test_defaults_without_labor_chunks(self, embedder, documents):
        corpus = [c for c in build_corpus(documents) if c.metadata.category != "labor"]
        store = await ChromaVectorStore.build(corpus, embedder)
        labor = await RetrievalService(store).retrieve_labor_rates()
        assert (labor.hourly_rate.low, labor.hourly_rate.high) == (25, 75)
        assert labor.sources == ()


class TestServiceDetails:
    @pytest.mark.asyncio
    async def test_lawn_care(self, service: RetrievalService):
        details = await service.retrieve_service_details("lawn_care")
        assert details.name == "lawn care"
        assert details.description.startswith("Weekly lawn mowing keeps grass healthy")
        assert details.description.endswith("off hard surfaces.")
        assert details.effort_intensity == "light"
        assert details.estimated_duration == "1-2 hours"
        assert details.prerequisites == (
            "This service requires clear access through a side gate.",
        )
        assert details.best_practices == (
            "It is recommended that sprinklers run the evening before so the blades cut cleanly.",
        )
        assert details.sources == ("landscaping",)

    @pytest.mark.asyncio
    async def test_caller_intensity_overrides(self, service: RetrievalService):
        details = await service.retrieve_service_details("lawn_care", intensity="heavy")
        assert details.effort_intensity == "heavy"

    @pytest.mark.asyncio
    async def test_invalid_intensity(self, service: RetrievalService):
        with pytest.raises(RetrievalError, match="intensity"):
            await service.retrieve_service_details("lawn_care", intensity="extreme")

    @pytest.mark.asyncio
    async def test_unknown_service_type_uses_defaults(self, service: RetrievalService):
        details = await service.retrieve_service_details("xeriscaping")
        assert details.name == "xeriscaping"
        assert details.description == "No description available"
        assert details.effort_intensity == "moderate"
        assert details.estimated_duration is None
        assert details.sources == ()


class TestMaterialCosts:
    @pytest.mark.asyncio
    async def test_mulch(self, service: RetrievalService):
        (mulch,) = await service.retrieve_material_costs(["mulch"])
        assert mulch.material_name == "mulch"
        assert mulch.unit == "cu yard"
        assert mulch.cost_per_unit == pytest.approx(110 / 3)
        assert (mulch.quality_tiers.budget, mulch.quality_tiers.premium) == (30, 45)

    @pytest.mark.asyncio
    async def test_input_order_preserved(self, service: RetrievalService):
        costs = await service.retrieve_material_costs(["pavers", "mulch"])
        assert [c.material_name for c in costs] == ["pavers", "mulch"]

    @pytest.mark.asyncio
    async def test_no_material_chunks_omits_entries(self, embedder, documents):
        store = await ChromaVectorStore.build(build_corpus({"p": documents["pricing"]}), embedder)
        assert await RetrievalService(store).retrieve_material_costs(["mulch"]) == []

    @pytest.mark.asyncio
    async def test_empty_list(self, service: RetrievalService):
        assert await service.retrieve_material_costs([]) == []


class TestRetrieve:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", list(SearchStrategy))
    async def test_each_strategy(self, service: RetrievalService, strategy: SearchStrategy):
        context = await service.retrieve(
            "cedar mulch", RetrievalOptions(top_k=2, strategy=strategy)
        )
        assert context.query == "cedar mulch"
        assert context.strategy == strategy.value
        assert context.total_results == len(context.results) <= 2
        assert context.results[0].chunk.id == "landscaping_1"
        assert context.retrieval_time >= 0

    @pytest.mark.asyncio
    async def test_defaults_to_hybrid_top_five(self, service: RetrievalService):
        context = await service.retrieve("sod installation cost")
        assert context.strategy == "hybrid"
        assert context.total_results == 5
        scores = [r.score for r in context.results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_filters_passed_through(self, service: RetrievalService):
        context = await service.retrieve(
            "anything", RetrievalOptions(filters=SearchFilters(category="market_analysis"))
        )
        assert [r.chunk.id for r in context.results] == ["landscaping_2"]

    @pytest.mark.asyncio
    async def test_keyword_fallback_flagged(self, service: RetrievalService, embedder):
        embedder.fail_queries = True
        context = await service.retrieve("cedar mulch")
        assert context.strategy == KEYWORD_FALLBACK_STRATEGY
        assert all(r.match_type is MatchType.KEYWORD for r in context.results)

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, service: RetrievalService):
        options = RetrievalOptions(strategy="fuzzy")  # type: ignore[arg-type]
        with pytest.raises(RetrievalError, match="Unknown search strategy"):
            await service.retrieve("sod", options)


class TestConcurrentQueries:
    @pytest.mark.asyncio
    async def test_parallel_queries_match_sequential(self, service: RetrievalService):
        queries = ["sod installation cost", "mulch price", "crew rates", "market"]
        sequential = [await service.retrieve(q) for q in queries]
        parallel = await asyncio.gather(*(service.retrieve(q) for q in queries))
        assert [c.results for c in parallel] == [c.results for c in sequential]
