"""Tests for greenrag.retrieval.extract — pure extraction heuristics."""

from __future__ import annotations

import pytest

from greenrag.retrieval import extract
from greenrag.types import (
    DocumentChunk,
    DocumentMetadata,
    HourlyRate,
    MatchType,
    PriceRange,
    SearchResult,
)


def _result(content: str, source: str = "kb", **meta: object) -> SearchResult:
    chunk = DocumentChunk(
        id=f"{source}_0",
        content=content,
        metadata=DocumentMetadata(source=source, section="S", **meta),  # type: ignore[arg-type]
        word_count=len(content.split()),
    )
    return SearchResult(chunk=chunk, score=0.5, match_type=MatchType.HYBRID)


SOD = _result(
    "Sod installation costs $1.50 per sq ft. Premium sod runs $2.00 per sq ft.",
    source="pricing",
)


class TestSplitSentences:
    def test_decimal_points_do_not_end_sentences(self):
        assert extract.split_sentences("Sod is $1.50 per sq ft. Seed is cheaper!") == [
            "Sod is $1.50 per sq ft.",
            "Seed is cheaper!",
        ]

    def test_trailing_text_kept_and_newlines_collapsed(self):
        assert extract.split_sentences("One line\nwrapped. Tail without stop") == [
            "One line wrapped.",
            "Tail without stop",
        ]


class TestPriceRange:
    def test_scenario_sod_pricing(self):
        price = extract.extract_price_range([SOD])
        assert price.low == pytest.approx(1.50)
        assert price.high == pytest.approx(2.00)
        assert price.average == pytest.approx(1.75)
        assert "sq ft" in price.unit

    def test_thousands_separator(self):
        price = extract.extract_price_range([_result("A patio runs $12,500 per project.")])
        assert price.low == price.high == 12500.0

    def test_implausible_amounts_ignored(self):
        price = extract.extract_price_range([_result("Free at $0 or $5,000,000 or $40.")])
        assert (price.low, price.high) == (40.0, 40.0)

    def test_last_unit_wins(self):
        results = [_result("$3 per plant."), _result("$80 per tree.")]
        assert extract.extract_price_range(results).unit == "tree"

    def test_miss_returns_default(self):
        assert extract.extract_price_range([_result("No numbers here.")]) == PriceRange()
        assert extract.extract_price_range([]) == PriceRange()

    def test_deterministic(self):
        assert extract.extract_price_range([SOD]) == extract.extract_price_range([SOD])


class TestServiceFields:
    def test_service_name_from_query(self):
        assert extract.extract_service_name("retaining wall quote", []) == "Retaining wall"

    def test_service_name_from_top_result(self):
        result = _result("Text.", service_type="lawn_care")
        assert extract.extract_service_name("general question", [result]) == "lawn care"

    def test_service_name_default(self):
        assert extract.extract_service_name("?", []) == extract.DEFAULT_SERVICE_NAME

    def test_pricing_factors_capped_in_keyword_order(self):
        text = "Slope, size, season, region, labor and location all matter."
        assert extract.extract_pricing_factors([_result(text)]) == (
            "size",
            "labor",
            "region",
            "location",
            "season",
        )

    def test_region_first_tagged_result(self):
        results = [_result("a"), _result("b", region="midwest"), _result("c", region="texas")]
        assert extract.extract_region(results) == "midwest"
        assert extract.extract_region([_result("a")]) is None

    def test_description_first_two_sentences(self):
        result = _result("First one. Second one! Third one?")
        assert extract.extract_description([result]) == "First one. Second one!"
        assert extract.extract_description([]) == extract.NO_DESCRIPTION

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("An extensive regrade.", "heavy"),
            ("A standard visit.", "moderate"),
            ("A simple trim.", "light"),
            ("Nothing to go on.", "moderate"),
            ("Simple but complex.", "heavy"),
        ],
    )
    def test_effort_intensity(self, text: str, expected: str):
        assert extract.extract_effort_intensity([_result(text)]) == expected

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Takes 1-2 hours.", "1-2 hours"),
            ("Allow 3 to 5 days.", "3 to 5 days"),
            ("Expect 2-3 weeks of growth.", "2-3 weeks"),
            ("Quick job.", None),
        ],
    )
    def test_duration(self, text: str, expected: str | None):
        assert extract.extract_duration([_result(text)]) == expected

    def test_prerequisites_one_per_trigger(self):
        text = (
            "Install requires a permit. It also requires a survey. "
            "Crews must have gate access. The yard needs water."
        )
        assert extract.extract_prerequisites([_result(text)]) == (
            "Install requires a permit.",
            "The yard needs water.",
            "Crews must have gate access.",
        )

    def test_best_practices_capped_at_three(self):
        texts = [
            _result("It is recommended to water. Tip: mow high."),
            _result("You should edge."),
            _result("It is important to rake."),
        ]
        practices = extract.extract_best_practices(texts)
        assert len(practices) == 3
        assert practices[0] == "It is recommended to water."


class TestMaterialAndLabor:
    def test_material_cost_tiers(self):
        text = "Mulch runs $30 per cu yard, dyed $35 per cu yard, cedar $45 per cu yard."
        info = extract.extract_material_cost("mulch", [_result(text, source="landscaping")])
        assert info.material_name == "mulch"
        assert info.unit == "cu yard"
        assert info.cost_per_unit == pytest.approx(110 / 3)
        assert info.quality_tiers.budget == 30
        assert info.quality_tiers.premium == 45
        assert info.sources == ("landscaping",)

    def test_material_cost_miss(self):
        info = extract.extract_material_cost("gravel", [_result("Gravel is grey.")])
        assert info.cost_per_unit == 0.0
        assert info.quality_tiers.standard is None
        assert info.unit == "service"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Crews charge $45-$65 per hour.", HourlyRate(45, 65, 55)),
            ("Helpers earn $20 per hour and leads $40 per hour.", HourlyRate(20, 40, 30)),
            ("Billing at $50 hr.", HourlyRate(50, 50, 50)),
        ],
    )
    def test_hourly_rate(self, text: str, expected: HourlyRate):
        assert extract.extract_hourly_rate([_result(text)]) == expected

    def test_hourly_rate_default(self):
        assert extract.extract_hourly_rate([]) == extract.DEFAULT_HOURLY_RATE
        assert extract.DEFAULT_HOURLY_RATE == HourlyRate(25, 75, 50)

    def test_specializations(self):
        results = [
            _result("a", service_type="lawn_care"),
            _result("b"),
            _result("c", service_type="lawn_care"),
            _result("d", service_type="hardscaping"),
        ]
        assert extract.extract_specializations(results) == ("lawn care", "hardscaping")


class TestSources:
    def test_distinct_in_rank_order(self):
        results = [_result("a", source="b"), _result("b", source="a"), _result("c", source="b")]
        assert extract.result_sources(results) == ("b", "a")
