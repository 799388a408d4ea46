"""Prompt-context builders for the quote, design and property-report features.

Builders turn retrieval results into markdown fragments that callers
append to generative-model prompts. Retrieval is advisory: the builders
log ``GreenragError`` and degrade to an empty context instead of failing
the calling feature.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from greenrag.bootstrap import default_runtime
from greenrag.exceptions import GreenragError
from greenrag.prompts.engine import TemplateEngine
from greenrag.prompts.tokens import truncate_tokens
from greenrag.retrieval.service import PRICING_WEIGHTS
from greenrag.types import RetrievalOptions, SearchStrategy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from greenrag.bootstrap import RetrievalRuntime
    from greenrag.retrieval.service import RetrievalService
    from greenrag.types import MaterialCostInfo, PricingContext, ServiceDetails

__all__ = [
    "EstimateValidation",
    "QuoteLineItem",
    "build_property_report_context",
    "build_quote_context",
    "enhance_prompt",
    "enhance_prompt_with_context",
    "extract_materials",
    "extract_service_keywords",
    "format_context_for_prompt",
    "suggest_services",
    "validate_estimate",
]

logger = logging.getLogger(__name__)

_MATERIAL_KEYWORDS: tuple[str, ...] = (
    "sod",
    "mulch",
    "pavers",
    "gravel",
    "stone",
    "concrete",
    "fence",
    "lighting",
    "seed",
    "fertilizer",
    "wood",
)

_SERVICE_KEYWORDS: tuple[str, ...] = (
    "lawn",
    "grass",
    "sod",
    "mowing",
    "patio",
    "walkway",
    "pathway",
    "retaining wall",
    "wall",
    "tree",
    "shrub",
    "plant",
    "flower",
    "mulch",
    "gravel",
    "stone",
    "fence",
    "lighting",
    "irrigation",
    "sprinkler",
    "design",
    "landscape",
)

# "Sod Installation:" at the start of a line
_LABEL_RE = re.compile(r"^([A-Z][a-z ]+):", re.MULTILINE)

PROMPT_KINDS = frozenset({"design", "pricing", "audit"})

_REPORT_TOP_K = 3
_SUGGESTION_TOP_K = 5
_MAX_SUGGESTIONS = 5
_ADDITIONAL_CONTEXT_RESULTS = 2

# Token budgets for snippets and injected insights
REPORT_SNIPPET_TOKENS = 48
ADDITIONAL_SNIPPET_TOKENS = 64
INSIGHT_TOKENS = 120


@dataclass(frozen=True)
class QuoteLineItem:
    """One priced line of a generated quote."""

    description: str
    quantity: float
    total: float

    @property
    def unit_price(self) -> float:
        return self.total / (self.quantity or 1)


@dataclass(frozen=True)
class EstimateValidation:
    is_valid: bool = True
    issues: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()


@functools.cache
def _default_engine() -> TemplateEngine:
    return TemplateEngine()


def _resolve(service: RetrievalService | None) -> RetrievalService:
    return service if service is not None else default_runtime.service


def extract_materials(text: str) -> list[str]:
    """Material keywords mentioned in ``text``, in keyword-list order."""
    lowered = text.lower()
    return [m for m in _MATERIAL_KEYWORDS if m in lowered]


def extract_service_keywords(text: str) -> list[str]:
    """Service keywords mentioned in ``text``, in keyword-list order."""
    lowered = text.lower()
    return [k for k in _SERVICE_KEYWORDS if k in lowered]


def format_context_for_prompt(context: str, engine: TemplateEngine | None = None) -> str:
    """Fence a context block for injection into a prompt."""
    return (engine or _default_engine()).render("context_block.md.j2", context=context)


async def build_quote_context(
    prompt: str,
    service: RetrievalService | None = None,
    engine: TemplateEngine | None = None,
) -> str:
    """Pricing, material and labor context for a quote request.

    Returns an empty string when retrieval fails.
    """
    try:
        svc = _resolve(service)
        pricing = await svc.retrieve_pricing_context(prompt)
        materials = extract_materials(prompt)
        material_costs = await svc.retrieve_material_costs(materials) if materials else []
        labor = await svc.retrieve_labor_rates()
        return (engine or _default_engine()).render(
            "quote_context.md.j2",
            pricing=pricing,
            materials=material_costs,
            labor=labor,
        )
    except GreenragError as e:
        logger.error("Error building quote context: %s", e)
        return ""


async def build_property_report_context(
    analysis: str,
    service: RetrievalService | None = None,
    engine: TemplateEngine | None = None,
    snippet_tokens: int = REPORT_SNIPPET_TOKENS,
) -> str:
    """Best-practice excerpts relevant to a property analysis.

    Returns an empty string when retrieval fails.
    """
    try:
        context = await _resolve(service).retrieve(
            analysis, RetrievalOptions(top_k=_REPORT_TOP_K, strategy=SearchStrategy.HYBRID)
        )
        entries = [
            {
                "section": r.chunk.metadata.section,
                "snippet": truncate_tokens(r.chunk.content, snippet_tokens),
            }
            for r in context.results
        ]
        return (engine or _default_engine()).render("property_report.md.j2", entries=entries)
    except GreenragError as e:
        logger.error("Error building property report context: %s", e)
        return ""


async def suggest_services(
    image_context: str, service: RetrievalService | None = None
) -> list[str]:
    """Up to five service suggestions for a described property.

    Returns an empty list when retrieval fails.
    """
    try:
        context = await _resolve(service).retrieve(
            f"landscaping improvements {image_context}",
            RetrievalOptions(top_k=_SUGGESTION_TOP_K, strategy=SearchStrategy.HYBRID),
        )
    except GreenragError as e:
        logger.error("Error suggesting services: %s", e)
        return []

    suggestions: dict[str, None] = {}
    for result in context.results:
        if result.chunk.metadata.service_type:
            suggestions.setdefault(result.chunk.metadata.service_type.replace("_", " "))
        match = _LABEL_RE.search(result.chunk.content)
        if match:
            suggestions.setdefault(match.group(1).strip())
    return list(suggestions)[:_MAX_SUGGESTIONS]


async def enhance_prompt_with_context(
    base_prompt: str,
    service: RetrievalService,
    *,
    query: str | None = None,
    service_type: str | None = None,
    include_pricing: bool = False,
    include_materials: bool = False,
    engine: TemplateEngine | None = None,
) -> str:
    """Append pricing, service, material and general context to a prompt.

    Unlike the other builders this one lets retrieval errors propagate.

    Raises:
        GreenragError: If retrieval or rendering fails.
    """
    pricing: PricingContext | None = None
    if include_pricing:
        pricing_query = query or service_type or "general pricing"
        pricing = await service.retrieve_pricing_context(pricing_query)

    details: ServiceDetails | None = None
    if service_type:
        details = await service.retrieve_service_details(service_type)

    materials: list[MaterialCostInfo] = []
    if include_materials and query:
        names = extract_materials(query)
        if names:
            materials = await service.retrieve_material_costs(names)

    snippets: list[str] = []
    if query:
        results = await service.store.hybrid_search(query, PRICING_WEIGHTS)
        snippets = [
            truncate_tokens(r.chunk.content, ADDITIONAL_SNIPPET_TOKENS)
            for r in results[:_ADDITIONAL_CONTEXT_RESULTS]
        ]

    rendered = (engine or _default_engine()).render(
        "enhanced_prompt.md.j2",
        base_prompt=base_prompt,
        pricing=pricing,
        details=details,
        materials=materials,
        snippets=snippets,
    )
    return rendered.rstrip("\n")


async def enhance_prompt(
    prompt: str,
    kind: str,
    runtime: RetrievalRuntime | None = None,
) -> str:
    """Add knowledge-base insights to a design, pricing or audit prompt.

    Returns ``prompt`` unchanged when the runtime is not initialized, the
    kind is unknown or no context could be retrieved.
    """
    rt = runtime or default_runtime
    if not rt.is_initialized:
        return prompt
    if kind not in PROMPT_KINDS:
        logger.warning("Unknown prompt kind %r; prompt left unchanged", kind)
        return prompt

    service = rt.service
    if kind == "design":
        suggestions = await suggest_services(prompt, service)
        if not suggestions:
            return prompt
        return f"{prompt}\n\nProfessional recommendations: {', '.join(suggestions)}"

    if kind == "pricing":
        label = "Consider these insights"
        context = await build_quote_context(prompt, service)
    else:
        label = "Context"
        context = await build_property_report_context(prompt, service)
    if not context:
        return prompt
    try:
        insight = truncate_tokens(context, INSIGHT_TOKENS)
    except GreenragError as e:
        logger.error("Error trimming %s context: %s", kind, e)
        return prompt
    return f"{prompt}\n\n{label}: {insight}"


async def validate_estimate(
    items: Sequence[QuoteLineItem],
    service: RetrievalService | None = None,
) -> EstimateValidation:
    """Flag line items priced far outside the retrieved range.

    An item is flagged when its unit price is below half the retrieved low
    or above twice the retrieved high. Items without retrieved prices are
    not judged. Returns a valid result when retrieval is unavailable.
    """
    issues: list[str] = []
    suggestions: list[str] = []
    try:
        svc = _resolve(service)
        for item in items:
            pricing = await svc.retrieve_pricing_context(item.description)
            price = pricing.price_range
            if price.average is None:
                continue
            if item.unit_price < price.low * 0.5 or item.unit_price > price.high * 2:
                issues.append(f"{item.description} pricing may be outside normal range")
                suggestions.append(
                    f"Consider {pricing.service_name} at ${price.midpoint:.2f} per {price.unit}"
                )
    except GreenragError as e:
        logger.error("Error validating estimate: %s", e)
        return EstimateValidation()

    return EstimateValidation(
        is_valid=not issues, issues=tuple(issues), suggestions=tuple(suggestions)
    )
