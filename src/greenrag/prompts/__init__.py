"""Prompt-context fragments built from retrieval results."""

from greenrag.prompts.context import (
    EstimateValidation,
    QuoteLineItem,
    build_property_report_context,
    build_quote_context,
    enhance_prompt,
    enhance_prompt_with_context,
    extract_materials,
    extract_service_keywords,
    format_context_for_prompt,
    suggest_services,
    validate_estimate,
)
from greenrag.prompts.engine import TemplateEngine
from greenrag.prompts.tokens import count_tokens, truncate_tokens

__all__ = [
    "EstimateValidation",
    "QuoteLineItem",
    "TemplateEngine",
    "build_property_report_context",
    "build_quote_context",
    "count_tokens",
    "enhance_prompt",
    "enhance_prompt_with_context",
    "extract_materials",
    "extract_service_keywords",
    "format_context_for_prompt",
    "suggest_services",
    "truncate_tokens",
    "validate_estimate",
]
