"""Retrieval service and extraction heuristics."""

from greenrag.retrieval.service import RetrievalService

__all__ = ["RetrievalService"]
