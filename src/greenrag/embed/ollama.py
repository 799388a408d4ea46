"""Ollama embedding provider using the /api/embed endpoint."""

from __future__ import annotations

from typing import Any

from greenrag.embed.http import HttpEmbedder
from greenrag.exceptions import EmbeddingError

__all__ = ["OllamaEmbedder"]


class OllamaEmbedder(HttpEmbedder):
    """Embedding provider backed by a local Ollama instance.

    Config fields used::

        [embedding]
        provider = "ollama"
        model = "nomic-embed-text"
        base_url = ""           # empty = http://localhost:11434
        batch_size = 64
    """

    service_name = "Ollama"
    default_base_url = "http://localhost:11434"
    default_model = "nomic-embed-text"
    endpoint = "/api/embed"

    def _parse(self, data: dict[str, Any], url: str) -> list[list[float]]:
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise EmbeddingError(f"Unexpected response format from {url}: missing 'embeddings'")
        return embeddings
