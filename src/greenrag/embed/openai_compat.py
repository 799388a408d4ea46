"""OpenAI-compatible embedding provider.

Works with any server implementing the OpenAI /v1/embeddings API,
including LiteLLM and vLLM proxies.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from greenrag.embed.http import HttpEmbedder
from greenrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from greenrag.config import GreenragConfig

__all__ = ["OpenAICompatEmbedder"]

logger = logging.getLogger(__name__)


class OpenAICompatEmbedder(HttpEmbedder):
    """Embedding provider for any OpenAI-compatible ``/embeddings`` endpoint.

    Config fields used::

        [embedding]
        provider = "openai"
        model = "text-embedding-3-small"
        api_key_env = "OPENAI_API_KEY"   # env var name; empty = no auth
        base_url = ""                     # empty = https://api.openai.com/v1
        batch_size = 64
    """

    service_name = "Embedding API"
    default_base_url = "https://api.openai.com/v1"
    default_model = "text-embedding-3-small"
    endpoint = "/embeddings"

    def __init__(self, config: GreenragConfig) -> None:
        super().__init__(config)
        self._api_key: str | None = None
        if config.embedding.api_key_env:
            self._api_key = os.environ.get(config.embedding.api_key_env)
            if not self._api_key:
                logger.warning(
                    "API key env var %s is not set; requests may fail",
                    config.embedding.api_key_env,
                )

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _parse(self, data: dict[str, Any], url: str) -> list[list[float]]:
        items = data.get("data", [])
        if items and all("index" in item for item in items):
            items = sorted(items, key=lambda x: x["index"])

        try:
            return [item["embedding"] for item in items]
        except (KeyError, TypeError) as e:
            raise EmbeddingError(
                f"Unexpected response format from {url}: missing 'embedding' field"
            ) from e
