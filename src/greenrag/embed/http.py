"""JSON-over-HTTP plumbing shared by the remote embedding providers."""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from greenrag.embed.base import BaseEmbedder
from greenrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from greenrag.config import GreenragConfig

__all__ = ["HttpEmbedder"]

logger = logging.getLogger(__name__)

# The [embedding] model default names the local chromadb model
_LOCAL_MODEL = "all-MiniLM-L6-v2"


class HttpEmbedder(BaseEmbedder):
    """Provider that POSTs ``{"model", "input"}`` and reads vectors back.

    Subclasses set the class-level endpoint details and implement
    ``_parse`` for their response shape. An empty or local-default model
    name is replaced by ``default_model``.
    """

    service_name: ClassVar[str] = "Embedding API"
    default_base_url: ClassVar[str] = ""
    default_model: ClassVar[str] = ""
    endpoint: ClassVar[str] = ""
    timeout: ClassVar[int] = 120  # seconds

    def __init__(self, config: GreenragConfig) -> None:
        super().__init__()
        model = config.embedding.model
        self._model = self.default_model if model in ("", _LOCAL_MODEL) else model
        self._base_url = (config.embedding.base_url or self.default_base_url).rstrip("/")
        self.batch_size = config.embedding.batch_size

        if self.batch_size < 1:
            raise EmbeddingError(f"batch_size must be >= 1, got {self.batch_size}")

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    @abstractmethod
    def _parse(self, data: dict[str, Any], url: str) -> list[list[float]]:
        """Pull the vectors out of a decoded response body, in input order."""

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        url = f"{self._base_url}{self.endpoint}"
        payload = json.dumps({"model": self._model, "input": texts}).encode("utf-8")
        req = Request(url, data=payload, headers=self._headers())
        logger.debug("POST %s: %d texts with %s", url, len(texts), self._model)

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read())
        except json.JSONDecodeError as e:
            raise EmbeddingError(f"{self.service_name} returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise EmbeddingError(
                f"{self.service_name} error (HTTP {e.code}): {e.reason}"
            ) from e
        except (ConnectionError, URLError) as e:
            raise EmbeddingError(
                f"{self.service_name} not reachable at {self._base_url}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise EmbeddingError(f"Unexpected response format from {url}: not an object")
        return self._parse(data, url)
