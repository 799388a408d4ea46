"""ChromaDB built-in embedding provider using ONNX runtime.

Default provider: ChromaDB is already the store dependency, and the
all-MiniLM-L6-v2 ONNX model runs locally with no server or API key.
The model is downloaded on first use (~80MB).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chromadb.utils.embedding_functions import DefaultEmbeddingFunction

from greenrag.embed.base import BaseEmbedder
from greenrag.exceptions import EmbeddingError

if TYPE_CHECKING:
    from greenrag.config import GreenragConfig

__all__ = ["ChromaDBEmbedder"]

logger = logging.getLogger(__name__)


class ChromaDBEmbedder(BaseEmbedder):
    """Local ``all-MiniLM-L6-v2`` embeddings (384 dimensions).

    Config fields used::

        [embedding]
        provider = "chromadb"
        batch_size = 64
    """

    _FIXED_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, config: GreenragConfig) -> None:
        super().__init__()
        if config.embedding.model and config.embedding.model != self._FIXED_MODEL:
            logger.warning(
                "ChromaDB provider only supports %s, ignoring model=%r",
                self._FIXED_MODEL,
                config.embedding.model,
            )
        self.batch_size = config.embedding.batch_size

        try:
            self._ef = DefaultEmbeddingFunction()
        except Exception as e:
            raise EmbeddingError(f"Failed to initialize ChromaDB embedding function: {e}") from e

        logger.info("ChromaDBEmbedder initialized (ONNX %s)", self._FIXED_MODEL)

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            vectors = self._ef(texts)
        except Exception as e:
            raise EmbeddingError(f"ChromaDB embedding failed: {e}") from e
        return [list(vec) for vec in vectors]
