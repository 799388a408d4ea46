"""Embedding providers — abstract interface and concrete backends."""

from greenrag.embed.base import BaseEmbedder
from greenrag.embed.chromadb_embed import ChromaDBEmbedder
from greenrag.embed.ollama import OllamaEmbedder
from greenrag.embed.openai_compat import OpenAICompatEmbedder
from greenrag.registry import default_registry

__all__ = ["BaseEmbedder", "ChromaDBEmbedder", "OllamaEmbedder", "OpenAICompatEmbedder"]

# Register built-in embedding providers
default_registry.register("embedding", "chromadb", lambda cfg: ChromaDBEmbedder(cfg))
default_registry.register("embedding", "ollama", lambda cfg: OllamaEmbedder(cfg))
default_registry.register("embedding", "openai", lambda cfg: OpenAICompatEmbedder(cfg))
