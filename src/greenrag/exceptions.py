"""Custom exception hierarchy for greenrag."""

__all__ = [
    "BootstrapError",
    "ChunkError",
    "ConfigError",
    "DocumentLoadError",
    "EmbeddingError",
    "GreenragError",
    "NotInitializedError",
    "ParseError",
    "PipelineError",
    "PluginError",
    "RetrievalError",
    "StoreError",
    "TemplateError",
]


class GreenragError(Exception):
    """Base exception for all greenrag errors."""


class ConfigError(GreenragError):
    """Raised when configuration loading or validation fails."""


class ParseError(GreenragError):
    """Raised when a knowledge-base document cannot be parsed."""


class DocumentLoadError(ParseError):
    """Raised when a knowledge-base document is missing or unreadable."""


class ChunkError(GreenragError):
    """Raised when chunking operations fail."""


class EmbeddingError(GreenragError):
    """Raised when embedding generation fails."""


class StoreError(GreenragError):
    """Raised when vector store operations fail."""


class RetrievalError(GreenragError):
    """Raised when a retrieval request is invalid or cannot be served."""


class BootstrapError(GreenragError):
    """Raised when building the retrieval runtime fails."""


class NotInitializedError(GreenragError):
    """Raised when the retrieval runtime is queried before bootstrap completes."""


class PluginError(GreenragError):
    """Raised when plugin loading or registration fails."""


class TemplateError(GreenragError):
    """Raised when a prompt template cannot be found or rendered."""


class PipelineError(GreenragError):
    """Raised when building a corpus from documents fails unexpectedly."""
