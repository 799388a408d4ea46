"""Configuration system for greenrag.

Typed dataclass sections with sensible defaults, loaded from and saved to
a TOML file (``greenrag.toml`` by convention).
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

import tomli_w

from greenrag.exceptions import ConfigError
from greenrag.types import ChunkingStrategy, HybridWeights

if TYPE_CHECKING:
    from pathlib import Path

_T = TypeVar("_T")

__all__ = [
    "CONFIG_FILE",
    "ChunkConfig",
    "EmbeddingConfig",
    "GreenragConfig",
    "KnowledgeConfig",
    "SearchConfig",
    "default_config",
    "load_config",
    "save_config",
]

logger = logging.getLogger(__name__)

CONFIG_FILE = "greenrag.toml"


@dataclass
class ChunkConfig:
    """[chunk] section. All sizes are in words."""

    target_size: int = 300
    overlap: int = 50
    respect_boundaries: bool = True
    min_section_words: int = 50
    min_chunk_words: int = 30

    def strategy(self) -> ChunkingStrategy:
        return ChunkingStrategy(
            target_size=self.target_size,
            overlap=self.overlap,
            respect_boundaries=self.respect_boundaries,
        )


@dataclass
class EmbeddingConfig:
    """[embedding] section."""

    provider: str = "chromadb"
    model: str = "all-MiniLM-L6-v2"
    base_url: str = ""
    api_key_env: str = ""
    batch_size: int = 64


@dataclass
class SearchConfig:
    """[search] section."""

    top_k: int = 5
    semantic_weight: float = 0.7
    keyword_weight: float = 0.3

    def weights(self) -> HybridWeights:
        return HybridWeights(
            semantic_weight=self.semantic_weight,
            keyword_weight=self.keyword_weight,
        )


@dataclass
class KnowledgeConfig:
    """[knowledge] section — markdown documents loaded at bootstrap."""

    documents: list[str] = field(default_factory=list)


@dataclass
class GreenragConfig:
    """Root configuration combining all sections."""

    chunk: ChunkConfig = field(default_factory=ChunkConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)


_SECTIONS: dict[str, type] = {
    "chunk": ChunkConfig,
    "embedding": EmbeddingConfig,
    "search": SearchConfig,
    "knowledge": KnowledgeConfig,
}


def default_config() -> GreenragConfig:
    """Return a config with all default values."""
    return GreenragConfig()


def _config_to_dict(config: GreenragConfig) -> dict[str, object]:
    """Convert GreenragConfig to a nested dict suitable for TOML serialization."""
    return {name: dict(vars(getattr(config, name))) for name in _SECTIONS}


def save_config(config: GreenragConfig, path: Path) -> None:
    """Save configuration to a TOML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = _config_to_dict(config)
    try:
        with path.open("wb") as f:
            tomli_w.dump(data, f)
        logger.info("Saved config to %s", path)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise ConfigError(f"Failed to save config to {path}: {e}") from e


def _load_section(cls: type[_T], data: object) -> _T:
    """Load a dataclass section from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        raise ConfigError(f"Config section for {cls.__name__} must be a table")
    known_fields = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    filtered = {k: v for k, v in data.items() if k in known_fields}
    return cls(**filtered)


def load_config(path: Path) -> GreenragConfig:
    """Load configuration from a TOML file.

    Missing sections or keys get default values.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    config = GreenragConfig()
    for name, cls in _SECTIONS.items():
        if name in data:
            setattr(config, name, _load_section(cls, data[name]))

    logger.info("Loaded config from %s", path)
    return config
