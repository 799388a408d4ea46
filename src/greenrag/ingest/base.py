"""Abstract base class for knowledge document loaders."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from greenrag.types import ParseResult

__all__ = ["BaseParser"]

logger = logging.getLogger(__name__)


class BaseParser(ABC):
    """Base class for all document loaders.

    Subclasses must implement ``parse`` and ``supported_extensions``.
    The ``can_parse`` helper checks file extension membership.
    """

    @abstractmethod
    def parse(self, path: Path) -> ParseResult:
        """Load a document file into a ``ParseResult``.

        Args:
            path: Path to the document file.

        Returns:
            ParseResult with clean markdown content and metadata.

        Raises:
            DocumentLoadError: If the document cannot be read.
        """

    @abstractmethod
    def supported_extensions(self) -> frozenset[str]:
        """Return the set of file extensions this loader handles, with leading dot."""

    def can_parse(self, path: Path) -> bool:
        """Check whether this loader can handle the given file."""
        return path.suffix.lower() in self.supported_extensions()
