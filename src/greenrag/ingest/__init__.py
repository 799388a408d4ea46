"""Knowledge document loading."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from greenrag.exceptions import DocumentLoadError
from greenrag.ingest.base import BaseParser
from greenrag.ingest.markdown import MarkdownParser, make_doc_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

__all__ = ["BaseParser", "MarkdownParser", "load_documents", "make_doc_id"]

logger = logging.getLogger(__name__)


def load_documents(paths: Iterable[Path]) -> dict[str, str]:
    """Load markdown files into a ``{source_id: content}`` mapping.

    Raises:
        DocumentLoadError: If a file cannot be loaded or two files share a source id.
    """
    parser = MarkdownParser()
    documents: dict[str, str] = {}
    for path in paths:
        if not parser.can_parse(path):
            raise DocumentLoadError(f"Unsupported knowledge document type: {path.name}")
        result = parser.parse(path)
        if result.doc_id in documents:
            raise DocumentLoadError(f"Duplicate knowledge source id {result.doc_id!r} ({path})")
        documents[result.doc_id] = result.content
    logger.info("Loaded %d knowledge documents", len(documents))
    return documents
