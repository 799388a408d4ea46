"""Markdown knowledge-document loader.

Reads a markdown file, strips any BOM and YAML front-matter, and
normalizes whitespace so that the chunker sees clean section text.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import yaml

from greenrag.exceptions import DocumentLoadError
from greenrag.ingest.base import BaseParser
from greenrag.types import ParseResult

if TYPE_CHECKING:
    from pathlib import Path

__all__ = ["MarkdownParser", "make_doc_id"]

logger = logging.getLogger(__name__)

MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MB

_MULTI_BLANK_RE = re.compile(r"\n{3,}")

_HEADING_RE = re.compile(r"^#{1,6}\s+(.+)", re.MULTILINE)


class MarkdownParser(BaseParser):
    """Loader for ``.md`` / ``.markdown`` knowledge documents."""

    def parse(self, path: Path) -> ParseResult:
        """Load a markdown file into a ParseResult.

        Raises:
            DocumentLoadError: If the file is missing, too large or unreadable.
        """
        if not path.is_file():
            raise DocumentLoadError(f"Knowledge document not found: {path}")

        size = path.stat().st_size
        if size > MAX_FILE_SIZE:
            raise DocumentLoadError(
                f"Knowledge document {path.name} ({size} bytes) "
                f"exceeds maximum size ({MAX_FILE_SIZE} bytes)"
            )

        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning("UTF-8 decode failed for %s, retrying with replacement", path.name)
            raw = path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise DocumentLoadError(f"Cannot read knowledge document {path.name}: {e}") from e

        raw = raw.removeprefix("\ufeff").replace("\r\n", "\n")

        frontmatter, body = _split_frontmatter(raw)
        meta = _parse_frontmatter(frontmatter) if frontmatter is not None else {}
        content = _normalize_whitespace(body)

        logger.info("Loaded %s: %d chars", path.name, len(content))

        return ParseResult(
            doc_id=make_doc_id(path),
            content=content,
            title=_extract_title(meta, content, path),
            source_path=str(path),
            metadata=tuple((k, v) for k, v in meta.items() if k != "title"),
        )

    def supported_extensions(self) -> frozenset[str]:
        return frozenset({".md", ".markdown"})


def make_doc_id(path: Path) -> str:
    """Derive the source identifier used in chunk ids from a file path."""
    return path.stem.lower().replace("-", "_").replace(" ", "_")


def _split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split ``---``-delimited YAML front-matter from the markdown body."""
    if not text.startswith("---"):
        return None, text

    end_idx = text.find("\n---", 3)
    if end_idx == -1:
        return None, text

    body_start = end_idx + len("\n---")
    if body_start < len(text) and text[body_start] == "\n":
        body_start += 1
    return text[3:end_idx].strip(), text[body_start:]


def _parse_frontmatter(fm_text: str) -> dict[str, str]:
    try:
        data = yaml.safe_load(fm_text)
    except yaml.YAMLError:
        logger.debug("Invalid YAML front-matter, ignoring")
        return {}

    if not isinstance(data, dict):
        return {}
    return {str(k): str(v) for k, v in data.items()}


def _normalize_whitespace(text: str) -> str:
    """Strip trailing whitespace per line and collapse runs of blank lines."""
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    return _MULTI_BLANK_RE.sub("\n\n", text).strip()


def _extract_title(meta: dict[str, str], content: str, path: Path) -> str:
    """Front-matter ``title`` > first heading > filename stem."""
    if "title" in meta:
        return meta["title"]
    match = _HEADING_RE.search(content)
    if match:
        return match.group(1).strip()
    return path.stem
