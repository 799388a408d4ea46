"""Token counting for prompt budgets (tiktoken ``cl100k_base``)."""

from __future__ import annotations

import tiktoken

from greenrag.exceptions import TemplateError

__all__ = ["count_tokens", "truncate_tokens"]

_ELLIPSIS = "..."


def _get_encoding() -> tiktoken.Encoding:
    """Get the tiktoken encoding; tiktoken caches it after the first load.

    Raises:
        TemplateError: If the encoding cannot be loaded (it is downloaded
            on first use).
    """
    try:
        return tiktoken.get_encoding("cl100k_base")
    except Exception as e:
        raise TemplateError(f"Cannot load tiktoken encoding cl100k_base: {e}") from e


def count_tokens(text: str) -> int:
    """Count tokens in text using cl100k_base encoding."""
    if not text:
        return 0
    return len(_get_encoding().encode(text))


def truncate_tokens(text: str, max_tokens: int) -> str:
    """Cut ``text`` to at most ``max_tokens`` tokens, marking the cut with ``...``.

    Raises:
        TemplateError: If the tokenizer is unavailable.
    """
    if max_tokens < 1:
        return ""
    # Every token covers at least one character.
    if len(text) <= max_tokens:
        return text

    enc = _get_encoding()
    tokens = enc.encode(text)
    if len(tokens) <= max_tokens:
        return text
    return enc.decode(tokens[:max_tokens]).rstrip() + _ELLIPSIS
