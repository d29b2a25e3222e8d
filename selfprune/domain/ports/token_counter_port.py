"""
Token Counter Port - the tokenization capability the pipeline depends on.

Whether counts are exact (a real tokenizer) or estimated is an adapter
concern; callers only rely on ``count`` / ``count_batch`` never raising.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenCounterPort(Protocol):
    """Counts tokens for text."""

    def count(self, text: str) -> int:
        """Return the token count for ``text`` (0 for empty text)."""
        ...

    def count_batch(self, texts: list[str]) -> list[int]:
        """Return per-text counts; must agree with ``count`` element-wise."""
        ...
