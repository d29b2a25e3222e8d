"""
Token Estimation Utilities.

Two interchangeable counters implementing TokenCounterPort:

- TokenEstimator: deterministic word/punctuation heuristic, no I/O.
- ExactTokenCounter: wraps LiteLLM's tokenizer for a model, loaded lazily
  once. Any load or encode failure falls back to the heuristic, so callers
  never see an exception, only a less precise count.

Usage:
    from selfprune.infrastructure.llm.token_estimator import ExactTokenCounter

    counter = ExactTokenCounter(model="gpt-4o")
    tokens = counter.count("Hello world")
"""

import hashlib
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Heuristic weights, expressed in tenths to keep the arithmetic exact:
# 1.3 tokens per word, 0.5 tokens per structural punctuation char.
TOKENS_PER_WORD_TENTHS = 13
TOKENS_PER_SPECIAL_CHAR_TENTHS = 5

_SPECIAL_CHARS = re.compile(r"[{}\[\]<>:,;]")

DEFAULT_TOKENIZER_MODEL = "gpt-4o"
DEFAULT_TOKEN_CACHE_MAXSIZE = 2048


def estimate_tokens(text: str | None) -> int:
    """
    Estimate tokens with the word/punctuation heuristic.

    ceil(words * 1.3 + special_chars * 0.5); empty or missing text is 0.

    Args:
        text: Text to estimate

    Returns:
        Estimated token count (>= 0)
    """
    if not text:
        return 0

    words = len(text.split())
    special_chars = len(_SPECIAL_CHARS.findall(text))
    tenths = words * TOKENS_PER_WORD_TENTHS + special_chars * TOKENS_PER_SPECIAL_CHAR_TENTHS
    return -(-tenths // 10)


class TokenEstimator:
    """Heuristic token counter. Pure and stateless."""

    method = "estimation"

    def count(self, text: str | None) -> int:
        return estimate_tokens(text)

    def count_batch(self, texts: list[str]) -> list[int]:
        return [estimate_tokens(text) for text in texts]


class ExactTokenCounter:
    """
    Tokenizer-backed counter with heuristic fallback.

    The backend is loaded at most once per instance. Results are cached by
    text hash; since counting is deterministic the cache never makes batch
    results depend on call order.

    Example:
        counter = ExactTokenCounter(model="gpt-4o")
        counts = counter.count_batch(["first", "second text"])
    """

    def __init__(
        self,
        model: str = DEFAULT_TOKENIZER_MODEL,
        enabled: bool = True,
        maxsize: int = DEFAULT_TOKEN_CACHE_MAXSIZE,
    ) -> None:
        """
        Initialize the exact counter.

        Args:
            model: Model whose tokenizer should be used
            enabled: If False, never load a backend and always estimate
            maxsize: Maximum number of cached counts
        """
        self._model = model
        self._enabled = enabled
        self._maxsize = maxsize
        self._backend: Any | None = None
        self._load_attempted = False
        self._cache: dict[str, int] = {}

    @property
    def method(self) -> str:
        """Counting method reported to clients: exact or estimation."""
        return "exact" if self._load_backend() is not None else "estimation"

    def _load_backend(self) -> Any | None:
        if self._load_attempted:
            return self._backend

        self._load_attempted = True
        if not self._enabled:
            logger.info("Exact token counting disabled, using word-based estimation")
            return None

        try:
            import litellm

            # Count once so a broken tokenizer surfaces here rather than per call
            litellm.token_counter(model=self._model, text="warmup")
            self._backend = litellm
            logger.info(f"Tokenizer for {self._model} loaded successfully")
        except Exception as e:
            logger.warning(f"Failed to load tokenizer for {self._model}, using estimation: {e}")
            self._backend = None

        return self._backend

    @staticmethod
    def _cache_key(text: str) -> str:
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def _count_uncached(self, text: str) -> int:
        backend = self._load_backend()
        if backend is None:
            return estimate_tokens(text)

        try:
            return int(backend.token_counter(model=self._model, text=text))
        except Exception as e:
            logger.debug(f"Token counter failed for {self._model}: {e}")
            return estimate_tokens(text)

    def count(self, text: str | None) -> int:
        """Count tokens for one text."""
        if not text:
            return 0

        key = self._cache_key(text)
        if key in self._cache:
            return self._cache[key]

        tokens = self._count_uncached(text)
        self._cache[key] = tokens

        if len(self._cache) > self._maxsize:
            # Drop the oldest quarter
            for stale in list(self._cache.keys())[: self._maxsize // 4]:
                del self._cache[stale]

        return tokens

    def count_batch(self, texts: list[str]) -> list[int]:
        """Count tokens for each text independently."""
        return [self.count(text) for text in texts]

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_info(self) -> dict[str, Any]:
        return {"size": len(self._cache), "maxsize": self._maxsize}


def get_token_counter(
    model: str = DEFAULT_TOKENIZER_MODEL, exact: bool = True
) -> ExactTokenCounter | TokenEstimator:
    """Counter for the configured backend; the heuristic when exact counting is off."""
    if not exact:
        return TokenEstimator()
    return ExactTokenCounter(model=model)
