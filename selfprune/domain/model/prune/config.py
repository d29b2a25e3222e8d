"""Operator-tunable pruning configuration."""

from dataclasses import asdict, dataclass, replace
from typing import Any

DEFAULT_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_MAX_CONTEXT_TOKENS = 128_000

# Wire names used by the persisted state and the HTTP surface
_WIRE_TO_FIELD = {
    "confidenceThreshold": "confidence_threshold",
    "maxContextTokens": "max_context_tokens",
    "enablePruning": "enable_pruning",
}


@dataclass(frozen=True)
class PruneConfig:
    """Configuration read by every component that needs a budget or threshold."""

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS
    enable_pruning: bool = True

    def __post_init__(self):
        """Validate configuration."""
        if isinstance(self.confidence_threshold, bool) or not isinstance(
            self.confidence_threshold, (int, float)
        ):
            raise ValueError(
                f"confidence_threshold must be a number, got {self.confidence_threshold!r}"
            )
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}"
            )
        if isinstance(self.max_context_tokens, bool) or not isinstance(
            self.max_context_tokens, int
        ):
            raise ValueError(
                f"max_context_tokens must be an integer, got {self.max_context_tokens!r}"
            )
        if self.max_context_tokens <= 0:
            raise ValueError(f"max_context_tokens must be positive, got {self.max_context_tokens}")
        if not isinstance(self.enable_pruning, bool):
            raise ValueError(f"enable_pruning must be a boolean, got {self.enable_pruning!r}")

    def merged(self, partial: dict[str, Any]) -> "PruneConfig":
        """Return a copy with ``partial`` applied. Accepts snake_case or wire names."""
        updates: dict[str, Any] = {}
        for key, value in partial.items():
            name = _WIRE_TO_FIELD.get(key, key)
            if name not in _WIRE_TO_FIELD.values():
                raise ValueError(f"Unknown prune config field: {key}")
            updates[name] = value
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "confidenceThreshold": self.confidence_threshold,
            "maxContextTokens": self.max_context_tokens,
            "enablePruning": self.enable_pruning,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PruneConfig":
        """Build from a (possibly partial) persisted dict; missing fields keep defaults."""
        return cls().merged({k: v for k, v in data.items() if k in _WIRE_TO_FIELD})

    def as_snake_dict(self) -> dict[str, Any]:
        return asdict(self)
