"""Pruning proposals emitted by the agent."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PruneSuggestion:
    """One ``<suggestion .../>`` record from a model response.

    Ephemeral: produced by the suggestion parser and consumed by the executor
    within the same turn (or parked in the pending inbox for manual approval).
    """

    id: str
    confidence: float
    tokens: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "confidence": self.confidence,
            "tokens": self.tokens,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PruneSuggestion":
        return cls(
            id=str(data["id"]),
            confidence=float(data["confidence"]),
            tokens=int(data["tokens"]),
            reason=str(data.get("reason", "")),
        )
