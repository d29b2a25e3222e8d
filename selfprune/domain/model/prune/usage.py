"""Token usage snapshots reported by the model provider."""

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TurnUsage:
    """Usage of a single model call."""

    input_tokens: int
    output_tokens: int
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SessionUsage:
    """Cumulative usage since process start or the last reset."""

    total_input_tokens: int = 0
    total_output_tokens: int = 0
    request_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalInputTokens": self.total_input_tokens,
            "totalOutputTokens": self.total_output_tokens,
            "requestCount": self.request_count,
        }
