"""Tagged conversation messages and the context budget they are measured against."""

from dataclasses import dataclass
from typing import Any, Literal

MessageRole = Literal["system", "user", "assistant", "tool"]

# Budget display thresholds (percent of total)
BUDGET_WARNING_PCT = 70
BUDGET_CRITICAL_PCT = 90


@dataclass(frozen=True)
class TaggedMessage:
    """A conversation message annotated with its positional id and token accounting.

    Attributes:
        id: Positional tag, ``msg:NNN`` (1-indexed, zero padded to 3 digits).
        role: Message role.
        content: Extracted text content (tool-call wrappers are not included).
        token_count: Estimated tokens of ``content``.
        running_tally: Cumulative tokens through this position in the unfiltered history.
    """

    id: str
    role: MessageRole
    content: str
    token_count: int
    running_tally: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "tokenCount": self.token_count,
            "runningTally": self.running_tally,
        }


@dataclass(frozen=True)
class ContextBudget:
    """Token budget for one turn.

    ``total == used + remaining`` always holds; ``remaining`` goes negative on
    overflow and is never clamped.
    """

    total: int
    used: int

    @property
    def remaining(self) -> int:
        return self.total - self.used

    @classmethod
    def from_usage(cls, total: int, used: int) -> "ContextBudget":
        return cls(total=int(total), used=int(used))

    @property
    def usage_percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.used / self.total * 100)

    @property
    def is_warning(self) -> bool:
        return self.usage_percent > BUDGET_WARNING_PCT

    @property
    def is_critical(self) -> bool:
        return self.usage_percent > BUDGET_CRITICAL_PCT

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "used": self.used,
            "remaining": self.remaining,
            "usagePercent": self.usage_percent,
            "isWarning": self.is_warning,
            "isCritical": self.is_critical,
        }
