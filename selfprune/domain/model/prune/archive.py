"""Archive entries for pruned messages and the breadcrumbs left in their place."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from selfprune.domain.model.prune.message import MessageRole


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return datetime.now(UTC)


@dataclass(frozen=True)
class ArchivedMessage:
    """Content removed from the outbound context, kept so it can be restored."""

    id: str
    role: MessageRole
    content: str
    token_count: int
    reason: str
    pruned_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    # First id of the tool call/result unit this entry was pruned with
    group: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "tokenCount": self.token_count,
            "prunedAt": self.pruned_at.isoformat(),
            "reason": self.reason,
        }
        if self.group is not None:
            data["group"] = self.group
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArchivedMessage":
        return cls(
            id=data["id"],
            role=data.get("role", "assistant"),
            content=data.get("content", ""),
            token_count=int(data.get("tokenCount", 0)),
            reason=data.get("reason", "Unknown"),
            pruned_at=_parse_timestamp(data.get("prunedAt")),
            group=data.get("group"),
        )


@dataclass(frozen=True)
class PruneSummary:
    """Breadcrumb for a pruned id, rendered into the synthetic summary message."""

    id: str
    summary: str
    tokens_reclaimed: int
    pruned_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "summary": self.summary,
            "tokensReclaimed": self.tokens_reclaimed,
            "prunedAt": self.pruned_at.isoformat(),
        }
