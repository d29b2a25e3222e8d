"""Domain models for agent-driven context pruning.

- TaggedMessage / ContextBudget: per-turn token accounting
- PruneSuggestion: agent-emitted pruning proposal
- ArchivedMessage / PruneSummary: pruned content and its breadcrumb
- PruneConfig: operator configuration
- TurnUsage / SessionUsage: provider-reported usage
"""

from selfprune.domain.model.prune.archive import ArchivedMessage, PruneSummary
from selfprune.domain.model.prune.config import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_MAX_CONTEXT_TOKENS,
    PruneConfig,
)
from selfprune.domain.model.prune.message import ContextBudget, MessageRole, TaggedMessage
from selfprune.domain.model.prune.suggestion import PruneSuggestion
from selfprune.domain.model.prune.usage import SessionUsage, TurnUsage

__all__ = [
    "ArchivedMessage",
    "ContextBudget",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_MAX_CONTEXT_TOKENS",
    "MessageRole",
    "PruneConfig",
    "PruneSuggestion",
    "PruneSummary",
    "SessionUsage",
    "TaggedMessage",
    "TurnUsage",
]
