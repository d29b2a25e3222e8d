"""
Self-pruning context management.

Components, leaves first: metadata tagging, suggestion parsing, prune
execution, prune state and its persistence, and the per-turn pipeline.
"""

from selfprune.infrastructure.agent.context.errors import (
    ArchiveEntryNotFound,
    PruneConfigError,
    PruneError,
    PruneErrorCategory,
    StorageBackendError,
)
from selfprune.infrastructure.agent.context.metadata_tagger import (
    BREADCRUMB_HEADER,
    MessageTagger,
    build_breadcrumb,
    format_with_metadata,
)
from selfprune.infrastructure.agent.context.pipeline import (
    ContextPruningPipeline,
    PreparedTurn,
    TurnOutcome,
)
from selfprune.infrastructure.agent.context.prune_executor import (
    PruneResult,
    ToolPairValidation,
    execute_pruning,
    expand_tool_pairs,
    validate_tool_pairs,
)
from selfprune.infrastructure.agent.context.prune_persistence import PrunePersistence
from selfprune.infrastructure.agent.context.prune_state import PruneState, PruneStateStore
from selfprune.infrastructure.agent.context.raw_message import extract_text, message_id
from selfprune.infrastructure.agent.context.suggestion_parser import (
    ParseResult,
    filter_by_confidence,
    parse_prune_suggestions,
)

__all__ = [
    "ArchiveEntryNotFound",
    "BREADCRUMB_HEADER",
    "ContextPruningPipeline",
    "MessageTagger",
    "ParseResult",
    "PreparedTurn",
    "PruneConfigError",
    "PruneError",
    "PruneErrorCategory",
    "PrunePersistence",
    "PruneResult",
    "PruneState",
    "PruneStateStore",
    "StorageBackendError",
    "ToolPairValidation",
    "TurnOutcome",
    "build_breadcrumb",
    "execute_pruning",
    "expand_tool_pairs",
    "extract_text",
    "filter_by_confidence",
    "format_with_metadata",
    "message_id",
    "parse_prune_suggestions",
    "validate_tool_pairs",
]
