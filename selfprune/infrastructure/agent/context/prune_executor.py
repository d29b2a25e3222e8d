"""
Prune Executor - applies approved suggestions to the live message sequence.

Execution is a pure function of its inputs apart from the archive timestamp;
durability belongs to PruneStateStore.

A tool invocation and its result are one atomic unit: approving either half
archives both, so the model never sees a call without its result or the
reverse. Archived halves share a ``group`` label so a restore brings back
the whole unit.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from selfprune.domain.model.prune import ArchivedMessage, PruneConfig, PruneSuggestion
from selfprune.domain.ports import TokenCounterPort
from selfprune.infrastructure.agent.context.raw_message import (
    extract_text,
    message_id,
    tool_links,
)
from selfprune.infrastructure.agent.context.suggestion_parser import filter_by_confidence
from selfprune.infrastructure.llm.token_estimator import TokenEstimator

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    """Outcome of one execution."""

    pruned_messages: list[dict[str, Any]]
    archived: list[ArchivedMessage] = field(default_factory=list)
    tokens_reclaimed: int = 0
    approved: list[PruneSuggestion] = field(default_factory=list)

    @property
    def archived_ids(self) -> list[str]:
        return [entry.id for entry in self.archived]


@dataclass
class ToolPairValidation:
    """Result of checking a removal set against tool call/result pairs."""

    valid: bool
    warning: str | None = None
    orphaned_ids: list[str] = field(default_factory=list)


def _tool_groups(messages: Sequence[dict[str, Any]]) -> dict[str, set[str]]:
    """Map each message id to the ids it shares a tool call with."""
    by_tool_call: dict[str, set[str]] = {}
    for index, message in enumerate(messages):
        calls, results = tool_links(message)
        for tool_call_id in calls | results:
            by_tool_call.setdefault(tool_call_id, set()).add(message_id(index))

    linked: dict[str, set[str]] = {}
    for members in by_tool_call.values():
        for member in members:
            linked.setdefault(member, set()).update(members - {member})
    return linked


def _tool_unit_labels(messages: Sequence[dict[str, Any]]) -> dict[str, str]:
    """Map each id in a multi-message tool unit to the unit's first id."""
    linked = _tool_groups(messages)
    labels: dict[str, str] = {}
    for index in range(len(messages)):
        first = message_id(index)
        if first in labels or not linked.get(first):
            continue
        labels[first] = first
        queue = [first]
        while queue:
            for partner in linked.get(queue.pop(), ()):
                if partner not in labels:
                    labels[partner] = first
                    queue.append(partner)
    return labels


def expand_tool_pairs(
    messages: Sequence[dict[str, Any]], ids: Iterable[str]
) -> dict[str, str]:
    """
    Close a set of ids over tool call/result links.

    Returns:
        Mapping of every id to prune to the requested id that pulled it in
        (requested ids map to themselves)
    """
    linked = _tool_groups(messages)
    origin: dict[str, str] = {}
    queue: list[str] = []
    for requested in ids:
        if requested not in origin:
            origin[requested] = requested
            queue.append(requested)

    while queue:
        current = queue.pop()
        for partner in linked.get(current, ()):
            if partner not in origin:
                origin[partner] = origin[current]
                queue.append(partner)

    return origin


def validate_tool_pairs(
    messages: Sequence[dict[str, Any]], ids_to_remove: Iterable[str]
) -> ToolPairValidation:
    """Report tool call/result counterparts that removing ``ids_to_remove`` would orphan."""
    requested = set(ids_to_remove)
    expanded = expand_tool_pairs(messages, requested)
    orphaned = sorted(set(expanded) - requested)
    if not orphaned:
        return ToolPairValidation(valid=True)

    return ToolPairValidation(
        valid=False,
        warning=f"Removing {sorted(requested)} would orphan tool pair counterparts {orphaned}",
        orphaned_ids=orphaned,
    )


def execute_pruning(
    messages: Sequence[dict[str, Any]],
    suggestions: Sequence[PruneSuggestion],
    config: PruneConfig,
    token_counter: TokenCounterPort | None = None,
    exclude_ids: Iterable[str] = (),
    require_confidence: bool = True,
    now: datetime | None = None,
) -> PruneResult:
    """
    Apply suggestions to ``messages``.

    Args:
        messages: Full raw conversation; ids are computed positionally
        suggestions: Parsed suggestions for this turn
        config: Live prune config (threshold, enable flag)
        token_counter: Counter used to recompute archived token counts
        exclude_ids: Ids already pruned; suggestions for them are ignored
        require_confidence: False for operator-approved suggestions
        now: Archive timestamp

    Returns:
        PruneResult with the surviving messages in original order
    """
    if not config.enable_pruning:
        return PruneResult(pruned_messages=list(messages))

    if require_confidence:
        approved = filter_by_confidence(list(suggestions), config.confidence_threshold)
    else:
        approved = list(suggestions)

    excluded = set(exclude_ids)
    known_ids = {message_id(index) for index in range(len(messages))}
    reasons: dict[str, str] = {}
    for suggestion in approved:
        if suggestion.id in excluded or suggestion.id not in known_ids:
            logger.debug(f"Ignoring suggestion for stale or already pruned id {suggestion.id}")
            continue
        reasons.setdefault(suggestion.id, suggestion.reason)

    if not reasons:
        return PruneResult(pruned_messages=list(messages), approved=approved)

    origin = expand_tool_pairs(messages, reasons)
    for pruned_id, requested_id in origin.items():
        if pruned_id not in reasons and pruned_id not in excluded:
            reasons[pruned_id] = f"{reasons[requested_id]} (tool pair of {requested_id})"

    units = _tool_unit_labels(messages)
    counter = token_counter or TokenEstimator()
    timestamp = now or datetime.now(UTC)
    kept: list[dict[str, Any]] = []
    archived: list[ArchivedMessage] = []

    for index, message in enumerate(messages):
        current_id = message_id(index)
        if current_id not in reasons or current_id in excluded:
            kept.append(message)
            continue

        content = extract_text(message)
        archived.append(
            ArchivedMessage(
                id=current_id,
                role=message.get("role", "user"),
                content=content,
                token_count=counter.count(content),
                reason=reasons[current_id],
                pruned_at=timestamp,
                group=units.get(current_id),
            )
        )

    tokens_reclaimed = sum(entry.token_count for entry in archived)
    logger.info(
        f"Pruning approved {len(approved)}/{len(suggestions)} suggestion(s), "
        f"archived {len(archived)} message(s), reclaimed {tokens_reclaimed} tokens"
    )
    return PruneResult(
        pruned_messages=kept,
        archived=archived,
        tokens_reclaimed=tokens_reclaimed,
        approved=approved,
    )
