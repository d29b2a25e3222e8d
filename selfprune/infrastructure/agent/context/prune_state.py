"""
Prune State - cross-turn pruning state for one process.

The state is an immutable snapshot; every operation is a pure transition
function ``(state, ...) -> state``. PruneStateStore owns the current snapshot,
applies transitions and notifies subscribers (the persistence adapter) after
each change. Nothing here performs I/O.

The store is constructed explicitly (see DIContainer) and its lifetime is
the lifetime of the owning server process or test fixture. At most one
in-flight turn per conversation is assumed; concurrent turns against the
same store can interleave.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from selfprune.domain.model.prune import (
    ArchivedMessage,
    PruneConfig,
    PruneSuggestion,
    PruneSummary,
)
from selfprune.infrastructure.agent.context.errors import PruneConfigError

logger = logging.getLogger(__name__)

StateListener = Callable[["PruneState"], None]


@dataclass(frozen=True)
class PruneState:
    """Snapshot of archive, inbox, config and suppression set."""

    archive: tuple[ArchivedMessage, ...] = ()
    pending_suggestions: tuple[PruneSuggestion, ...] = ()
    config: PruneConfig = field(default_factory=PruneConfig)
    total_tokens_reclaimed: int = 0
    # Ids never resent to the model until restored or reset
    pruned_ids: frozenset[str] = frozenset()
    prune_summaries: tuple[PruneSummary, ...] = ()

    def to_persisted(self) -> dict[str, Any]:
        """Durable subset: archive, config and reclaimed total."""
        return {
            "archive": [entry.to_dict() for entry in self.archive],
            "config": self.config.to_dict(),
            "totalTokensReclaimed": self.total_tokens_reclaimed,
        }


def _summary_for(entry: ArchivedMessage) -> PruneSummary:
    return PruneSummary(
        id=entry.id,
        summary=entry.reason,
        tokens_reclaimed=entry.token_count,
        pruned_at=entry.pruned_at,
    )


# === Transitions ===


def add_to_archive(state: PruneState, entries: Iterable[ArchivedMessage]) -> PruneState:
    entries = tuple(entries)
    if not entries:
        return state

    summarized = {summary.id for summary in state.prune_summaries}
    new_summaries = tuple(_summary_for(e) for e in entries if e.id not in summarized)
    return replace(
        state,
        archive=state.archive + entries,
        total_tokens_reclaimed=state.total_tokens_reclaimed
        + sum(e.token_count for e in entries),
        pruned_ids=state.pruned_ids | {e.id for e in entries},
        prune_summaries=state.prune_summaries + new_summaries,
    )


def restore_unit(state: PruneState, message_id: str) -> tuple[ArchivedMessage, ...]:
    """Entries restored together with ``message_id``: the id plus its tool-pair partners."""
    match = next((entry for entry in state.archive if entry.id == message_id), None)
    if match is None:
        return ()
    if match.group is None:
        return (match,)
    return tuple(
        entry for entry in state.archive if entry is match or entry.group == match.group
    )


def remove_from_archive(
    state: PruneState, message_id: str
) -> tuple[PruneState, ArchivedMessage | None]:
    """Restore ``message_id``; tool-pair partners archived with it are restored too."""
    unit = restore_unit(state, message_id)
    if not unit:
        return state, None

    restored_ids = {entry.id for entry in unit}
    new_state = replace(
        state,
        archive=tuple(entry for entry in state.archive if entry not in unit),
        total_tokens_reclaimed=state.total_tokens_reclaimed
        - sum(entry.token_count for entry in unit),
        pruned_ids=state.pruned_ids - restored_ids,
        prune_summaries=tuple(s for s in state.prune_summaries if s.id not in restored_ids),
    )
    match = next(entry for entry in unit if entry.id == message_id)
    return new_state, match


def clear_archive(state: PruneState) -> PruneState:
    # Suppression and breadcrumbs survive; only content is dropped
    return replace(state, archive=(), total_tokens_reclaimed=0)


def add_pending_suggestions(
    state: PruneState, suggestions: Iterable[PruneSuggestion]
) -> PruneState:
    incoming = list(suggestions)
    if not incoming:
        return state

    # Latest suggestion per id wins
    incoming_ids = {s.id for s in incoming}
    kept = tuple(s for s in state.pending_suggestions if s.id not in incoming_ids)
    deduped: dict[str, PruneSuggestion] = {}
    for suggestion in incoming:
        deduped[suggestion.id] = suggestion
    return replace(state, pending_suggestions=kept + tuple(deduped.values()))


def clear_pending_suggestions(
    state: PruneState, ids: Iterable[str] | None = None
) -> PruneState:
    if ids is None:
        return replace(state, pending_suggestions=())
    drop = set(ids)
    return replace(
        state,
        pending_suggestions=tuple(s for s in state.pending_suggestions if s.id not in drop),
    )


def update_config(state: PruneState, partial: dict[str, Any]) -> PruneState:
    try:
        config = state.config.merged(partial)
    except (TypeError, ValueError) as e:
        raise PruneConfigError(str(e), updates=partial) from e
    return replace(state, config=config)


def hydrate(
    state: PruneState,
    archive: Iterable[ArchivedMessage],
    config: PruneConfig | None = None,
) -> PruneState:
    """Replace archive-derived fields from persisted data; the total is recomputed."""
    archive = tuple(archive)
    return replace(
        state,
        archive=archive,
        config=config or state.config,
        total_tokens_reclaimed=sum(entry.token_count for entry in archive),
        pruned_ids=state.pruned_ids | {entry.id for entry in archive},
        prune_summaries=tuple(_summary_for(entry) for entry in archive),
    )


class PruneStateStore:
    """
    Owner of the live PruneState.

    Each operation is visible to the very next call; subscribers are notified
    synchronously after every change.
    """

    def __init__(self, config: PruneConfig | None = None) -> None:
        self._default_config = config or PruneConfig()
        self._state = PruneState(config=self._default_config)
        self._listeners: list[StateListener] = []

    # === Read access ===

    @property
    def state(self) -> PruneState:
        return self._state

    @property
    def archive(self) -> list[ArchivedMessage]:
        return list(self._state.archive)

    @property
    def pending_suggestions(self) -> list[PruneSuggestion]:
        return list(self._state.pending_suggestions)

    @property
    def config(self) -> PruneConfig:
        return self._state.config

    @property
    def total_tokens_reclaimed(self) -> int:
        return self._state.total_tokens_reclaimed

    @property
    def pruned_ids(self) -> frozenset[str]:
        return self._state.pruned_ids

    @property
    def prune_summaries(self) -> list[PruneSummary]:
        return list(self._state.prune_summaries)

    def is_pruned(self, message_id: str) -> bool:
        return message_id in self._state.pruned_ids

    def persisted_snapshot(self) -> dict[str, Any]:
        return self._state.to_persisted()

    # === Subscription ===

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, new_state: PruneState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    # === Operations ===

    def add_to_archive(self, entries: Iterable[ArchivedMessage]) -> None:
        entries = list(entries)
        self._commit(add_to_archive(self._state, entries))
        if entries:
            logger.info(
                f"Archived {len(entries)} message(s), "
                f"total reclaimed {self._state.total_tokens_reclaimed} tokens"
            )

    def remove_from_archive(self, message_id: str) -> ArchivedMessage | None:
        """
        Restore one entry and any tool-pair partners archived with it.

        Returns:
            The entry for ``message_id``, or None when the id is not archived
        """
        partners = [e.id for e in restore_unit(self._state, message_id) if e.id != message_id]
        new_state, entry = remove_from_archive(self._state, message_id)
        self._commit(new_state)
        if entry is not None:
            logger.info(f"Restored {message_id} from archive ({entry.token_count} tokens)")
        if partners:
            logger.info(f"Restored tool pair partner(s) of {message_id}: {partners}")
        return entry

    def clear_archive(self) -> None:
        self._commit(clear_archive(self._state))
        logger.info("Prune archive cleared")

    def add_pending_suggestions(self, suggestions: Iterable[PruneSuggestion]) -> None:
        self._commit(add_pending_suggestions(self._state, suggestions))

    def clear_pending_suggestions(self, ids: Iterable[str] | None = None) -> None:
        self._commit(clear_pending_suggestions(self._state, ids))

    def take_pending(self, ids: Iterable[str] | None = None) -> list[PruneSuggestion]:
        """Remove and return pending suggestions (all, or those with the given ids)."""
        wanted = None if ids is None else set(ids)
        taken = [
            s for s in self._state.pending_suggestions if wanted is None or s.id in wanted
        ]
        self._commit(clear_pending_suggestions(self._state, [s.id for s in taken]))
        return taken

    def update_config(self, partial: dict[str, Any]) -> PruneConfig:
        """
        Merge ``partial`` into the live config.

        Raises:
            PruneConfigError: If a field is unknown or out of range; the live
                config is left unchanged
        """
        self._commit(update_config(self._state, partial))
        logger.info(f"Prune config updated: {self._state.config.to_dict()}")
        return self._state.config

    def hydrate(
        self, archive: Iterable[ArchivedMessage], config: PruneConfig | None = None
    ) -> None:
        self._commit(hydrate(self._state, archive, config))

    def reset(self) -> None:
        """Drop archive, inbox, suppression and breadcrumbs; restore the default config."""
        self._commit(PruneState(config=self._default_config))
        logger.info("Prune state reset")
