"""Prune management API endpoints: archive, config and the approval inbox."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from selfprune.infrastructure.adapters.primary.web.dependencies import (
    get_prune_store,
    get_pruning_pipeline,
)
from selfprune.infrastructure.agent.context import (
    ArchiveEntryNotFound,
    ContextPruningPipeline,
    PruneStateStore,
)

router = APIRouter(prefix="/api/prune", tags=["prune"])
logger = logging.getLogger(__name__)


class ApprovePendingRequest(BaseModel):
    """Conversation to prune and, optionally, which pending ids to approve."""

    messages: list[dict[str, Any]]
    ids: list[str] | None = None


def _archive_view(store: PruneStateStore) -> dict[str, Any]:
    return {
        "archive": [entry.to_dict() for entry in store.archive],
        "totalTokensReclaimed": store.total_tokens_reclaimed,
        "prunedIds": sorted(store.pruned_ids),
    }


@router.get("/archive")
async def list_archive(store: PruneStateStore = Depends(get_prune_store)):
    """List archived messages and the reclaimed-token total."""
    return _archive_view(store)


@router.post("/archive/{message_id}/restore")
async def restore_archived(message_id: str, store: PruneStateStore = Depends(get_prune_store)):
    """Restore an entry and its tool-pair partners; they are resent from the next turn."""
    suppressed = store.pruned_ids
    entry = store.remove_from_archive(message_id)
    if entry is None:
        raise ArchiveEntryNotFound(message_id)
    return {
        "restored": entry.to_dict(),
        "restoredIds": sorted(suppressed - store.pruned_ids),
        "totalTokensReclaimed": store.total_tokens_reclaimed,
    }


@router.delete("/archive")
async def clear_archive(store: PruneStateStore = Depends(get_prune_store)):
    """Drop all archived content; pruned ids stay suppressed."""
    store.clear_archive()
    return _archive_view(store)


@router.get("/config")
async def get_config(store: PruneStateStore = Depends(get_prune_store)):
    return store.config.to_dict()


@router.patch("/config")
async def update_config(
    updates: dict[str, Any] = Body(...),
    store: PruneStateStore = Depends(get_prune_store),
):
    """Merge a partial config; effective on the next turn."""
    return store.update_config(updates).to_dict()


@router.get("/pending")
async def list_pending(store: PruneStateStore = Depends(get_prune_store)):
    return {"pending": [s.to_dict() for s in store.pending_suggestions]}


@router.delete("/pending")
async def clear_pending(store: PruneStateStore = Depends(get_prune_store)):
    store.clear_pending_suggestions()
    return {"pending": []}


@router.post("/pending/approve")
async def approve_pending(
    request: ApprovePendingRequest,
    pipeline: ContextPruningPipeline = Depends(get_pruning_pipeline),
):
    """Execute pending suggestions approved by the operator."""
    result = pipeline.approve_pending(request.messages, request.ids)
    return {
        "archived": [entry.to_dict() for entry in result.archived],
        "tokensReclaimed": result.tokens_reclaimed,
        "totalTokensReclaimed": pipeline.store.total_tokens_reclaimed,
        "pending": [s.to_dict() for s in pipeline.store.pending_suggestions],
    }


@router.post("/reset")
async def reset_prune_state(store: PruneStateStore = Depends(get_prune_store)):
    """Drop archive, inbox and suppression; restore the default config."""
    store.reset()
    return _archive_view(store)
