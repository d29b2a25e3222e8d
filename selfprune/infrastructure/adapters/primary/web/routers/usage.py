"""Token usage API endpoints."""

from fastapi import APIRouter, Depends

from selfprune.infrastructure.adapters.primary.web.dependencies import get_usage_tracker
from selfprune.infrastructure.agent.usage import UsageTracker

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("")
async def get_usage(tracker: UsageTracker = Depends(get_usage_tracker)):
    """Latest per-turn usage and cumulative session usage."""
    return tracker.to_dict()


@router.post("/reset")
async def reset_usage(tracker: UsageTracker = Depends(get_usage_tracker)):
    """Zero the session counters; the latest usage is kept."""
    tracker.reset()
    return tracker.to_dict()
