"""Token counting API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from selfprune.domain.ports import TokenCounterPort
from selfprune.infrastructure.adapters.primary.web.dependencies import (
    get_token_counter,
    get_token_estimator,
)
from selfprune.infrastructure.llm.token_estimator import TokenEstimator

router = APIRouter(prefix="/api/tokens", tags=["tokens"])
logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


class TokenCountRequest(BaseModel):
    """Either a batch of texts or a single text."""

    texts: list[str] | None = None
    text: str | None = None


def _method(counter: TokenCounterPort) -> str:
    return getattr(counter, "method", "estimation")


@router.get("")
async def count_tokens_get(
    text: str | None = Query(None),
    estimator: TokenEstimator = Depends(get_token_estimator),
):
    """Estimate tokens for a query-string text."""
    if not text:
        raise HTTPException(status_code=400, detail="text parameter is required")

    preview = text[:PREVIEW_LENGTH] + ("..." if len(text) > PREVIEW_LENGTH else "")
    return {"count": estimator.count(text), "text": preview, "method": "estimation"}


@router.post("")
async def count_tokens(
    request: TokenCountRequest,
    counter: TokenCounterPort = Depends(get_token_counter),
):
    """Count tokens for a batch (``texts``) or a single text (``text``)."""
    if request.texts is not None:
        counts = counter.count_batch(request.texts)
        return {"counts": counts, "total": sum(counts), "method": _method(counter)}

    if request.text:
        return {"count": counter.count(request.text), "method": _method(counter)}

    raise HTTPException(status_code=400, detail="texts array or text is required")
