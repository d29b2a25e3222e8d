"""Context turn API endpoints wrapping an external model call."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from selfprune.infrastructure.adapters.primary.web.dependencies import get_pruning_pipeline
from selfprune.infrastructure.agent.context import ContextPruningPipeline

router = APIRouter(prefix="/api/context", tags=["context"])


class PrepareRequest(BaseModel):
    messages: list[dict[str, Any]]
    instructions: str | None = None


class UsageReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_tokens: int = Field(default=0, ge=0, alias="inputTokens")
    output_tokens: int = Field(default=0, ge=0, alias="outputTokens")


class RespondRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[dict[str, Any]]
    text: str
    usage: UsageReport | None = None
    auto_approve: bool | None = Field(default=None, alias="autoApprove")


@router.post("/prepare")
async def prepare_turn(
    request: PrepareRequest,
    pipeline: ContextPruningPipeline = Depends(get_pruning_pipeline),
):
    """Build the model-ready messages and system prompt for a conversation."""
    return pipeline.prepare_turn(request.messages, request.instructions).to_dict()


@router.post("/respond")
async def process_response(
    request: RespondRequest,
    pipeline: ContextPruningPipeline = Depends(get_pruning_pipeline),
):
    """Apply the pruning proposals in a model response and record its usage."""
    outcome = pipeline.process_response(
        request.messages,
        request.text,
        input_tokens=request.usage.input_tokens if request.usage else None,
        output_tokens=request.usage.output_tokens if request.usage else None,
        auto_approve=request.auto_approve,
    )
    return {
        **outcome.to_dict(),
        "totalTokensReclaimed": pipeline.store.total_tokens_reclaimed,
    }
