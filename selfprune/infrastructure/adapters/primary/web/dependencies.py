from fastapi import Request

from selfprune.configuration.di_container import DIContainer
from selfprune.domain.ports import TokenCounterPort
from selfprune.infrastructure.agent.context import ContextPruningPipeline, PruneStateStore
from selfprune.infrastructure.agent.usage import UsageTracker
from selfprune.infrastructure.llm.token_estimator import TokenEstimator


def get_container(request: Request) -> DIContainer:
    """Get the DI container from app state."""
    return request.app.state.container


def get_token_counter(request: Request) -> TokenCounterPort:
    return request.app.state.container.token_counter()


def get_token_estimator(request: Request) -> TokenEstimator:
    return request.app.state.container.token_estimator()


def get_prune_store(request: Request) -> PruneStateStore:
    return request.app.state.container.prune_store()


def get_usage_tracker(request: Request) -> UsageTracker:
    return request.app.state.container.usage_tracker()


def get_pruning_pipeline(request: Request) -> ContextPruningPipeline:
    return request.app.state.container.pruning_pipeline()
