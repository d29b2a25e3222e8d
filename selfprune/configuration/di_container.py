"""Dependency Injection Container.

Explicitly constructs and owns the process-scoped pruning objects. The web
app keeps one instance on ``app.state.container``; tests build their own.
"""

from typing import Any

import redis.asyncio as redis

from selfprune.configuration.config import Settings, get_settings
from selfprune.domain.ports import KeyValueStoragePort, TokenCounterPort
from selfprune.infrastructure.adapters.secondary.storage import create_storage_chain
from selfprune.infrastructure.agent.context import (
    ContextPruningPipeline,
    PrunePersistence,
    PruneStateStore,
)
from selfprune.infrastructure.agent.usage import UsageTracker
from selfprune.infrastructure.llm.token_estimator import TokenEstimator, get_token_counter


class DIContainer:
    """Dependency Injection Container for the pruning service."""

    def __init__(
        self,
        settings: Settings | None = None,
        redis_client: redis.Redis | None = None,
        storage: KeyValueStoragePort | None = None,
        token_counter: TokenCounterPort | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        wants_redis = "redis" in self._settings.storage_backend_names
        if redis_client is None and storage is None and wants_redis:
            # Lazy: no connection is made until the first storage call
            redis_client = redis.from_url(
                self._settings.redis_url, encoding="utf-8", decode_responses=True
            )
        self._redis_client = redis_client

        self._token_counter = token_counter or get_token_counter(
            model=self._settings.tokenizer_model,
            exact=self._settings.exact_token_counting,
        )
        self._estimator = TokenEstimator()
        self._prune_store = PruneStateStore(config=self._settings.default_prune_config())
        self._usage_tracker = UsageTracker()
        self._storage = storage or create_storage_chain(self._settings, redis_client=redis_client)
        self._persistence = PrunePersistence(
            self._prune_store,
            self._storage,
            key=self._settings.prune_storage_namespace,
        )
        self._persistence.attach()
        self._pipeline = ContextPruningPipeline(
            store=self._prune_store,
            usage_tracker=self._usage_tracker,
            # Tags, budgets and archive counts use the estimation algorithm
            token_counter=self._estimator,
            auto_approve=self._settings.prune_auto_approve,
            base_instructions=self._settings.agent_base_instructions,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def redis_client(self) -> Any:
        return self._redis_client

    def token_counter(self) -> TokenCounterPort:
        """Counter for the token-count service (exact when a tokenizer loads, else estimation)."""
        return self._token_counter

    def token_estimator(self) -> TokenEstimator:
        return self._estimator

    def prune_store(self) -> PruneStateStore:
        return self._prune_store

    def usage_tracker(self) -> UsageTracker:
        return self._usage_tracker

    def storage(self) -> KeyValueStoragePort:
        return self._storage

    def prune_persistence(self) -> PrunePersistence:
        return self._persistence

    def pruning_pipeline(self) -> ContextPruningPipeline:
        return self._pipeline

    async def startup(self) -> None:
        """Hydrate prune state from storage."""
        await self._persistence.load()

    async def shutdown(self) -> None:
        """Flush pending writes and release the Redis client."""
        await self._persistence.flush()
        self._persistence.detach()
        if self._redis_client is not None:
            await self._redis_client.aclose()
