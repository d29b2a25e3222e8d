"""Redis key-value storage (redis.asyncio)."""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from selfprune.infrastructure.agent.context.errors import StorageBackendError

logger = logging.getLogger(__name__)


class RedisStorage:
    """
    Primary durable backend.

    Keys are stored as plain strings; the client must be created with
    ``decode_responses=True``.
    """

    name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStorage":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as e:
            raise StorageBackendError(f"Redis get failed for {key}", self.name, e) from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except (RedisError, OSError) as e:
            raise StorageBackendError(f"Redis set failed for {key}", self.name, e) from e

    async def remove(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except (RedisError, OSError) as e:
            raise StorageBackendError(f"Redis delete failed for {key}", self.name, e) from e

    async def close(self) -> None:
        await self._client.aclose()
