"""Key-value storage backends for mirrored prune state."""

from selfprune.infrastructure.adapters.secondary.storage.fallback_storage import (
    FallbackStorage,
    create_storage_chain,
)
from selfprune.infrastructure.adapters.secondary.storage.file_storage import JsonFileStorage
from selfprune.infrastructure.adapters.secondary.storage.memory_storage import InMemoryStorage
from selfprune.infrastructure.adapters.secondary.storage.redis_storage import RedisStorage

__all__ = [
    "FallbackStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "RedisStorage",
    "create_storage_chain",
]
