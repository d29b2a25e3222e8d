"""
Fallback Storage - ordered chain of key-value backends.

Every operation is attempted on each backend in order and the first one that
succeeds wins; a backend that returns ``None`` for ``get`` has succeeded. If
every backend fails the operation degrades to a no-op (``None`` for ``get``)
with a logged warning, so in-memory state stays authoritative.

Known limitation: backends are never reconciled. A snapshot written to a
later backend while an earlier one was down is shadowed by the earlier
backend's older (or missing) value once it comes back, because reads stop at
the first backend that answers.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from selfprune.domain.ports import KeyValueStoragePort
from selfprune.infrastructure.adapters.secondary.storage.file_storage import JsonFileStorage
from selfprune.infrastructure.adapters.secondary.storage.memory_storage import InMemoryStorage
from selfprune.infrastructure.adapters.secondary.storage.redis_storage import RedisStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FallbackStorage:
    """KeyValueStoragePort over an ordered list of backends."""

    name = "fallback"

    def __init__(self, backends: Sequence[KeyValueStoragePort]) -> None:
        self._backends = list(backends)

    @property
    def backends(self) -> list[KeyValueStoragePort]:
        return list(self._backends)

    async def _first_success(
        self,
        operation: str,
        key: str,
        call: Callable[[KeyValueStoragePort], Awaitable[T]],
        default: T,
    ) -> T:
        for backend in self._backends:
            try:
                return await call(backend)
            except Exception as e:
                logger.warning(f"Storage backend {backend.name} failed to {operation} {key}: {e}")

        logger.warning(f"All storage backends failed to {operation} {key}, skipping")
        return default

    async def get(self, key: str) -> str | None:
        return await self._first_success("get", key, lambda b: b.get(key), None)

    async def set(self, key: str, value: str) -> None:
        await self._first_success("set", key, lambda b: b.set(key, value), None)

    async def remove(self, key: str) -> None:
        await self._first_success("remove", key, lambda b: b.remove(key), None)


def create_storage_chain(settings: Any, redis_client: Any = None) -> FallbackStorage:
    """
    Build the chain named by ``settings.storage_backend_names``.

    Unknown backend names are skipped with a warning. An empty chain still
    works: every operation is then a logged no-op.
    """
    backends: list[KeyValueStoragePort] = []
    for name in settings.storage_backend_names:
        if name == "redis":
            if redis_client is not None:
                backends.append(RedisStorage(redis_client))
            else:
                backends.append(RedisStorage.from_url(settings.redis_url))
        elif name == "file":
            backends.append(JsonFileStorage(data_dir=settings.prune_storage_dir))
        elif name == "memory":
            backends.append(InMemoryStorage())
        else:
            logger.warning(f"Unknown storage backend '{name}', skipping")

    logger.info(f"Prune storage chain: {[b.name for b in backends]}")
    return FallbackStorage(backends)
