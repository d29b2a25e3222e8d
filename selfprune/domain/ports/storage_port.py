"""
Key-Value Storage Port - durable surface for mirrored prune state.

Backends raise on failure (unavailable, quota, serialization); the fallback
chain decides what to do about it.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStoragePort(Protocol):
    """Async string key-value storage."""

    name: str

    async def get(self, key: str) -> str | None:
        """Return the stored value or None if the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` (last write wins)."""
        ...

    async def remove(self, key: str) -> None:
        """Delete ``key`` if present."""
        ...
