"""In-process key-value storage. Last resort of the fallback chain and the test double."""


class InMemoryStorage:
    """Dict-backed storage; contents live as long as the instance."""

    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()
