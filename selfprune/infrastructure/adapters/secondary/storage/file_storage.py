"""
JSON file key-value storage.

All keys share one file (``<data_dir>/prune-store.json``) written with
restricted permissions. Access is serialized with an asyncio lock.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from selfprune.infrastructure.agent.context.errors import StorageBackendError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "prune-store.json"


class JsonFileStorage:
    """Storage for mirrored prune state in a local JSON file."""

    name = "file"

    def __init__(self, data_dir: Path | None = None, filename: str = DEFAULT_FILENAME) -> None:
        """Initialize file storage.

        Args:
            data_dir: Directory for the store file (default: ~/.selfprune)
            filename: Name of the store file
        """
        if data_dir is None:
            data_dir = Path.home() / ".selfprune"

        self._data_dir = Path(data_dir).expanduser()
        self._filepath = self._data_dir / filename
        self._lock = asyncio.Lock()

    @property
    def filepath(self) -> Path:
        return self._filepath

    def _read_all(self) -> dict[str, Any]:
        if not self._filepath.exists():
            return {}

        try:
            content = self._filepath.read_text()
            data = json.loads(content)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageBackendError(f"Cannot read {self._filepath}", self.name, e) from e

        if not isinstance(data, dict):
            raise StorageBackendError(f"Unexpected content in {self._filepath}", self.name)
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._filepath.write_text(json.dumps(data, indent=2))
            os.chmod(self._filepath, 0o600)
        except OSError as e:
            raise StorageBackendError(f"Cannot write {self._filepath}", self.name, e) from e

    async def get(self, key: str) -> str | None:
        async with self._lock:
            value = self._read_all().get(key)
            return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)
            logger.debug(f"Saved {key} to {self._filepath}")

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)
