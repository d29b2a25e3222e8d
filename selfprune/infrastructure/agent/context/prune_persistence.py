"""
Prune Persistence - mirrors durable prune state to key-value storage.

Subscribes to PruneStateStore and writes ``{archive, config,
totalTokensReclaimed}`` as one JSON document under a single key. Writes are
fire-and-forget: a change schedules a background write on the running event
loop and the caller never awaits it. Writes are coalesced, so whatever lands
in storage last is the latest snapshot (last write wins).

Outside an event loop the change is only marked dirty and written by the
next ``flush()``. A write that raises is logged and leaves the adapter dirty,
so the next change or ``flush()`` retries it.
"""

import asyncio
import json
import logging
from typing import Any

from selfprune.domain.model.prune import ArchivedMessage, PruneConfig
from selfprune.domain.ports import KeyValueStoragePort
from selfprune.infrastructure.agent.context.prune_state import PruneState, PruneStateStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "prune-store"


class PrunePersistence:
    """Asynchronous persistence side channel for a PruneStateStore."""

    def __init__(
        self,
        store: PruneStateStore,
        storage: KeyValueStoragePort,
        key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        self._store = store
        self._storage = storage
        self._key = key
        self._dirty = False
        self._write_task: asyncio.Task | None = None
        self._unsubscribe = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def dirty(self) -> bool:
        return self._dirty

    def attach(self) -> None:
        """Start mirroring store changes."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, state: PruneState) -> None:
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        if not self._write_pending(loop):
            self._write_task = loop.create_task(self._drain())

    def _write_pending(self, loop: asyncio.AbstractEventLoop) -> bool:
        # A task left behind by a loop that has since stopped never completes
        task = self._write_task
        return task is not None and not task.done() and task.get_loop() is loop

    async def _drain(self) -> None:
        # One attempt per drain; a failed write leaves the adapter dirty
        while self._dirty:
            self._dirty = False
            written = self._store.state
            await self._write(written)
            if self._dirty and self._store.state is written:
                return

    async def _write(self, state: PruneState) -> None:
        try:
            payload = json.dumps(state.to_persisted())
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize prune state: {e}")
            return
        try:
            await self._storage.set(self._key, payload)
        except Exception as e:
            # A bare backend can raise; keep the change for the next flush
            logger.warning(f"Failed to persist prune state under '{self._key}': {e}")
            self._dirty = True

    async def flush(self) -> None:
        """Wait for in-flight writes and persist anything still dirty."""
        if self._write_pending(asyncio.get_running_loop()):
            await self._write_task
        if self._dirty:
            await self._drain()

    async def load(self) -> bool:
        """
        Hydrate the store from storage.

        The reclaimed total is recomputed from the archive rather than
        trusted, since keys are not written transactionally. Archive entries
        and config are read independently: an invalid config keeps the
        default and an unreadable entry is skipped, without discarding the
        rest of the snapshot.

        Returns:
            True if a persisted snapshot was applied
        """
        raw = await self._storage.get(self._key)
        if not raw:
            logger.info(f"No persisted prune state under '{self._key}'")
            return False

        try:
            data: dict[str, Any] = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable prune state under '{self._key}': {e}")
            return False
        if not isinstance(data, dict):
            logger.warning(f"Ignoring prune state under '{self._key}': not a JSON object")
            return False

        archive = self._read_archive(data.get("archive"))
        config = self._read_config(data.get("config"))

        recomputed = sum(entry.token_count for entry in archive)
        persisted_total = data.get("totalTokensReclaimed")
        if persisted_total is not None and persisted_total != recomputed:
            logger.warning(
                f"Persisted totalTokensReclaimed={persisted_total} disagrees with archive "
                f"({recomputed}), using archive"
            )

        self._store.hydrate(archive, config)
        logger.info(f"Loaded {len(archive)} archived message(s) from '{self._key}'")
        return True

    def _read_archive(self, entries: Any) -> list[ArchivedMessage]:
        if not entries:
            return []
        if not isinstance(entries, list):
            logger.warning(f"Ignoring persisted archive under '{self._key}': not a list")
            return []

        archive = []
        for entry in entries:
            try:
                archive.append(ArchivedMessage.from_dict(entry))
            except (AttributeError, TypeError, ValueError, KeyError) as e:
                logger.warning(f"Skipping unreadable archive entry under '{self._key}': {e}")
        return archive

    def _read_config(self, raw_config: Any) -> PruneConfig | None:
        if not raw_config:
            return None
        try:
            return PruneConfig.from_dict(raw_config)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(
                f"Invalid persisted prune config under '{self._key}', keeping default: {e}"
            )
            return None
