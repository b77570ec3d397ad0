"""Debounced, coalescing writer for per-key snapshots.

Instead of one timer per key, the writer remembers the last time each key
was scheduled and a periodic flush task persists every key that has been
quiet for at least the debounce interval. Scheduling the same key again
restarts its debounce, so bursts collapse into a single write.

Example:
    >>> writer = DebouncedWriter(store, "signal-buckets", debounce=0.5)
    >>> writer.schedule("7|https://example.com", bucket_dict)
    >>> await writer.flush()            # writes only keys quiet for 0.5s
    >>> await writer.flush(force=True)  # writes everything pending
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from .base import KeyValueStore

logger = logging.getLogger(__name__)

# Marker for a pending deletion
_DELETE = object()


class DebouncedWriter:
    """Coalesces per-key writes into one persisted map under a single store key.

    Failures while persisting are logged and swallowed; pending entries that
    failed to write are kept so the next flush retries them.
    """

    def __init__(
        self,
        store: KeyValueStore,
        store_key: str,
        debounce: float = 0.5,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the writer.

        Args:
            store: Backing key-value store
            store_key: Store key holding the persisted map
            debounce: Seconds a key must stay quiet before it is written
            clock: Time source (epoch seconds)
        """
        self.store = store
        self.store_key = store_key
        self.debounce = debounce
        self.clock = clock
        self._pending: dict[str, tuple[Any, float]] = {}
        self._flush_task: asyncio.Task[None] | None = None
        self._running = False
        self.stats: dict[str, int] = {"scheduled": 0, "written": 0, "failed_flushes": 0}

    @property
    def pending_keys(self) -> list[str]:
        """Keys waiting to be written."""
        return list(self._pending)

    def schedule(self, key: str, payload: Any) -> None:
        """Schedule a write for a key, restarting its debounce."""
        self._pending[key] = (payload, self.clock())
        self.stats["scheduled"] += 1

    def schedule_delete(self, key: str) -> None:
        """Schedule removal of a key from the persisted map."""
        self._pending[key] = (_DELETE, self.clock())

    def due(self) -> list[str]:
        """Keys whose last schedule is at least ``debounce`` seconds old."""
        now = self.clock()
        return [key for key, (_, ts) in self._pending.items() if now - ts >= self.debounce]

    async def flush(self, force: bool = False) -> int:
        """Persist due (or, with ``force``, all) pending entries.

        Args:
            force: Write every pending key regardless of debounce

        Returns:
            Number of keys written or deleted
        """
        keys = list(self._pending) if force else self.due()
        if not keys:
            return 0

        batch = {key: self._pending[key] for key in keys}
        try:
            current = await self.store.get([self.store_key])
            snapshot = dict(current.get(self.store_key) or {})
            for key, (payload, _) in batch.items():
                if payload is _DELETE:
                    snapshot.pop(key, None)
                else:
                    snapshot[key] = payload
            await self.store.set({self.store_key: snapshot})
        except Exception as e:
            self.stats["failed_flushes"] += 1
            logger.warning(
                "Failed to persist %d entries under %s: %s", len(batch), self.store_key, e
            )
            return 0

        for key, entry in batch.items():
            # Only clear entries that were not rescheduled while we awaited the store
            if self._pending.get(key) is entry:
                del self._pending[key]
        self.stats["written"] += len(batch)
        return len(batch)

    async def replace_all(self, snapshot: dict[str, Any]) -> None:
        """Overwrite the persisted map wholesale.

        The snapshot is authoritative, so pending entries are dropped once
        it has been written.
        """
        covered = dict(self._pending)
        try:
            await self.store.set({self.store_key: snapshot})
        except Exception as e:
            logger.warning("Failed to replace snapshot under %s: %s", self.store_key, e)
            return
        for key, entry in covered.items():
            if self._pending.get(key) is entry:
                del self._pending[key]

    async def start(self, interval: float | None = None) -> None:
        """Start the background flush worker.

        Args:
            interval: Seconds between flushes (defaults to the debounce)
        """
        if self._running:
            return
        self._running = True
        self._flush_task = asyncio.create_task(self._flush_worker(interval or self.debounce))

    async def stop(self) -> None:
        """Stop the worker and force-flush anything pending."""
        self._running = False
        if self._flush_task and not self._flush_task.done():
            self._flush_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._flush_task
        self._flush_task = None
        await self.flush(force=True)

    async def _flush_worker(self, interval: float) -> None:
        """Background worker that periodically flushes due keys."""
        while self._running:
            try:
                await asyncio.sleep(interval)
                if self._running:
                    await self.flush()
            except asyncio.CancelledError:
                break
