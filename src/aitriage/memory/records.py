"""Capped, retention-pruned log of memory records.

Records live in an insertion-ordered map keyed by id and are persisted
through a ``DebouncedWriter`` under one store key. Once ``capacity`` is
exceeded the oldest records are dropped. ``prune_old`` drops records older
than the retention period and runs periodically once the log is started.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from aitriage.memory.schema import MemoryRecord
from aitriage.storage.base import MEMORY_RECORDS_KEY, KeyValueStore
from aitriage.storage.debounce import DebouncedWriter

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 500
DEFAULT_RETENTION_DAYS = 14
DEFAULT_CLEANUP_INTERVAL = 60 * 60
EXCERPT_CHARS = 256

_DAY = 24 * 60 * 60


def clamp_excerpt(text: str, limit: int = EXCERPT_CHARS) -> str:
    """Collapse whitespace and cut ``text`` to at most ``limit`` characters.

    Cut text ends with an ellipsis, which counts toward the limit.
    """
    collapsed = " ".join((text or "").split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: max(limit - 1, 0)] + "…"


class MemoryLog:
    """In-memory record log with debounced persistence and periodic retention."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
        capacity: int = DEFAULT_CAPACITY,
        retention_days: float = DEFAULT_RETENTION_DAYS,
        debounce: float = 0.5,
        writer: DebouncedWriter | None = None,
    ):
        """Initialize the log.

        Args:
            store: Backing key-value store
            clock: Time source (epoch seconds)
            capacity: Maximum records kept; the oldest are dropped first
            retention_days: Records older than this are pruned
            debounce: Per-record write coalescing interval
            writer: Debounced writer (created on ``store`` if None)
        """
        self.store = store
        self.clock = clock
        self.capacity = capacity
        self.retention_days = retention_days
        self.writer = writer or DebouncedWriter(
            store, MEMORY_RECORDS_KEY, debounce=debounce, clock=clock
        )
        self._records: dict[str, MemoryRecord] = {}
        self._retention_task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._records)

    def record(
        self,
        origin: str,
        direction: str,
        excerpt: str,
        context_id: int | None = None,
        session_id: str | None = None,
        risk: dict[str, Any] | None = None,
        pii: dict[str, int] | None = None,
    ) -> MemoryRecord:
        """Append a record, evicting the oldest ones beyond capacity.

        Args:
            origin: Page origin
            direction: "prompt" for outbound text, "response" for inbound
            excerpt: Already-sanitized text; it is clamped before storing
            context_id: Browsing context id
            session_id: Caller-supplied session id
            risk: Risk summary (level, score)
            pii: Counts per PII type

        Returns:
            The stored record
        """
        entry = MemoryRecord(
            origin=origin,
            context_id=context_id,
            ts=self.clock(),
            direction=direction,
            session_id=session_id,
            risk=risk,
            pii=pii,
            excerpt=clamp_excerpt(excerpt),
        )
        self._records[entry.id] = entry
        self.writer.schedule(entry.id, entry.model_dump())

        overflow = len(self._records) - self.capacity
        if overflow > 0:
            for record_id in list(self._records)[:overflow]:
                del self._records[record_id]
                self.writer.schedule_delete(record_id)
            logger.debug("Dropped %d memory records over capacity", overflow)
        return entry

    def list_all(self) -> list[MemoryRecord]:
        """All records, oldest first."""
        return list(self._records.values())

    def delete(self, record_id: str) -> bool:
        """Remove one record.

        Returns:
            True if the record existed
        """
        if self._records.pop(record_id, None) is None:
            return False
        self.writer.schedule_delete(record_id)
        return True

    def wipe(self) -> int:
        """Remove every record.

        Returns:
            Number of records removed
        """
        removed = list(self._records)
        self._records.clear()
        for record_id in removed:
            self.writer.schedule_delete(record_id)
        logger.info("Wiped %d memory records", len(removed))
        return len(removed)

    def prune_old(self, ttl_days: float | None = None) -> int:
        """Drop records at least ``ttl_days`` old.

        Args:
            ttl_days: Retention in days (defaults to ``retention_days``)

        Returns:
            Number of records dropped
        """
        ttl = (self.retention_days if ttl_days is None else ttl_days) * _DAY
        now = self.clock()
        expired = [rid for rid, entry in self._records.items() if now - entry.ts >= ttl]
        for record_id in expired:
            del self._records[record_id]
            self.writer.schedule_delete(record_id)
        if expired:
            logger.info("Pruned %d expired memory records", len(expired))
        return len(expired)

    async def load(self) -> int:
        """Load persisted records, then apply retention and capacity.

        Returns:
            Number of records kept
        """
        try:
            current = await self.store.get([MEMORY_RECORDS_KEY])
        except Exception as e:
            logger.warning("Could not load memory records: %s", e)
            return 0

        loaded: list[MemoryRecord] = []
        for key, raw in (current.get(MEMORY_RECORDS_KEY) or {}).items():
            try:
                loaded.append(MemoryRecord.model_validate(raw))
            except ValidationError as e:
                logger.debug("Dropping malformed memory record %s: %s", key, e)

        merged = {entry.id: entry for entry in sorted(loaded, key=lambda r: r.ts)}
        merged.update(self._records)
        self._records = dict(list(merged.items())[-self.capacity :])
        self.prune_old()
        await self.writer.replace_all(
            {rid: entry.model_dump() for rid, entry in self._records.items()}
        )
        logger.info("Loaded %d memory records", len(self._records))
        return len(self._records)

    async def flush(self, force: bool = False) -> int:
        return await self.writer.flush(force=force)

    async def start(
        self, interval: float | None = None, cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL
    ) -> None:
        """Start the flush worker and the periodic retention task.

        Args:
            interval: Seconds between flushes
            cleanup_interval: Seconds between retention passes
        """
        await self.writer.start(interval)
        if self._retention_task is None or self._retention_task.done():
            self._retention_task = asyncio.create_task(self._retention_worker(cleanup_interval))

    async def stop(self) -> None:
        if self._retention_task and not self._retention_task.done():
            self._retention_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._retention_task
        self._retention_task = None
        await self.writer.stop()

    async def _retention_worker(self, interval: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                self.prune_old()
            except asyncio.CancelledError:
                break
