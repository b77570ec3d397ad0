"""Windowed signal counters per (context, origin).

Each bucket counts AI-related evidence seen for one browsing context and
origin. Counters reset when their window has lapsed at the time of the
next mutation; PII marks follow a separate, shorter window. Buckets are
persisted through a ``DebouncedWriter`` and restored at startup, dropping
anything already stale.

Single-owner precondition: one process and one event loop own an
aggregator instance. Mutations are read-modify-write without locks.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

from aitriage.storage.base import SIGNAL_BUCKETS_KEY, KeyValueStore
from aitriage.storage.debounce import DebouncedWriter

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 30.0
DEFAULT_PII_WINDOW = 15.0
DEFAULT_PII_DEDUPE = 2.0


@dataclass
class SignalCounts:
    """Counts of observed signal kinds."""

    ai_post: int = 0
    sse: int = 0
    model_download: int = 0
    passive: int = 0

    def reset(self) -> None:
        self.ai_post = self.sse = self.model_download = self.passive = 0

    @property
    def total(self) -> int:
        return self.ai_post + self.sse + self.model_download + self.passive


@dataclass
class SignalBucket:
    """Signal counters and PII marks for one (context, origin) pair."""

    context_id: int
    origin: str
    counts: SignalCounts = field(default_factory=SignalCounts)
    window_start: float = 0.0
    last_update: float = 0.0
    pii_marks: int = 0
    last_pii_ts: float | None = None
    pii_kinds: set[str] = field(default_factory=set)
    pii_window_start: float | None = None
    last_pii_hash: str | None = None

    @property
    def key(self) -> str:
        return bucket_id(self.context_id, self.origin)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["pii_kinds"] = sorted(self.pii_kinds)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SignalBucket":
        counts = data.get("counts") or {}
        return cls(
            context_id=int(data["context_id"]),
            origin=str(data["origin"]),
            counts=SignalCounts(
                ai_post=int(counts.get("ai_post", 0)),
                sse=int(counts.get("sse", 0)),
                model_download=int(counts.get("model_download", 0)),
                passive=int(counts.get("passive", 0)),
            ),
            window_start=float(data.get("window_start", 0.0)),
            last_update=float(data.get("last_update", 0.0)),
            pii_marks=int(data.get("pii_marks", 0)),
            last_pii_ts=data.get("last_pii_ts"),
            pii_kinds=set(data.get("pii_kinds") or []),
            pii_window_start=data.get("pii_window_start"),
            last_pii_hash=data.get("last_pii_hash"),
        )


def bucket_id(context_id: int, origin: str) -> str:
    return f"{context_id}|{origin}"


def should_escalate_with_pii(bucket: SignalBucket | None, now: float, window: float) -> bool:
    """Whether a PII mark on the bucket is recent enough to correlate with traffic."""
    if bucket is None or bucket.last_pii_ts is None:
        return False
    return now - bucket.last_pii_ts <= window


def _comparable(bucket: SignalBucket) -> dict[str, Any]:
    data = bucket.to_dict()
    data.pop("last_update")
    return data


class SignalAggregator:
    """In-memory registry of signal buckets with debounced persistence."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
        window: float = DEFAULT_WINDOW,
        pii_window: float = DEFAULT_PII_WINDOW,
        pii_dedupe: float = DEFAULT_PII_DEDUPE,
        debounce: float = 0.5,
        writer: DebouncedWriter | None = None,
    ):
        """Initialize the aggregator.

        Args:
            store: Backing key-value store
            clock: Time source (epoch seconds)
            window: Signal counter window in seconds
            pii_window: PII mark window in seconds
            pii_dedupe: Identical PII hashes within this span count once
            debounce: Per-key write coalescing interval
            writer: Debounced writer (created on ``store`` if None)
        """
        self.store = store
        self.clock = clock
        self.window = window
        self.pii_window = pii_window
        self.pii_dedupe = pii_dedupe
        self.writer = writer or DebouncedWriter(
            store, SIGNAL_BUCKETS_KEY, debounce=debounce, clock=clock
        )
        self._buckets: dict[str, SignalBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def with_bucket(
        self,
        context_id: int | None,
        origin: str | None,
        mutate: Callable[[SignalBucket], SignalBucket | None],
    ) -> SignalBucket | None:
        """Apply a mutation to the bucket for (context_id, origin).

        The bucket is created lazily and windowed before ``mutate`` runs.
        ``mutate`` may change the bucket in place or return a replacement.

        Args:
            context_id: Browsing context id (0 is valid; None or negative is not)
            origin: Page origin
            mutate: Callback applied to the windowed bucket

        Returns:
            The updated bucket, or None when the key is not attributable
        """
        if not origin or context_id is None or context_id < 0:
            return None

        now = self.clock()
        key = bucket_id(context_id, origin)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = SignalBucket(
                context_id=context_id, origin=origin, window_start=now, last_update=now
            )

        if now - bucket.window_start > self.window:
            bucket.counts.reset()
            bucket.window_start = now
        if bucket.pii_window_start is not None and now - bucket.pii_window_start > self.pii_window:
            bucket.pii_marks = 0
            bucket.pii_kinds = set()
            bucket.pii_window_start = None

        before = _comparable(bucket)
        result = mutate(bucket) or bucket
        result.last_update = now
        self._buckets[key] = result

        if _comparable(result) != before:
            self.writer.schedule(key, result.to_dict())

        self._prune(now, keep=key)
        return result

    def get_active_bucket(self, context_id: int | None, origin: str | None) -> SignalBucket | None:
        """Return the bucket if it was updated within the window."""
        if not origin or context_id is None or context_id < 0:
            return None
        bucket = self._buckets.get(bucket_id(context_id, origin))
        if bucket is None or self.clock() - bucket.last_update > self.window:
            return None
        return bucket

    def has_recent_activity(self, origin: str) -> bool:
        """Whether any context has a bucket for ``origin`` updated within the window."""
        now = self.clock()
        return any(
            b.origin == origin and now - b.last_update <= self.window
            for b in self._buckets.values()
        )

    def mark_pii(
        self,
        context_id: int | None,
        origin: str | None,
        kinds: Iterable[str],
        pii_hash: str | None = None,
    ) -> SignalBucket | None:
        """Record that PII was seen leaving (context_id, origin).

        Args:
            context_id: Browsing context id
            origin: Page origin
            kinds: PII types detected
            pii_hash: Label of the payload; repeats within the dedupe span are ignored

        Returns:
            The bucket, or None when the key is not attributable
        """
        kinds = set(kinds)

        def apply(bucket: SignalBucket) -> None:
            now = self.clock()
            if (
                pii_hash
                and bucket.last_pii_hash == pii_hash
                and bucket.last_pii_ts is not None
                and now - bucket.last_pii_ts < self.pii_dedupe
            ):
                logger.debug("Ignoring duplicate PII mark for %s", bucket.origin)
                return
            if bucket.pii_window_start is None:
                bucket.pii_window_start = now
            bucket.pii_marks += 1
            bucket.last_pii_ts = now
            bucket.pii_kinds |= kinds
            bucket.last_pii_hash = pii_hash

        return self.with_bucket(context_id, origin, apply)

    def _prune(self, now: float, keep: str | None = None) -> None:
        stale = [
            key
            for key, bucket in self._buckets.items()
            if key != keep and now - bucket.last_update > self.window
        ]
        for key in stale:
            del self._buckets[key]
            self.writer.schedule_delete(key)
        if stale:
            logger.debug("Pruned %d idle signal buckets", len(stale))

    async def restore(self) -> int:
        """Load persisted buckets, discarding stale ones, and write back the pruned map.

        Returns:
            Number of buckets restored
        """
        now = self.clock()
        try:
            current = await self.store.get([SIGNAL_BUCKETS_KEY])
        except Exception as e:
            logger.warning("Could not restore signal buckets: %s", e)
            return 0

        restored: dict[str, SignalBucket] = {}
        for key, raw in (current.get(SIGNAL_BUCKETS_KEY) or {}).items():
            try:
                bucket = SignalBucket.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Dropping malformed bucket %s: %s", key, e)
                continue
            if now - bucket.last_update <= self.window:
                restored[key] = bucket

        self._buckets.update(restored)
        await self.writer.replace_all({key: b.to_dict() for key, b in self._buckets.items()})
        logger.info("Restored %d signal buckets", len(restored))
        return len(restored)

    async def flush(self, force: bool = False) -> int:
        return await self.writer.flush(force=force)

    async def start(self, interval: float | None = None) -> None:
        await self.writer.start(interval)

    async def stop(self) -> None:
        await self.writer.stop()
