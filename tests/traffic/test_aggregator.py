"""Tests for the signal bucket aggregator."""

import pytest

from aitriage.storage.base import SIGNAL_BUCKETS_KEY, MemoryStore
from aitriage.traffic.aggregator import (
    SignalAggregator,
    SignalBucket,
    bucket_id,
    should_escalate_with_pii,
)

ORIGIN = "https://app.example.com"


def bump_post(bucket: SignalBucket) -> None:
    bucket.counts.ai_post += 1


@pytest.fixture
def aggregator(store, clock):
    return SignalAggregator(store, clock=clock)


class TestWithBucket:
    @pytest.mark.parametrize(("context_id", "origin"), [(None, ORIGIN), (-1, ORIGIN), (1, "")])
    def test_unattributable_keys(self, aggregator, context_id, origin):
        assert aggregator.with_bucket(context_id, origin, bump_post) is None
        assert len(aggregator) == 0

    def test_context_zero_is_valid(self, aggregator):
        bucket = aggregator.with_bucket(0, ORIGIN, bump_post)
        assert bucket is not None
        assert bucket.key == "0|https://app.example.com"

    def test_lazy_create_and_count(self, aggregator, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        bucket = aggregator.with_bucket(1, ORIGIN, bump_post)

        assert bucket.counts.ai_post == 2
        assert bucket.window_start == clock.now
        assert bucket.last_update == clock.now

    def test_counts_reset_after_window(self, aggregator, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        clock.advance(31)
        bucket = aggregator.with_bucket(1, ORIGIN, bump_post)

        assert bucket.counts.ai_post == 1
        assert bucket.window_start == clock.now

    def test_counts_kept_within_window(self, aggregator, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        clock.advance(30)
        assert aggregator.with_bucket(1, ORIGIN, bump_post).counts.ai_post == 2

    def test_mutate_may_return_replacement(self, aggregator):
        replacement = SignalBucket(context_id=1, origin=ORIGIN)
        replacement.counts.sse = 7

        bucket = aggregator.with_bucket(1, ORIGIN, lambda b: replacement)

        assert bucket is replacement
        assert aggregator.get_active_bucket(1, ORIGIN).counts.sse == 7

    def test_change_schedules_write(self, aggregator):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        assert aggregator.writer.pending_keys == [bucket_id(1, ORIGIN)]

    @pytest.mark.asyncio
    async def test_unchanged_bucket_not_rewritten(self, aggregator, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        await aggregator.flush(force=True)
        clock.advance(1)

        aggregator.with_bucket(1, ORIGIN, lambda b: None)

        assert aggregator.writer.pending_keys == []

    @pytest.mark.asyncio
    async def test_idle_buckets_pruned(self, aggregator, store, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        await aggregator.flush(force=True)
        clock.advance(31)

        aggregator.with_bucket(2, "https://other.example", bump_post)
        await aggregator.flush(force=True)

        assert len(aggregator) == 1
        persisted = store.snapshot()[SIGNAL_BUCKETS_KEY]
        assert list(persisted) == ["2|https://other.example"]


class TestActivity:
    def test_active_bucket_expires(self, aggregator, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        assert aggregator.get_active_bucket(1, ORIGIN) is not None

        clock.advance(31)
        assert aggregator.get_active_bucket(1, ORIGIN) is None

    def test_active_bucket_invalid_key(self, aggregator):
        assert aggregator.get_active_bucket(None, ORIGIN) is None
        assert aggregator.get_active_bucket(1, None) is None

    def test_recent_activity_any_context(self, aggregator, clock):
        assert not aggregator.has_recent_activity(ORIGIN)
        aggregator.with_bucket(5, ORIGIN, bump_post)

        assert aggregator.has_recent_activity(ORIGIN)
        assert not aggregator.has_recent_activity("https://elsewhere.example")
        clock.advance(31)
        assert not aggregator.has_recent_activity(ORIGIN)


class TestMarkPII:
    def test_mark(self, aggregator, clock):
        bucket = aggregator.mark_pii(1, ORIGIN, {"email"}, "abcd1234")

        assert bucket.pii_marks == 1
        assert bucket.pii_kinds == {"email"}
        assert bucket.last_pii_ts == clock.now
        assert bucket.pii_window_start == clock.now
        assert bucket.last_pii_hash == "abcd1234"

    def test_kinds_union(self, aggregator):
        aggregator.mark_pii(1, ORIGIN, {"email"})
        bucket = aggregator.mark_pii(1, ORIGIN, ["card", "email"])
        assert bucket.pii_marks == 2
        assert bucket.pii_kinds == {"email", "card"}

    def test_duplicate_hash_ignored(self, aggregator, clock):
        aggregator.mark_pii(1, ORIGIN, {"email"}, "abcd1234")
        clock.advance(1)
        assert aggregator.mark_pii(1, ORIGIN, {"email"}, "abcd1234").pii_marks == 1

        clock.advance(2)
        assert aggregator.mark_pii(1, ORIGIN, {"email"}, "abcd1234").pii_marks == 2

    def test_different_hash_counts(self, aggregator):
        aggregator.mark_pii(1, ORIGIN, {"email"}, "aaaa0000")
        assert aggregator.mark_pii(1, ORIGIN, {"email"}, "bbbb1111").pii_marks == 2

    def test_pii_window_reset(self, aggregator, clock):
        aggregator.mark_pii(1, ORIGIN, {"email"}, "abcd1234")
        marked_at = clock.now
        clock.advance(16)

        bucket = aggregator.with_bucket(1, ORIGIN, bump_post)

        assert bucket.pii_marks == 0
        assert bucket.pii_kinds == set()
        assert bucket.pii_window_start is None
        assert bucket.last_pii_ts == marked_at

    def test_invalid_key(self, aggregator):
        assert aggregator.mark_pii(None, ORIGIN, {"email"}) is None


class TestShouldEscalate:
    def test_no_bucket(self):
        assert not should_escalate_with_pii(None, 100.0, 15)

    def test_without_mark(self):
        assert not should_escalate_with_pii(SignalBucket(1, ORIGIN), 100.0, 15)

    def test_within_and_beyond_window(self):
        bucket = SignalBucket(1, ORIGIN, last_pii_ts=100.0)
        assert should_escalate_with_pii(bucket, 115.0, 15)
        assert not should_escalate_with_pii(bucket, 115.5, 15)

    def test_mark_at_epoch_zero_counts(self):
        bucket = SignalBucket(0, ORIGIN, last_pii_ts=0.0)
        assert should_escalate_with_pii(bucket, 10.0, 15)
        assert not should_escalate_with_pii(bucket, 15.5, 15)


class TestPersistence:
    def test_bucket_dict_round_trip(self):
        bucket = SignalBucket(3, ORIGIN, window_start=1.0, last_update=2.0)
        bucket.counts.passive = 4
        bucket.pii_kinds = {"ssn", "email"}

        data = bucket.to_dict()
        assert data["pii_kinds"] == ["email", "ssn"]
        assert SignalBucket.from_dict(data) == bucket

    @pytest.mark.asyncio
    async def test_restore_drops_stale(self, clock):
        fresh = SignalBucket(1, ORIGIN, window_start=clock.now - 5, last_update=clock.now - 5)
        stale = SignalBucket(2, ORIGIN, window_start=clock.now - 99, last_update=clock.now - 99)
        store = MemoryStore(
            {
                SIGNAL_BUCKETS_KEY: {
                    fresh.key: fresh.to_dict(),
                    stale.key: stale.to_dict(),
                    "junk": {"origin": ORIGIN},
                }
            }
        )
        aggregator = SignalAggregator(store, clock=clock)

        assert await aggregator.restore() == 1
        assert aggregator.get_active_bucket(1, ORIGIN) == fresh
        assert list(store.snapshot()[SIGNAL_BUCKETS_KEY]) == [fresh.key]

    @pytest.mark.asyncio
    async def test_restore_empty_store(self, aggregator):
        assert await aggregator.restore() == 0

    @pytest.mark.asyncio
    async def test_flush_round_trip(self, store, clock):
        first = SignalAggregator(store, clock=clock)
        first.mark_pii(1, ORIGIN, {"card"}, "abcd1234")
        await first.flush(force=True)

        second = SignalAggregator(store, clock=clock)
        await second.restore()

        bucket = second.get_active_bucket(1, ORIGIN)
        assert bucket.pii_kinds == {"card"}
        assert bucket.last_pii_hash == "abcd1234"

    @pytest.mark.asyncio
    async def test_debounced_flush(self, aggregator, store, clock):
        aggregator.with_bucket(1, ORIGIN, bump_post)
        assert await aggregator.flush() == 0

        clock.advance(0.5)
        assert await aggregator.flush() == 1
        assert SIGNAL_BUCKETS_KEY in store.snapshot()
