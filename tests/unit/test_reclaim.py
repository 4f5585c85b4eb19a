"""
Unit tests for the reclaim policy.
"""

import pytest

from stream_queue.backend.memory import InMemoryLogBackend
from stream_queue.core.reclaim import ReclaimPolicy
from stream_queue.types.queue import PendingEntry
from tests.conftest import TEST_GROUP, FakeClock

RECORD = {"item": "x", "priority": "0", "created": "1"}


async def _deliver(backend: InMemoryLogBackend, consumer: str, n: int) -> list[str]:
    await backend.create_group(TEST_GROUP)
    for _ in range(n):
        await backend.append(RECORD)
    entries = await backend.read_new(TEST_GROUP, consumer, count=n)
    return [entry_id for entry_id, _ in entries]


class TestReclaimPolicy:
    """Tests for ReclaimPolicy."""

    def test_rejects_negative_idle(self):
        with pytest.raises(ValueError):
            ReclaimPolicy(min_idle_ms=-1)

    def test_rejects_empty_page(self):
        with pytest.raises(ValueError):
            ReclaimPolicy(page_size=0)

    def test_select_idle_keeps_order(self):
        """Test that idle selection is inclusive and keeps pending-list order."""
        policy = ReclaimPolicy(min_idle_ms=100)
        pending = [
            PendingEntry("1-0", "c1", idle_ms=150, delivery_count=1),
            PendingEntry("2-0", "c1", idle_ms=99, delivery_count=1),
            PendingEntry("3-0", "c2", idle_ms=100, delivery_count=3),
        ]

        assert policy.select_idle(pending) == ["1-0", "3-0"]

    async def test_nothing_pending(self, backend: InMemoryLogBackend):
        """Test that a group that never delivered has nothing to reclaim."""
        policy = ReclaimPolicy(min_idle_ms=0)

        assert await policy.claim_stalled(backend, TEST_GROUP, "c2") == []

    async def test_below_threshold_not_reclaimed(
        self,
        backend: InMemoryLogBackend,
        clock: FakeClock,
    ):
        await _deliver(backend, "c1", 1)
        clock.advance_ms(999)

        assert await ReclaimPolicy(min_idle_ms=1_000).claim_stalled(backend, TEST_GROUP, "c2") == []

    async def test_reclaim_transfers_oldest_first(
        self,
        backend: InMemoryLogBackend,
        clock: FakeClock,
    ):
        """Test that every idle entry moves to the requester, oldest first."""
        delivered = await _deliver(backend, "c1", 3)
        clock.advance_ms(1_000)

        claimed = await ReclaimPolicy(min_idle_ms=1_000).claim_stalled(backend, TEST_GROUP, "c2")

        assert [entry_id for entry_id, _ in claimed] == delivered
        assert claimed[0][1] == RECORD
        owned = await backend.list_pending(TEST_GROUP, consumer="c2")
        assert [p.entry_id for p in owned] == delivered
        assert all(p.delivery_count == 2 for p in owned)

    async def test_second_reclaim_fails_after_timer_reset(
        self,
        backend: InMemoryLogBackend,
        clock: FakeClock,
    ):
        await _deliver(backend, "c1", 1)
        clock.advance_ms(1_000)
        policy = ReclaimPolicy(min_idle_ms=1_000)

        assert len(await policy.claim_stalled(backend, TEST_GROUP, "c2")) == 1
        assert await policy.claim_stalled(backend, TEST_GROUP, "c3") == []

    async def test_page_size_bounds_inspection(
        self,
        backend: InMemoryLogBackend,
        clock: FakeClock,
    ):
        delivered = await _deliver(backend, "c1", 5)
        clock.advance_ms(1_000)

        claimed = await ReclaimPolicy(min_idle_ms=1_000, page_size=2).claim_stalled(
            backend, TEST_GROUP, "c2"
        )

        assert [entry_id for entry_id, _ in claimed] == delivered[:2]

    async def test_trimmed_entries_skipped(
        self,
        backend: InMemoryLogBackend,
        clock: FakeClock,
    ):
        """Test that entries deleted while pending are not returned."""
        await _deliver(backend, "c1", 2)
        await backend.trim(0)
        clock.advance_ms(1_000)

        assert await ReclaimPolicy(min_idle_ms=1_000).claim_stalled(backend, TEST_GROUP, "c2") == []
        assert await backend.pending_summary(TEST_GROUP) == 0
