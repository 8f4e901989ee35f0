"""
Tests for beacon/services/giveaways.py

Covers winner selection, participant persistence, timed ending,
restart recovery and rerolls.
"""

import asyncio
import json
import random

import pytest

from beacon.core.errors import NotFound
from beacon.dispatch.replies import MessageRef
from beacon.services.giveaways import GiveawayRecord, GiveawayService, GiveawayStore, pick_winners
from beacon.state import ActionScheduler


@pytest.fixture
def giveaway_store(tmp_path):
    store = GiveawayStore(tmp_path / "giveaways.json")
    store.load()
    return store


@pytest.fixture
def service(giveaway_store, channel_sink, clock):
    return GiveawayService(giveaway_store, ActionScheduler("test"), channel_sink, clock=clock, rng=random.Random(7))


# =============================================================================
# pick_winners() Tests
# =============================================================================

class TestPickWinners:
    """Tests for pick_winners."""

    def test_exact_count_of_distinct_participants(self):
        participants = list(range(1, 21))
        winners = pick_winners(participants, 5, random.Random(3))
        assert len(winners) == 5
        assert len(set(winners)) == 5
        assert set(winners) <= set(participants)

    def test_input_is_not_modified(self):
        participants = frozenset({1, 2, 3, 4})
        pick_winners(participants, 2)
        assert participants == frozenset({1, 2, 3, 4})

    def test_fewer_participants_than_winners(self):
        assert sorted(pick_winners([1, 2], 5)) == [1, 2]

    def test_no_participants(self):
        assert pick_winners([], 3) == []

    def test_roughly_uniform(self):
        """Each participant wins about equally often."""
        rng = random.Random(11)
        counts = {p: 0 for p in range(5)}
        for _ in range(5000):
            for w in pick_winners(list(counts), 1, rng):
                counts[w] += 1
        assert all(800 < c < 1200 for c in counts.values())


# =============================================================================
# Store Tests
# =============================================================================

class TestGiveawayStore:
    """Tests for GiveawayStore."""

    def test_participants_round_trip_as_set(self, giveaway_store, tmp_path):
        record = GiveawayRecord(
            giveaway_id="700-1000",
            message=MessageRef(700, 55),
            end_at=2000.0,
            winner_count=1,
            prize="Nitro",
            creator_id=1,
            participants=frozenset({9, 3, 5}),
        )
        giveaway_store.set(record.giveaway_id, record)

        raw = json.loads((tmp_path / "giveaways.json").read_text())
        assert raw["700-1000"]["participants"] == [3, 5, 9]

        reloaded = GiveawayStore(tmp_path / "giveaways.json")
        reloaded.load()
        assert reloaded.get("700-1000") == record
        assert reloaded.find_by_message(55) == record


# =============================================================================
# Service Tests
# =============================================================================

class TestGiveawayService:
    """Tests for GiveawayService."""

    @pytest.mark.asyncio
    async def test_start_posts_and_persists(self, service, channel_sink, giveaway_store, clock):
        record = await service.start(700, 1, 60, 2, "Nitro")

        assert record.giveaway_id == f"700-{int(clock.now * 1000)}"
        assert giveaway_store.get(record.giveaway_id) == record
        channel, reply = channel_sink.posts[0]
        assert channel == 700
        assert reply.reactions == ["🎉"]
        assert record.giveaway_id in service.scheduler
        service.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_start_validates_winners(self, service):
        with pytest.raises(ValueError):
            await service.start(700, 1, 60, 0, "Nitro")

    @pytest.mark.asyncio
    async def test_enter_and_leave(self, service, giveaway_store):
        record = await service.start(700, 1, 60, 1, "Nitro")
        message_id = record.message.message_id

        assert service.enter(message_id, 10)
        assert service.enter(message_id, 11)
        assert service.enter(message_id, 10)
        assert service.leave(message_id, 11)
        assert giveaway_store.get(record.giveaway_id).participants == frozenset({10})

        assert service.enter(999999, 10) is False
        service.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_end_announces_and_deletes(self, service, channel_sink, giveaway_store):
        record = await service.start(700, 1, 60, 2, "Nitro")
        for user in (10, 11, 12):
            service.enter(record.message.message_id, user)

        winners = await service.end(record.giveaway_id)

        assert len(winners) == 2
        assert set(winners) <= {10, 11, 12}
        assert giveaway_store.get(record.giveaway_id) is None
        assert record.giveaway_id not in service.scheduler
        _, announcement = channel_sink.posts[-1]
        assert all(f"<@{w}>" in announcement.description for w in winners)

        assert await service.end(record.giveaway_id) is None

    @pytest.mark.asyncio
    async def test_end_with_no_entries(self, service, channel_sink):
        record = await service.start(700, 1, 60, 1, "Nitro")
        assert await service.end(record.giveaway_id) == []
        _, announcement = channel_sink.posts[-1]
        assert "No valid entries" in announcement.description

    @pytest.mark.asyncio
    async def test_timer_ends_giveaway(self, giveaway_store, channel_sink, clock):
        service = GiveawayService(giveaway_store, ActionScheduler("test"), channel_sink, clock=clock)
        record = await service.start(700, 1, 0.01, 1, "Nitro")

        await asyncio.sleep(0.05)
        assert giveaway_store.get(record.giveaway_id) is None
        assert len(channel_sink.posts) == 2

    @pytest.mark.asyncio
    async def test_restore_rearms_and_ends_overdue(self, giveaway_store, channel_sink, clock):
        """After a restart, past-due giveaways end and future ones re-arm."""
        overdue = GiveawayRecord("700-1", MessageRef(700, 1), clock.now - 5, 1, "Old", 1, frozenset({4}))
        future = GiveawayRecord("700-2", MessageRef(700, 2), clock.now + 3600, 1, "New", 1)
        giveaway_store.set(overdue.giveaway_id, overdue)
        giveaway_store.set(future.giveaway_id, future)

        scheduler = ActionScheduler("test")
        service = GiveawayService(giveaway_store, scheduler, channel_sink, clock=clock)
        assert service.restore() == (1, 1)

        await asyncio.sleep(0.05)
        assert giveaway_store.get("700-1") is None
        assert giveaway_store.get("700-2") == future
        assert scheduler.pending() == ["700-2"]
        scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_reroll_uses_concluded_participants(self, service):
        record = await service.start(700, 1, 60, 1, "Nitro")
        for user in (10, 11, 12):
            service.enter(record.message.message_id, user)
        await service.end(record.giveaway_id)

        winners = await service.reroll(record.message.message_id, 3)
        assert sorted(winners) == [10, 11, 12]
        assert service.concluded(record.message.message_id).participants == frozenset({10, 11, 12})

    @pytest.mark.asyncio
    async def test_reroll_unknown_message(self, service):
        with pytest.raises(NotFound):
            await service.reroll(12345)
