"""
Tests for beacon/services/polls.py and beacon/services/afk.py
"""

import pytest

from beacon.core.constants import POLL_EMOJIS
from beacon.services.afk import AfkTracker
from beacon.services.polls import PollService, parse_options
from beacon.state import ActionScheduler


# =============================================================================
# parse_options() Tests
# =============================================================================

class TestParseOptions:
    """Tests for parse_options."""

    def test_pipe_separated(self):
        assert parse_options("Red | Green |Blue") == ("Red", "Green", "Blue")

    def test_comma_fallback(self):
        assert parse_options("yes, no") == ("yes", "no")

    def test_blank_options_dropped(self):
        assert parse_options("a||b|") == ("a", "b")

    @pytest.mark.parametrize("raw", ["only one", "|".join(str(i) for i in range(11)), ""])
    def test_out_of_range_rejected(self, raw):
        with pytest.raises(ValueError):
            parse_options(raw)


# =============================================================================
# PollService Tests
# =============================================================================

class TestPollService:
    """Tests for PollService."""

    @pytest.mark.asyncio
    async def test_start_adds_one_reaction_per_option(self, channel_sink, clock):
        service = PollService(ActionScheduler("polls"), channel_sink, clock=clock)
        await service.start(700, 1, "Lunch?", ("Pizza", "Sushi", "Tacos"), 60)

        _, reply = channel_sink.posts[0]
        assert reply.reactions == list(POLL_EMOJIS[:3])
        service.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_latest_vote_wins(self, channel_sink, clock):
        service = PollService(ActionScheduler("polls"), channel_sink, clock=clock)
        poll = await service.start(700, 1, "Lunch?", ("Pizza", "Sushi"), 60)
        mid = poll.message.message_id

        assert service.vote(mid, 10, POLL_EMOJIS[0])
        assert service.vote(mid, 10, POLL_EMOJIS[1])
        assert service.vote(mid, 11, POLL_EMOJIS[1])
        assert poll.tally() == [0, 2]

        # Removing the stale reaction keeps the current vote
        assert service.unvote(mid, 10, POLL_EMOJIS[0]) is False
        assert service.unvote(mid, 10, POLL_EMOJIS[1]) is True
        assert poll.tally() == [0, 1]
        service.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_ignores_foreign_reactions(self, channel_sink, clock):
        service = PollService(ActionScheduler("polls"), channel_sink, clock=clock)
        poll = await service.start(700, 1, "Q", ("a", "b"), 60)

        assert service.vote(poll.message.message_id, 10, "🎉") is False
        assert service.vote(poll.message.message_id, 10, POLL_EMOJIS[5]) is False
        assert service.vote(424242, 10, POLL_EMOJIS[0]) is False
        service.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_end_posts_results_once(self, channel_sink, clock):
        service = PollService(ActionScheduler("polls"), channel_sink, clock=clock)
        poll = await service.start(700, 1, "Q", ("a", "b"), 60)
        service.vote(poll.message.message_id, 10, POLL_EMOJIS[1])

        assert await service.end(poll.message.message_id) == [0, 1]
        _, results = channel_sink.posts[-1]
        assert "Total votes: 1" == results.footer
        assert await service.end(poll.message.message_id) is None
        assert service.scheduler.pending() == []


# =============================================================================
# AfkTracker Tests
# =============================================================================

class TestAfkTracker:
    """Tests for AfkTracker."""

    def test_set_and_clear(self, clock):
        tracker = AfkTracker(clock=clock)
        status = tracker.set(1, "  lunch ")
        assert status.reason == "lunch"
        assert status.since == clock.now

        assert tracker.clear(1) == status
        assert tracker.clear(1) is None

    def test_default_reason(self):
        assert AfkTracker().set(1).reason == "AFK"

    def test_mentioned_deduplicates(self):
        tracker = AfkTracker()
        tracker.set(1, "away")
        tracker.set(2, "sleeping")

        found = tracker.mentioned([3, 2, 1, 2])
        assert [sid for sid, _ in found] == [2, 1]
