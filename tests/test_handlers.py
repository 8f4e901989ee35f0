"""
Tests for beacon/handlers

Handlers run behind a real Dispatcher with recording sinks and mocked
services, so each test reads like one user interaction.
"""

import random
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from beacon.core.errors import NotFound
from beacon.core.logger import NY_TZ
from beacon.dispatch import (
    CommandInvocation,
    CommandName,
    Dispatcher,
    FormKind,
    FormSubmission,
    GENERIC_FAILURE,
    InteractiveTrigger,
    MessageRef,
    RawMessage,
    ReactionChange,
    TriggerKind,
)
from beacon.handlers import (
    AfkHandler,
    FunHandler,
    GiveawayHandler,
    LevelingHandler,
    ModerationHandler,
    PollHandler,
    StatusHandler,
    SubscribersHandler,
)
from beacon.handlers.giveaways import INVALID_DURATION
from beacon.handlers.status import parse_state
from beacon.services.afk import AfkTracker
from beacon.services.feed import FeedPost
from beacon.services.leveling import LevelingService, LevelStore
from beacon.services.status import ServiceState, ServiceStatus, StatusSnapshot
from beacon.services.warnings import WarningService, WarningStore
from beacon.services.youtube import ChannelInfo
from beacon.state import CooldownStore

USER_ID = 111
OTHER_ID = 222
GUILD_ID = 900
CHANNEL_ID = 700


def command(sink, name, scope_id=GUILD_ID, **options):
    return CommandInvocation(USER_ID, scope_id, CHANNEL_ID, sink, name=name, options=options)


def routed(*handlers):
    dispatcher = Dispatcher()
    for handler in handlers:
        handler.register(dispatcher)
    return dispatcher


# =============================================================================
# Subscribers
# =============================================================================

@pytest.fixture
def youtube():
    service = MagicMock()
    service.find_channel = AsyncMock(return_value=ChannelInfo("UC-abc", "Real Channel"))
    service.subscriber_count = AsyncMock(return_value=1234567)
    return service


class TestSubscribersHandler:
    """Tests for /subscribers and the reload button."""

    @pytest.mark.asyncio
    async def test_reply_has_count_and_reload_button(self, youtube, reply_sink, clock):
        dispatcher = routed(SubscribersHandler(youtube, CooldownStore(clock=clock)))
        await dispatcher.dispatch(command(reply_sink, CommandName.SUBSCRIBERS, channel="real"))

        reply = reply_sink.last
        assert reply.title == "Real Channel"
        assert "1,234,567" in reply.description
        assert reply.buttons[0].trigger_id == "reload-UC-abc"

    @pytest.mark.asyncio
    async def test_channel_not_found(self, youtube, reply_sink, clock):
        youtube.find_channel.side_effect = NotFound("nope")
        dispatcher = routed(SubscribersHandler(youtube, CooldownStore(clock=clock)))
        await dispatcher.dispatch(command(reply_sink, CommandName.SUBSCRIBERS, channel="nobody"))

        assert reply_sink.last.content == "Channel not found ❌"
        youtube.subscriber_count.assert_not_called()

    @pytest.mark.asyncio
    async def test_reload_cooldown(self, youtube, reply_sink, clock):
        """Two clicks within 5 seconds: the second is told to wait."""
        dispatcher = routed(SubscribersHandler(youtube, CooldownStore(clock=clock), reload_cooldown=5))
        click = InteractiveTrigger(USER_ID, GUILD_ID, CHANNEL_ID, reply_sink, kind=TriggerKind.RELOAD, payload="UC-abc")

        await dispatcher.dispatch(click)
        assert reply_sink.last.update is True
        youtube.subscriber_count.assert_awaited_once_with("UC-abc")

        clock.advance(2)
        await dispatcher.dispatch(click)
        assert reply_sink.last.content == "⏱ You are clicking too fast! Please wait 3 seconds."
        assert reply_sink.last.ephemeral
        assert youtube.subscriber_count.await_count == 1

        clock.advance(3)
        await dispatcher.dispatch(click)
        assert youtube.subscriber_count.await_count == 2

    @pytest.mark.asyncio
    async def test_upstream_failure_gets_generic_reply(self, youtube, reply_sink, clock):
        youtube.subscriber_count.side_effect = RuntimeError("api down")
        dispatcher = routed(SubscribersHandler(youtube, CooldownStore(clock=clock)))

        assert await dispatcher.dispatch(command(reply_sink, CommandName.SUBSCRIBERS, channel="x")) is False
        assert reply_sink.last.content == GENERIC_FAILURE


# =============================================================================
# Moderation
# =============================================================================

@pytest.fixture
def warning_service(tmp_path, moderation, clock):
    store = WarningStore(tmp_path / "warnings.json", threshold=3, clock=clock)
    store.load()
    return WarningService(store, moderation)


class TestModerationHandler:
    """Tests for ban, kick and warnings."""

    @pytest.mark.asyncio
    async def test_ban(self, moderation, warning_service, reply_sink):
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        await dispatcher.dispatch(command(reply_sink, CommandName.BAN, target=OTHER_ID, target_name="bob"))

        moderation.ban.assert_awaited_once()
        assert moderation.ban.await_args.args[:2] == (GUILD_ID, OTHER_ID)
        assert reply_sink.last.content == "bob has been banned 🚫"

    @pytest.mark.asyncio
    async def test_kick_missing_member(self, moderation, warning_service, reply_sink):
        moderation.kick.return_value = False
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        await dispatcher.dispatch(command(reply_sink, CommandName.KICK, target=OTHER_ID))

        assert reply_sink.last.content == "User not found ❌"

    @pytest.mark.asyncio
    async def test_commands_need_a_server(self, moderation, warning_service, reply_sink):
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        await dispatcher.dispatch(command(reply_sink, CommandName.BAN, scope_id=None, target=OTHER_ID))

        moderation.ban.assert_not_called()
        assert reply_sink.last.ephemeral

    @pytest.mark.asyncio
    async def test_warn_without_reason_opens_form(self, moderation, warning_service, reply_sink):
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        await dispatcher.dispatch(command(reply_sink, CommandName.WARN, target=OTHER_ID))

        form = reply_sink.last.form
        assert form.form_id == f"warn-{OTHER_ID}"
        assert [f.key for f in form.fields] == ["reason"]
        assert warning_service.store.history(OTHER_ID) == ()

    @pytest.mark.asyncio
    async def test_form_submission_records_warning(self, moderation, warning_service, reply_sink):
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        submission = FormSubmission(
            USER_ID, GUILD_ID, CHANNEL_ID, reply_sink,
            kind=FormKind.WARN, payload=str(OTHER_ID), fields={"reason": " spamming "},
        )
        await dispatcher.dispatch(submission)

        entries = warning_service.store.history(OTHER_ID)
        assert [e.reason for e in entries] == ["spamming"]
        assert entries[0].moderator_id == USER_ID

    @pytest.mark.asyncio
    async def test_third_warning_bans(self, moderation, warning_service, reply_sink):
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        for i in range(3):
            await dispatcher.dispatch(command(reply_sink, CommandName.WARN, target=OTHER_ID, reason=f"r{i}"))

        moderation.ban.assert_awaited_once()
        assert any(name == "Action" for name, _, _ in reply_sink.last.fields)

    @pytest.mark.asyncio
    async def test_list_and_clear(self, moderation, warning_service, reply_sink):
        dispatcher = routed(ModerationHandler(moderation, warning_service))
        await dispatcher.dispatch(command(reply_sink, CommandName.WARN, target=OTHER_ID, reason="spam"))

        await dispatcher.dispatch(command(reply_sink, CommandName.WARNINGS, target=OTHER_ID))
        assert "spam" in reply_sink.last.description

        await dispatcher.dispatch(command(reply_sink, CommandName.CLEAR_WARNINGS, target=OTHER_ID))
        assert "Cleared 1" in reply_sink.last.content
        assert warning_service.store.history(OTHER_ID) == ()


# =============================================================================
# Fun
# =============================================================================

class TestFunHandler:
    """Tests for /joke and /meme."""

    @pytest.mark.asyncio
    async def test_joke(self, reply_sink):
        from beacon.handlers.fun import JOKES

        dispatcher = routed(FunHandler(MagicMock(), rng=random.Random(1)))
        await dispatcher.dispatch(command(reply_sink, CommandName.JOKE))
        assert reply_sink.last.content in JOKES

    @pytest.mark.asyncio
    async def test_meme_card(self, reply_sink):
        feed = MagicMock()
        feed.random_post = AsyncMock(return_value=FeedPost("Funny", "https://i/x.png", "https://r/x", "memes", "op"))
        dispatcher = routed(FunHandler(feed))
        await dispatcher.dispatch(command(reply_sink, CommandName.MEME))

        assert reply_sink.last.image_url == "https://i/x.png"
        assert reply_sink.last.footer == "r/memes • u/op"


# =============================================================================
# Status
# =============================================================================

class TestStatusHandler:
    """Tests for /status-mark parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("auto", None),
        ("down", ServiceState.DOWN),
        (" Fixed ", ServiceState.FIXED),
    ])
    def test_parse_state(self, raw, expected):
        assert parse_state(raw) == expected

    def test_parse_state_rejects_unknown(self):
        with pytest.raises(ValueError):
            parse_state("broken")

    @pytest.mark.asyncio
    async def test_mark_unknown_service(self, reply_sink):
        status = MagicMock()
        status.pin.side_effect = NotFound("nope")
        dispatcher = routed(StatusHandler(status))
        await dispatcher.dispatch(command(reply_sink, CommandName.STATUS_MARK, service="db", state="down"))

        assert "Unknown service" in reply_sink.last.content

    @pytest.mark.asyncio
    @pytest.mark.parametrize("computed_at,footer", [
        (datetime(2024, 7, 1, 12, 0, tzinfo=NY_TZ), "Checked 12:00:00 PM EDT"),
        (datetime(2024, 12, 1, 9, 30, tzinfo=NY_TZ), "Checked 09:30:00 AM EST"),
    ])
    async def test_footer_uses_current_zone_abbreviation(self, reply_sink, computed_at, footer):
        status = MagicMock()
        status.enabled = True
        status.snapshot = AsyncMock(return_value=StatusSnapshot(
            services=(ServiceStatus("api", ServiceState.UP, "200"),),
            computed_at=computed_at,
        ))
        dispatcher = routed(StatusHandler(status))
        await dispatcher.dispatch(command(reply_sink, CommandName.STATUS))

        assert reply_sink.last.footer == footer


# =============================================================================
# Giveaways & Polls
# =============================================================================

class TestGiveawayAndPollHandlers:
    """Tests for argument validation and reaction routing."""

    @pytest.mark.asyncio
    async def test_invalid_duration(self, reply_sink):
        giveaways = MagicMock()
        giveaways.start = AsyncMock()
        dispatcher = routed(GiveawayHandler(giveaways))
        await dispatcher.dispatch(command(reply_sink, CommandName.GIVEAWAY, duration="soon", winners=1, prize="x"))

        assert reply_sink.last.content == INVALID_DURATION
        giveaways.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_reactions_route_by_emoji(self, reply_sink):
        giveaways = MagicMock()
        polls = MagicMock()
        dispatcher = routed(GiveawayHandler(giveaways), PollHandler(polls))
        message = MessageRef(CHANNEL_ID, 55)

        await dispatcher.dispatch(ReactionChange(USER_ID, GUILD_ID, CHANNEL_ID, reply_sink, message=message, emoji="🎉"))
        await dispatcher.dispatch(ReactionChange(
            USER_ID, GUILD_ID, CHANNEL_ID, reply_sink, message=message, emoji="2️⃣", added=False,
        ))

        giveaways.enter.assert_called_once_with(55, USER_ID)
        polls.unvote.assert_called_once_with(55, USER_ID, "2️⃣")
        polls.vote.assert_not_called()

    @pytest.mark.asyncio
    async def test_poll_needs_two_options(self, reply_sink):
        polls = MagicMock()
        polls.start = AsyncMock()
        dispatcher = routed(PollHandler(polls))
        await dispatcher.dispatch(command(reply_sink, CommandName.POLL, question="Q", options="only", duration="5m"))

        assert reply_sink.last.content.startswith("❌")
        polls.start.assert_not_called()


# =============================================================================
# AFK
# =============================================================================

class TestAfkHandler:
    """Tests for /afk and message checks."""

    @pytest.mark.asyncio
    async def test_mention_notice_then_welcome_back(self, reply_sink, clock):
        tracker = AfkTracker(clock=clock)
        dispatcher = routed(AfkHandler(tracker))

        await dispatcher.dispatch(command(reply_sink, CommandName.AFK, reason="lunch"))
        assert "lunch" in reply_sink.last.content

        await dispatcher.dispatch(RawMessage(OTHER_ID, GUILD_ID, CHANNEL_ID, reply_sink, content="hey", mentions=(USER_ID,)))
        assert f"<@{USER_ID}> is AFK: lunch" in reply_sink.last.content

        await dispatcher.dispatch(RawMessage(USER_ID, GUILD_ID, CHANNEL_ID, reply_sink, content="back"))
        assert "Welcome back" in reply_sink.last.content
        assert tracker.get(USER_ID) is None

    @pytest.mark.asyncio
    async def test_failed_welcome_back_still_grants_xp(self, tmp_path, clock):
        """The AFK reply failing does not stop the leveling handler after it."""
        class FlakySink:
            def __init__(self):
                self.sent = []

            async def send(self, reply):
                if not self.sent:
                    self.sent.append(None)
                    raise ConnectionError("channel gone")
                self.sent.append(reply)

        tracker = AfkTracker(clock=clock)
        tracker.set(USER_ID, "lunch")
        store = LevelStore(tmp_path / "levels.json")
        store.load()
        leveling = LevelingService(store, CooldownStore(clock=clock), cooldown=60, xp_range=(5, 5))
        dispatcher = routed(AfkHandler(tracker), LevelingHandler(leveling))

        sink = FlakySink()
        assert await dispatcher.dispatch(RawMessage(USER_ID, GUILD_ID, CHANNEL_ID, sink, content="back")) is False

        assert tracker.get(USER_ID) is None
        assert store.record_for(USER_ID, GUILD_ID).xp == 5
        assert [r.content for r in sink.sent[1:]] == [GENERIC_FAILURE]
