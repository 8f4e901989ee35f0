"""
Tests for beacon/utils/replies

Covers how InteractionReplySink answers an interaction after a public
"thinking" defer. The interaction is a mock; only the calls matter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from beacon.dispatch import Reply
from beacon.utils.replies import InteractionReplySink


def make_interaction():
    interaction = MagicMock()
    acknowledged = {"done": False}

    async def acknowledge(**kwargs):
        acknowledged["done"] = True

    interaction.response.is_done = MagicMock(side_effect=lambda: acknowledged["done"])
    interaction.response.defer = AsyncMock(side_effect=acknowledge)
    interaction.response.send_message = AsyncMock(side_effect=acknowledge)
    interaction.delete_original_response = AsyncMock()
    interaction.followup.send = AsyncMock(return_value=MagicMock())
    return interaction


# =============================================================================
# Deferred Replies
# =============================================================================

class TestInteractionReplySink:
    """Tests for replies to deferred slash commands."""

    @pytest.mark.asyncio
    async def test_private_reply_after_public_defer_removes_placeholder(self):
        """A "Channel not found" style answer stays private."""
        interaction = make_interaction()
        sink = InteractionReplySink(interaction)

        await sink.defer_thinking()
        await sink.send(Reply(content="Channel not found ❌", ephemeral=True))

        interaction.response.defer.assert_awaited_once_with(thinking=True)
        interaction.delete_original_response.assert_awaited_once()
        interaction.followup.send.assert_awaited_once_with(
            ephemeral=True, wait=True, content="Channel not found ❌",
        )

    @pytest.mark.asyncio
    async def test_public_reply_fills_placeholder(self):
        interaction = make_interaction()
        sink = InteractionReplySink(interaction)

        await sink.defer_thinking()
        await sink.send(Reply(content="1,234 subscribers"))

        interaction.delete_original_response.assert_not_awaited()
        assert interaction.followup.send.await_args.kwargs["ephemeral"] is False

    @pytest.mark.asyncio
    async def test_placeholder_removed_only_once(self):
        interaction = make_interaction()
        sink = InteractionReplySink(interaction)

        await sink.defer_thinking()
        await sink.send(Reply(content="first", ephemeral=True))
        await sink.send(Reply(content="second", ephemeral=True))

        assert interaction.delete_original_response.await_count == 1
        assert interaction.followup.send.await_count == 2

    @pytest.mark.asyncio
    async def test_undeferred_reply_is_initial_response(self):
        interaction = make_interaction()
        sink = InteractionReplySink(interaction)

        assert await sink.send(Reply(content="🏓", ephemeral=True)) is None

        interaction.response.send_message.assert_awaited_once_with(ephemeral=True, content="🏓")
        interaction.delete_original_response.assert_not_awaited()
        interaction.followup.send.assert_not_awaited()
