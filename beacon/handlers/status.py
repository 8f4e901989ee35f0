"""
Beacon - Status Handler
=======================

/status shows the cached probe snapshot; /status-mark pins a target.
"""

from typing import Optional

from beacon.core.config import EmbedColors
from beacon.core.errors import NotFound
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName
from beacon.dispatch.replies import Reply
from beacon.services.status import STATE_EMOJI, ServiceState, StatusService

AUTO = "auto"


def parse_state(raw: str) -> Optional[ServiceState]:
    """
    Map a user-typed state to a ServiceState; "auto" means clear the pin.

    Raises:
        ValueError: If the state is not recognized.
    """
    value = raw.strip().lower()
    if value == AUTO:
        return None
    for state in ServiceState:
        if state.value.lower() == value:
            return state
    raise ValueError(raw)


class StatusHandler:
    """Handles /status and /status-mark."""

    def __init__(self, status: StatusService) -> None:
        self.status = status

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.STATUS, self.show)
        dispatcher.command(CommandName.STATUS_MARK, self.mark)

    async def show(self, event: CommandInvocation) -> None:
        if not self.status.enabled:
            await event.reply.send(Reply(content="ℹ️ No services are configured for status checks.", ephemeral=True))
            return

        snapshot = await self.status.snapshot()
        all_healthy = snapshot.healthy == len(snapshot.services)

        await event.reply.send(Reply(
            title="📡 Service Status",
            description=f"**{snapshot.summary()}**",
            color=EmbedColors.SUCCESS if all_healthy else EmbedColors.WARNING,
            fields=[
                (
                    f"{STATE_EMOJI[s.state]} {s.name}",
                    f"{s.state.value}{f' · {s.detail}' if s.detail else ''}",
                    True,
                )
                for s in snapshot.services
            ],
            footer=f"Checked {snapshot.computed_at.strftime('%I:%M:%S %p %Z')}",
        ))

    async def mark(self, event: CommandInvocation) -> None:
        name = str(event.option("service")).strip()
        try:
            state = parse_state(str(event.option("state")))
        except ValueError:
            choices = ", ".join([AUTO] + [s.value for s in ServiceState])
            await event.reply.send(Reply(content=f"❌ Unknown state. Use one of: {choices}", ephemeral=True))
            return

        try:
            self.status.pin(name, state)
        except NotFound:
            await event.reply.send(Reply(content=f"❌ Unknown service `{name}`.", ephemeral=True))
            return

        label = state.value if state else "automatic"
        await event.reply.send(Reply(content=f"📌 `{name}` is now **{label}**.", ephemeral=True))


__all__ = ["StatusHandler", "parse_state"]
