"""
Beacon - Event Dispatcher
=========================

Routes inbound events to their handler chain.

DESIGN:
    - Commands, triggers and forms map to exactly one handler by their
      enum discriminator
    - Raw messages and reactions run an ordered chain of handlers
      (AFK, leveling, giveaways, polls) that each ignore what is not
      theirs. One failing chain handler does not skip the rest
    - Events with no registered handler are ignored
    - Any exception escaping a handler is logged here; the event gets
      at most one generic failure reply and nothing reaches discord.py

    submit() starts each event as its own task and returns immediately,
    so a slow handler (waiting on the concurrency gate, say) never delays
    the next unrelated event. Pending tasks are tracked so shutdown can
    drain them.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Set

from beacon.core.logger import logger
from beacon.dispatch.events import (
    CommandInvocation,
    CommandName,
    Event,
    FormKind,
    FormSubmission,
    InteractiveTrigger,
    RawMessage,
    ReactionChange,
    TriggerKind,
)
from beacon.dispatch.replies import Reply

Handler = Callable[[Event], Awaitable[None]]

GENERIC_FAILURE = "❌ Something went wrong while handling that. Please try again later."


# =============================================================================
# Dispatcher
# =============================================================================

class Dispatcher:
    """
    Registry of handler chains plus the dispatch boundary.

    Attributes:
        failures: Number of handler exceptions caught so far.
    """

    def __init__(self, failure_text: str = GENERIC_FAILURE) -> None:
        self.failure_text = failure_text
        self.failures = 0
        self._commands: Dict[CommandName, Handler] = {}
        self._triggers: Dict[TriggerKind, Handler] = {}
        self._forms: Dict[FormKind, Handler] = {}
        self._message_chain: List[Handler] = []
        self._reaction_chain: List[Handler] = []
        self._tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # Registration
    # =========================================================================

    def command(self, name: CommandName, handler: Handler) -> None:
        if name in self._commands:
            raise ValueError(f"Command already registered: /{name.value}")
        self._commands[name] = handler

    def trigger(self, kind: TriggerKind, handler: Handler) -> None:
        if kind in self._triggers:
            raise ValueError(f"Trigger already registered: {kind.value}")
        self._triggers[kind] = handler

    def form(self, kind: FormKind, handler: Handler) -> None:
        if kind in self._forms:
            raise ValueError(f"Form already registered: {kind.value}")
        self._forms[kind] = handler

    def on_message(self, handler: Handler) -> None:
        self._message_chain.append(handler)

    def on_reaction(self, handler: Handler) -> None:
        self._reaction_chain.append(handler)

    @property
    def commands(self) -> List[CommandName]:
        return list(self._commands)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _resolve(self, event: Event) -> List[Handler]:
        if isinstance(event, CommandInvocation):
            handler = self._commands.get(event.name)
            return [handler] if handler else []
        if isinstance(event, InteractiveTrigger):
            handler = self._triggers.get(event.kind)
            return [handler] if handler else []
        if isinstance(event, FormSubmission):
            handler = self._forms.get(event.kind)
            return [handler] if handler else []
        if isinstance(event, RawMessage):
            return list(self._message_chain)
        if isinstance(event, ReactionChange):
            return list(self._reaction_chain)
        return []

    async def dispatch(self, event: Event) -> bool:
        """
        Run the handler chain for one event to completion.

        Each chain handler is isolated: a failing one is logged and the
        rest of the chain still runs. At most one generic failure reply
        is sent per event.

        Returns:
            True if every handler completed without an exception, False
            if nothing handled the event or any handler failed.
        """
        handlers = self._resolve(event)
        if not handlers:
            logger.debug(f"Unhandled event: {type(event).__name__}")
            return False

        failed = False
        for handler in handlers:
            try:
                await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                failed = True
                self.failures += 1
                logger.error("Handler Failed", [
                    ("Event", _describe(event)),
                    ("Handler", getattr(handler, "__qualname__", repr(handler))),
                    ("User", str(event.subject_id)),
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])

        if failed:
            await self._report_failure(event)
            return False
        return True

    def submit(self, event: Event) -> asyncio.Task:
        """
        Start handling an event in the background and return at once.

        Returns:
            The task running the handler chain.
        """
        task = asyncio.create_task(self.dispatch(event), name=_describe(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float) -> int:
        """
        Wait for in-flight handlers, cancelling whatever is left at the deadline.

        Returns:
            Number of handlers that had to be cancelled.
        """
        if not self._tasks:
            return 0
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        return len(pending)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def _report_failure(self, event: Event) -> None:
        try:
            await event.reply.send(Reply(content=self.failure_text, ephemeral=True))
        except Exception as e:
            logger.warning("Failure Reply Not Delivered", [
                ("Event", _describe(event)),
                ("Error", str(e)[:100]),
            ])


def _describe(event: Event) -> str:
    if isinstance(event, CommandInvocation):
        return f"/{event.name.value}"
    if isinstance(event, InteractiveTrigger):
        return f"trigger:{event.kind.value}"
    if isinstance(event, FormSubmission):
        return f"form:{event.kind.value}"
    return type(event).__name__


__all__ = [
    "Dispatcher",
    "GENERIC_FAILURE",
    "Handler",
]
