"""
Beacon - Handlers Package
=========================

One handler class per feature. Each takes its services in the
constructor and wires itself onto a Dispatcher with register().
"""

from .afk import AfkHandler
from .fun import FunHandler
from .giveaways import GiveawayHandler
from .leveling import LevelingHandler
from .moderation import ModerationHandler
from .polls import PollHandler
from .status import StatusHandler
from .youtube import SubscribersHandler

__all__ = [
    "AfkHandler",
    "FunHandler",
    "GiveawayHandler",
    "LevelingHandler",
    "ModerationHandler",
    "PollHandler",
    "StatusHandler",
    "SubscribersHandler",
]
