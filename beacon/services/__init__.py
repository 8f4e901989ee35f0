"""
Beacon - Services Package
=========================

Domain logic behind the handlers. Nothing here imports discord.py:
replies go out through the sinks in beacon.dispatch.replies.

- OutboundClient: gated, deadline-bound HTTP
- YouTubeService / FeedService / StatusService: outbound lookups
- LevelingService / WarningService / GiveawayService: persisted features
- PollService / AfkTracker: in-memory features
- bump_version_file: startup version stamp
"""

from .afk import AfkStatus, AfkTracker
from .feed import FeedPost, FeedService
from .giveaways import GiveawayRecord, GiveawayService, GiveawayStore, pick_winners
from .http import OutboundClient
from .leveling import LevelRecord, LevelStore, LevelingService, required_xp
from .polls import Poll, PollService, parse_options
from .status import ServiceState, StatusService, StatusSnapshot
from .version import bump_version, bump_version_file
from .warnings import WarningService, WarningStore
from .youtube import ChannelInfo, YouTubeService

__all__ = [
    "AfkStatus",
    "AfkTracker",
    "ChannelInfo",
    "FeedPost",
    "FeedService",
    "GiveawayRecord",
    "GiveawayService",
    "GiveawayStore",
    "LevelRecord",
    "LevelStore",
    "LevelingService",
    "OutboundClient",
    "Poll",
    "PollService",
    "ServiceState",
    "StatusService",
    "StatusSnapshot",
    "WarningService",
    "WarningStore",
    "YouTubeService",
    "bump_version",
    "bump_version_file",
    "parse_options",
    "pick_winners",
    "required_xp",
]
