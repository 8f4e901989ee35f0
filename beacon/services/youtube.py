"""
Beacon - YouTube Lookups
========================

Channel search and subscriber estimates for /subscribers.

DESIGN:
    A lookup is three independent gated requests made in sequence:
    1. YouTube Data API search (type=channel) -> channel id
    2. YouTube Data API channels -> display title
    3. Subscriber estimation API -> live-ish count

    An empty search is NotFound, a normal negative answer. A missing
    count in the estimation response reads as 0.
"""

from dataclasses import dataclass
from typing import Any

from beacon.core.constants import API_TIMEOUT, SUBSCRIBER_ESTIMATE_URL, YOUTUBE_API_BASE
from beacon.core.errors import NotFound, UpstreamError
from beacon.services.http import OutboundClient


@dataclass(frozen=True)
class ChannelInfo:
    """A resolved YouTube channel."""

    channel_id: str
    title: str


def _first_item(data: Any, operation: str) -> Any:
    """Return items[0] of an API response, None when the list is empty."""
    if not isinstance(data, dict):
        raise UpstreamError(operation, "response is not an object")
    items = data.get("items") or []
    if not isinstance(items, list):
        raise UpstreamError(operation, "items is not a list")
    return items[0] if items else None


class YouTubeService:
    """Resolves channel names and fetches subscriber counts."""

    def __init__(self, http: OutboundClient, api_key: str, timeout: float = API_TIMEOUT) -> None:
        self.http = http
        self.api_key = api_key
        self.timeout = timeout

    async def find_channel(self, query: str) -> ChannelInfo:
        """
        Resolve a free-text channel name to its id and title.

        Raises:
            NotFound: If the search returned no channel.
        """
        search = await self.http.get_json(
            f"{YOUTUBE_API_BASE}/search",
            params={"part": "snippet", "q": query, "type": "channel", "key": self.api_key},
            timeout=self.timeout,
            operation="YouTube Search",
        )
        item = _first_item(search, "YouTube Search")
        channel_id = ((item or {}).get("id") or {}).get("channelId")
        if not channel_id:
            raise NotFound(f"No YouTube channel matches {query!r}")

        details = await self.http.get_json(
            f"{YOUTUBE_API_BASE}/channels",
            params={"part": "snippet", "id": channel_id, "key": self.api_key},
            timeout=self.timeout,
            operation="YouTube Channel",
        )
        detail = _first_item(details, "YouTube Channel") or {}
        title = (detail.get("snippet") or {}).get("title") or ((item.get("snippet") or {}).get("title")) or query

        return ChannelInfo(channel_id=channel_id, title=title)

    async def subscriber_count(self, channel_id: str) -> int:
        """
        Fetch the estimated subscriber count for a channel id.

        Returns:
            The count, 0 when the estimate is missing.
        """
        data = await self.http.get_json(
            SUBSCRIBER_ESTIMATE_URL.format(channel_id=channel_id),
            timeout=self.timeout,
            operation="Subscriber Estimate",
        )
        item = _first_item(data, "Subscriber Estimate") or {}
        raw = (item.get("statistics") or {}).get("subscriberCount") or 0
        try:
            return int(float(raw))
        except (TypeError, ValueError):
            raise UpstreamError("Subscriber Estimate", f"bad subscriberCount: {raw!r}")


__all__ = [
    "ChannelInfo",
    "YouTubeService",
]
