"""
Beacon - Social Feed
====================

Random post lookups for /meme.

The feed API returns one random post per call; posts flagged NSFW are
skipped and re-drawn a few times before giving up with NotFound.
"""

from dataclasses import dataclass

from beacon.core.constants import API_TIMEOUT
from beacon.core.errors import NotFound, UpstreamError
from beacon.services.http import OutboundClient

MAX_DRAWS = 3


@dataclass(frozen=True)
class FeedPost:
    title: str
    image_url: str
    link: str
    community: str
    author: str


class FeedService:
    """Draws random posts from the social feed API."""

    def __init__(self, http: OutboundClient, url: str, timeout: float = API_TIMEOUT) -> None:
        self.http = http
        self.url = url
        self.timeout = timeout

    async def random_post(self) -> FeedPost:
        """
        Fetch one safe-for-work post.

        Raises:
            NotFound: If every draw came back NSFW.
            UpstreamError: If the response is missing required fields.
        """
        for _ in range(MAX_DRAWS):
            data = await self.http.get_json(self.url, timeout=self.timeout, operation="Feed")
            if not isinstance(data, dict) or not data.get("url") or not data.get("title"):
                raise UpstreamError("Feed", "post is missing url or title")
            if data.get("nsfw"):
                continue
            return FeedPost(
                title=str(data["title"]),
                image_url=str(data["url"]),
                link=str(data.get("postLink") or data["url"]),
                community=str(data.get("subreddit") or ""),
                author=str(data.get("author") or ""),
            )

        raise NotFound("No safe post available right now")


__all__ = [
    "FeedPost",
    "FeedService",
]
