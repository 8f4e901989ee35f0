"""
Tests for outbound calls: OutboundClient, YouTube lookups, the social
feed and the status aggregator.
"""

import asyncio

import aiohttp
import pytest

from beacon.concurrency import ConcurrencyGate
from beacon.core.constants import SUBSCRIBER_ESTIMATE_URL, YOUTUBE_API_BASE
from beacon.core.errors import NotFound, Timeout, UpstreamError
from beacon.services.feed import FeedService
from beacon.services.http import OutboundClient
from beacon.services.status import ServiceState, StatusService
from beacon.services.youtube import YouTubeService


# =============================================================================
# Fake aiohttp Session
# =============================================================================

class FakeResponse:
    def __init__(self, status=200, body="{}", delay=0.0):
        self.status = status
        self._body = body
        self._delay = delay

    async def __aenter__(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        return self

    async def __aexit__(self, *exc):
        return False

    async def text(self):
        return self._body


class FakeSession:
    closed = False

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def make_client(session):
    return OutboundClient(ConcurrencyGate(2), session=session)


# =============================================================================
# OutboundClient Tests
# =============================================================================

class TestOutboundClient:
    """Tests for OutboundClient error normalization."""

    @pytest.mark.asyncio
    async def test_get_json_decodes(self):
        client = make_client(FakeSession(FakeResponse(body='{"a": 1}')))
        assert await client.get_json("http://x") == {"a": 1}

    @pytest.mark.asyncio
    async def test_non_2xx_is_upstream_error(self):
        client = make_client(FakeSession(FakeResponse(status=503, body="down")))
        with pytest.raises(UpstreamError) as exc_info:
            await client.get_json("http://x")
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_invalid_json_is_upstream_error(self):
        client = make_client(FakeSession(FakeResponse(body="<html>")))
        with pytest.raises(UpstreamError):
            await client.get_json("http://x")

    @pytest.mark.asyncio
    async def test_transport_failure_is_upstream_error(self):
        client = make_client(FakeSession(error=aiohttp.ClientConnectionError("refused")))
        with pytest.raises(UpstreamError):
            await client.probe("http://x")

    @pytest.mark.asyncio
    async def test_deadline_exceeded_is_timeout(self):
        client = make_client(FakeSession(FakeResponse(delay=1.0)))
        with pytest.raises(Timeout):
            await client.get_json("http://x", timeout=0.05)
        assert client.gate.running == 0

    @pytest.mark.asyncio
    async def test_probe_returns_status(self):
        client = make_client(FakeSession(FakeResponse(status=301)))
        assert await client.probe("http://x") == 301

    @pytest.mark.asyncio
    async def test_requires_start(self):
        client = OutboundClient(ConcurrencyGate(1))
        with pytest.raises(RuntimeError):
            await client.get_json("http://x")


# =============================================================================
# YouTubeService Tests
# =============================================================================

SEARCH_URL = f"{YOUTUBE_API_BASE}/search"
CHANNELS_URL = f"{YOUTUBE_API_BASE}/channels"


class TestYouTubeService:
    """Tests for YouTubeService."""

    @pytest.mark.asyncio
    async def test_find_channel(self, fake_http):
        fake_http.responses[SEARCH_URL] = {"items": [{"id": {"channelId": "UC1"}, "snippet": {"title": "s"}}]}
        fake_http.responses[CHANNELS_URL] = {"items": [{"snippet": {"title": "Real Title"}}]}

        info = await YouTubeService(fake_http, "key").find_channel("real")
        assert (info.channel_id, info.title) == ("UC1", "Real Title")
        assert fake_http.calls[0][1]["type"] == "channel"

    @pytest.mark.asyncio
    async def test_empty_search_is_not_found(self, fake_http):
        fake_http.responses[SEARCH_URL] = {"items": []}
        with pytest.raises(NotFound):
            await YouTubeService(fake_http, "key").find_channel("nobody")
        assert len(fake_http.calls) == 1

    @pytest.mark.asyncio
    async def test_subscriber_count(self, fake_http):
        url = SUBSCRIBER_ESTIMATE_URL.format(channel_id="UC1")
        fake_http.responses[url] = {"items": [{"statistics": {"subscriberCount": 12345}}]}
        assert await YouTubeService(fake_http, "key").subscriber_count("UC1") == 12345

    @pytest.mark.asyncio
    async def test_missing_count_reads_zero(self, fake_http):
        url = SUBSCRIBER_ESTIMATE_URL.format(channel_id="UC1")
        fake_http.responses[url] = {"items": [{}]}
        assert await YouTubeService(fake_http, "key").subscriber_count("UC1") == 0

    @pytest.mark.asyncio
    async def test_malformed_response(self, fake_http):
        url = SUBSCRIBER_ESTIMATE_URL.format(channel_id="UC1")
        fake_http.responses[url] = ["not", "an", "object"]
        with pytest.raises(UpstreamError):
            await YouTubeService(fake_http, "key").subscriber_count("UC1")


# =============================================================================
# FeedService Tests
# =============================================================================

FEED_URL = "https://feed.test/gimme"


class TestFeedService:
    """Tests for FeedService."""

    @pytest.mark.asyncio
    async def test_skips_nsfw_posts(self, fake_http):
        fake_http.responses[FEED_URL] = [
            {"title": "nope", "url": "https://i/1.png", "nsfw": True},
            {"title": "ok", "url": "https://i/2.png", "subreddit": "memes"},
        ]
        post = await FeedService(fake_http, FEED_URL).random_post()
        assert post.title == "ok"
        assert post.link == "https://i/2.png"
        assert post.community == "memes"

    @pytest.mark.asyncio
    async def test_gives_up_after_nsfw_draws(self, fake_http):
        fake_http.responses[FEED_URL] = {"title": "nope", "url": "https://i/1.png", "nsfw": True}
        with pytest.raises(NotFound):
            await FeedService(fake_http, FEED_URL).random_post()
        assert len(fake_http.calls) == 3

    @pytest.mark.asyncio
    async def test_missing_fields(self, fake_http):
        fake_http.responses[FEED_URL] = {"title": "no image"}
        with pytest.raises(UpstreamError):
            await FeedService(fake_http, FEED_URL).random_post()


# =============================================================================
# StatusService Tests
# =============================================================================

class TestStatusService:
    """Tests for StatusService."""

    @pytest.mark.asyncio
    async def test_states_from_probe_outcomes(self, fake_http):
        fake_http.responses.update({
            "http://up": 200,
            "http://err": 500,
            "http://slow": Timeout("Probe", 10),
            "http://gone": UpstreamError("Probe", "refused"),
            "http://weird": KeyError("boom"),
        })
        service = StatusService(fake_http, {
            "api": "http://up",
            "db": "http://err",
            "cdn": "http://slow",
            "mail": "http://gone",
            "misc": "http://weird",
        }, freshness=0)

        snapshot = await service.snapshot()
        assert [s.state for s in snapshot.services] == [
            ServiceState.UP,
            ServiceState.DOWN,
            ServiceState.DOWN,
            ServiceState.DOWN,
            ServiceState.UNKNOWN,
        ]
        assert snapshot.summary() == "1/5 up"

    @pytest.mark.asyncio
    async def test_down_then_up_is_fixed(self, fake_http):
        fake_http.responses["http://api"] = UpstreamError("Probe", "refused")
        service = StatusService(fake_http, {"api": "http://api"}, freshness=0)

        assert (await service.snapshot()).state_of("api") == ServiceState.DOWN

        fake_http.responses["http://api"] = 204
        assert (await service.snapshot()).state_of("api") == ServiceState.FIXED
        assert (await service.snapshot()).state_of("api") == ServiceState.UP

    @pytest.mark.asyncio
    async def test_snapshot_reused_within_freshness(self, fake_http):
        fake_http.responses["http://api"] = 200
        service = StatusService(fake_http, {"api": "http://api"}, freshness=60)

        first, second = await asyncio.gather(service.snapshot(), service.snapshot())
        assert first is second
        assert len(fake_http.calls) == 1

    @pytest.mark.asyncio
    async def test_pin_overrides_probe(self, fake_http):
        fake_http.responses["http://api"] = 200
        service = StatusService(fake_http, {"api": "http://api"}, freshness=60)
        await service.snapshot()

        service.pin("api", ServiceState.DOWN)
        snapshot = await service.snapshot()
        assert snapshot.services[0].pinned
        assert snapshot.state_of("api") == ServiceState.DOWN

        # Clearing a Down pin over a healthy probe reads as a recovery
        service.pin("api", None)
        assert (await service.snapshot()).state_of("api") == ServiceState.FIXED

    @pytest.mark.asyncio
    async def test_pin_during_slow_check_is_not_lost(self):
        """A snapshot computed before a pin is never served after it."""
        release = asyncio.Event()

        class SlowHttp:
            async def probe(self, url, *, timeout=None, operation="Probe"):
                await release.wait()
                return 200

        service = StatusService(SlowHttp(), {"api": "http://api"}, freshness=60)
        in_progress = asyncio.create_task(service.snapshot())
        await asyncio.sleep(0.01)

        service.pin("api", ServiceState.DOWN)
        release.set()

        assert (await in_progress).state_of("api") == ServiceState.UP
        snapshot = await service.snapshot()
        assert snapshot.state_of("api") == ServiceState.DOWN
        assert snapshot.services[0].pinned

    def test_pin_unknown_service(self, fake_http):
        service = StatusService(fake_http, {"api": "http://api"})
        with pytest.raises(NotFound):
            service.pin("nope", ServiceState.UP)
