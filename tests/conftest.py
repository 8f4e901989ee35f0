"""
Beacon - Test Fixtures
======================

Shared fixtures for all tests.

Nothing here touches discord.py: handlers and services only talk to the
reply/channel/moderation sinks, so tests hand them recording fakes.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing modules (the logger opens its files on import)
os.environ["TESTING"] = "1"
os.environ.setdefault("BEACON_LOGS_DIR", tempfile.mkdtemp(prefix="beacon-test-logs-"))

from beacon.dispatch.replies import MessageRef, Reply  # noqa: E402


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Sinks
# =============================================================================

class RecordingReplySink:
    """ReplySink that keeps every reply it was asked to send."""

    def __init__(self) -> None:
        self.replies: List[Reply] = []

    async def send(self, reply: Reply) -> Optional[MessageRef]:
        self.replies.append(reply)
        return None

    @property
    def last(self) -> Reply:
        return self.replies[-1]


class RecordingChannelSink:
    """ChannelSink that records posts and hands out sequential message ids."""

    def __init__(self) -> None:
        self.posts: List[Tuple[int, Reply]] = []
        self._next_id = 500

    async def post(self, channel_id: int, reply: Reply) -> Optional[MessageRef]:
        self.posts.append((channel_id, reply))
        self._next_id += 1
        return MessageRef(channel_id, self._next_id)


@pytest.fixture
def reply_sink():
    return RecordingReplySink()


@pytest.fixture
def channel_sink():
    return RecordingChannelSink()


@pytest.fixture
def moderation():
    """ModerationActions double: ban succeeds, kick finds the member."""
    mock = AsyncMock()
    mock.ban = AsyncMock(return_value=None)
    mock.kick = AsyncMock(return_value=True)
    return mock


# =============================================================================
# Outbound HTTP
# =============================================================================

class FakeHttp:
    """
    Stand-in for OutboundClient keyed by URL.

    Values may be a JSON payload, an int status (probe) or an exception
    to raise.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []

    def _answer(self, url: str) -> Any:
        value = self.responses[url]
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, list) and value and isinstance(value[0], (dict, BaseException)):
            # Sequential answers for repeated calls
            item = value.pop(0) if len(value) > 1 else value[0]
            if isinstance(item, BaseException):
                raise item
            return item
        return value

    async def get_json(self, url, *, params=None, timeout=None, operation="GET"):
        self.calls.append((url, params))
        return self._answer(url)

    async def probe(self, url, *, timeout=None, operation="Probe"):
        self.calls.append((url, None))
        return self._answer(url)


@pytest.fixture
def fake_http():
    return FakeHttp()


