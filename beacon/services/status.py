"""
Beacon - Status Aggregator
==========================

Liveness probes for configured services, summarized as immutable snapshots.

DESIGN:
    A snapshot is computed by probing every target concurrently (each probe
    is its own gated, deadline-bound request) and is then reused for the
    freshness window through a TimedCache. Concurrent /status calls during
    a refresh share one computation.

    States:
    - Up: probe answered 2xx/3xx
    - Down: any other status, unreachable host, or deadline exceeded
    - Unknown: the probe failed in an unexpected way
    - Fixed: Down in the previous snapshot, Up in this one

    Operators can pin a target to a state (maintenance windows, known
    incidents); a pin wins over the probe until cleared.

    Snapshots are never mutated. A new one supersedes the old.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from beacon.core.constants import PROBE_TIMEOUT, STATUS_FRESHNESS
from beacon.core.errors import NotFound, Timeout, UpstreamError
from beacon.core.logger import logger, NY_TZ
from beacon.services.http import OutboundClient
from beacon.state.cache import TimedCache


# =============================================================================
# Snapshot Model
# =============================================================================

class ServiceState(str, Enum):
    UP = "Up"
    DOWN = "Down"
    UNKNOWN = "Unknown"
    FIXED = "Fixed"


STATE_EMOJI = {
    ServiceState.UP: "🟢",
    ServiceState.DOWN: "🔴",
    ServiceState.UNKNOWN: "⚪",
    ServiceState.FIXED: "🟡",
}


@dataclass(frozen=True)
class ServiceStatus:
    name: str
    state: ServiceState
    detail: str = ""
    pinned: bool = False


@dataclass(frozen=True)
class StatusSnapshot:
    """Ordered probe results plus when they were computed."""

    services: Tuple[ServiceStatus, ...]
    computed_at: datetime

    def state_of(self, name: str) -> Optional[ServiceState]:
        for service in self.services:
            if service.name == name:
                return service.state
        return None

    @property
    def healthy(self) -> int:
        return sum(1 for s in self.services if s.state in (ServiceState.UP, ServiceState.FIXED))

    def summary(self) -> str:
        """Short form like "3/4 up" for presence and logs."""
        return f"{self.healthy}/{len(self.services)} up"


# =============================================================================
# Status Service
# =============================================================================

class StatusService:
    """
    Probes configured targets and caches the resulting snapshot.

    Attributes:
        targets: Ordered mapping of service name to probe URL.
        freshness: Seconds a snapshot is reused.
    """

    def __init__(
        self,
        http: OutboundClient,
        targets: Dict[str, str],
        probe_timeout: float = PROBE_TIMEOUT,
        freshness: float = STATUS_FRESHNESS,
        cache: Optional[TimedCache] = None,
    ) -> None:
        self.http = http
        self.targets = dict(targets)
        self.probe_timeout = probe_timeout
        self.freshness = freshness
        self._cache: TimedCache[StatusSnapshot] = cache or TimedCache(name="status")
        self._pins: Dict[str, ServiceState] = {}

    @property
    def enabled(self) -> bool:
        return bool(self.targets)

    # =========================================================================
    # Public API
    # =========================================================================

    async def snapshot(self) -> StatusSnapshot:
        """Return a snapshot no older than the freshness window."""
        return await self._cache.get(self._compute, self.freshness)

    def latest(self) -> Optional[StatusSnapshot]:
        """Last computed snapshot without probing, None if none yet."""
        return self._cache.peek()

    def pin(self, name: str, state: Optional[ServiceState]) -> None:
        """
        Pin a target to a state, or clear the pin with None.

        Raises:
            NotFound: If the target is not configured.
        """
        if name not in self.targets:
            raise NotFound(f"Unknown service: {name}")

        if state is None:
            self._pins.pop(name, None)
        else:
            self._pins[name] = state
        self._cache.invalidate()

        logger.tree("Status Pin Updated", [
            ("Service", name),
            ("State", state.value if state else "auto"),
        ], emoji="📌")

    # =========================================================================
    # Computation
    # =========================================================================

    async def _compute(self) -> StatusSnapshot:
        previous = self._cache.peek()
        results = await asyncio.gather(*(
            self._probe(name, url) for name, url in self.targets.items()
        ))

        services = []
        for status in results:
            if (
                not status.pinned
                and status.state == ServiceState.UP
                and previous is not None
                and previous.state_of(status.name) == ServiceState.DOWN
            ):
                status = ServiceStatus(status.name, ServiceState.FIXED, "recovered")
            services.append(status)

        snapshot = StatusSnapshot(services=tuple(services), computed_at=datetime.now(NY_TZ))
        logger.tree("Status Snapshot", [
            (s.name, f"{s.state.value}{f' ({s.detail})' if s.detail else ''}") for s in services
        ] or [("Targets", "none")], emoji="📡")
        return snapshot

    async def _probe(self, name: str, url: str) -> ServiceStatus:
        pinned = self._pins.get(name)
        if pinned is not None:
            return ServiceStatus(name, pinned, "pinned", pinned=True)

        try:
            code = await self.http.probe(url, timeout=self.probe_timeout, operation=f"Probe {name}")
        except Timeout:
            return ServiceStatus(name, ServiceState.DOWN, "timed out")
        except UpstreamError as e:
            return ServiceStatus(name, ServiceState.DOWN, str(e)[:60])
        except Exception as e:
            logger.warning("Probe Crashed", [
                ("Service", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            return ServiceStatus(name, ServiceState.UNKNOWN, type(e).__name__)

        if 200 <= code < 400:
            return ServiceStatus(name, ServiceState.UP, str(code))
        return ServiceStatus(name, ServiceState.DOWN, str(code))


__all__ = [
    "ServiceState",
    "ServiceStatus",
    "StatusService",
    "StatusSnapshot",
    "STATE_EMOJI",
]
