"""
Beacon - Outbound HTTP Client
=============================

The single path for every outbound network request.

DESIGN:
    Each request is one deferred unit of work: the ConcurrencyGate decides
    when it may start, and a fresh DeadlineGuard bounds how long it may
    run once started. The deadline sits inside the gate, so time spent
    queueing does not eat into the call's budget, and a timed-out call
    gives its slot back immediately.

    Responses are normalized into the error taxonomy:
    - non-2xx, unreachable host, or unparseable JSON -> UpstreamError
    - deadline exceeded -> Timeout

    Callers that need several requests (search then details) make them
    one after another, never from inside a gated task.
"""

import json
from typing import Any, Dict, Optional

import aiohttp

from beacon.concurrency import ConcurrencyGate, DeadlineGuard
from beacon.core.constants import API_TIMEOUT, LOG_TRUNCATE_LENGTH
from beacon.core.errors import UpstreamError
from beacon.core.logger import logger


class OutboundClient:
    """
    Gate- and deadline-wrapped aiohttp client.

    Attributes:
        gate: Shared process-wide concurrency gate.
        default_timeout: Deadline in seconds when a call does not pass one.
    """

    def __init__(
        self,
        gate: ConcurrencyGate,
        session: Optional[aiohttp.ClientSession] = None,
        default_timeout: float = API_TIMEOUT,
    ) -> None:
        self.gate = gate
        self.default_timeout = default_timeout
        self._session = session
        self._owns_session = session is None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Open the underlying session if one was not supplied."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": "BeaconBot/1.0"},
            )
            self._owns_session = True

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("OutboundClient.start() was not called")
        return self._session

    # =========================================================================
    # Requests
    # =========================================================================

    async def get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        operation: str = "GET",
    ) -> Any:
        """
        Fetch and decode a JSON document.

        Args:
            url: Request URL.
            params: Query string parameters.
            timeout: Deadline in seconds, default_timeout if omitted.
            operation: Name used in errors and logs.

        Returns:
            The decoded JSON value.

        Raises:
            Timeout: If the deadline passed.
            UpstreamError: On non-2xx, transport failure or invalid JSON.
        """
        session = self._require_session()

        async def call() -> Any:
            try:
                async with session.get(url, params=params) as resp:
                    body = await resp.text()
                    if not 200 <= resp.status < 300:
                        raise UpstreamError(operation, body[:LOG_TRUNCATE_LENGTH], status=resp.status)
            except aiohttp.ClientError as e:
                raise UpstreamError(operation, f"{type(e).__name__}: {e}") from e

            try:
                return json.loads(body)
            except ValueError as e:
                raise UpstreamError(operation, f"invalid JSON: {e}") from e

        deadline = timeout if timeout is not None else self.default_timeout
        result = await self.gate.run(lambda: DeadlineGuard(deadline, operation).run(call))
        logger.debug(f"{operation} OK")
        return result

    async def probe(self, url: str, *, timeout: Optional[float] = None, operation: str = "Probe") -> int:
        """
        Issue a liveness GET and return its status code.

        Raises:
            Timeout: If the deadline passed.
            UpstreamError: If the host could not be reached.
        """
        session = self._require_session()

        async def call() -> int:
            try:
                async with session.get(url, allow_redirects=True) as resp:
                    return resp.status
            except aiohttp.ClientError as e:
                raise UpstreamError(operation, f"{type(e).__name__}: {e}") from e

        deadline = timeout if timeout is not None else self.default_timeout
        return await self.gate.run(lambda: DeadlineGuard(deadline, operation).run(call))


__all__ = [
    "OutboundClient",
]
