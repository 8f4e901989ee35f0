"""
Beacon - Error Taxonomy
=======================

Exception types shared by every feature of the bot.

DESIGN:
    Failures are grouped by how the caller should react, not by where
    they came from:

    - Timeout: an outbound call ran past its deadline. The caller may
      retry or report it.
    - UpstreamError: a remote service answered with a non-2xx status or
      a body we could not make sense of. Reported, never retried
      automatically.
    - NotFound: a lookup came back empty. Handlers turn this into a
      normal negative reply, it is not logged as an error.
    - PersistenceError: a snapshot file could not be read or written.
      Stores log it and keep running on their in-memory state.

    Anything that escapes a handler is caught at the Dispatcher boundary
    and converted into one generic failure reply.
"""

from typing import Optional


# =============================================================================
# Base Error
# =============================================================================

class BeaconError(Exception):
    """Base class for all errors raised by Beacon components."""

    pass


# =============================================================================
# Outbound Call Errors
# =============================================================================

class Timeout(BeaconError):
    """
    Raised when an outbound call exceeds its deadline.

    Attributes:
        operation: Name of the call that timed out.
        seconds: The deadline that was exceeded.
    """

    def __init__(self, operation: str, seconds: float) -> None:
        self.operation = operation
        self.seconds = seconds
        super().__init__(f"{operation} timed out after {seconds:g}s")


class UpstreamError(BeaconError):
    """
    Raised when a remote service returns a non-2xx or malformed response.

    Attributes:
        service: Name or URL of the remote service.
        status: HTTP status code, None when the body was the problem.
    """

    def __init__(self, service: str, message: str, status: Optional[int] = None) -> None:
        self.service = service
        self.status = status
        detail = f"{service} returned {status}: {message}" if status is not None else f"{service}: {message}"
        super().__init__(detail)


class NotFound(BeaconError):
    """Raised when a lookup has no match. Callers reply with a negative result."""

    pass


# =============================================================================
# Persistence Errors
# =============================================================================

class PersistenceError(BeaconError):
    """
    Raised when a snapshot file cannot be read or written.

    Attributes:
        path: The snapshot file involved.
    """

    def __init__(self, path: object, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "BeaconError",
    "Timeout",
    "UpstreamError",
    "NotFound",
    "PersistenceError",
]
