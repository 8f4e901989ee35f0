"""
Beacon - Concurrency Package
============================

Outbound call control: a process-wide ConcurrencyGate and single-use
DeadlineGuard wrappers.
"""

from .deadline import DeadlineGuard
from .gate import ConcurrencyGate

__all__ = [
    "ConcurrencyGate",
    "DeadlineGuard",
]
