"""
Beacon - Dispatch Package
=========================

Inbound event variants, the reply model, and the Dispatcher that routes
one to the other.
"""

from .dispatcher import Dispatcher, GENERIC_FAILURE
from .events import (
    CommandInvocation,
    CommandName,
    Event,
    FormKind,
    FormSubmission,
    InteractiveTrigger,
    RawMessage,
    ReactionChange,
    TriggerKind,
    make_id,
    parse_id,
)
from .replies import Button, Form, FormField, MessageRef, Reply

__all__ = [
    "Button",
    "CommandInvocation",
    "CommandName",
    "Dispatcher",
    "Event",
    "Form",
    "FormField",
    "FormKind",
    "FormSubmission",
    "GENERIC_FAILURE",
    "InteractiveTrigger",
    "MessageRef",
    "RawMessage",
    "ReactionChange",
    "Reply",
    "TriggerKind",
    "make_id",
    "parse_id",
]
