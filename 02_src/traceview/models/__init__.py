"""Data models for traceview."""

from .events import (
    ActionBegin,
    ActionEnd,
    ConsoleEvent,
    ErrorEvent,
    Event,
    EventKind,
    LogEvent,
    MetadataEvent,
    NetworkRequestEvent,
    NetworkResponseEvent,
    UnknownEvent,
)
from .trace import (
    Action,
    ActionStatus,
    AttachmentRef,
    AttachmentSource,
    ConsoleEntry,
    ErrorInfo,
    NetworkEntry,
    Trace,
    TraceDiagnostics,
    TraceModel,
    TraceSummary,
    UnattributedEvents,
)

__all__ = [
    # Events
    "Event",
    "EventKind",
    "ActionBegin",
    "ActionEnd",
    "LogEvent",
    "ConsoleEvent",
    "NetworkRequestEvent",
    "NetworkResponseEvent",
    "ErrorEvent",
    "MetadataEvent",
    "UnknownEvent",
    # Trace
    "Action",
    "ActionStatus",
    "AttachmentRef",
    "AttachmentSource",
    "ConsoleEntry",
    "ErrorInfo",
    "NetworkEntry",
    "Trace",
    "TraceDiagnostics",
    "TraceModel",
    "TraceSummary",
    "UnattributedEvents",
]
