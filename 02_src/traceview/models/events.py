"""Parsed trace event variants.

Events are transient: the parser yields them and the assembler consumes them
immediately. Each variant declares its kind as a class attribute.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from .trace import AttachmentRef, ErrorInfo


class EventKind(str, Enum):
    """Event kinds understood by the assembler."""

    ACTION_BEGIN = "action-begin"
    ACTION_END = "action-end"
    LOG = "log"
    CONSOLE = "console"
    NETWORK_REQUEST = "network-request"
    NETWORK_RESPONSE = "network-response"
    ERROR = "error"
    METADATA = "metadata"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ActionBegin:
    id: str
    name: str
    timestamp: float | None
    params: dict[str, Any] = field(default_factory=dict)
    title: str | None = None
    class_name: str | None = None
    page_id: str | None = None
    parent_id: str | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.ACTION_BEGIN


@dataclass(frozen=True)
class ActionEnd:
    id: str
    timestamp: float | None
    error: ErrorInfo | None = None
    attachments: tuple[AttachmentRef, ...] = ()
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.ACTION_END


@dataclass(frozen=True)
class LogEvent:
    message: str
    timestamp: float | None
    id: str | None = None  # call id of the action that emitted the line
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.LOG


@dataclass(frozen=True)
class ConsoleEvent:
    text: str
    severity: str
    source: str
    timestamp: float | None
    page_id: str | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.CONSOLE


@dataclass(frozen=True)
class NetworkRequestEvent:
    method: str
    url: str
    timestamp: float | None
    id: str | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.NETWORK_REQUEST


@dataclass(frozen=True)
class NetworkResponseEvent:
    method: str
    url: str
    timestamp: float | None
    status: int | None = None
    status_text: str | None = None
    duration: float | None = None
    failure: str | None = None
    body: AttachmentRef | None = None
    id: str | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.NETWORK_RESPONSE


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    timestamp: float | None
    stack: str | None = None
    id: str | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.ERROR


@dataclass(frozen=True)
class MetadataEvent:
    fields: dict[str, Any]  # normalized TraceSummary field names
    timestamp: float | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.METADATA


@dataclass(frozen=True)
class UnknownEvent:
    """Catch-all for unrecognized kinds and downgraded records."""

    type_name: str
    reason: str
    raw: dict[str, Any] = field(default_factory=dict)
    timestamp: float | None = None
    line: int = 0

    kind: ClassVar[EventKind] = EventKind.UNKNOWN


Event = Union[
    ActionBegin,
    ActionEnd,
    LogEvent,
    ConsoleEvent,
    NetworkRequestEvent,
    NetworkResponseEvent,
    ErrorEvent,
    MetadataEvent,
    UnknownEvent,
]
