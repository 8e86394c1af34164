"""Assembled trace data models.

Everything here is built once per upload by the assembler and is read-only
afterwards: dataclasses are frozen and collections are tuples.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Protocol

from ..errors import EntryNotFound, TraceIndexOutOfRange

ERROR_SEVERITIES = frozenset({"error", "assert"})


class AttachmentSource(Protocol):
    """Anything that can hand back the bytes of a named archive entry."""

    def read(self, name: str) -> bytes:
        ...


@dataclass(frozen=True)
class AttachmentRef:
    """Reference to a binary payload inside the trace archive."""

    name: str
    entry: str  # entry name inside the archive
    content_type: str | None = None


@dataclass(frozen=True)
class ErrorInfo:
    """An error raised by an action or reported by the page."""

    message: str
    stack: str | None = None
    origin_id: str | None = None


@dataclass(frozen=True)
class NetworkEntry:
    """One network request or completed request/response pair."""

    phase: str  # "request" or "response"
    method: str
    url: str
    timestamp: float | None = None
    status: int | None = None
    status_text: str | None = None
    duration: float | None = None
    failure: str | None = None
    body: AttachmentRef | None = None

    @property
    def is_error(self) -> bool:
        if self.failure:
            return True
        return self.status is not None and self.status >= 400


@dataclass(frozen=True)
class ConsoleEntry:
    """A console message, log line or captured stdout/stderr chunk."""

    text: str
    severity: str
    source: str  # "console", "log", "stdout", "stderr"
    timestamp: float | None = None

    @property
    def is_error(self) -> bool:
        return self.severity in ERROR_SEVERITIES


class ActionStatus(str, Enum):
    """Pairing state of an action."""

    CLOSED = "closed"
    OPEN = "open"  # begin seen, end never seen
    UNPAIRED = "unpaired"  # end seen without a begin


@dataclass(frozen=True)
class Action:
    """One recorded operation with its nested sub-events."""

    id: str
    name: str
    start_time: float
    end_time: float | None
    status: ActionStatus
    params: dict[str, Any] = field(default_factory=dict)
    title: str | None = None
    class_name: str | None = None
    page_id: str | None = None
    parent_id: str | None = None
    network: tuple[NetworkEntry, ...] = ()
    console: tuple[ConsoleEntry, ...] = ()
    errors: tuple[ErrorInfo, ...] = ()
    attachments: tuple[AttachmentRef, ...] = ()

    @property
    def error(self) -> ErrorInfo | None:
        """First error attributed to this action, if any."""
        return self.errors[0] if self.errors else None

    @property
    def duration(self) -> float | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def is_open(self) -> bool:
        return self.status is ActionStatus.OPEN

    @property
    def is_unpaired(self) -> bool:
        return self.status is ActionStatus.UNPAIRED

    @property
    def has_error(self) -> bool:
        """True when the action failed or carries an error-severity sub-event."""
        if self.errors:
            return True
        if any(entry.is_error for entry in self.console):
            return True
        return any(entry.is_error for entry in self.network)


@dataclass(frozen=True)
class UnattributedEvents:
    """Sub-events observed while no action was open."""

    network: tuple[NetworkEntry, ...] = ()
    console: tuple[ConsoleEntry, ...] = ()
    errors: tuple[ErrorInfo, ...] = ()

    def __len__(self) -> int:
        return len(self.network) + len(self.console) + len(self.errors)

    @property
    def has_error(self) -> bool:
        return bool(
            self.errors
            or any(entry.is_error for entry in self.console)
            or any(entry.is_error for entry in self.network)
        )


@dataclass(frozen=True)
class TraceSummary:
    """Trace-level metadata merged from metadata events and action timing."""

    title: str | None = None
    browser_name: str | None = None
    platform: str | None = None
    playwright_version: str | None = None
    wall_time: float | None = None  # epoch milliseconds
    start_time: float | None = None
    end_time: float | None = None
    duration: float | None = None


@dataclass(frozen=True)
class TraceDiagnostics:
    """Counters for everything the loader recovered from instead of failing."""

    total_lines: int = 0
    malformed_lines: int = 0
    downgraded_events: int = 0
    unknown_events: int = 0
    open_actions: int = 0
    unpaired_actions: int = 0
    unattributed_events: int = 0
    evicted_open_actions: int = 0

    @property
    def has_anomalies(self) -> bool:
        return any(
            (
                self.malformed_lines,
                self.downgraded_events,
                self.open_actions,
                self.unpaired_actions,
                self.unattributed_events,
                self.evicted_open_actions,
            )
        )


@dataclass(frozen=True)
class Trace:
    """One recorded run reduced to an ordered action sequence."""

    source_name: str
    actions: tuple[Action, ...] = ()
    summary: TraceSummary = field(default_factory=TraceSummary)
    unattributed: UnattributedEvents = field(default_factory=UnattributedEvents)
    diagnostics: TraceDiagnostics = field(default_factory=TraceDiagnostics)
    load_error: str | None = None
    load_error_kind: str | None = None
    archive: AttachmentSource | None = field(default=None, repr=False, compare=False)

    @property
    def title(self) -> str:
        return self.summary.title or self.source_name

    @property
    def is_degraded(self) -> bool:
        return self.load_error is not None

    @property
    def failed_actions(self) -> tuple[Action, ...]:
        return tuple(action for action in self.actions if action.has_error)

    @property
    def error_count(self) -> int:
        return len(self.failed_actions) + len(self.unattributed.errors)

    def find_action(self, action_id: str) -> Action | None:
        """First action with the given pairing id."""
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def find_attachment(self, entry: str) -> AttachmentRef | None:
        """Reference to an archive entry from any action or network body."""
        for action in self.actions:
            for ref in action.attachments:
                if ref.entry == entry:
                    return ref
            for network in action.network:
                if network.body is not None and network.body.entry == entry:
                    return network.body
        for network in self.unattributed.network:
            if network.body is not None and network.body.entry == entry:
                return network.body
        return None

    def read_attachment(self, ref: AttachmentRef | str) -> bytes:
        """Fetch attachment bytes from the archive on demand."""
        entry = ref.entry if isinstance(ref, AttachmentRef) else ref
        if self.archive is None:
            raise EntryNotFound(entry, f"Trace {self.source_name!r} has no archive")
        return self.archive.read(entry)


class TraceModel:
    """Ordered, read-only collection of Traces produced by one upload."""

    def __init__(self, traces: list[Trace] | tuple[Trace, ...] = ()):
        self._traces = tuple(traces)

    def traces(self) -> tuple[Trace, ...]:
        return self._traces

    def trace(self, index: int) -> Trace:
        if index < 0 or index >= len(self._traces):
            raise TraceIndexOutOfRange(index, len(self._traces))
        return self._traces[index]

    def __len__(self) -> int:
        return len(self._traces)

    def __iter__(self) -> Iterator[Trace]:
        return iter(self._traces)

    def __repr__(self) -> str:
        return f"TraceModel(traces={len(self._traces)})"
