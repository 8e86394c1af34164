"""Action timeline assembly from a tagged event stream."""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from ..config import max_open_actions
from ..logging_config import get_logger
from ..models import (
    Action,
    ActionBegin,
    ActionEnd,
    ActionStatus,
    AttachmentRef,
    AttachmentSource,
    ConsoleEntry,
    ConsoleEvent,
    ErrorEvent,
    ErrorInfo,
    Event,
    EventKind,
    LogEvent,
    MetadataEvent,
    NetworkEntry,
    NetworkRequestEvent,
    NetworkResponseEvent,
    Trace,
    TraceDiagnostics,
    TraceSummary,
    UnattributedEvents,
)
from ..parser import ParseStats

logger = get_logger(__name__)

UNPAIRED_ACTION_NAME = "(unpaired end)"


@dataclass
class _PendingAction:
    """Mutable action state while the stream is being consumed."""

    id: str
    name: str
    start_time: float
    status: ActionStatus
    end_time: float | None = None
    params: dict[str, Any] = field(default_factory=dict)
    title: str | None = None
    class_name: str | None = None
    page_id: str | None = None
    parent_id: str | None = None
    network: list[NetworkEntry] = field(default_factory=list)
    console: list[ConsoleEntry] = field(default_factory=list)
    errors: list[ErrorInfo] = field(default_factory=list)
    attachments: list[AttachmentRef] = field(default_factory=list)

    def contains(self, timestamp: float) -> bool:
        if timestamp < self.start_time:
            return False
        return self.end_time is None or timestamp <= self.end_time

    def freeze(self) -> Action:
        return Action(
            id=self.id,
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status,
            params=dict(self.params),
            title=self.title,
            class_name=self.class_name,
            page_id=self.page_id,
            parent_id=self.parent_id,
            network=tuple(self.network),
            console=tuple(self.console),
            errors=tuple(self.errors),
            attachments=tuple(self.attachments),
        )


class ActionAssembler:
    """Builds one Trace from events consumed in file order.

    Open actions live in an insertion-ordered mapping keyed by pairing id;
    the last entry is the most recently opened action that is still open.
    Sub-events go to that action unless they name a known action
    explicitly, and to the trace's unattributed bucket when nothing is open.
    """

    def __init__(self, max_open: int | None = None):
        self._max_open = max_open or max_open_actions()
        self._actions: list[_PendingAction] = []
        self._open: dict[str, _PendingAction] = {}
        self._by_id: dict[str, _PendingAction] = {}
        self._summary_fields: dict[str, Any] = {}
        self._clock: float | None = None
        self._evicted = 0

        self._loose_network: list[NetworkEntry] = []
        self._loose_console: list[ConsoleEntry] = []
        self._loose_errors: list[ErrorInfo] = []

        self._handlers: dict[EventKind, Callable[[Any], None]] = {
            EventKind.ACTION_BEGIN: self._on_begin,
            EventKind.ACTION_END: self._on_end,
            EventKind.LOG: self._on_log,
            EventKind.CONSOLE: self._on_console,
            EventKind.NETWORK_REQUEST: self._on_network,
            EventKind.NETWORK_RESPONSE: self._on_network,
            EventKind.ERROR: self._on_error,
            EventKind.METADATA: self._on_metadata,
        }

    # Main stream

    def feed(self, events: Iterable[Event]) -> None:
        """Consume a whole event stream."""
        for event in events:
            self.consume(event)

    def consume(self, event: Event) -> None:
        """Consume one event. Unknown events are ignored."""
        handler = self._handlers.get(event.kind)
        if handler is not None:
            handler(event)

    def _on_begin(self, event: ActionBegin) -> None:
        start = event.timestamp if event.timestamp is not None else self._clock
        if start is None:
            start = 0.0
        action = _PendingAction(
            id=event.id,
            name=event.name,
            start_time=start,
            status=ActionStatus.OPEN,
            params=event.params,
            title=event.title,
            class_name=event.class_name,
            page_id=event.page_id,
            parent_id=event.parent_id,
        )
        self._tick(start)
        self._actions.append(action)
        self._by_id[event.id] = action

        if event.id in self._open:
            # Re-used id while still open; the earlier action stays open untracked
            logger.debug("Duplicate begin for open action", extra={"context": {"id": event.id}})
            del self._open[event.id]
        self._open[event.id] = action

        if len(self._open) > self._max_open:
            oldest_id = next(iter(self._open))
            del self._open[oldest_id]
            self._evicted += 1
            logger.debug("Evicted open action", extra={"context": {"id": oldest_id}})

    def _on_end(self, event: ActionEnd) -> None:
        action = self._open.pop(event.id, None)
        if action is None:
            self._synthesize_unpaired(event)
            return

        end = event.timestamp if event.timestamp is not None else self._clock
        if end is None or end < action.start_time:
            end = action.start_time
        action.end_time = end
        action.status = ActionStatus.CLOSED
        if event.error is not None:
            action.errors.append(event.error)
        action.attachments.extend(event.attachments)
        self._tick(end)

    def _synthesize_unpaired(self, event: ActionEnd) -> None:
        at = event.timestamp if event.timestamp is not None else self._clock
        at = at if at is not None else 0.0
        logger.debug("End without begin", extra={"context": {"id": event.id, "line": event.line}})
        action = _PendingAction(
            id=event.id,
            name=UNPAIRED_ACTION_NAME,
            start_time=at,
            end_time=at,
            status=ActionStatus.UNPAIRED,
            errors=[event.error] if event.error is not None else [],
            attachments=list(event.attachments),
        )
        self._actions.append(action)
        self._by_id.setdefault(event.id, action)
        self._tick(at)

    def _on_log(self, event: LogEvent) -> None:
        entry = ConsoleEntry(
            text=event.message,
            severity="log",
            source="log",
            timestamp=event.timestamp,
        )
        target = self._explicit(event.id) or self._top()
        if target is None:
            self._loose_console.append(entry)
        else:
            target.console.append(entry)

    def _on_console(self, event: ConsoleEvent) -> None:
        entry = ConsoleEntry(
            text=event.text,
            severity=event.severity,
            source=event.source,
            timestamp=event.timestamp,
        )
        target = self._top()
        if target is None:
            self._loose_console.append(entry)
        else:
            target.console.append(entry)

    def _on_network(self, event: NetworkRequestEvent | NetworkResponseEvent) -> None:
        entry = _network_entry(event)
        target = self._top()
        if target is None:
            self._loose_network.append(entry)
        else:
            target.network.append(entry)

    def _on_error(self, event: ErrorEvent) -> None:
        info = ErrorInfo(message=event.message, stack=event.stack, origin_id=event.id)
        target = self._explicit(event.id) or self._top()
        if target is None:
            self._loose_errors.append(info)
        else:
            target.errors.append(info)

    def _on_metadata(self, event: MetadataEvent) -> None:
        self._summary_fields.update(event.fields)

    # Side channel

    def attach_by_time(self, events: Iterable[Event]) -> None:
        """Attribute side-channel events (no call ids) by time containment.

        Call after the main stream. Each sub-event goes to the most recently
        begun action whose [start, end] interval contains its timestamp
        (open actions extend to infinity); other kinds are consumed as usual.
        """
        for event in events:
            if event.kind not in (
                EventKind.NETWORK_REQUEST,
                EventKind.NETWORK_RESPONSE,
                EventKind.CONSOLE,
                EventKind.LOG,
                EventKind.ERROR,
            ):
                self.consume(event)
                continue

            target = self._containing(event.timestamp)
            if event.kind in (EventKind.NETWORK_REQUEST, EventKind.NETWORK_RESPONSE):
                entry = _network_entry(event)
                (target.network if target else self._loose_network).append(entry)
            elif event.kind is EventKind.ERROR:
                info = ErrorInfo(message=event.message, stack=event.stack, origin_id=event.id)
                (target.errors if target else self._loose_errors).append(info)
            else:
                entry = ConsoleEntry(
                    text=event.message if event.kind is EventKind.LOG else event.text,
                    severity="log" if event.kind is EventKind.LOG else event.severity,
                    source="log" if event.kind is EventKind.LOG else event.source,
                    timestamp=event.timestamp,
                )
                (target.console if target else self._loose_console).append(entry)

    def _containing(self, timestamp: float | None) -> _PendingAction | None:
        if timestamp is None:
            return None
        for action in reversed(self._actions):
            if action.status is not ActionStatus.UNPAIRED and action.contains(timestamp):
                return action
        return None

    # Helpers

    def _top(self) -> _PendingAction | None:
        if not self._open:
            return None
        return next(reversed(self._open.values()))

    def _explicit(self, action_id: str | None) -> _PendingAction | None:
        if action_id is None:
            return None
        return self._by_id.get(action_id)

    def _tick(self, timestamp: float) -> None:
        if self._clock is None or timestamp > self._clock:
            self._clock = timestamp

    # Result

    def finish(
        self,
        source_name: str,
        archive: AttachmentSource | None = None,
        stats: ParseStats | None = None,
    ) -> Trace:
        """Freeze everything consumed so far into a Trace.

        Actions still open stay open; no end time is invented for them.
        """
        actions = tuple(pending.freeze() for pending in self._actions)
        unattributed = UnattributedEvents(
            network=tuple(self._loose_network),
            console=tuple(self._loose_console),
            errors=tuple(self._loose_errors),
        )
        stats = stats or ParseStats()
        diagnostics = TraceDiagnostics(
            total_lines=stats.total_lines,
            malformed_lines=stats.malformed_lines,
            downgraded_events=stats.downgraded_events,
            unknown_events=stats.unknown_events,
            open_actions=sum(1 for a in actions if a.status is ActionStatus.OPEN),
            unpaired_actions=sum(1 for a in actions if a.status is ActionStatus.UNPAIRED),
            unattributed_events=len(unattributed),
            evicted_open_actions=self._evicted,
        )
        summary = self._summary(actions)

        logger.info(
            "Assembled trace",
            extra={
                "context": {
                    "source": source_name,
                    "actions": len(actions),
                    "open": diagnostics.open_actions,
                    "unpaired": diagnostics.unpaired_actions,
                    "unattributed": diagnostics.unattributed_events,
                }
            },
        )
        return Trace(
            source_name=source_name,
            actions=actions,
            summary=summary,
            unattributed=unattributed,
            diagnostics=diagnostics,
            archive=archive,
        )

    def _summary(self, actions: tuple[Action, ...]) -> TraceSummary:
        fields = self._summary_fields
        starts = [a.start_time for a in actions if not a.is_unpaired]
        ends = [a.end_time for a in actions if a.end_time is not None]

        start_time = fields.get("start_time")
        if start_time is None and starts:
            start_time = min(starts)
        end_time = max(ends) if ends else None

        duration = fields.get("duration")
        if duration is None and start_time is not None and end_time is not None:
            duration = max(end_time - start_time, 0.0)

        return TraceSummary(
            title=fields.get("title"),
            browser_name=fields.get("browser_name"),
            platform=fields.get("platform"),
            playwright_version=fields.get("playwright_version"),
            wall_time=fields.get("wall_time"),
            start_time=start_time,
            end_time=end_time,
            duration=duration,
        )


def _network_entry(event: NetworkRequestEvent | NetworkResponseEvent) -> NetworkEntry:
    if isinstance(event, NetworkRequestEvent):
        return NetworkEntry(
            phase="request",
            method=event.method,
            url=event.url,
            timestamp=event.timestamp,
        )
    return NetworkEntry(
        phase="response",
        method=event.method,
        url=event.url,
        timestamp=event.timestamp,
        status=event.status,
        status_text=event.status_text,
        duration=event.duration,
        failure=event.failure,
        body=event.body,
    )
