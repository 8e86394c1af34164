"""Line-delimited JSON event log parsing."""

import base64
import binascii
import io
import json
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from ..config import RESOURCES_PREFIX
from ..errors import MalformedEvent
from ..logging_config import get_logger
from ..models import (
    ActionBegin,
    ActionEnd,
    AttachmentRef,
    ConsoleEvent,
    ErrorEvent,
    ErrorInfo,
    Event,
    EventKind,
    LogEvent,
    MetadataEvent,
    NetworkRequestEvent,
    NetworkResponseEvent,
    UnknownEvent,
)

logger = get_logger(__name__)

# Discriminator value -> event kind. Playwright names first, generic names after.
KIND_TABLE: dict[str, EventKind] = {
    "before": EventKind.ACTION_BEGIN,
    "action-begin": EventKind.ACTION_BEGIN,
    "after": EventKind.ACTION_END,
    "action-end": EventKind.ACTION_END,
    "log": EventKind.LOG,
    "console": EventKind.CONSOLE,
    "stdout": EventKind.CONSOLE,
    "stderr": EventKind.CONSOLE,
    "request": EventKind.NETWORK_REQUEST,
    "network-request": EventKind.NETWORK_REQUEST,
    "resource-snapshot": EventKind.NETWORK_RESPONSE,
    "response": EventKind.NETWORK_RESPONSE,
    "network-response": EventKind.NETWORK_RESPONSE,
    "error": EventKind.ERROR,
    "context-options": EventKind.METADATA,
    "metadata": EventKind.METADATA,
}

# Known record types this viewer does not model.
IGNORED_TYPES = frozenset(
    {"screencast-frame", "input", "event", "frame-snapshot", "action", "object"}
)


@dataclass
class ParseStats:
    """Counters accumulated over every stream a parser has read."""

    total_lines: int = 0
    malformed_lines: int = 0
    downgraded_events: int = 0
    unknown_events: int = 0


# Field helpers


def _first(record: dict, *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _text(record: dict, *keys: str) -> str | None:
    value = _first(record, *keys)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _require_text(record: dict, *keys: str) -> str:
    value = _text(record, *keys)
    if value is None:
        raise MalformedEvent(f"missing required field {keys[0]!r}")
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # 1e999 decodes to inf
    return number if math.isfinite(number) else None


def _timestamp(record: dict, *keys: str) -> float | None:
    for key in keys:
        value = _number(record.get(key))
        if value is not None:
            return value
    return None


def _status(value: Any) -> int | None:
    number = _number(value)
    return int(number) if number is not None else None


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _error_info(value: Any, origin_id: str | None = None) -> ErrorInfo | None:
    """Decode the error shapes seen in traces.

    Accepts a plain string, {"message", "stack"}, or the serialized form
    {"error": {"message", "stack"}} / {"value": ...}.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return ErrorInfo(message=value, origin_id=origin_id)
    if not isinstance(value, dict):
        return ErrorInfo(message=str(value), origin_id=origin_id)

    inner = _dict(value.get("error"))
    message = _text(inner, "message") or _text(value, "message")
    stack = _text(inner, "stack") or _text(value, "stack")
    if message is None:
        fallback = _first(value, "value", "name")
        message = str(fallback) if fallback is not None else "Unknown error"
    return ErrorInfo(message=message, stack=stack, origin_id=origin_id)


def _attachment(value: Any) -> AttachmentRef | None:
    if not isinstance(value, dict):
        return None
    sha1 = _text(value, "sha1")
    entry = f"{RESOURCES_PREFIX}{sha1}" if sha1 else _text(value, "path")
    if not entry:
        return None
    return AttachmentRef(
        name=_text(value, "name") or entry,
        entry=entry,
        content_type=_text(value, "contentType"),
    )


# Decoders, one per kind. Each raises MalformedEvent on missing required fields.


def _decode_action_begin(record: dict, line: int) -> ActionBegin:
    call_id = _require_text(record, "callId", "id")
    method = _text(record, "method")
    return ActionBegin(
        id=call_id,
        name=method or _text(record, "name", "apiName", "title") or "(unnamed)",
        timestamp=_timestamp(record, "startTime", "timestamp", "time"),
        params=_dict(record.get("params")),
        title=_text(record, "title", "apiName"),
        class_name=_text(record, "class"),
        page_id=_text(record, "pageId"),
        parent_id=_text(record, "parentId"),
        line=line,
    )


def _decode_action_end(record: dict, line: int) -> ActionEnd:
    call_id = _require_text(record, "callId", "id")
    attachments = record.get("attachments")
    refs: tuple[AttachmentRef, ...] = ()
    if isinstance(attachments, list):
        refs = tuple(ref for ref in map(_attachment, attachments) if ref is not None)
    return ActionEnd(
        id=call_id,
        timestamp=_timestamp(record, "endTime", "timestamp", "time"),
        error=_error_info(record.get("error"), origin_id=call_id),
        attachments=refs,
        line=line,
    )


def _decode_log(record: dict, line: int) -> LogEvent:
    return LogEvent(
        message=_require_text(record, "message", "text"),
        timestamp=_timestamp(record, "time", "timestamp"),
        id=_text(record, "callId", "id"),
        line=line,
    )


def _decode_console(record: dict, line: int) -> ConsoleEvent:
    type_name = record.get("type") or record.get("kind")
    if type_name in ("stdout", "stderr"):
        text = _text(record, "text")
        if text is None and isinstance(record.get("base64"), str):
            try:
                text = base64.b64decode(record["base64"]).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError) as e:
                raise MalformedEvent(f"undecodable base64 payload: {e}") from e
        if text is None:
            raise MalformedEvent("missing required field 'text'")
        return ConsoleEvent(
            text=text,
            severity="info" if type_name == "stdout" else "warning",
            source=type_name,
            timestamp=_timestamp(record, "timestamp", "time"),
            line=line,
        )

    return ConsoleEvent(
        text=_require_text(record, "text", "message"),
        severity=(_text(record, "messageType", "severity", "level") or "log").lower(),
        source="console",
        timestamp=_timestamp(record, "time", "timestamp"),
        page_id=_text(record, "pageId"),
        line=line,
    )


def _decode_network_request(record: dict, line: int) -> NetworkRequestEvent:
    request = _dict(record.get("request")) or record
    return NetworkRequestEvent(
        method=(_text(request, "method") or "GET").upper(),
        url=_require_text(request, "url"),
        timestamp=_timestamp(record, "timestamp", "time", "_monotonicTime"),
        id=_text(record, "requestId", "id"),
        line=line,
    )


def _decode_network_response(record: dict, line: int) -> NetworkResponseEvent:
    snapshot = _dict(record.get("snapshot"))
    if snapshot:
        # HAR-shaped entry from a *.network log
        timestamp = _timestamp(snapshot, "_monotonicTime")
        if timestamp is None:
            timestamp = _timestamp(record, "timestamp", "time")
        request = _dict(snapshot.get("request"))
        response = _dict(snapshot.get("response"))
        content = _dict(response.get("content"))
        sha1 = _text(content, "_sha1")
        body = (
            AttachmentRef(
                name="response body",
                entry=f"{RESOURCES_PREFIX}{sha1}",
                content_type=_text(content, "mimeType"),
            )
            if sha1
            else None
        )
        return NetworkResponseEvent(
            method=(_text(request, "method") or "GET").upper(),
            url=_require_text(request, "url"),
            timestamp=timestamp,
            status=_status(response.get("status")),
            status_text=_text(response, "statusText"),
            duration=_number(snapshot.get("time")),
            failure=_text(response, "_failureText"),
            body=body,
            line=line,
        )

    return NetworkResponseEvent(
        method=(_text(record, "method") or "GET").upper(),
        url=_require_text(record, "url"),
        timestamp=_timestamp(record, "timestamp", "time"),
        status=_status(record.get("status")),
        status_text=_text(record, "statusText"),
        duration=_number(record.get("duration")),
        failure=_text(record, "failure", "failureText"),
        id=_text(record, "requestId", "id"),
        line=line,
    )


def _decode_error(record: dict, line: int) -> ErrorEvent:
    call_id = _text(record, "callId", "id")
    if record.get("message") is not None:
        info = ErrorInfo(message=str(record["message"]), stack=_text(record, "stack"))
    else:
        info = _error_info(record.get("error"))
    if info is None:
        raise MalformedEvent("missing required field 'message'")
    return ErrorEvent(
        message=info.message,
        stack=info.stack,
        timestamp=_timestamp(record, "time", "timestamp"),
        id=call_id,
        line=line,
    )


_METADATA_FIELDS = {
    "title": ("title",),
    "browser_name": ("browserName",),
    "platform": ("platform",),
    "playwright_version": ("playwrightVersion",),
    "wall_time": ("wallTime",),
    "start_time": ("monotonicTime", "startTime"),
    "duration": ("duration",),
}
_NUMERIC_METADATA = {"wall_time", "start_time", "duration"}


def _decode_metadata(record: dict, line: int) -> MetadataEvent:
    fields: dict[str, Any] = {}
    for field_name, keys in _METADATA_FIELDS.items():
        if field_name in _NUMERIC_METADATA:
            value = _timestamp(record, *keys)
        else:
            value = _text(record, *keys)
        if value is not None:
            fields[field_name] = value
    return MetadataEvent(
        fields=fields,
        timestamp=_timestamp(record, "monotonicTime", "timestamp", "time"),
        line=line,
    )


DECODERS: dict[EventKind, Callable[[dict, int], Event]] = {
    EventKind.ACTION_BEGIN: _decode_action_begin,
    EventKind.ACTION_END: _decode_action_end,
    EventKind.LOG: _decode_log,
    EventKind.CONSOLE: _decode_console,
    EventKind.NETWORK_REQUEST: _decode_network_request,
    EventKind.NETWORK_RESPONSE: _decode_network_response,
    EventKind.ERROR: _decode_error,
    EventKind.METADATA: _decode_metadata,
}


class EventStreamParser:
    """Turns a line-delimited JSON event log into a lazy Event sequence.

    A parser may read several streams (e.g. sibling *.trace entries of one
    run); ``stats`` accumulates across all of them.
    """

    def __init__(self):
        self.stats = ParseStats()

    def parse(self, data: bytes | str, source: str = "<stream>") -> Iterator[Event]:
        """Yield events in file order. Bad lines are skipped and counted."""
        if isinstance(data, bytes):
            stream = io.TextIOWrapper(
                io.BytesIO(data), encoding="utf-8-sig", errors="replace", newline=""
            )
        else:
            stream = io.StringIO(data.lstrip("\ufeff"), newline="")

        malformed_before = self.stats.malformed_lines
        for line_no, raw_line in enumerate(stream, start=1):
            line = raw_line.strip()
            if not line:
                continue
            self.stats.total_lines += 1
            event = self._decode_line(line, line_no, source)
            if event is not None:
                yield event

        skipped = self.stats.malformed_lines - malformed_before
        if skipped:
            logger.warning(
                "Skipped malformed event lines",
                extra={"context": {"source": source, "skipped": skipped}},
            )

    def _decode_line(self, line: str, line_no: int, source: str) -> Event | None:
        try:
            record = json.loads(line, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            self._skip(source, line_no, f"invalid JSON: {e}")
            return None

        if not isinstance(record, dict):
            self._skip(source, line_no, "record is not a JSON object")
            return None

        type_name = record.get("type")
        if not isinstance(type_name, str):
            type_name = record.get("kind")
        if not isinstance(type_name, str) or not type_name:
            self._skip(source, line_no, "missing kind discriminator")
            return None

        kind = KIND_TABLE.get(type_name)
        if kind is None:
            self.stats.unknown_events += 1
            reason = "not modelled" if type_name in IGNORED_TYPES else "unrecognized kind"
            return UnknownEvent(
                type_name=type_name,
                reason=reason,
                raw=record,
                timestamp=_timestamp(record, "timestamp", "time"),
                line=line_no,
            )

        try:
            return DECODERS[kind](record, line_no)
        except MalformedEvent as e:
            self.stats.downgraded_events += 1
            logger.debug(
                "Downgraded event",
                extra={"context": {"source": source, "line": line_no, "type": type_name, "reason": e.message}},
            )
            return UnknownEvent(
                type_name=type_name,
                reason=e.message,
                raw=record,
                timestamp=_timestamp(record, "timestamp", "time"),
                line=line_no,
            )

    def _skip(self, source: str, line_no: int, reason: str) -> None:
        self.stats.malformed_lines += 1
        logger.debug(
            "Skipped event line",
            extra={"context": {"source": source, "line": line_no, "reason": reason}},
        )
