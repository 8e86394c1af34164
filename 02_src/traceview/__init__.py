"""traceview: load recorded execution traces and export them as markdown."""

from .app import ITraceViewer, TraceViewer
from .archive import ArchiveHandle, ArchiveReader, SourceKind, TraceSetDetector, TraceSource
from .assembler import ActionAssembler
from .errors import (
    CorruptArchive,
    EntryNotFound,
    MalformedEvent,
    NoTraceLoaded,
    TraceIndexOutOfRange,
    TraceViewError,
)
from .exporter import ExportFilter, MarkdownExporter, export_filename
from .loader import LoadResult, TraceLoader
from .models import (
    Action,
    ActionStatus,
    AttachmentRef,
    ConsoleEntry,
    ErrorInfo,
    Event,
    EventKind,
    NetworkEntry,
    Trace,
    TraceDiagnostics,
    TraceModel,
    TraceSummary,
    UnattributedEvents,
)
from .parser import EventStreamParser, ParseStats

__all__ = [
    # Application
    "ITraceViewer",
    "TraceViewer",
    "TraceLoader",
    "LoadResult",
    # Pipeline
    "ArchiveReader",
    "ArchiveHandle",
    "TraceSetDetector",
    "TraceSource",
    "SourceKind",
    "EventStreamParser",
    "ParseStats",
    "ActionAssembler",
    "MarkdownExporter",
    "ExportFilter",
    "export_filename",
    # Models
    "Event",
    "EventKind",
    "Action",
    "ActionStatus",
    "AttachmentRef",
    "ConsoleEntry",
    "ErrorInfo",
    "NetworkEntry",
    "Trace",
    "TraceDiagnostics",
    "TraceModel",
    "TraceSummary",
    "UnattributedEvents",
    # Errors
    "TraceViewError",
    "CorruptArchive",
    "EntryNotFound",
    "MalformedEvent",
    "NoTraceLoaded",
    "TraceIndexOutOfRange",
]
