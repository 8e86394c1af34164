"""Error taxonomy for trace loading."""


class TraceViewError(Exception):
    """Base class for all trace loading errors."""

    kind = "trace_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CorruptArchive(TraceViewError):
    """The buffer is not a readable ZIP container."""

    kind = "corrupt_archive"


class EntryNotFound(TraceViewError):
    """An expected entry is absent from the archive."""

    kind = "entry_not_found"

    def __init__(self, name: str, message: str | None = None):
        super().__init__(message or f"Entry not found in archive: {name}")
        self.name = name


class MalformedEvent(TraceViewError):
    """One event record is unusable. Recovered by the parser, never propagated."""

    kind = "malformed_event"


class TraceIndexOutOfRange(TraceViewError, IndexError):
    """Requested trace index does not exist in the model."""

    kind = "index_out_of_range"

    def __init__(self, index: int, count: int):
        super().__init__(f"Trace index {index} out of range (model has {count})")
        self.index = index
        self.count = count


class NoTraceLoaded(TraceViewError):
    """No successful upload is currently held."""

    kind = "no_trace_loaded"
