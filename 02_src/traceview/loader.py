"""Upload-to-model pipeline: archive -> trace sources -> events -> actions."""

from dataclasses import dataclass
from pathlib import PurePosixPath

from .archive import ArchiveReader, IArchive, SourceKind, TraceSetDetector, TraceSource
from .assembler import ActionAssembler
from .config import NETWORK_ENTRY_SUFFIX, RESOURCES_PREFIX, TRACE_ENTRY_SUFFIX
from .errors import EntryNotFound, TraceViewError
from .logging_config import get_logger
from .models import Trace, TraceModel
from .parser import EventStreamParser

logger = get_logger(__name__)

DEFAULT_UPLOAD_NAME = "trace.zip"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading one upload: a model, or an error kind and message."""

    model: TraceModel | None = None
    error_kind: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.model is not None

    @classmethod
    def success(cls, model: TraceModel) -> "LoadResult":
        return cls(model=model)

    @classmethod
    def failure(cls, error: TraceViewError) -> "LoadResult":
        return cls(error_kind=error.kind, message=error.message)


def upload_stem(name: str | None) -> str:
    """Base name of an upload without directories or extension."""
    if not name:
        return PurePosixPath(DEFAULT_UPLOAD_NAME).stem
    return PurePosixPath(name.replace("\\", "/")).stem or name


class TraceLoader:
    """Runs the whole load pipeline for one upload, synchronously."""

    def __init__(
        self,
        reader: ArchiveReader | None = None,
        detector: TraceSetDetector | None = None,
        max_open_actions: int | None = None,
    ):
        self._reader = reader or ArchiveReader()
        self._detector = detector or TraceSetDetector()
        self._max_open_actions = max_open_actions

    def load(self, data: bytes, name: str | None = None) -> LoadResult:
        """Load an upload; failures come back as data, never as exceptions."""
        try:
            model = self.load_model(data, name)
        except TraceViewError as e:
            logger.error(
                "Failed to load trace",
                extra={"context": {"upload": name, "kind": e.kind, "reason": e.message}},
            )
            return LoadResult.failure(e)
        return LoadResult.success(model)

    def load_model(self, data: bytes, name: str | None = None) -> TraceModel:
        """Load an upload or raise CorruptArchive / EntryNotFound."""
        name = name or DEFAULT_UPLOAD_NAME
        archive = self._reader.open(data, name=name)
        logger.info(
            "ZIP archive opened",
            extra={"context": {"upload": name, "entries": len(archive)}},
        )

        sources = self._detector.detect(archive, name=upload_stem(name))
        if len(sources) == 1 and sources[0].kind is SourceKind.DIRECT:
            return TraceModel([self.load_trace(archive, sources[0].name)])

        traces = [self._load_nested(source) for source in sources]
        degraded = sum(1 for trace in traces if trace.is_degraded)
        logger.info(
            "Loaded report bundle",
            extra={"context": {"upload": name, "traces": len(traces), "degraded": degraded}},
        )
        return TraceModel(traces)

    def load_trace(self, archive: IArchive, source_name: str) -> Trace:
        """Parse and assemble every event log of one trace archive."""
        entries = [e for e in archive.list() if not e.startswith(RESOURCES_PREFIX)]
        trace_entries = [e for e in entries if e.endswith(TRACE_ENTRY_SUFFIX)]
        network_entries = [e for e in entries if e.endswith(NETWORK_ENTRY_SUFFIX)]

        if not trace_entries:
            raise EntryNotFound(
                f"*{TRACE_ENTRY_SUFFIX}",
                f"No {TRACE_ENTRY_SUFFIX} file found in {archive.name}",
            )

        logger.info(
            "Found event logs",
            extra={
                "context": {
                    "source": source_name,
                    "trace_files": len(trace_entries),
                    "network_files": len(network_entries),
                }
            },
        )

        parser = EventStreamParser()
        assembler = ActionAssembler(max_open=self._max_open_actions)
        for entry in trace_entries:
            assembler.feed(parser.parse(archive.read(entry), source=entry))
        for entry in network_entries:
            assembler.attach_by_time(parser.parse(archive.read(entry), source=entry))

        return assembler.finish(source_name, archive=archive, stats=parser.stats)

    def _load_nested(self, source: TraceSource) -> Trace:
        """Load one bundle member; a failure degrades only this trace."""
        try:
            archive = source.open(self._reader)
            return self.load_trace(archive, source.name)
        except TraceViewError as e:
            logger.warning(
                "Nested trace could not be loaded",
                extra={"context": {"entry": source.entry, "kind": e.kind, "reason": e.message}},
            )
            return Trace(
                source_name=source.name,
                load_error=e.message,
                load_error_kind=e.kind,
            )
