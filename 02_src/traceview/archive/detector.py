"""Single-trace versus report-bundle detection."""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath

from ..config import REPORT_BUNDLE_PATTERN, BundlePattern
from ..logging_config import get_logger
from .reader import ArchiveReader, IArchive

logger = get_logger(__name__)


class SourceKind(str, Enum):
    """How a trace source reaches its archive."""

    DIRECT = "direct"  # the uploaded archive is the trace
    NESTED = "nested"  # an entry of the upload is itself a trace archive


@dataclass(frozen=True)
class TraceSource:
    """A named trace inside an upload, opened lazily."""

    name: str
    kind: SourceKind
    archive: IArchive
    entry: str | None = None

    def open(self, reader: ArchiveReader | None = None) -> IArchive:
        """Return the archive holding this trace's event logs.

        For nested sources this extracts the entry and opens it, raising
        CorruptArchive or EntryNotFound when that fails.
        """
        if self.kind is SourceKind.DIRECT:
            return self.archive
        reader = reader or ArchiveReader()
        data = self.archive.read(self.entry)
        return reader.open(data, name=self.entry)


def source_name_for(entry: str) -> str:
    """Display name for a nested trace entry: data/run-1.zip -> run-1."""
    return PurePosixPath(entry).stem or entry


class TraceSetDetector:
    """Decides whether an archive is one trace or a bundle of traces."""

    def __init__(self, pattern: BundlePattern = REPORT_BUNDLE_PATTERN):
        self._pattern = pattern

    def detect(self, archive: IArchive, name: str | None = None) -> list[TraceSource]:
        """Ordered trace sources for an archive.

        Only entry names are inspected here; nested archives are not
        decompressed until their source is opened.
        """
        nested = [entry for entry in archive.list() if self._pattern.matches(entry)]

        if not nested:
            logger.info(
                "Detected single trace archive",
                extra={"context": {"archive": archive.name}},
            )
            return [
                TraceSource(
                    name=name or archive.name,
                    kind=SourceKind.DIRECT,
                    archive=archive,
                )
            ]

        logger.info(
            "Detected report bundle",
            extra={"context": {"archive": archive.name, "nested": len(nested)}},
        )
        return [
            TraceSource(
                name=source_name_for(entry),
                kind=SourceKind.NESTED,
                archive=archive,
                entry=entry,
            )
            for entry in nested
        ]
