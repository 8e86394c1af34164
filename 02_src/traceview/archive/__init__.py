"""Archive access and trace-set detection."""

from .detector import SourceKind, TraceSetDetector, TraceSource
from .reader import ArchiveHandle, ArchiveReader, IArchive

__all__ = [
    "ArchiveHandle",
    "ArchiveReader",
    "IArchive",
    "SourceKind",
    "TraceSetDetector",
    "TraceSource",
]
