"""ZIP container access over an in-memory buffer."""

import io
import zipfile
import zlib
from typing import Protocol

from ..errors import CorruptArchive, EntryNotFound
from ..logging_config import get_logger

logger = get_logger(__name__)

_IGNORED_PREFIXES = ("__MACOSX/",)


class IArchive(Protocol):
    """Read-only view of an opened archive."""

    name: str

    def list(self) -> list[str]:
        """Entry names in enumeration order (directories excluded)."""
        ...

    def read(self, name: str) -> bytes:
        """Return the bytes of a named entry."""
        ...

    def contains(self, name: str) -> bool:
        """Whether the archive has an entry with this name."""
        ...


class ArchiveHandle:
    """An opened ZIP container. Never writes, never touches the filesystem."""

    def __init__(self, zip_file: zipfile.ZipFile, name: str):
        self._zip = zip_file
        self.name = name
        self._entries = [
            info.filename
            for info in zip_file.infolist()
            if not info.is_dir() and not info.filename.startswith(_IGNORED_PREFIXES)
        ]
        self._entry_set = set(self._entries)

    def list(self) -> list[str]:
        """Entry names in enumeration order (directories excluded)."""
        return list(self._entries)

    def contains(self, name: str) -> bool:
        return name in self._entry_set

    def size(self, name: str) -> int:
        """Uncompressed size from the central directory (no decompression)."""
        if name not in self._entry_set:
            raise EntryNotFound(name)
        return self._zip.getinfo(name).file_size

    def read(self, name: str) -> bytes:
        """Return the bytes of a named entry."""
        if name not in self._entry_set:
            raise EntryNotFound(name)
        try:
            return self._zip.read(name)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise CorruptArchive(f"Failed to read {name} from {self.name}: {e}") from e
        except (NotImplementedError, RuntimeError) as e:
            # Unsupported compression method or encrypted entry
            raise CorruptArchive(f"Cannot decode {name} from {self.name}: {e}") from e

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ArchiveHandle(name={self.name!r}, entries={len(self._entries)})"


class ArchiveReader:
    """Opens byte buffers as ZIP archives."""

    def open(self, data: bytes, name: str = "archive") -> ArchiveHandle:
        """Open a buffer as a ZIP archive or fail with CorruptArchive."""
        if not data:
            raise CorruptArchive(f"{name} is empty")
        try:
            zip_file = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
            raise CorruptArchive(f"{name} is not a valid ZIP archive: {e}") from e

        handle = ArchiveHandle(zip_file, name)
        logger.debug(
            "Archive opened",
            extra={"context": {"archive": name, "entries": len(handle)}},
        )
        return handle
