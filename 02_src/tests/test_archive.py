"""Tests for ArchiveReader and TraceSetDetector."""

import pytest

from conftest import make_zip
from traceview.archive import ArchiveReader, SourceKind, TraceSetDetector
from traceview.errors import CorruptArchive, EntryNotFound


class TestArchiveReader:
    """Tests for ArchiveReader.open() and the returned handle."""

    def test_open_lists_entries_in_order(self):
        """Test that entries come back in enumeration order."""
        data = make_zip({"b.trace": "x", "a.network": "y", "resources/1": b"z"})
        archive = ArchiveReader().open(data, name="run.zip")

        assert archive.name == "run.zip"
        assert archive.list() == ["b.trace", "a.network", "resources/1"]
        assert len(archive) == 3

    def test_read_entry(self):
        """Test reading an entry's bytes."""
        archive = ArchiveReader().open(make_zip({"a.trace": "hello"}))
        assert archive.read("a.trace") == b"hello"
        assert archive.contains("a.trace")
        assert archive.size("a.trace") == 5

    def test_missing_entry_raises(self):
        """Test that reading an absent entry raises EntryNotFound."""
        archive = ArchiveReader().open(make_zip({"a.trace": "hello"}))

        with pytest.raises(EntryNotFound) as exc_info:
            archive.read("missing.trace")
        assert exc_info.value.name == "missing.trace"
        assert exc_info.value.kind == "entry_not_found"

    def test_garbage_bytes_are_corrupt(self):
        """Test that non-ZIP bytes raise CorruptArchive."""
        with pytest.raises(CorruptArchive) as exc_info:
            ArchiveReader().open(b"this is definitely not a zip file", name="junk.zip")
        assert "junk.zip" in exc_info.value.message

    def test_empty_buffer_is_corrupt(self):
        """Test that an empty upload raises CorruptArchive."""
        with pytest.raises(CorruptArchive):
            ArchiveReader().open(b"")

    def test_directories_and_macos_metadata_excluded(self):
        """Test that directory and __MACOSX entries are hidden."""
        data = make_zip({"dir/": "", "dir/a.trace": "x", "__MACOSX/._a.trace": "junk"})
        archive = ArchiveReader().open(data)
        assert archive.list() == ["dir/a.trace"]


class TestTraceSetDetector:
    """Tests for TraceSetDetector.detect()."""

    def test_single_trace(self):
        """Test that an archive without nested traces is one direct source."""
        archive = ArchiveReader().open(make_zip({"trace.trace": "{}"}), name="run.zip")
        sources = TraceSetDetector().detect(archive, name="run")

        assert len(sources) == 1
        assert sources[0].kind == SourceKind.DIRECT
        assert sources[0].name == "run"
        assert sources[0].open() is archive

    def test_report_bundle(self):
        """Test that data/*.zip entries become nested sources in archive order."""
        data = make_zip(
            {
                "index.html": "<html/>",
                "data/b-run.zip": make_zip({"x.trace": ""}),
                "data/a-run.zip": make_zip({"y.trace": ""}),
                "data/screenshot.png": b"png",
            }
        )
        archive = ArchiveReader().open(data, name="report.zip")
        sources = TraceSetDetector().detect(archive)

        assert [s.name for s in sources] == ["b-run", "a-run"]
        assert all(s.kind == SourceKind.NESTED for s in sources)
        assert sources[0].entry == "data/b-run.zip"

    def test_nested_source_opens_lazily(self):
        """Test that a nested source is only decompressed when opened."""
        data = make_zip({"data/broken.zip": b"not a zip"})
        archive = ArchiveReader().open(data)

        # Detection only looks at names
        sources = TraceSetDetector().detect(archive)
        assert len(sources) == 1

        with pytest.raises(CorruptArchive):
            sources[0].open()

    def test_zip_outside_reserved_prefix_is_not_nested(self):
        """Test that a ZIP outside data/ does not turn the archive into a bundle."""
        data = make_zip({"trace.trace": "", "attachments/other.zip": make_zip({"a": ""})})
        archive = ArchiveReader().open(data)
        sources = TraceSetDetector().detect(archive)

        assert len(sources) == 1
        assert sources[0].kind == SourceKind.DIRECT
