"""Viewer state: the current upload and what can be done with it."""

from typing import Protocol

from .errors import NoTraceLoaded
from .exporter import ExportFilter, MarkdownExporter, export_filename
from .loader import LoadResult, TraceLoader, upload_stem
from .logging_config import get_logger
from .models import Trace, TraceModel

logger = get_logger(__name__)


class ITraceViewer(Protocol):
    """Holds one upload at a time; a new upload replaces the previous one."""

    def load(self, data: bytes, filename: str | None = None) -> LoadResult:
        """Load an upload and make it current."""
        ...

    def reset(self) -> None:
        """Discard the current upload."""
        ...

    @property
    def model(self) -> TraceModel:
        """Model of the current upload."""
        ...


class TraceViewer:
    """Main application object behind the HTTP API and the CLI."""

    def __init__(
        self,
        loader: TraceLoader | None = None,
        exporter: MarkdownExporter | None = None,
    ):
        self._loader = loader or TraceLoader()
        self._exporter = exporter or MarkdownExporter()
        self._result: LoadResult | None = None
        self._filename: str | None = None

    def load(self, data: bytes, filename: str | None = None) -> LoadResult:
        """Load an upload and make it current, even when it failed."""
        logger.info(
            "Loading upload",
            extra={"context": {"filename": filename, "bytes": len(data)}},
        )
        result = self._loader.load(data, filename)
        # A failed upload also discards the previous model
        self._result, self._filename = result, filename
        return result

    def reset(self) -> None:
        """Discard the current upload."""
        self._result = None
        self._filename = None
        logger.info("Viewer reset")

    @property
    def result(self) -> LoadResult | None:
        return self._result

    @property
    def filename(self) -> str | None:
        return self._filename

    @property
    def model(self) -> TraceModel:
        if self._result is None:
            raise NoTraceLoaded("No trace has been loaded")
        if self._result.model is None:
            raise NoTraceLoaded(f"Last upload failed: {self._result.message}")
        return self._result.model

    def trace(self, index: int) -> Trace:
        return self.model.trace(index)

    def export_trace(self, index: int, errors_only: bool = False) -> tuple[str, str]:
        """(file name, markdown) for one trace."""
        model = self.model
        trace = model.trace(index)
        filter = ExportFilter.ERRORS_ONLY if errors_only else ExportFilter.ALL
        base = self._filename if len(model) == 1 else f"{upload_stem(self._filename)}-{trace.source_name}"
        return export_filename(base, errors_only), self._exporter.render(trace, filter)

    def export_model(self, errors_only: bool = False) -> tuple[str, str]:
        """(file name, markdown) for every trace of the current upload."""
        filter = ExportFilter.ERRORS_ONLY if errors_only else ExportFilter.ALL
        markdown = self._exporter.render_model(self.model, filter)
        return export_filename(self._filename, errors_only), markdown

    def read_attachment(self, index: int, entry: str) -> bytes:
        """Raw bytes of an archive entry belonging to one trace."""
        return self.model.trace(index).read_attachment(entry)
