"""Markdown export of assembled traces."""

from .ansi import strip_ansi
from .markdown import (
    EXPORT_ERRORS_SUFFIX,
    EXPORT_EXTENSION,
    ExportFilter,
    MarkdownExporter,
    export_filename,
)

__all__ = [
    "EXPORT_ERRORS_SUFFIX",
    "EXPORT_EXTENSION",
    "ExportFilter",
    "MarkdownExporter",
    "export_filename",
    "strip_ansi",
]
