"""Deterministic markdown rendering of assembled traces.

Output depends only on the Trace and the filter: parameter keys are sorted,
times are printed from the trace itself, and nothing reads the clock.
"""

import json
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath

from ..models import Action, ConsoleEntry, ErrorInfo, NetworkEntry, Trace, TraceModel
from .ansi import strip_ansi

EXPORT_EXTENSION = ".md"
EXPORT_ERRORS_SUFFIX = "_errors"
DEFAULT_EXPORT_BASE = "trace"

REPORT_HEADING = "Trace Report"

_BACKTICK_RUN = re.compile(r"`+")


class ExportFilter(str, Enum):
    """Which actions an export includes."""

    ALL = "all"
    ERRORS_ONLY = "errors_only"


def export_filename(base_name: str | None, errors_only: bool = False) -> str:
    """File name for an export: run.zip -> run.md / run_errors.md."""
    stem = ""
    if base_name:
        stem = PurePosixPath(base_name.replace("\\", "/")).stem.strip()
    stem = stem or DEFAULT_EXPORT_BASE
    suffix = EXPORT_ERRORS_SUFFIX if errors_only else ""
    return f"{stem}{suffix}{EXPORT_EXTENSION}"


def _ms(value: float) -> str:
    return f"{value:.0f}ms"


def _format_wall_time(wall_time: float) -> str:
    """Epoch milliseconds as UTC; raw milliseconds when out of datetime range."""
    try:
        started = datetime.fromtimestamp(wall_time / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return f"{wall_time:.0f} (epoch ms)"
    return f"{started:%Y-%m-%d %H:%M:%S} UTC"


def _fence(text: str, info: str = "") -> str:
    """Code block whose fence is longer than any backtick run inside it."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(text)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}{info}\n{text}\n{fence}\n"


def _one_line(text: str) -> str:
    return " ".join(strip_ansi(text).split())


class MarkdownExporter:
    """Renders Traces and TraceModels to markdown."""

    def included_actions(
        self, trace: Trace, filter: ExportFilter = ExportFilter.ALL
    ) -> list[tuple[int, Action]]:
        """(1-based position, action) pairs the filter keeps, in stored order."""
        return [
            (position, action)
            for position, action in enumerate(trace.actions, start=1)
            if filter is ExportFilter.ALL or action.has_error
        ]

    def render(self, trace: Trace, filter: ExportFilter = ExportFilter.ALL) -> str:
        """Render one trace as a standalone document."""
        lines: list[str] = []
        self._render_trace(lines, trace, filter, level=1)
        return "\n".join(lines).rstrip("\n") + "\n"

    def render_model(self, model: TraceModel, filter: ExportFilter = ExportFilter.ALL) -> str:
        """Render every trace of a model under one report heading."""
        lines = [f"# {REPORT_HEADING}", ""]
        for index, trace in enumerate(model.traces()):
            if index:
                lines.extend(["---", ""])
            self._render_trace(lines, trace, filter, level=2)
        return "\n".join(lines).rstrip("\n") + "\n"

    # Sections

    def _render_trace(self, lines: list[str], trace: Trace, filter: ExportFilter, level: int) -> None:
        h = "#" * level
        lines.extend([f"{h} {trace.title}", ""])
        self._render_info(lines, trace)

        if trace.is_degraded:
            return

        included = self.included_actions(trace, filter)
        errors_only = filter is ExportFilter.ERRORS_ONLY

        if trace.diagnostics.has_anomalies:
            self._render_diagnostics(lines, trace, f"{h}#")

        if errors_only and not included and not trace.unattributed.has_error:
            lines.extend(["*No errors found in this trace.*", ""])
            return

        if included:
            lines.extend([f"{h}# Actions", ""])
            for position, action in included:
                self._render_action(lines, position, action, f"{h}##")

        self._render_unattributed(lines, trace, errors_only, f"{h}#")

    def _render_info(self, lines: list[str], trace: Trace) -> None:
        summary = trace.summary
        info = [f"- **Source**: {trace.source_name}"]
        if summary.browser_name:
            info.append(f"- **Browser**: {summary.browser_name}")
        if summary.platform:
            info.append(f"- **Platform**: {summary.platform}")
        if summary.playwright_version:
            info.append(f"- **Playwright Version**: {summary.playwright_version}")
        if summary.wall_time is not None:
            info.append(f"- **Start Time**: {_format_wall_time(summary.wall_time)}")

        if trace.is_degraded:
            info.append(f"- **Load Error**: {trace.load_error_kind}: {trace.load_error}")
            lines.extend(info + [""])
            return

        if summary.duration is not None:
            info.append(f"- **Duration**: {summary.duration / 1000:.2f}s")
        else:
            info.append("- **Duration**: unknown")
        info.append(f"- **Total Actions**: {len(trace.actions)}")
        info.append(f"- **Failed Actions**: {len(trace.failed_actions)}")
        if trace.unattributed.errors:
            info.append(f"- **Unattributed Errors**: {len(trace.unattributed.errors)}")
        lines.extend(info + [""])

    def _render_diagnostics(self, lines: list[str], trace: Trace, heading: str) -> None:
        diagnostics = trace.diagnostics
        counters = [
            ("Open actions", diagnostics.open_actions),
            ("Unpaired end events", diagnostics.unpaired_actions),
            ("Unattributed events", diagnostics.unattributed_events),
            ("Skipped lines", diagnostics.malformed_lines),
            ("Downgraded events", diagnostics.downgraded_events),
            ("Untracked open actions", diagnostics.evicted_open_actions),
        ]
        lines.extend([f"{heading} Diagnostics", ""])
        lines.extend(f"- **{label}**: {count}" for label, count in counters if count)
        lines.append("")

    def _render_action(self, lines: list[str], position: int, action: Action, heading: str) -> None:
        marker = ""
        if action.has_error:
            marker = " ⚠️ FAILED"
        elif action.is_open:
            marker = " (open)"
        elif action.is_unpaired:
            marker = " (unpaired)"
        lines.extend([f"{heading} {position}. {action.name}{marker}", ""])

        details = [f"- **Start**: {_ms(action.start_time)}"]
        if action.duration is not None:
            details.append(f"- **Duration**: {_ms(action.duration)}")
        else:
            details.append("- **Duration**: unknown (never finished)")
        if action.title:
            details.append(f"- **Action**: {action.title}")
        if action.class_name:
            details.append(f"- **Class**: {action.class_name}")
        if action.parent_id:
            details.append(f"- **Parent**: {action.parent_id}")
        details.append(f"- **Call ID**: {action.id}")
        if action.is_unpaired:
            details.append("- **Status**: end event without a matching begin")
        lines.extend(details + [""])

        if action.params:
            params = json.dumps(action.params, indent=2, sort_keys=True, ensure_ascii=False, default=str)
            lines.extend(["**Parameters**:", "", _fence(params, "json")])

        if action.network:
            lines.extend(["**Network**:", ""])
            lines.extend(self._network_line(entry) for entry in action.network)
            lines.append("")

        if action.console:
            lines.extend(["**Console**:", ""])
            lines.extend(self._console_line(entry) for entry in action.console)
            lines.append("")

        if action.attachments:
            lines.extend(["**Attachments**:", ""])
            for ref in action.attachments:
                kind = f", {ref.content_type}" if ref.content_type else ""
                lines.append(f"- {ref.name} (`{ref.entry}`{kind})")
            lines.append("")

        for index, error in enumerate(action.errors):
            label = "**Error**:" if len(action.errors) == 1 else f"**Error {index + 1}**:"
            lines.extend([label, "", self._error_block(error)])

        lines.extend(["---", ""])

    def _render_unattributed(self, lines: list[str], trace: Trace, errors_only: bool, heading: str) -> None:
        loose = trace.unattributed
        network = [e for e in loose.network if e.is_error or not errors_only]
        console = [e for e in loose.console if e.is_error or not errors_only]
        if not (network or console or loose.errors):
            return

        lines.extend([f"{heading} Unattributed Events", ""])
        if network:
            lines.extend(["**Network**:", ""])
            lines.extend(self._network_line(entry) for entry in network)
            lines.append("")
        if console:
            lines.extend(["**Console**:", ""])
            lines.extend(self._console_line(entry) for entry in console)
            lines.append("")
        for index, error in enumerate(loose.errors, start=1):
            lines.extend([f"**Error {index}**:", "", self._error_block(error)])

    # Lines

    def _network_line(self, entry: NetworkEntry) -> str:
        parts = [f"- {entry.method} {entry.url}"]
        if entry.phase == "request":
            parts.append("(request)")
        if entry.status is not None:
            status = str(entry.status)
            if entry.status_text:
                status += f" {entry.status_text}"
            parts.append(f"-> {status}")
        if entry.failure:
            parts.append(f"failed: {_one_line(entry.failure)}")
        if entry.duration is not None:
            parts.append(f"({_ms(entry.duration)})")
        return " ".join(parts)

    def _console_line(self, entry: ConsoleEntry) -> str:
        at = f"{_ms(entry.timestamp)} " if entry.timestamp is not None else ""
        return f"- {at}[{entry.severity}] {_one_line(entry.text)}"

    def _error_block(self, error: ErrorInfo) -> str:
        text = strip_ansi(error.message)
        if error.stack:
            text += "\n\nStack trace:\n" + strip_ansi(error.stack)
        return _fence(text)
