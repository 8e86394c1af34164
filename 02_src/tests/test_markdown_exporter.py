"""Tests for MarkdownExporter."""

import pytest

from conftest import jsonl, make_zip
from traceview.exporter import ExportFilter, MarkdownExporter, export_filename, strip_ansi
from traceview.models import Action, ActionStatus, ConsoleEntry, ErrorInfo, Trace, TraceModel, TraceSummary


@pytest.fixture
def login_trace(loader, trace_zip):
    """The sample login trace, loaded."""
    return loader.load(trace_zip, "run.zip").model.trace(0)


@pytest.fixture
def exporter():
    return MarkdownExporter()


class TestExportFilename:
    """Tests for export_filename()."""

    def test_all(self):
        assert export_filename("run.zip") == "run.md"

    def test_errors_only(self):
        assert export_filename("run.zip", errors_only=True) == "run_errors.md"

    def test_directories_stripped(self):
        assert export_filename("reports/nightly/run.zip") == "run.md"
        assert export_filename("C:\\Users\\me\\run.zip") == "run.md"

    def test_missing_name(self):
        assert export_filename(None) == "trace.md"
        assert export_filename("", errors_only=True) == "trace_errors.md"


class TestRenderAll:
    """Tests for rendering with ExportFilter.ALL."""

    def test_heading_and_info(self, exporter, login_trace):
        """Test the trace heading block."""
        md = exporter.render(login_trace)

        assert md.startswith("# login test\n")
        assert "- **Source**: run" in md
        assert "- **Browser**: chromium" in md
        assert "- **Platform**: linux" in md
        assert "- **Playwright Version**: 1.40.0" in md
        assert "- **Start Time**: 2023-11-14 22:13:20 UTC" in md
        assert "- **Duration**: 0.90s" in md
        assert "- **Total Actions**: 2" in md
        assert "- **Failed Actions**: 1" in md

    def test_actions_in_order(self, exporter, login_trace):
        """Test that every action gets a numbered section."""
        md = exporter.render(login_trace)

        assert "### 1. goto\n" in md
        assert "### 2. click ⚠️ FAILED\n" in md
        assert md.index("### 1. goto") < md.index("### 2. click")

    def test_action_details(self, exporter, login_trace):
        """Test timing, parameters, nested entries and the error block."""
        md = exporter.render(login_trace)

        assert "- **Start**: 1600ms" in md
        assert "- **Duration**: 300ms" in md
        assert "- **Action**: Click submit" in md
        assert "- **Class**: Frame" in md
        assert "- **Call ID**: call@2" in md
        assert '"selector": "#submit"' in md
        assert "- POST https://example.com/api/session -> 500 Internal Server Error (80ms)" in md
        assert "- GET https://example.com/login -> 200 OK (42ms)" in md
        assert "- 1610ms [log] waiting for locator('#submit')" in md
        assert "- screenshot (`resources/shot.png`, image/png)" in md
        assert "Timeout 30000ms exceeded\n\nStack trace:\nError: Timeout\n    at click" in md

    def test_unattributed_section(self, exporter, login_trace):
        """Test that events outside every action are listed."""
        md = exporter.render(login_trace)

        assert "## Unattributed Events" in md
        assert "- GET https://example.com/analytics -> 204 No Content" in md

    def test_diagnostics_section(self, exporter, login_trace):
        """Test that recovered anomalies are summarized."""
        md = exporter.render(login_trace)

        assert "## Diagnostics" in md
        assert "- **Unattributed events**: 1" in md

    def test_deterministic(self, exporter, login_trace):
        """Test that identical inputs render identical bytes."""
        assert exporter.render(login_trace) == exporter.render(login_trace)
        assert exporter.render(login_trace, ExportFilter.ERRORS_ONLY) == exporter.render(
            login_trace, ExportFilter.ERRORS_ONLY
        )

    def test_single_trailing_newline(self, exporter, login_trace):
        md = exporter.render(login_trace)
        assert md.endswith("\n")
        assert not md.endswith("\n\n")


class TestRenderErrorsOnly:
    """Tests for rendering with ExportFilter.ERRORS_ONLY."""

    def test_only_failed_actions(self, exporter, login_trace):
        """Test that passing actions are left out, keeping positions."""
        md = exporter.render(login_trace, ExportFilter.ERRORS_ONLY)

        assert "goto" not in md.split("## Actions", 1)[1]
        assert "### 2. click ⚠️ FAILED" in md

    def test_included_action_rendered_in_full(self, exporter, login_trace):
        """Test that an included action keeps all of its detail."""
        md = exporter.render(login_trace, ExportFilter.ERRORS_ONLY)

        assert '"selector": "#submit"' in md
        assert "- 1610ms [log] waiting for locator('#submit')" in md
        assert "- screenshot (`resources/shot.png`, image/png)" in md

    def test_non_error_unattributed_hidden(self, exporter, login_trace):
        md = exporter.render(login_trace, ExportFilter.ERRORS_ONLY)
        assert "analytics" not in md

    def test_subset_of_all(self, exporter, login_trace):
        """Test that the errors-only selection is a subset of the full one."""
        all_ids = {a.id for _, a in exporter.included_actions(login_trace, ExportFilter.ALL)}
        error_ids = {a.id for _, a in exporter.included_actions(login_trace, ExportFilter.ERRORS_ONLY)}
        assert error_ids <= all_ids
        assert error_ids == {"call@2"}

    def test_console_error_qualifies(self, exporter):
        """Test that an error-severity console entry includes an action."""
        trace = Trace(
            source_name="t",
            actions=(
                Action(id="a", name="ok", start_time=0, end_time=1, status=ActionStatus.CLOSED),
                Action(
                    id="b",
                    name="noisy",
                    start_time=1,
                    end_time=2,
                    status=ActionStatus.CLOSED,
                    console=(ConsoleEntry(text="Uncaught TypeError", severity="error", source="console"),),
                ),
            ),
        )
        included = exporter.included_actions(trace, ExportFilter.ERRORS_ONLY)
        assert [(pos, a.id) for pos, a in included] == [(2, "b")]

    def test_no_errors_message(self, exporter):
        """Test the placeholder for a clean trace."""
        trace = Trace(
            source_name="clean",
            actions=(Action(id="a", name="goto", start_time=0, end_time=5, status=ActionStatus.CLOSED),),
        )
        md = exporter.render(trace, ExportFilter.ERRORS_ONLY)

        assert "*No errors found in this trace.*" in md
        assert "## Actions" not in md


class TestRenderEdgeCases:
    """Tests for unusual actions and traces."""

    def test_open_and_unpaired_markers(self, exporter):
        trace = Trace(
            source_name="t",
            actions=(
                Action(id="a", name="waitFor", start_time=10, end_time=None, status=ActionStatus.OPEN),
                Action(id="5", name="(unpaired end)", start_time=20, end_time=20, status=ActionStatus.UNPAIRED),
            ),
        )
        md = exporter.render(trace)

        assert "### 1. waitFor (open)" in md
        assert "- **Duration**: unknown (never finished)" in md
        assert "### 2. (unpaired end) (unpaired)" in md
        assert "- **Status**: end event without a matching begin" in md

    def test_degraded_trace(self, exporter):
        """Test that a trace that failed to load shows its reason only."""
        trace = Trace(source_name="broken", load_error="not a zip", load_error_kind="corrupt_archive")
        md = exporter.render(trace)

        assert "# broken" in md
        assert "- **Load Error**: corrupt_archive: not a zip" in md
        assert "Actions" not in md

    def test_wall_time_out_of_range(self, exporter):
        """Test that a start time beyond datetime range is printed raw."""
        trace = Trace(
            source_name="t",
            actions=(Action(id="a", name="goto", start_time=0, end_time=5, status=ActionStatus.CLOSED),),
            summary=TraceSummary(wall_time=1e20),
        )
        md = exporter.render(trace)

        assert "- **Start Time**: 100000000000000000000 (epoch ms)" in md
        assert "### 1. goto" in md

    def test_huge_wall_time_from_archive(self, exporter, loader):
        """Test that an upload with an out-of-range wallTime still exports."""
        data = make_zip(
            {
                "t.trace": jsonl(
                    {"type": "context-options", "wallTime": 1e20},
                    {"type": "before", "callId": "a", "startTime": 1, "method": "goto"},
                    {"type": "after", "callId": "a", "endTime": 2},
                )
            }
        )
        md = exporter.render_model(loader.load(data, "t.zip").model)

        assert "(epoch ms)" in md
        assert "### 1. goto" in md

    def test_fence_longer_than_content_backticks(self, exporter):
        """Test that parameter values with backticks cannot break the code block."""
        trace = Trace(
            source_name="t",
            actions=(
                Action(
                    id="a",
                    name="evaluate",
                    start_time=0,
                    end_time=1,
                    status=ActionStatus.CLOSED,
                    params={"expression": "```js\nalert(1)\n```"},
                ),
            ),
        )
        md = exporter.render(trace)
        assert "````json\n" in md

    def test_ansi_stripped_from_errors(self, exporter):
        trace = Trace(
            source_name="t",
            actions=(
                Action(
                    id="a",
                    name="expect",
                    start_time=0,
                    end_time=1,
                    status=ActionStatus.CLOSED,
                    errors=(ErrorInfo(message="\x1b[31mExpected\x1b[39m: 1"),),
                ),
            ),
        )
        md = exporter.render(trace)
        assert "Expected: 1" in md
        assert "\x1b" not in md

    def test_parameters_sorted(self, exporter):
        trace = Trace(
            source_name="t",
            actions=(
                Action(id="a", name="fill", start_time=0, end_time=1, status=ActionStatus.CLOSED,
                       params={"b": 1, "a": 2}),
            ),
        )
        md = exporter.render(trace)
        assert md.index('"a": 2') < md.index('"b": 1')


class TestRenderModel:
    """Tests for MarkdownExporter.render_model()."""

    def test_bundle_report(self, exporter, loader, bundle_zip):
        """Test that every trace of a bundle appears under one report."""
        model = loader.load(bundle_zip, "report.zip").model
        md = exporter.render_model(model)

        assert md.startswith("# Trace Report\n")
        assert md.count("## login test") == 2
        assert "- **Source**: first" in md
        assert "- **Source**: second" in md
        assert "\n---\n\n## login test" in md

    def test_empty_model(self, exporter):
        assert exporter.render_model(TraceModel([])) == "# Trace Report\n"


class TestStripAnsi:
    """Tests for strip_ansi()."""

    def test_colors(self):
        assert strip_ansi("\x1b[1;31mFAIL\x1b[0m done") == "FAIL done"

    def test_hyperlink(self):
        assert strip_ansi("\x1b]8;;https://x\x07link\x1b]8;;\x07") == "link"

    def test_plain_text_untouched(self):
        assert strip_ansi("no escapes [here]") == "no escapes [here]"
