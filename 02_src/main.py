"""Main entry point for traceview."""

import argparse
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from traceview import TraceLoader
from traceview.api import create_fastapi_app
from traceview.exporter import ExportFilter, MarkdownExporter, export_filename
from traceview.logging_config import setup_logging


def serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    setup_logging()

    api_host = args.host or os.getenv("API_HOST", "localhost")
    api_port = args.port or int(os.getenv("API_PORT", "8000"))

    app = create_fastapi_app()
    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )
    return 0


def export(args: argparse.Namespace) -> int:
    """Load one trace file and write its markdown export."""
    setup_logging(to_file=False)

    source = Path(args.trace)
    try:
        data = source.read_bytes()
    except OSError as e:
        print(f"Cannot read {source}: {e}", file=sys.stderr)
        return 1

    result = TraceLoader().load(data, source.name)
    if not result.ok:
        print(f"Could not load {source.name} ({result.error_kind}): {result.message}", file=sys.stderr)
        return 1

    export_filter = ExportFilter.ERRORS_ONLY if args.errors_only else ExportFilter.ALL
    markdown = MarkdownExporter().render_model(result.model, export_filter)

    if args.output is None:
        sys.stdout.write(markdown)
        return 0

    target = Path(args.output)
    if target.is_dir():
        target = target / export_filename(source.name, args.errors_only)
    target.write_text(markdown, encoding="utf-8")
    print(f"Wrote {target}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="traceview", description=__doc__)
    # serve options also work without naming the command
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.set_defaults(handler=serve)
    commands = parser.add_subparsers(dest="command")

    serve_cmd = commands.add_parser("serve", help="run the HTTP API (default)")
    serve_cmd.add_argument("--host", default=argparse.SUPPRESS)
    serve_cmd.add_argument("--port", type=int, default=argparse.SUPPRESS)
    serve_cmd.set_defaults(handler=serve)

    export_cmd = commands.add_parser("export", help="export a trace archive to markdown")
    export_cmd.add_argument("trace", help="path to a trace or report ZIP")
    export_cmd.add_argument("--errors-only", action="store_true", help="only actions with errors")
    export_cmd.add_argument("-o", "--output", default=None, help="output file or directory (default: stdout)")
    export_cmd.set_defaults(handler=export)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")

    parser = build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
