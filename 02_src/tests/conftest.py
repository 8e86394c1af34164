"""Pytest configuration and fixtures."""

import io
import json
import sys
import zipfile
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


def jsonl(*records) -> str:
    """Join records into a line-delimited JSON log. Strings are kept as raw lines."""
    lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
    return "\n".join(lines) + "\n"


def make_zip(entries: dict) -> bytes:
    """Build a ZIP archive in memory from {entry name: str | bytes}."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            zf.writestr(name, content)
    return buffer.getvalue()


# A short login run: goto succeeds, click times out.
LOGIN_TRACE_EVENTS = [
    {
        "type": "context-options",
        "browserName": "chromium",
        "platform": "linux",
        "playwrightVersion": "1.40.0",
        "title": "login test",
        "wallTime": 1700000000000,
        "monotonicTime": 1000,
    },
    {
        "type": "before",
        "callId": "call@1",
        "startTime": 1000,
        "class": "Frame",
        "method": "goto",
        "params": {"url": "https://example.com/login"},
    },
    {"type": "after", "callId": "call@1", "endTime": 1500},
    {
        "type": "before",
        "callId": "call@2",
        "startTime": 1600,
        "class": "Frame",
        "method": "click",
        "title": "Click submit",
        "params": {"selector": "#submit"},
    },
    {"type": "log", "callId": "call@2", "time": 1610, "message": "waiting for locator('#submit')"},
    {
        "type": "after",
        "callId": "call@2",
        "endTime": 1900,
        "error": {"error": {"message": "Timeout 30000ms exceeded", "stack": "Error: Timeout\n    at click"}},
        "attachments": [{"name": "screenshot", "contentType": "image/png", "sha1": "shot.png"}],
    },
]

LOGIN_NETWORK_EVENTS = [
    {
        "type": "resource-snapshot",
        "snapshot": {
            "_monotonicTime": 1200,
            "request": {"method": "GET", "url": "https://example.com/login"},
            "response": {
                "status": 200,
                "statusText": "OK",
                "content": {"_sha1": "page.html", "mimeType": "text/html"},
            },
            "time": 42,
        },
    },
    {
        "type": "resource-snapshot",
        "snapshot": {
            "_monotonicTime": 1700,
            "request": {"method": "POST", "url": "https://example.com/api/session"},
            "response": {"status": 500, "statusText": "Internal Server Error", "content": {}},
            "time": 80,
        },
    },
    {
        "type": "resource-snapshot",
        "snapshot": {
            "_monotonicTime": 5000,
            "request": {"method": "GET", "url": "https://example.com/analytics"},
            "response": {"status": 204, "statusText": "No Content", "content": {}},
        },
    },
]


def login_trace_zip() -> bytes:
    return make_zip(
        {
            "trace.trace": jsonl(*LOGIN_TRACE_EVENTS),
            "trace.network": jsonl(*LOGIN_NETWORK_EVENTS),
            "resources/shot.png": b"\x89PNG fake",
            "resources/page.html": "<html>login</html>",
        }
    )


@pytest.fixture
def trace_zip() -> bytes:
    """A single-trace archive with a failed action."""
    return login_trace_zip()


@pytest.fixture
def bundle_zip() -> bytes:
    """A report bundle with two nested copies of the same trace."""
    nested = login_trace_zip()
    return make_zip(
        {
            "index.html": "<html>report</html>",
            "data/first.zip": nested,
            "data/second.zip": nested,
        }
    )


@pytest.fixture
def loader():
    """Create TraceLoader for testing."""
    from traceview.loader import TraceLoader

    return TraceLoader()


@pytest.fixture
def viewer():
    """Create TraceViewer for testing."""
    from traceview.app import TraceViewer

    return TraceViewer()


@pytest_asyncio.fixture
async def client(viewer):
    """HTTP client bound to an API app around a fresh viewer."""
    import httpx

    from traceview.api import create_fastapi_app

    app = create_fastapi_app(viewer)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
