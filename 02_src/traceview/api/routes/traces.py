"""Trace upload, inspection and export routes."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict

from ...app import TraceViewer
from ...config import max_upload_bytes
from ...errors import (
    CorruptArchive,
    EntryNotFound,
    NoTraceLoaded,
    TraceIndexOutOfRange,
    TraceViewError,
)
from ...models import ActionStatus, Trace

MARKDOWN_MEDIA_TYPE = "text/markdown; charset=utf-8"


class ErrorInfoResponse(BaseModel):
    """Response model for an error."""

    model_config = ConfigDict(from_attributes=True)

    message: str
    stack: str | None = None
    origin_id: str | None = None


class AttachmentResponse(BaseModel):
    """Response model for an attachment reference."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    entry: str
    content_type: str | None = None


class NetworkEntryResponse(BaseModel):
    """Response model for a network entry."""

    model_config = ConfigDict(from_attributes=True)

    phase: str
    method: str
    url: str
    timestamp: float | None = None
    status: int | None = None
    status_text: str | None = None
    duration: float | None = None
    failure: str | None = None
    body: AttachmentResponse | None = None
    is_error: bool


class ConsoleEntryResponse(BaseModel):
    """Response model for a console entry."""

    model_config = ConfigDict(from_attributes=True)

    text: str
    severity: str
    source: str
    timestamp: float | None = None
    is_error: bool


class ActionResponse(BaseModel):
    """Response model for an action."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    status: ActionStatus
    start_time: float
    end_time: float | None = None
    duration: float | None = None
    title: str | None = None
    class_name: str | None = None
    page_id: str | None = None
    parent_id: str | None = None
    params: dict[str, Any]
    network: list[NetworkEntryResponse]
    console: list[ConsoleEntryResponse]
    errors: list[ErrorInfoResponse]
    attachments: list[AttachmentResponse]
    has_error: bool


class UnattributedResponse(BaseModel):
    """Response model for events recorded while no action was open."""

    model_config = ConfigDict(from_attributes=True)

    network: list[NetworkEntryResponse]
    console: list[ConsoleEntryResponse]
    errors: list[ErrorInfoResponse]


class TraceSummaryResponse(BaseModel):
    """Response model for one trace tab."""

    index: int
    source_name: str
    title: str
    browser_name: str | None = None
    platform: str | None = None
    playwright_version: str | None = None
    wall_time: float | None = None
    duration: float | None = None
    action_count: int
    failed_action_count: int
    error_count: int
    diagnostics: dict[str, int]
    load_error: str | None = None
    load_error_kind: str | None = None


class TraceDetailResponse(TraceSummaryResponse):
    """Response model for one trace with its actions."""

    actions: list[ActionResponse]
    unattributed: UnattributedResponse


class ModelResponse(BaseModel):
    """Response model for the current upload."""

    filename: str | None = None
    traces: list[TraceSummaryResponse]


def _summary(index: int, trace: Trace) -> dict:
    summary = trace.summary
    diagnostics = trace.diagnostics
    return {
        "index": index,
        "source_name": trace.source_name,
        "title": trace.title,
        "browser_name": summary.browser_name,
        "platform": summary.platform,
        "playwright_version": summary.playwright_version,
        "wall_time": summary.wall_time,
        "duration": summary.duration,
        "action_count": len(trace.actions),
        "failed_action_count": len(trace.failed_actions),
        "error_count": trace.error_count,
        "diagnostics": {
            "total_lines": diagnostics.total_lines,
            "malformed_lines": diagnostics.malformed_lines,
            "downgraded_events": diagnostics.downgraded_events,
            "unknown_events": diagnostics.unknown_events,
            "open_actions": diagnostics.open_actions,
            "unpaired_actions": diagnostics.unpaired_actions,
            "unattributed_events": diagnostics.unattributed_events,
            "evicted_open_actions": diagnostics.evicted_open_actions,
        },
        "load_error": trace.load_error,
        "load_error_kind": trace.load_error_kind,
    }


def _model_response(viewer: TraceViewer) -> dict:
    return {
        "filename": viewer.filename,
        "traces": [_summary(i, trace) for i, trace in enumerate(viewer.model.traces())],
    }


def _http_error(e: TraceViewError) -> HTTPException:
    if isinstance(e, (NoTraceLoaded, TraceIndexOutOfRange, EntryNotFound)):
        status_code = 404
    elif isinstance(e, CorruptArchive):
        status_code = 422
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail={"kind": e.kind, "message": e.message})


def _download(content: bytes | str, filename: str, media_type: str) -> Response:
    safe_name = filename.replace('"', "")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{safe_name}"'},
    )


async def _read_capped(request: Request, limit: int) -> bytes:
    """Request body, or 413 as soon as it is known to exceed ``limit``."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail="Upload too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise HTTPException(status_code=413, detail="Upload too large")
    return bytes(body)


def create_traces_router(viewer: TraceViewer) -> APIRouter:
    """Create traces router."""
    router = APIRouter(prefix="/api", tags=["traces"])

    @router.post("/traces", response_model=ModelResponse)
    async def upload_trace(
        request: Request,
        filename: str | None = Query(None, description="Client-side file name of the upload"),
    ) -> dict:
        """Load a trace archive sent as the raw request body."""
        try:
            data = await _read_capped(request, max_upload_bytes())
            result = await run_in_threadpool(viewer.load, data, filename)
            if not result.ok:
                raise HTTPException(
                    status_code=400,
                    detail={"kind": result.error_kind, "message": result.message},
                )
            return _model_response(viewer)

        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/traces", response_model=ModelResponse)
    async def get_model() -> dict:
        """Summary of every trace in the current upload."""
        try:
            return _model_response(viewer)
        except TraceViewError as e:
            raise _http_error(e)

    @router.get("/traces/{index}", response_model=TraceDetailResponse)
    async def get_trace(index: int) -> dict:
        """One trace with all its actions."""
        try:
            trace = viewer.trace(index)
        except TraceViewError as e:
            raise _http_error(e)

        detail = _summary(index, trace)
        detail["actions"] = [ActionResponse.model_validate(a) for a in trace.actions]
        detail["unattributed"] = UnattributedResponse.model_validate(trace.unattributed)
        return detail

    @router.get("/traces/{index}/export")
    async def export_trace(
        index: int,
        errors_only: bool = Query(False, description="Only actions with errors"),
    ) -> Response:
        """Markdown export of one trace."""
        try:
            filename, markdown = viewer.export_trace(index, errors_only=errors_only)
        except TraceViewError as e:
            raise _http_error(e)
        return _download(markdown, filename, MARKDOWN_MEDIA_TYPE)

    @router.get("/traces/{index}/attachments/{entry:path}")
    async def get_attachment(index: int, entry: str) -> Response:
        """Raw bytes of an archive entry, fetched on demand."""
        try:
            trace = viewer.trace(index)
            data = trace.read_attachment(entry)
        except TraceViewError as e:
            raise _http_error(e)

        ref = trace.find_attachment(entry)
        media_type = (ref.content_type if ref else None) or "application/octet-stream"
        return Response(content=data, media_type=media_type)

    @router.get("/export")
    async def export_model(
        errors_only: bool = Query(False, description="Only actions with errors"),
    ) -> Response:
        """Markdown export of every trace in the current upload."""
        try:
            filename, markdown = viewer.export_model(errors_only=errors_only)
        except TraceViewError as e:
            raise _http_error(e)
        return _download(markdown, filename, MARKDOWN_MEDIA_TYPE)

    return router
