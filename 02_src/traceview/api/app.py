"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import TraceViewer
from ..config import cors_origins
from ..logging_config import get_logger
from .routes import create_control_router, create_traces_router

logger = get_logger(__name__)

# Global viewer instance
_viewer: TraceViewer | None = None


def get_viewer() -> TraceViewer:
    """Get the global viewer instance."""
    global _viewer
    if not _viewer:
        _viewer = TraceViewer()
    return _viewer


def create_fastapi_app(viewer: TraceViewer | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    viewer = viewer or get_viewer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan."""
        logger.info("Trace viewer API started")
        yield
        viewer.reset()
        logger.info("Trace viewer API stopped")

    fastapi_app = FastAPI(
        title="traceview API",
        description="Load recorded execution traces and export them as markdown",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fastapi_app.include_router(create_traces_router(viewer))
    fastapi_app.include_router(create_control_router(viewer))

    return fastapi_app
