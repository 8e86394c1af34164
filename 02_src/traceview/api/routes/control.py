"""Control API routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import ITraceViewer


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_control_router(viewer: ITraceViewer) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_viewer() -> dict:
        """Discard the current upload."""
        try:
            viewer.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/health", response_model=StatusResponse)
    async def health() -> dict:
        """Liveness probe."""
        return {"status": "ok"}

    return router
