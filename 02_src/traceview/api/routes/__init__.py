"""API route factories."""

from .control import create_control_router
from .traces import create_traces_router

__all__ = ["create_control_router", "create_traces_router"]
