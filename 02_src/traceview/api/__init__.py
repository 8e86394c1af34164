"""HTTP API."""

from .app import create_fastapi_app, get_viewer

__all__ = ["create_fastapi_app", "get_viewer"]
