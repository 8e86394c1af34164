"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

LOGS_DIR.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class BundlePattern:
    """Entry name convention for nested trace archives in a report bundle."""

    prefix: str
    suffix: str

    def matches(self, name: str) -> bool:
        return name.startswith(self.prefix) and name.endswith(self.suffix)


REPORT_BUNDLE_PATTERN = BundlePattern(prefix="data/", suffix=".zip")
TRACE_ENTRY_SUFFIX = ".trace"
NETWORK_ENTRY_SUFFIX = ".network"
RESOURCES_PREFIX = "resources/"

DEFAULT_MAX_OPEN_ACTIONS = 10_000
DEFAULT_MAX_UPLOAD_BYTES = 512 * 1024 * 1024


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def max_open_actions() -> int:
    """Cap on simultaneously tracked open actions per trace."""
    return _int_from_env("TRACEVIEW_MAX_OPEN_ACTIONS", DEFAULT_MAX_OPEN_ACTIONS)


def max_upload_bytes() -> int:
    """Largest upload the HTTP API accepts."""
    return _int_from_env("TRACEVIEW_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)


def cors_origins() -> list[str]:
    """Origins allowed to call the HTTP API (comma separated in CORS_ORIGINS)."""
    raw = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:5174")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
