"""Structured logging for traceview.

Every record is written as one JSON object. Modules pass structured fields
with ``extra={"context": {...}}``; a TraceViewError attached via
``exc_info`` also contributes its ``kind``.
"""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH
from .errors import TraceViewError

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Third-party loggers that are only interesting at DEBUG
_NOISY_LOGGERS = ("uvicorn.access", "multipart")


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            error = record.exc_info[1]
            if isinstance(error, TraceViewError):
                entry["error_kind"] = error.kind
            entry["exception"] = self.formatException(record.exc_info)

        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context

        # Context may carry paths or enums
        return json.dumps(entry, default=str)


def _handlers(log_file: str | None) -> dict[str, dict]:
    handlers = {
        # stdout is reserved for `main.py export` output
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "formatter": "json",
            "encoding": "utf-8",
        }
    return handlers


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    to_file: bool = True,
) -> None:
    """
    Configure the root logger with JSON output.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to the
                   LOG_LEVEL env var, then INFO.
        log_file: Rotating log file. Defaults to 04_logs/app.log.
        to_file: False for one-shot CLI runs that log to stderr only.
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if to_file:
        log_file = log_file or str(DEFAULT_LOG_PATH)
    else:
        log_file = None

    handlers = _handlers(log_file)
    quiet_level = level if level == "DEBUG" else "WARNING"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": JSONFormatter},
            },
            "handlers": handlers,
            "loggers": {name: {"level": quiet_level} for name in _NOISY_LOGGERS},
            "root": {
                "level": level,
                "handlers": list(handlers),
            },
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)
