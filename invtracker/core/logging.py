"""
Logging setup.

``setup_logging()`` installs three handlers on the root logger:

- stdout, coloured and human-readable;
- ``logs/invtracker.log``, one JSON object per line, rotated by size;
- ``logs/invtracker-error.log``, the same JSON for ERROR and above.

Every handler carries :class:`RequestIDFilter`, so records emitted while a
request is being served are tagged with that request's ``X-Request-ID``.
Modules log through ``logging.getLogger(__name__)``.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from invtracker.core.config import settings

LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
LOG_FILE = "invtracker.log"
ERROR_LOG_FILE = "invtracker-error.log"

# Bound by RequestIDMiddleware for the duration of a request.
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIDFilter(logging.Filter):
    """Copy the current request id onto the record as ``record.request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        return True


def _utc_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record, e.g.::

        {"timestamp": "2024-01-02T09:30:00.120000+00:00", "level": "INFO",
         "logger": "invtracker.services.investment_service",
         "message": "Created investment ...", "module": "investment_service",
         "function": "create_investment", "line": 71, "request_id": "..."}

    ``request_id`` and the request fields passed through ``extra=`` by the
    timing middleware appear only when set.
    """

    EXTRA_FIELDS = ("request_id", "method", "path", "status_code", "elapsed_ms")

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _utc_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, getattr(record, key))
            for key in self.EXTRA_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``time | LEVEL | logger [request] | message`` with a coloured level."""

    LEVEL_COLOURS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno, self.RESET)
        request_id = getattr(record, "request_id", None)
        origin = f"{record.name} [{request_id[:8]}]" if request_id else record.name

        line = " | ".join(
            (
                _utc_time(record).strftime("%Y-%m-%d %H:%M:%S"),
                f"{colour}{record.levelname:<8}{self.RESET}",
                origin,
                record.getMessage(),
            )
        )
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _attach(
    root: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter
) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIDFilter())
    root.addHandler(handler)


def _rotating(filename: str) -> RotatingFileHandler:
    return RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )


def setup_logging() -> None:
    """
    Configure the root logger from ``DEBUG`` / ``LOG_LEVEL`` and the
    ``LOG_FILE_*`` settings.

    Does nothing if the root logger already has handlers (e.g. when pytest
    or uvicorn configured it first).
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level = logging.DEBUG if settings.DEBUG else logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    os.makedirs(LOG_DIR, exist_ok=True)
    _attach(root, logging.StreamHandler(sys.stdout), level, ConsoleFormatter())
    _attach(root, _rotating(LOG_FILE), level, JSONFormatter())
    _attach(root, _rotating(ERROR_LOG_FILE), logging.ERROR, JSONFormatter())

    for noisy in ("uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if settings.DEBUG else logging.WARNING
    )

    root.info(
        "Logging initialised at %s; JSON log in %s",
        logging.getLevelName(level),
        LOG_DIR,
    )
