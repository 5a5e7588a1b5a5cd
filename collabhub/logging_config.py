"""
Central logging configuration for Collabhub.

Provides:
- Structured logging (JSON in production, human-readable in development)
- Correlation ids via contextvars: ``request_id`` for HTTP requests (set by
  middleware) and ``connection_id`` for realtime sockets
- Environment-aware log levels

Usage:
    from collabhub.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Member invited", extra={"project_id": str(pid)})
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

# Set by RequestIdMiddleware for the duration of one HTTP request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Set by the websocket endpoint for the lifetime of one realtime connection
connection_id_var: ContextVar[Optional[str]] = ContextVar("connection_id", default=None)

_CONTEXT_FIELDS = ("request_id", "connection_id")

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName", "asctime",
) + _CONTEXT_FIELDS)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context, if set."""
    return request_id_var.get()


@contextmanager
def bind_connection(connection_id: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with a realtime connection id."""
    token = connection_id_var.set(connection_id)
    try:
        yield
    finally:
        connection_id_var.reset(token)


class ContextFilter(logging.Filter):
    """Copy the correlation ids from context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"  # type: ignore[attr-defined]
        record.connection_id = connection_id_var.get() or "-"  # type: ignore[attr-defined]
        return True


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonFormatter(logging.Formatter):
    """Format log records as JSON for production log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value and value != "-":
                log_obj[field] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and value is not None:
                log_obj[key] = _jsonable(value)

        return json.dumps(log_obj)


def _create_dev_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s conn=%(connection_id)s %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'development' or 'production'
        debug: If True, use DEBUG level regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates on reload
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(ContextFilter())

    if environment == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(_create_dev_formatter())

    root.addHandler(handler)

    # Reduce noise from third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Correlation ids are attached by the handler filter. Use extra={} for
    additional structured fields, avoiding LogRecord attribute names:
        logger.info("Fan-out done", extra={"project_id": str(pid), "recipients": n})
    """
    return logging.getLogger(name)
