"""Logging setup for the layout server.

Structured log lines with a per-command request id so the output of one
command (including streamed autorouter progress) can be followed.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

# Request ID of the command currently executing
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    """Get the current request ID if available."""
    return request_id_ctx.get()


@contextmanager
def request_scope(request_id: str | None = None) -> Iterator[str]:
    """Bind a request ID for the duration of a command."""
    rid = request_id or uuid.uuid4().hex[:8]
    token = request_id_ctx.set(rid)
    try:
        yield rid
    finally:
        request_id_ctx.reset(token)


class _RequestIdFilter(logging.Filter):
    """Guarantee every record has a request_id attribute for the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id() or "-"
        return True


def setup_logging(
    level: int | str | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """Configure logging for the application.

    Args:
        level: Logging level (e.g., 'DEBUG', 'INFO', 'ERROR').
               Defaults to LOGGING_LEVEL env var or 'INFO'.
        format_string: Custom log format string. Defaults to a structured format.

    Returns:
        The root logger configured for the application.
    """
    if level is None:
        level = os.environ.get("LOGGING_LEVEL", "INFO")

    if format_string is None:
        format_string = (
            "%(asctime)s [%(levelname)s] [%(name)s] [request=%(request_id)s] %(message)s"
        )

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    # MCP stdio transport owns stdout; log lines go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    console_handler.addFilter(_RequestIdFilter())
    logger.addHandler(console_handler)

    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("asyncio").propagate = False

    return logger


class RequestLoggerAdapter(logging.LoggerAdapter[Any]):
    """Logger adapter that automatically adds request ID to log records."""

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        extra = kwargs.get("extra")
        if extra is None:
            extra = {}
        request_id = get_request_id()
        if request_id is not None:
            extra["request_id"] = request_id
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> RequestLoggerAdapter:
    """Get a logger for the given module name.

    Args:
        name: The module name (e.g., __name__).

    Returns:
        A configured logger with request context support.
    """
    return RequestLoggerAdapter(logging.getLogger(name), {})


def create_logger(name: str) -> RequestLoggerAdapter:
    """Create and return a logger for a module (typically ``__name__``)."""
    return get_logger(name)
