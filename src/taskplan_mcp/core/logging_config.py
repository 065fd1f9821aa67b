"""Logging setup for taskplan-mcp.

All package loggers hang off the ``taskplan_mcp`` logger. ``configure_logging``
installs a single stderr handler on it (stdout belongs to the MCP stdio
transport and to CLI JSON output) with a ``ContextFilter`` that stamps each
record with the active request's correlation id.

Usage:
    from taskplan_mcp.core.logging_config import configure_logging

    configure_logging(level="DEBUG", structured=False)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from taskplan_mcp.core.context import get_client_id, get_correlation_id, get_current_context

__all__ = [
    "ROOT_LOGGER_NAME",
    "ContextFilter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "configure_logging",
]

ROOT_LOGGER_NAME = "taskplan_mcp"

# LogRecord attributes that never go into the "extra" block
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message", "exc_info",
        "exc_text", "stack_info", "taskName",
        "correlation_id", "client_id", "elapsed_ms",
    }
)


class ContextFilter(logging.Filter):
    """Adds ``correlation_id``, ``client_id`` and ``elapsed_ms`` to records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.client_id = get_client_id() or "anonymous"
        record.elapsed_ms = round(get_current_context().elapsed_ms, 2)
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Example output:
        {"timestamp":"2025-01-15T10:30:45.123+00:00","level":"INFO",
         "logger":"taskplan_mcp.core.hierarchy","message":"Created goal 1 ...",
         "correlation_id":"req_a1b2c3d4e5f6","elapsed_ms":3.1}
    """

    def __init__(self, *, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "client_id": getattr(record, "client_id", "anonymous"),
            "elapsed_ms": getattr(record, "elapsed_ms", 0.0),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
            if extra:
                entry["extra"] = extra

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``2025-01-15 10:30:45 [INFO] [req_a1b2c3] core.hierarchy: message``"""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname}]",
        ]

        corr_id = getattr(record, "correlation_id", "-")
        if corr_id and corr_id != "-":
            parts.append(f"[{corr_id}]")

        name = record.name
        if name.startswith(ROOT_LOGGER_NAME + "."):
            name = name[len(ROOT_LOGGER_NAME) + 1 :]
        parts.append(f"{name}:")
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    *,
    level: Union[int, str] = logging.INFO,
    structured: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the ``taskplan_mcp`` logger.

    Args:
        level: Log level name or number
        structured: JSON lines when True, human-readable text otherwise
        stream: Output stream (default: stderr)

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if structured else HumanReadableFormatter())
    handler.addFilter(ContextFilter())
    logger.addHandler(handler)

    return logger
