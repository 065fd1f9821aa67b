"""Structured logging hooks for CLI commands.

Each command runs inside a request context (correlation id prefixed
``cli``) so its log lines, metrics and JSON envelope share one id.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from taskplan_mcp.core.context import (
    generate_correlation_id,
    get_correlation_id,
    sync_request_context,
)
from taskplan_mcp.core.observability import get_metrics

__all__ = [
    "generate_request_id",
    "get_request_id",
    "cli_command",
    "get_cli_logger",
    "CLILogger",
]

T = TypeVar("T")


def generate_request_id() -> str:
    return generate_correlation_id(prefix="cli")


def get_request_id() -> str:
    """The active command's request id, or empty string outside a command."""
    return get_correlation_id()


class CLILogger:
    """Logger that attaches the request id and keyword context to records."""

    def __init__(self, name: str = "taskplan_mcp.cli"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **extra: Any) -> None:
        context = {"request_id": get_request_id(), **extra}
        self._logger.log(level, message, extra={"cli_context": context})

    def debug(self, message: str, **extra: Any) -> None:
        self._log(logging.DEBUG, message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log(logging.INFO, message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log(logging.WARNING, message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self._log(logging.ERROR, message, **extra)


_cli_logger = CLILogger()


def get_cli_logger() -> CLILogger:
    """Get the global CLI logger."""
    return _cli_logger


def cli_command(
    command_name: Optional[str] = None,
    emit_metrics: bool = True,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for CLI commands with observability.

    Sets up the request context, logs command start/end and emits
    invocation and latency metrics. ``SystemExit`` raised by
    ``emit_error`` counts as a failed invocation.

    Example:
        >>> @cli_command("tasks-list")
        ... def list_cmd(ctx, goal_id):
        ...     ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = command_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with sync_request_context(correlation_id=generate_request_id()):
                metrics = get_metrics()
                start = time.perf_counter()
                success = True
                error_msg = None

                _cli_logger.debug(f"CLI command started: {name}", command=name)

                try:
                    return func(*args, **kwargs)
                except SystemExit as e:
                    success = e.code in (0, None)
                    raise
                except Exception as e:
                    success = False
                    error_msg = str(e)
                    raise
                finally:
                    duration_ms = (time.perf_counter() - start) * 1000
                    _cli_logger.debug(
                        f"CLI command completed: {name}",
                        command=name,
                        success=success,
                        duration_ms=round(duration_ms, 2),
                        error=error_msg,
                    )
                    if emit_metrics:
                        labels = {"command": name, "status": "success" if success else "error"}
                        metrics.counter("cli.command.invocations", labels=labels)
                        metrics.timer("cli.command.latency", duration_ms, labels={"command": name})

        return wrapper

    return decorator
