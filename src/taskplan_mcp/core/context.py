"""Request context propagation for log and response correlation.

Every tool invocation and CLI command runs inside a request context that
carries a correlation id. Loggers (via ``ContextFilter``) and response
envelopes (via ``meta.request_id``) read it from here.

Usage:
    from taskplan_mcp.core.context import sync_request_context, get_correlation_id

    with sync_request_context() as ctx:
        print(ctx.correlation_id)  # e.g., "req_a1b2c3d4e5f6"
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

__all__ = [
    "correlation_id_var",
    "client_id_var",
    "start_time_var",
    "RequestContext",
    "generate_correlation_id",
    "sync_request_context",
    "get_correlation_id",
    "get_client_id",
    "get_start_time",
    "get_current_context",
]

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
"""Request correlation ID for tracing requests across components."""

client_id_var: ContextVar[str] = ContextVar("client_id", default="anonymous")
"""Identifier for the client making the request."""

start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)
"""Request start time as Unix timestamp."""


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID with optional prefix.

    Format: {prefix}_{12_hex_chars}
    Example: "req_a1b2c3d4e5f6"
    """
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass
class RequestContext:
    """Snapshot of the current request context.

    Attributes:
        correlation_id: Unique request identifier
        client_id: Client/user identifier
        start_time: Request start timestamp
    """

    correlation_id: str = ""
    client_id: str = "anonymous"
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since request start."""
        if self.start_time <= 0:
            return 0.0
        return (time.time() - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "client_id": self.client_id,
            "start_time": self.start_time,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    client_id: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Set up request context variables for the duration of the block.

    Args:
        correlation_id: Explicit id (generated when omitted)
        client_id: Client identifier (defaults to "anonymous")

    Yields:
        RequestContext describing the active context
    """
    ctx = RequestContext(
        correlation_id=correlation_id or generate_correlation_id(),
        client_id=client_id or "anonymous",
        start_time=time.time(),
    )

    corr_token = correlation_id_var.set(ctx.correlation_id)
    client_token = client_id_var.set(ctx.client_id)
    start_token = start_time_var.set(ctx.start_time)
    try:
        yield ctx
    finally:
        correlation_id_var.reset(corr_token)
        client_id_var.reset(client_token)
        start_time_var.reset(start_token)


def get_correlation_id() -> str:
    """Current correlation ID, or empty string outside a request."""
    return correlation_id_var.get()


def get_client_id() -> str:
    """Current client ID, or "anonymous" if not set."""
    return client_id_var.get()


def get_start_time() -> float:
    """Request start time as Unix timestamp, or 0.0 if not set."""
    return start_time_var.get()


def get_current_context() -> RequestContext:
    """Snapshot of all current context values."""
    return RequestContext(
        correlation_id=get_correlation_id(),
        client_id=get_client_id(),
        start_time=get_start_time(),
    )
