"""
Log-backed metrics and audit records for MCP tool invocations.

Metrics and audit events are written as structured log records on the
``taskplan_mcp.core.observability.metrics`` and ``...audit`` loggers, so
they share the handler, formatter and correlation id of regular logs.

Usage:
    from taskplan_mcp.core.observability import mcp_tool, get_metrics

    @mcp_tool(tool_name="task")
    def task(action: str, ...) -> dict:
        ...

    get_metrics().counter("task.added", value=3, labels={"goal": "1"})
"""

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from taskplan_mcp.core.context import (
    generate_correlation_id,
    get_client_id,
    get_correlation_id,
    sync_request_context,
)
from taskplan_mcp.core.models import utc_now_iso

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"


class AuditEventType(Enum):
    RESOURCE_ACCESS = "resource_access"
    TOOL_INVOCATION = "tool_invocation"
    CONFIG_CHANGE = "config_change"


@dataclass
class Metric:
    name: str
    value: Union[int, float]
    metric_type: MetricType
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.metric_type.value,
            "labels": self.labels,
            "timestamp": self.timestamp,
        }


@dataclass
class AuditEvent:
    """Audit record; correlation and client ids default to the active context."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)
    correlation_id: Optional[str] = None
    client_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None
        if self.client_id is None:
            ctx_client = get_client_id()
            if ctx_client and ctx_client != "anonymous":
                self.client_id = ctx_client

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.client_id:
            result["client_id"] = self.client_id
        return result


class MetricsCollector:
    """Emits metrics as structured log records."""

    def __init__(self, prefix: str = "taskplan_mcp"):
        self.prefix = prefix
        self._logger = logging.getLogger(f"{__name__}.metrics")

    def emit(self, metric: Metric) -> None:
        self._logger.debug(
            "METRIC: %s.%s", self.prefix, metric.name, extra={"metric": metric.to_dict()}
        )

    def counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        self.emit(Metric(name=name, value=value, metric_type=MetricType.COUNTER, labels=labels or {}))

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        self.emit(Metric(name=name, value=value, metric_type=MetricType.GAUGE, labels=labels or {}))

    def timer(self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a duration in milliseconds."""
        self.emit(
            Metric(name=name, value=duration_ms, metric_type=MetricType.TIMER, labels=labels or {})
        )


_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return _metrics


class AuditLogger:
    """Writes audit events to a dedicated logger for easy filtering."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        self._logger.info("AUDIT: %s", event.event_type.value, extra={"audit": event.to_dict()})

    def resource_access(
        self, resource_type: str, resource_id: str, action: str = "read", **details: Any
    ) -> None:
        self.log(
            AuditEvent(
                event_type=AuditEventType.RESOURCE_ACCESS,
                details={
                    "resource_type": resource_type,
                    "resource_id": resource_id,
                    "action": action,
                    **details,
                },
            )
        )

    def tool_invocation(
        self,
        tool_name: str,
        success: bool = True,
        duration_ms: Optional[float] = None,
        correlation_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        self.log(
            AuditEvent(
                event_type=AuditEventType.TOOL_INVOCATION,
                correlation_id=correlation_id,
                details={
                    "tool": tool_name,
                    "success": success,
                    "duration_ms": duration_ms,
                    **details,
                },
            )
        )


_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """
    Write an audit record.

    Args:
        event_type: ``resource_access``, ``tool_invocation`` or ``config_change``;
            anything else is recorded as ``tool_invocation`` with the original
            name kept under ``original_event_type``
        **details: Additional details to include in the record
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.TOOL_INVOCATION
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))


def _record_invocation(
    name: str,
    corr_id: str,
    success: bool,
    error_msg: Optional[str],
    duration_ms: float,
    emit_metrics: bool,
    audit: bool,
    action: Optional[str],
) -> None:
    if emit_metrics:
        labels = {"tool": name, "status": "success" if success else "error"}
        if action:
            labels["action"] = action
        _metrics.counter("tool.invocations", labels=labels)
        _metrics.timer("tool.latency", duration_ms, labels={"tool": name})

    if audit:
        _audit.tool_invocation(
            tool_name=name,
            success=success,
            duration_ms=round(duration_ms, 2),
            error=error_msg,
            action=action,
            correlation_id=corr_id,
        )


def mcp_tool(
    tool_name: Optional[str] = None, emit_metrics: bool = True, audit: bool = True
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for MCP tool handlers with observability.

    Establishes a request context (correlation id prefixed ``tool``) when
    none is active, then logs the invocation, emits invocation/latency
    metrics and writes an audit record. Exceptions are re-raised unchanged.

    Args:
        tool_name: Override tool name (defaults to function name)
        emit_metrics: Whether to emit metrics
        audit: Whether to create audit log entries
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = tool_name or func.__name__

        def _action(kwargs: Dict[str, Any]) -> Optional[str]:
            action = kwargs.get("action")
            return action if isinstance(action, str) else None

        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                existing_corr_id = get_correlation_id()
                corr_id = existing_corr_id or generate_correlation_id(prefix="tool")
                with sync_request_context(correlation_id=corr_id):
                    start = time.perf_counter()
                    success, error_msg = True, None
                    logger.debug("Invoking tool %s", name)
                    try:
                        return await func(*args, **kwargs)
                    except Exception as exc:
                        success, error_msg = False, str(exc)
                        raise
                    finally:
                        _record_invocation(
                            name,
                            corr_id,
                            success,
                            error_msg,
                            (time.perf_counter() - start) * 1000,
                            emit_metrics,
                            audit,
                            _action(kwargs),
                        )

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            existing_corr_id = get_correlation_id()
            corr_id = existing_corr_id or generate_correlation_id(prefix="tool")
            with sync_request_context(correlation_id=corr_id):
                start = time.perf_counter()
                success, error_msg = True, None
                logger.debug("Invoking tool %s", name)
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    success, error_msg = False, str(exc)
                    raise
                finally:
                    _record_invocation(
                        name,
                        corr_id,
                        success,
                        error_msg,
                        (time.perf_counter() - start) * 1000,
                        emit_metrics,
                        audit,
                        _action(kwargs),
                    )

        return sync_wrapper

    return decorator
