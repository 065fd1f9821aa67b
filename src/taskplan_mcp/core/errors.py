"""
Exception types raised by the task hierarchy store.

Each exception carries a canonical ``ErrorCode``/``ErrorType`` pair so the
tool and CLI layers can turn it into a response-v2 error envelope without
inspecting messages.
"""

from typing import Any, Dict, Mapping, Optional

from taskplan_mcp.core.responses import ErrorCode, ErrorType


class TaskPlanError(Exception):
    """Base exception for task hierarchy operations.

    Attributes:
        error_code: Canonical machine-readable code
        error_type: Error category used for routing/retry decisions
        remediation: Optional user-facing hint
        details: Extra machine-readable context
    """

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    error_type: ErrorType = ErrorType.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        remediation: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.remediation = remediation
        self.details: Dict[str, Any] = dict(details) if details else {}


class NotFoundError(TaskPlanError):
    """The goal (or its plan) does not exist."""

    error_code = ErrorCode.NOT_FOUND
    error_type = ErrorType.NOT_FOUND


class InvalidReferenceError(TaskPlanError):
    """A parent task id does not resolve to a task in the goal."""

    error_code = ErrorCode.INVALID_PARENT
    error_type = ErrorType.VALIDATION


class StructuralConflictError(TaskPlanError):
    """A task with live children was deleted without ``delete_children``."""

    error_code = ErrorCode.CONFLICT
    error_type = ErrorType.CONFLICT


class StorageError(TaskPlanError):
    """The persistence layer could not read or write the store."""

    error_code = ErrorCode.STORAGE_ERROR
    error_type = ErrorType.INTERNAL
