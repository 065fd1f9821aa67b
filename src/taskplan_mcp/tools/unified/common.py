"""Validation and error-envelope helpers shared by the goal and task tools."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

from taskplan_mcp.core.context import generate_correlation_id, get_correlation_id
from taskplan_mcp.core.errors import StorageError, TaskPlanError
from taskplan_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    internal_error,
    sanitize_error_message,
)
from taskplan_mcp.core.task_ids import is_valid_task_id

logger = logging.getLogger(__name__)

# Either a cleaned value or a ready-made error envelope
Checked = Tuple[Any, Optional[dict]]


def request_id(prefix: str) -> str:
    return get_correlation_id() or generate_correlation_id(prefix=prefix)


def validation_error(
    *,
    tool: str,
    field: str,
    action: str,
    message: str,
    request_id: str,
    code: ErrorCode = ErrorCode.MISSING_REQUIRED,
    remediation: Optional[str] = None,
) -> dict:
    effective_remediation = remediation or f"Provide a valid '{field}' value"
    return asdict(
        error_response(
            f"Invalid field '{field}' for {tool}.{action}: {message}",
            error_code=code,
            error_type=ErrorType.VALIDATION,
            remediation=effective_remediation,
            details={"field": field, "action": f"{tool}.{action}"},
            request_id=request_id,
        )
    )


def store_error(exc: TaskPlanError, *, request_id: str) -> dict:
    """Envelope for a typed store exception."""
    if isinstance(exc, StorageError):
        logger.error("Storage failure: %s", exc.message)
        return asdict(
            error_response(
                "Task store could not be read or written",
                error_code=ErrorCode.INTERNAL_ERROR,
                error_type=ErrorType.INTERNAL,
                remediation=exc.remediation or "Check the configured storage path",
                details={"storage_error": ErrorCode.STORAGE_ERROR.value},
                request_id=request_id,
            )
        )

    return asdict(
        error_response(
            exc.message,
            error_code=exc.error_code,
            error_type=exc.error_type,
            remediation=exc.remediation,
            details=exc.details or None,
            request_id=request_id,
        )
    )


def unexpected_error(exc: Exception, *, context: str, request_id: str) -> dict:
    logger.exception("Unexpected error in %s", context)
    return asdict(internal_error(sanitize_error_message(exc, context=context), request_id=request_id))


def require_goal_id(value: Any, *, tool: str, action: str, request_id: str) -> Checked:
    if value is None:
        return None, validation_error(
            tool=tool,
            field="goal_id",
            action=action,
            message="Provide an integer goal id",
            request_id=request_id,
        )
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return None, validation_error(
            tool=tool,
            field="goal_id",
            action=action,
            message="Expected a positive integer",
            request_id=request_id,
            code=ErrorCode.INVALID_FORMAT,
        )
    return value, None


def check_task_id(
    value: Any, *, field: str, tool: str, action: str, request_id: str
) -> Optional[dict]:
    if not is_valid_task_id(value):
        return validation_error(
            tool=tool,
            field=field,
            action=action,
            message=f"{value!r} is not a dot-notation task id such as \"1\" or \"1.2\"",
            request_id=request_id,
            code=ErrorCode.INVALID_FORMAT,
        )
    return None


def require_task_ids(
    value: Any,
    *,
    tool: str,
    action: str,
    request_id: str,
    required: bool = True,
) -> Checked:
    """Validate a list of task ids; ``None`` is allowed when not required."""
    if value is None or (isinstance(value, list) and not value):
        if required:
            return None, validation_error(
                tool=tool,
                field="task_ids",
                action=action,
                message="Provide a non-empty list of task ids",
                request_id=request_id,
            )
        return None, None

    if not isinstance(value, list):
        return None, validation_error(
            tool=tool,
            field="task_ids",
            action=action,
            message="Expected a list of strings",
            request_id=request_id,
            code=ErrorCode.INVALID_FORMAT,
        )

    for item in value:
        error = check_task_id(item, field="task_ids", tool=tool, action=action, request_id=request_id)
        if error:
            return None, error
    return list(value), None


def require_text(
    value: Any, *, field: str, tool: str, action: str, request_id: str
) -> Checked:
    if not isinstance(value, str) or not value.strip():
        return None, validation_error(
            tool=tool,
            field=field,
            action=action,
            message="Provide a non-empty string",
            request_id=request_id,
        )
    return value.strip(), None


def require_bool(
    value: Any, *, field: str, tool: str, action: str, request_id: str
) -> Checked:
    if not isinstance(value, bool):
        return None, validation_error(
            tool=tool,
            field=field,
            action=action,
            message="Expected a boolean",
            request_id=request_id,
            code=ErrorCode.INVALID_FORMAT,
        )
    return value, None


def normalize_task_entries(
    value: Any,
    *,
    tool: str,
    action: str,
    request_id: str,
    path: str = "tasks",
    nested: bool = False,
) -> Checked:
    """
    Validate a (possibly nested) list of task entries.

    Returns cleaned entries with ``title``, ``description``, ``parent_id``
    (top level only) and ``subtasks``.
    """
    if not isinstance(value, list) or (not value and not nested):
        return None, validation_error(
            tool=tool,
            field=path,
            action=action,
            message="Provide a non-empty list of task objects",
            request_id=request_id,
            code=ErrorCode.MISSING_REQUIRED if value is None else ErrorCode.INVALID_FORMAT,
        )

    cleaned: List[Dict[str, Any]] = []
    for index, entry in enumerate(value):
        entry_path = f"{path}[{index}]"
        if not isinstance(entry, dict):
            return None, validation_error(
                tool=tool,
                field=entry_path,
                action=action,
                message="Each task must be an object",
                request_id=request_id,
                code=ErrorCode.INVALID_FORMAT,
            )

        title, error = require_text(
            entry.get("title"), field=f"{entry_path}.title", tool=tool, action=action, request_id=request_id
        )
        if error:
            return None, error
        description, error = require_text(
            entry.get("description"),
            field=f"{entry_path}.description",
            tool=tool,
            action=action,
            request_id=request_id,
        )
        if error:
            return None, error

        item: Dict[str, Any] = {"title": title, "description": description}

        parent_id = entry.get("parent_id")
        if not nested and parent_id is not None:
            error = check_task_id(
                parent_id, field=f"{entry_path}.parent_id", tool=tool, action=action, request_id=request_id
            )
            if error:
                return None, error
            item["parent_id"] = parent_id

        subtasks = entry.get("subtasks")
        if subtasks:
            item["subtasks"], error = normalize_task_entries(
                subtasks,
                tool=tool,
                action=action,
                request_id=request_id,
                path=f"{entry_path}.subtasks",
                nested=True,
            )
            if error:
                return None, error

        cleaned.append(item)

    return cleaned, None
