"""Unified task router: add, import, remove, list, complete and progress."""

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from taskplan_mcp.config import ServerConfig
from taskplan_mcp.core.errors import TaskPlanError
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.models import IncludeSubtasks
from taskplan_mcp.core.naming import canonical_tool
from taskplan_mcp.core.observability import get_metrics
from taskplan_mcp.core.plan_parser import parse_plan_text
from taskplan_mcp.core.responses import ErrorCode, ErrorType, error_response, success_response
from taskplan_mcp.tools.unified.common import (
    check_task_id,
    normalize_task_entries,
    request_id as _new_request_id,
    require_bool,
    require_goal_id,
    require_task_ids,
    require_text,
    store_error,
    unexpected_error,
    validation_error,
)
from taskplan_mcp.tools.unified.router import ActionDefinition, ActionRouter, ActionRouterError

logger = logging.getLogger(__name__)
_metrics = get_metrics()

_TOOL = "task"
_INCLUDE_SUBTASKS_VALUES = tuple(mode.value for mode in IncludeSubtasks)


def _request_id() -> str:
    return _new_request_id("task")


def _metric(action: str) -> str:
    return f"unified_tools.task.{action.replace('-', '_')}"


def _validation_error(*, field: str, action: str, message: str, request_id: str, **kwargs: Any) -> dict:
    return validation_error(
        tool=_TOOL, field=field, action=action, message=message, request_id=request_id, **kwargs
    )


def _add_entries(
    store: TaskHierarchyStore,
    goal_id: int,
    entries: List[Dict[str, Any]],
    *,
    action: str,
    request_id: str,
    extra: Optional[Dict[str, Any]] = None,
) -> dict:
    start = time.perf_counter()
    try:
        created = store.add_tasks(goal_id, entries)
        total = store.count_tasks(goal_id)
    except TaskPlanError as exc:
        _metrics.counter(_metric(action), labels={"status": "error"})
        return store_error(exc, request_id=request_id)
    elapsed_ms = (time.perf_counter() - start) * 1000

    _metrics.timer(_metric(action) + ".duration_ms", elapsed_ms)
    _metrics.counter(_metric(action), labels={"status": "success"})
    return asdict(
        success_response(
            data=extra,
            goal_id=goal_id,
            added_tasks=[t.to_response() for t in created],
            total_tasks=total,
            request_id=request_id,
            telemetry={"duration_ms": round(elapsed_ms, 2)},
        )
    )


def _handle_add(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    action = "add"

    goal_id, error = require_goal_id(payload.get("goal_id"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error

    entries, error = normalize_task_entries(
        payload.get("tasks"), tool=_TOOL, action=action, request_id=request_id
    )
    if error:
        return error

    return _add_entries(store, goal_id, entries, action=action, request_id=request_id)


def _handle_import_plan(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    action = "import-plan"

    goal_id, error = require_goal_id(payload.get("goal_id"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error

    plan_text, error = require_text(
        payload.get("plan_text"), field="plan_text", tool=_TOOL, action=action, request_id=request_id
    )
    if error:
        return error

    parent_id = payload.get("parent_id")
    if parent_id is not None:
        error = check_task_id(parent_id, field="parent_id", tool=_TOOL, action=action, request_id=request_id)
        if error:
            return error

    parsed = parse_plan_text(plan_text)
    if not parsed:
        return _validation_error(
            field="plan_text",
            action=action,
            message="No tasks found; expected a JSON array or numbered sections",
            request_id=request_id,
            code=ErrorCode.INVALID_FORMAT,
            remediation='Use numbered sections such as "1. Title" followed by a description',
        )

    if parent_id is not None:
        for entry in parsed:
            entry["parent_id"] = parent_id

    entries, error = normalize_task_entries(parsed, tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error

    return _add_entries(
        store,
        goal_id,
        entries,
        action=action,
        request_id=request_id,
        extra={"parsed_count": len(entries)},
    )


def _handle_remove(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    action = "remove"

    goal_id, error = require_goal_id(payload.get("goal_id"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error
    task_ids, error = require_task_ids(payload.get("task_ids"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error
    delete_children, error = require_bool(
        payload.get("delete_children", False),
        field="delete_children",
        tool=_TOOL,
        action=action,
        request_id=request_id,
    )
    if error:
        return error

    start = time.perf_counter()
    try:
        result = store.soft_delete_tasks(goal_id, task_ids, delete_children=delete_children)
    except TaskPlanError as exc:
        _metrics.counter(_metric(action), labels={"status": "error"})
        return store_error(exc, request_id=request_id)
    elapsed_ms = (time.perf_counter() - start) * 1000

    _metrics.counter(_metric(action), labels={"status": "success"})
    return asdict(
        success_response(
            data=result.to_dict(),
            goal_id=goal_id,
            request_id=request_id,
            telemetry={"duration_ms": round(elapsed_ms, 2)},
        )
    )


def _handle_list(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    action = "list"

    goal_id, error = require_goal_id(payload.get("goal_id"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error
    task_ids, error = require_task_ids(
        payload.get("task_ids"), tool=_TOOL, action=action, request_id=request_id, required=False
    )
    if error:
        return error

    include_subtasks = payload.get("include_subtasks") or IncludeSubtasks.NONE.value
    if include_subtasks not in _INCLUDE_SUBTASKS_VALUES:
        return _validation_error(
            field="include_subtasks",
            action=action,
            message=f"Expected one of: {', '.join(_INCLUDE_SUBTASKS_VALUES)}",
            request_id=request_id,
            code=ErrorCode.VALIDATION_ERROR,
        )
    include_deleted, error = require_bool(
        payload.get("include_deleted_tasks", False),
        field="include_deleted_tasks",
        tool=_TOOL,
        action=action,
        request_id=request_id,
    )
    if error:
        return error

    tasks = store.get_tasks(
        goal_id,
        task_ids=task_ids,
        include_subtasks=include_subtasks,
        include_deleted=include_deleted,
    )
    return asdict(
        success_response(
            goal_id=goal_id,
            tasks=[t.to_response() for t in tasks],
            count=len(tasks),
            include_subtasks=include_subtasks,
            request_id=request_id,
        )
    )


def _handle_complete(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    action = "complete"

    goal_id, error = require_goal_id(payload.get("goal_id"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error
    task_ids, error = require_task_ids(payload.get("task_ids"), tool=_TOOL, action=action, request_id=request_id)
    if error:
        return error
    complete_children, error = require_bool(
        payload.get("complete_children", False),
        field="complete_children",
        tool=_TOOL,
        action=action,
        request_id=request_id,
    )
    if error:
        return error

    start = time.perf_counter()
    try:
        result = store.set_completion(goal_id, task_ids, complete_children=complete_children)
    except TaskPlanError as exc:
        _metrics.counter(_metric(action), labels={"status": "error"})
        return store_error(exc, request_id=request_id)
    elapsed_ms = (time.perf_counter() - start) * 1000

    updated_ids = {t.id for t in result.updated_tasks}
    skipped = [
        task_id
        for task_id in task_ids
        if task_id not in updated_ids
        and (task := store.get_task(goal_id, task_id)) is not None
        and not task.is_complete
    ]
    warnings = (
        [f"Skipped tasks with incomplete subtasks: {', '.join(skipped)}"] if skipped else None
    )

    _metrics.counter(_metric(action), labels={"status": "success"})
    return asdict(
        success_response(
            data=result.to_dict(),
            goal_id=goal_id,
            warnings=warnings,
            request_id=request_id,
            telemetry={"duration_ms": round(elapsed_ms, 2)},
        )
    )


def _handle_progress(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    goal_id, error = require_goal_id(
        payload.get("goal_id"), tool=_TOOL, action="progress", request_id=request_id
    )
    if error:
        return error

    try:
        summary = store.summarize(goal_id)
    except TaskPlanError as exc:
        return store_error(exc, request_id=request_id)
    return asdict(success_response(data=summary, request_id=request_id))


_ACTION_DEFINITIONS = [
    ActionDefinition(
        name="add",
        handler=_handle_add,
        summary="Add tasks (optionally with nested subtasks) to a goal",
    ),
    ActionDefinition(
        name="import-plan",
        handler=_handle_import_plan,
        summary="Create tasks from a JSON or numbered-text plan",
        aliases=("import",),
    ),
    ActionDefinition(
        name="remove",
        handler=_handle_remove,
        summary="Soft-delete tasks, optionally with their subtasks",
    ),
    ActionDefinition(
        name="list",
        handler=_handle_list,
        summary="List tasks with optional subtasks and deleted tasks",
    ),
    ActionDefinition(
        name="complete",
        handler=_handle_complete,
        summary="Mark tasks complete, optionally with their subtasks",
    ),
    ActionDefinition(
        name="progress",
        handler=_handle_progress,
        summary="Summarize completion counts for a goal",
    ),
]

_TASK_ROUTER = ActionRouter(tool_name=_TOOL, actions=_ACTION_DEFINITIONS)


def _dispatch_task_action(
    *, action: str, payload: Dict[str, Any], store: TaskHierarchyStore
) -> dict:
    try:
        return _TASK_ROUTER.dispatch(action=action, store=store, payload=payload)
    except ActionRouterError as exc:
        request_id = _request_id()
        allowed = ", ".join(exc.allowed_actions)
        return asdict(
            error_response(
                f"Unsupported task action '{action}'. Allowed actions: {allowed}",
                error_code=ErrorCode.VALIDATION_ERROR,
                error_type=ErrorType.VALIDATION,
                remediation=f"Use one of: {allowed}",
                request_id=request_id,
            )
        )
    except Exception as exc:
        return unexpected_error(exc, context=f"task.{action}", request_id=_request_id())


def register_unified_task_tool(mcp: FastMCP, config: ServerConfig, store: TaskHierarchyStore) -> None:
    """Register the consolidated task tool."""

    @canonical_tool(
        mcp,
        canonical_name="task",
        description=(
            "Manage a goal's hierarchical tasks. Task ids use dot notation "
            '("1", "1.1", "1.1.1") and are never reused. Actions: add (goal_id, '
            "tasks[{title, description, parent_id?, subtasks?}]); import-plan "
            "(goal_id, plan_text, parent_id?); remove (goal_id, task_ids, "
            "delete_children); list (goal_id, task_ids?, include_subtasks="
            "none|first-level|recursive, include_deleted_tasks); complete "
            "(goal_id, task_ids, complete_children); progress (goal_id)."
        ),
    )
    def task(
        action: str,
        goal_id: Optional[int] = None,
        tasks: Optional[List[Dict[str, Any]]] = None,
        task_ids: Optional[List[str]] = None,
        parent_id: Optional[str] = None,
        plan_text: Optional[str] = None,
        include_subtasks: str = "none",
        include_deleted_tasks: bool = False,
        delete_children: bool = False,
        complete_children: bool = False,
    ) -> dict:
        payload = {
            "goal_id": goal_id,
            "tasks": tasks,
            "task_ids": task_ids,
            "parent_id": parent_id,
            "plan_text": plan_text,
            "include_subtasks": include_subtasks,
            "include_deleted_tasks": include_deleted_tasks,
            "delete_children": delete_children,
            "complete_children": complete_children,
        }
        return _dispatch_task_action(action=action, payload=payload, store=store)

    logger.debug("Registered unified task tool for %s", config.server_name)


__all__ = [
    "register_unified_task_tool",
]
