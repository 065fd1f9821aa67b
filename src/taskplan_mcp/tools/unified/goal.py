"""Unified goal router: create, get and list goals."""

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from taskplan_mcp.config import ServerConfig
from taskplan_mcp.core.errors import TaskPlanError
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.naming import canonical_tool
from taskplan_mcp.core.observability import get_metrics
from taskplan_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    not_found_error,
    success_response,
)
from taskplan_mcp.tools.unified.common import (
    request_id as _new_request_id,
    require_goal_id,
    require_text,
    store_error,
    unexpected_error,
)
from taskplan_mcp.tools.unified.router import ActionDefinition, ActionRouter, ActionRouterError

logger = logging.getLogger(__name__)
_metrics = get_metrics()

_TOOL = "goal"


def _request_id() -> str:
    return _new_request_id("goal")


def _metric(action: str) -> str:
    return f"unified_tools.goal.{action.replace('-', '_')}"


def _handle_create(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    action = "create"

    description, error = require_text(
        payload.get("description"), field="description", tool=_TOOL, action=action, request_id=request_id
    )
    if error:
        return error
    repo_name, error = require_text(
        payload.get("repo_name"), field="repo_name", tool=_TOOL, action=action, request_id=request_id
    )
    if error:
        return error

    start = time.perf_counter()
    try:
        goal = store.create_goal(description, repo_name)
    except TaskPlanError as exc:
        return store_error(exc, request_id=request_id)
    elapsed_ms = (time.perf_counter() - start) * 1000

    _metrics.counter(_metric(action), labels={"status": "success"})
    return asdict(
        success_response(
            goal_id=goal.id,
            goal=goal.model_dump(mode="json"),
            request_id=request_id,
            telemetry={"duration_ms": round(elapsed_ms, 2)},
        )
    )


def _handle_get(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    goal_id, error = require_goal_id(payload.get("goal_id"), tool=_TOOL, action="get", request_id=request_id)
    if error:
        return error

    goal = store.get_goal(goal_id)
    if goal is None:
        return asdict(
            not_found_error(
                "Goal",
                str(goal_id),
                remediation='List goals with goal(action="list")',
                request_id=request_id,
            )
        )

    plan = store.get_plan(goal_id)
    return asdict(
        success_response(
            goal=goal.model_dump(mode="json"),
            plan=plan.model_dump(mode="json") if plan else None,
            task_count=store.count_tasks(goal_id),
            request_id=request_id,
        )
    )


def _handle_list(*, store: TaskHierarchyStore, payload: Dict[str, Any]) -> dict:
    request_id = _request_id()
    goals = [g.model_dump(mode="json") for g in store.list_goals()]
    return asdict(success_response(goals=goals, count=len(goals), request_id=request_id))


_ACTION_DEFINITIONS = [
    ActionDefinition(name="create", handler=_handle_create, summary="Create a goal and its plan"),
    ActionDefinition(name="get", handler=_handle_get, summary="Fetch a goal by id"),
    ActionDefinition(name="list", handler=_handle_list, summary="List all goals"),
]

_GOAL_ROUTER = ActionRouter(tool_name=_TOOL, actions=_ACTION_DEFINITIONS)


def _dispatch_goal_action(
    *, action: str, payload: Dict[str, Any], store: TaskHierarchyStore
) -> dict:
    try:
        return _GOAL_ROUTER.dispatch(action=action, store=store, payload=payload)
    except ActionRouterError as exc:
        request_id = _request_id()
        allowed = ", ".join(exc.allowed_actions)
        return asdict(
            error_response(
                f"Unsupported goal action '{action}'. Allowed actions: {allowed}",
                error_code=ErrorCode.VALIDATION_ERROR,
                error_type=ErrorType.VALIDATION,
                remediation=f"Use one of: {allowed}",
                request_id=request_id,
            )
        )
    except Exception as exc:
        return unexpected_error(exc, context=f"goal.{action}", request_id=_request_id())


def register_unified_goal_tool(mcp: FastMCP, config: ServerConfig, store: TaskHierarchyStore) -> None:
    """Register the consolidated goal tool."""

    @canonical_tool(
        mcp,
        canonical_name="goal",
        description=(
            "Manage goals. Actions: create (description, repo_name) returns the new "
            "goal_id and creates an empty plan; get (goal_id); list."
        ),
    )
    def goal(
        action: str,
        goal_id: Optional[int] = None,
        description: Optional[str] = None,
        repo_name: Optional[str] = None,
    ) -> dict:
        payload = {
            "goal_id": goal_id,
            "description": description,
            "repo_name": repo_name,
        }
        return _dispatch_goal_action(action=action, payload=payload, store=store)

    logger.debug("Registered unified goal tool for %s", config.server_name)


__all__ = [
    "register_unified_goal_tool",
]
