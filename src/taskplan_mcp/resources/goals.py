"""
Goal resources for taskplan-mcp.

Provides MCP resources for reading goals and their full task trees.
"""

import json
import logging

from mcp.server.fastmcp import FastMCP

from taskplan_mcp.config import ServerConfig
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.models import IncludeSubtasks
from taskplan_mcp.core.observability import get_audit_logger

logger = logging.getLogger(__name__)


# Schema version for resource responses
SCHEMA_VERSION = "1.0.0"


def _dumps(payload: dict) -> str:
    return json.dumps(payload, separators=(",", ":"))


def register_goal_resources(mcp: FastMCP, config: ServerConfig, store: TaskHierarchyStore) -> None:
    """
    Register goal resources with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Server configuration
        store: Task store backing the resources
    """
    audit = get_audit_logger()

    # Resource: taskplan://goals/ - List all goals
    @mcp.resource("taskplan://goals/")
    def resource_goals_list() -> str:
        """
        List all goals.

        Returns JSON with every goal and its live task count.
        """
        audit.resource_access("goals", "*")
        goals = []
        for goal in store.list_goals():
            entry = goal.model_dump(mode="json")
            entry["task_count"] = store.count_tasks(goal.id)
            goals.append(entry)

        return _dumps({
            "success": True,
            "schema_version": SCHEMA_VERSION,
            "goals": goals,
            "count": len(goals),
        })

    # Resource: taskplan://goals/{goal_id}/tasks - Full task tree of a goal
    @mcp.resource("taskplan://goals/{goal_id}/tasks")
    def resource_goal_tasks(goal_id: str) -> str:
        """
        Every task of a goal, soft-deleted ones included, in id order.

        Args:
            goal_id: Goal identifier
        """
        audit.resource_access("goal_tasks", goal_id)
        try:
            numeric_id = int(goal_id)
        except ValueError:
            return _dumps({
                "success": False,
                "schema_version": SCHEMA_VERSION,
                "error": f"Invalid goal id: {goal_id}",
            })

        goal = store.get_goal(numeric_id)
        if goal is None:
            return _dumps({
                "success": False,
                "schema_version": SCHEMA_VERSION,
                "error": f"Goal not found: {goal_id}",
            })

        tasks = store.get_tasks(
            numeric_id,
            include_subtasks=IncludeSubtasks.RECURSIVE,
            include_deleted=True,
        )
        return _dumps({
            "success": True,
            "schema_version": SCHEMA_VERSION,
            "goal": goal.model_dump(mode="json"),
            "tasks": [t.model_dump(mode="json") for t in tasks],
            "count": len(tasks),
        })

    logger.debug("Registered goal resources for %s", config.server_name)
