"""
Workflow prompts for taskplan-mcp.

Provides MCP prompts that guide an assistant through planning a goal.
"""

import logging

from mcp.server.fastmcp import FastMCP

from taskplan_mcp.config import ServerConfig
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.models import IncludeSubtasks
from taskplan_mcp.core.task_ids import task_depth

logger = logging.getLogger(__name__)


def build_plan_goal_prompt(store: TaskHierarchyStore, goal_id: int) -> str:
    """Render the planning prompt for a goal (shared with the CLI)."""
    goal = store.get_goal(goal_id)
    if goal is None:
        return "\n".join([
            f"# Goal {goal_id} not found",
            "",
            'Create a goal first with goal(action="create", description=..., repo_name=...).',
        ])

    tasks = store.get_tasks(goal_id, include_subtasks=IncludeSubtasks.RECURSIVE)

    prompt_parts = [
        f"# Plan Goal {goal.id}: {goal.description}",
        "",
        f"**Repository:** {goal.repo_name}",
        "",
        "## Current Tasks",
    ]

    if tasks:
        for task in tasks:
            indent = "  " * (task_depth(task.id) - 1)
            marker = "x" if task.is_complete else " "
            prompt_parts.append(f"{indent}- [{marker}] {task.id}. {task.title}")
    else:
        prompt_parts.append("_No tasks yet._")

    prompt_parts.extend([
        "",
        "## Instructions",
        "",
        "1. Break the goal into concrete, independently verifiable tasks.",
        "2. Group related work under a parent task and add the steps as subtasks.",
        f'3. Add them with task(action="add", goal_id={goal.id}, tasks=[...]); '
        "each task needs a title and a description.",
        "4. Alternatively write the plan as numbered sections "
        '("1. Title" followed by a description) and pass it to '
        f'task(action="import-plan", goal_id={goal.id}, plan_text=...).',
        "5. Reference existing tasks by id when adding subtasks with parent_id.",
    ])

    return "\n".join(prompt_parts)


def register_workflow_prompts(mcp: FastMCP, config: ServerConfig, store: TaskHierarchyStore) -> None:
    """
    Register workflow prompts with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Server configuration
        store: Task store the prompts read from
    """

    @mcp.prompt()
    def plan_goal(goal_id: int) -> str:
        """
        Plan the tasks for a goal.

        Lists the goal and its current task tree and asks the assistant to
        add the missing tasks.

        Args:
            goal_id: Goal to plan
        """
        return build_plan_goal_prompt(store, goal_id)

    logger.debug("Registered workflow prompts for %s", config.server_name)
