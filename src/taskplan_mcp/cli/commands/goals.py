"""Goal commands for the taskplan CLI."""

import click

from taskplan_mcp.cli.logging import cli_command, get_cli_logger
from taskplan_mcp.cli.output import emit_error, emit_success, emit_task_error
from taskplan_mcp.cli.registry import get_context
from taskplan_mcp.core.errors import TaskPlanError
from taskplan_mcp.prompts.workflows import build_plan_goal_prompt

logger = get_cli_logger()


@click.group("goals")
def goals() -> None:
    """Goal management commands."""
    pass


@goals.command("create")
@click.argument("description")
@click.option("--repo", "repo_name", required=True, help="Repository the goal belongs to")
@click.pass_context
@cli_command("goals-create")
def create_goal_cmd(ctx: click.Context, description: str, repo_name: str) -> None:
    """Create a goal (and its empty plan).

    DESCRIPTION is the free-text goal description.
    """
    if not description.strip() or not repo_name.strip():
        emit_error(
            "Description and repository name must be non-empty",
            code="MISSING_REQUIRED",
            error_type="validation",
            remediation="Pass a DESCRIPTION argument and --repo",
        )

    try:
        goal = get_context(ctx).store.create_goal(description.strip(), repo_name.strip())
    except TaskPlanError as exc:
        emit_task_error(exc)

    logger.info("Goal created", goal_id=goal.id)
    emit_success({"goal_id": goal.id, "goal": goal.model_dump(mode="json")})


@goals.command("get")
@click.argument("goal_id", type=int)
@click.pass_context
@cli_command("goals-get")
def get_goal_cmd(ctx: click.Context, goal_id: int) -> None:
    """Show a goal.

    GOAL_ID is the numeric goal identifier.
    """
    try:
        store = get_context(ctx).store
    except TaskPlanError as exc:
        emit_task_error(exc)

    goal = store.get_goal(goal_id)
    if goal is None:
        emit_error(
            f"Goal '{goal_id}' not found",
            code="NOT_FOUND",
            error_type="not_found",
            remediation="List goals with: taskplan-cli goals list",
            details={"goal_id": goal_id},
        )

    plan = store.get_plan(goal_id)
    emit_success({
        "goal": goal.model_dump(mode="json"),
        "plan": plan.model_dump(mode="json") if plan else None,
        "task_count": store.count_tasks(goal_id),
    })


@goals.command("list")
@click.pass_context
@cli_command("goals-list")
def list_goals_cmd(ctx: click.Context) -> None:
    """List all goals."""
    try:
        goal_list = get_context(ctx).store.list_goals()
    except TaskPlanError as exc:
        emit_task_error(exc)

    emit_success({
        "goals": [g.model_dump(mode="json") for g in goal_list],
        "count": len(goal_list),
    })


@goals.command("prompt")
@click.argument("goal_id", type=int)
@click.pass_context
@cli_command("goals-prompt")
def prompt_goal_cmd(ctx: click.Context, goal_id: int) -> None:
    """Render the planning prompt for a goal.

    GOAL_ID is the numeric goal identifier.
    """
    try:
        store = get_context(ctx).store
    except TaskPlanError as exc:
        emit_task_error(exc)

    if store.get_goal(goal_id) is None:
        emit_error(
            f"Goal '{goal_id}' not found",
            code="NOT_FOUND",
            error_type="not_found",
            details={"goal_id": goal_id},
        )

    emit_success({"goal_id": goal_id, "prompt": build_plan_goal_prompt(store, goal_id)})
