"""Task commands for the taskplan CLI.

Provides commands for adding, importing, removing, listing and completing
tasks of a goal.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import click

from taskplan_mcp.cli.config import CLIContext
from taskplan_mcp.cli.logging import cli_command, generate_request_id, get_cli_logger, get_request_id
from taskplan_mcp.cli.output import emit_envelope_error, emit_error, emit_success, emit_task_error
from taskplan_mcp.cli.registry import get_context
from taskplan_mcp.core.errors import TaskPlanError
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.models import IncludeSubtasks
from taskplan_mcp.core.plan_parser import parse_plan_text
from taskplan_mcp.core.task_ids import is_valid_task_id
from taskplan_mcp.tools.unified.common import normalize_task_entries

logger = get_cli_logger()


def _open_store(cli_ctx: CLIContext) -> TaskHierarchyStore:
    try:
        return cli_ctx.store
    except TaskPlanError as exc:
        emit_task_error(exc)


def _check_task_ids(task_ids: Tuple[str, ...], field: str = "task_ids") -> List[str]:
    invalid = [t for t in task_ids if not is_valid_task_id(t)]
    if invalid:
        emit_error(
            f"Invalid task id(s): {', '.join(invalid)}",
            code="INVALID_FORMAT",
            error_type="validation",
            remediation='Use dot-notation ids such as "1" or "1.2"',
            details={"field": field, "invalid": invalid},
        )
    return list(task_ids)


def _normalize_entries(entries: Any, action: str) -> List[Dict[str, Any]]:
    cleaned, error = normalize_task_entries(
        entries,
        tool="tasks",
        action=action,
        request_id=get_request_id() or generate_request_id(),
    )
    if error:
        emit_envelope_error(error)
    return cleaned


def _emit_added(store: TaskHierarchyStore, goal_id: int, entries: List[Dict[str, Any]], **extra: Any) -> None:
    try:
        created = store.add_tasks(goal_id, entries)
    except TaskPlanError as exc:
        emit_task_error(exc)

    logger.info("Tasks added", goal_id=goal_id, count=len(created))
    emit_success({
        "goal_id": goal_id,
        "added_tasks": [t.to_response() for t in created],
        "total_tasks": store.count_tasks(goal_id),
        **extra,
    })


@click.group("tasks")
def tasks() -> None:
    """Task management commands."""
    pass


@tasks.command("add")
@click.argument("goal_id", type=int)
@click.option("--title", help="Title of a single task")
@click.option("--description", help="Description of a single task")
@click.option("--parent-id", help="Existing task to create the task under")
@click.option(
    "--json",
    "tasks_json",
    help='JSON array of tasks: [{"title", "description", "parent_id"?, "subtasks"?}]',
)
@click.pass_context
@cli_command("tasks-add")
def add_tasks_cmd(
    ctx: click.Context,
    goal_id: int,
    title: Optional[str],
    description: Optional[str],
    parent_id: Optional[str],
    tasks_json: Optional[str],
) -> None:
    """Add tasks to a goal.

    GOAL_ID is the numeric goal identifier. Pass either --title and
    --description for a single task, or --json for a batch.
    """
    if tasks_json is not None:
        try:
            entries = json.loads(tasks_json)
        except json.JSONDecodeError as exc:
            emit_error(
                f"Invalid JSON for --json: {exc}",
                code="INVALID_FORMAT",
                error_type="validation",
            )
        if parent_id is not None:
            emit_error(
                "--parent-id cannot be combined with --json; set parent_id per task",
                code="VALIDATION_ERROR",
                error_type="validation",
            )
    else:
        entry: Dict[str, Any] = {"title": title, "description": description}
        if parent_id is not None:
            entry["parent_id"] = parent_id
        entries = [entry]

    entries = _normalize_entries(entries, "add")

    _emit_added(_open_store(get_context(ctx)), goal_id, entries)


@tasks.command("import")
@click.argument("goal_id", type=int)
@click.argument("plan_file", type=click.File("r"))
@click.option("--parent-id", help="Create the imported tasks under this task")
@click.pass_context
@cli_command("tasks-import")
def import_plan_cmd(ctx: click.Context, goal_id: int, plan_file: Any, parent_id: Optional[str]) -> None:
    """Create tasks from a plan file.

    GOAL_ID is the numeric goal identifier. PLAN_FILE holds a JSON array of
    tasks or numbered sections ("1. Title" then a description); use "-"
    for stdin.
    """
    if parent_id is not None:
        _check_task_ids((parent_id,), field="parent_id")

    entries = parse_plan_text(plan_file.read())
    if not entries:
        emit_error(
            "No tasks found in plan",
            code="INVALID_FORMAT",
            error_type="validation",
            remediation="Use a JSON array or numbered sections such as '1. Title'",
        )
    if parent_id is not None:
        for entry in entries:
            entry["parent_id"] = parent_id

    entries = _normalize_entries(entries, "import")
    _emit_added(_open_store(get_context(ctx)), goal_id, entries, parsed_count=len(entries))


@tasks.command("remove")
@click.argument("goal_id", type=int)
@click.argument("task_ids", nargs=-1, required=True)
@click.option("--delete-children", is_flag=True, help="Also delete the subtasks of each task")
@click.pass_context
@cli_command("tasks-remove")
def remove_tasks_cmd(ctx: click.Context, goal_id: int, task_ids: Tuple[str, ...], delete_children: bool) -> None:
    """Soft-delete tasks.

    GOAL_ID is the numeric goal identifier; TASK_IDS are dot-notation ids.
    """
    ids = _check_task_ids(task_ids)
    store = _open_store(get_context(ctx))
    try:
        result = store.soft_delete_tasks(goal_id, ids, delete_children=delete_children)
    except TaskPlanError as exc:
        emit_task_error(exc)

    emit_success({"goal_id": goal_id, **result.to_dict()})


@tasks.command("list")
@click.argument("goal_id", type=int)
@click.argument("task_ids", nargs=-1)
@click.option(
    "--include-subtasks",
    type=click.Choice([mode.value for mode in IncludeSubtasks]),
    default=IncludeSubtasks.NONE.value,
    show_default=True,
    help="Levels of subtasks to include",
)
@click.option("--include-deleted", is_flag=True, help="Include soft-deleted tasks")
@click.pass_context
@cli_command("tasks-list")
def list_tasks_cmd(
    ctx: click.Context,
    goal_id: int,
    task_ids: Tuple[str, ...],
    include_subtasks: str,
    include_deleted: bool,
) -> None:
    """List tasks of a goal.

    GOAL_ID is the numeric goal identifier. Optional TASK_IDS restrict the
    listing to those tasks (plus subtasks per --include-subtasks).
    """
    ids = _check_task_ids(task_ids) if task_ids else None
    store = _open_store(get_context(ctx))
    found = store.get_tasks(
        goal_id,
        task_ids=ids,
        include_subtasks=include_subtasks,
        include_deleted=include_deleted,
    )
    emit_success({
        "goal_id": goal_id,
        "tasks": [t.to_response() for t in found],
        "count": len(found),
    })


@tasks.command("complete")
@click.argument("goal_id", type=int)
@click.argument("task_ids", nargs=-1, required=True)
@click.option("--complete-children", is_flag=True, help="Complete all subtasks first")
@click.pass_context
@cli_command("tasks-complete")
def complete_tasks_cmd(
    ctx: click.Context, goal_id: int, task_ids: Tuple[str, ...], complete_children: bool
) -> None:
    """Mark tasks complete.

    GOAL_ID is the numeric goal identifier; TASK_IDS are dot-notation ids.
    Tasks with incomplete subtasks are skipped unless --complete-children
    is given.
    """
    ids = _check_task_ids(task_ids)
    store = _open_store(get_context(ctx))
    try:
        result = store.set_completion(goal_id, ids, complete_children=complete_children)
    except TaskPlanError as exc:
        emit_task_error(exc)

    emit_success({"goal_id": goal_id, **result.to_dict()})


@tasks.command("progress")
@click.argument("goal_id", type=int)
@click.pass_context
@cli_command("tasks-progress")
def progress_cmd(ctx: click.Context, goal_id: int) -> None:
    """Summarize task completion for a goal.

    GOAL_ID is the numeric goal identifier.
    """
    store = _open_store(get_context(ctx))
    try:
        summary = store.summarize(goal_id)
    except TaskPlanError as exc:
        emit_task_error(exc)

    emit_success(summary)
