"""
Read-only task selection with hierarchical ordering.

``select_tasks`` works over a flat task list for a single goal and never
mutates it; the store hands it the goal's tasks and returns the result.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Union

from taskplan_mcp.core.models import IncludeSubtasks, Task
from taskplan_mcp.core.task_ids import task_id_sort_key


def _coerce_mode(include_subtasks: Union[IncludeSubtasks, str]) -> IncludeSubtasks:
    try:
        return IncludeSubtasks(include_subtasks)
    except ValueError:
        allowed = ", ".join(mode.value for mode in IncludeSubtasks)
        raise ValueError(
            f"Unknown include_subtasks value {include_subtasks!r}; expected one of: {allowed}"
        ) from None


def _children_index(tasks: Iterable[Task]) -> Dict[Optional[str], List[Task]]:
    index: Dict[Optional[str], List[Task]] = {}
    for task in tasks:
        index.setdefault(task.parent_id, []).append(task)
    return index


def _descendants(task_id: str, index: Dict[Optional[str], List[Task]]) -> List[Task]:
    collected: List[Task] = []
    stack = list(index.get(task_id, []))
    while stack:
        child = stack.pop()
        collected.append(child)
        stack.extend(index.get(child.id, []))
    return collected


def select_tasks(
    tasks: Sequence[Task],
    task_ids: Optional[Sequence[str]] = None,
    include_subtasks: Union[IncludeSubtasks, str] = IncludeSubtasks.NONE,
    include_deleted: bool = False,
) -> List[Task]:
    """
    Select tasks from one goal's task list.

    Args:
        tasks: Every task of the goal, deleted rows included
        task_ids: Ids to return; ``None`` or empty selects from the roots
        include_subtasks: ``none``, ``first-level`` or ``recursive``
        include_deleted: Keep soft-deleted tasks in the result

    Returns:
        Deduplicated tasks in hierarchical id order. Requested ids that do
        not exist (or are filtered out as deleted) are silently dropped.

    Raises:
        ValueError: If ``include_subtasks`` is not a known mode
    """
    mode = _coerce_mode(include_subtasks)

    visible = [t for t in tasks if include_deleted or not t.deleted]
    index = _children_index(visible)

    selected: List[Task] = []
    if task_ids:
        by_id = {t.id: t for t in visible}
        for task_id in task_ids:
            task = by_id.get(task_id)
            if task is None:
                continue
            selected.append(task)
            if mode is IncludeSubtasks.FIRST_LEVEL:
                selected.extend(index.get(task.id, []))
            elif mode is IncludeSubtasks.RECURSIVE:
                selected.extend(_descendants(task.id, index))
    elif mode is IncludeSubtasks.NONE:
        selected = list(index.get(None, []))
    elif mode is IncludeSubtasks.FIRST_LEVEL:
        for root in index.get(None, []):
            selected.append(root)
            selected.extend(index.get(root.id, []))
    else:
        selected = list(visible)

    unique: Dict[str, Task] = {}
    for task in selected:
        unique.setdefault(task.id, task)
    return sorted(unique.values(), key=lambda t: task_id_sort_key(t.id))
