"""
Completion propagation and progress summaries for a goal's task tree.

A parent's completion flag mirrors its live children: it is complete when
it has at least one non-deleted child and every such child is complete.
Leaves are never auto-managed. Rechecks are single-level; a flip on the
parent is not carried on to the grandparent.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from taskplan_mcp.core.models import Task, utc_now_iso

logger = logging.getLogger(__name__)

TaskLookup = Callable[[int, str], Optional[Task]]
ChildrenLookup = Callable[[int, str], List[Task]]
GoalTasks = Callable[[int], List[Task]]


class CompletionPropagator:
    """Recomputes parent completion from the state of direct children."""

    def __init__(
        self,
        lookup: TaskLookup,
        children_of: ChildrenLookup,
        tasks_of: GoalTasks,
        clock: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            lookup: Returns the task with the given id in a goal, or None
            children_of: Returns every direct child of a task, deleted included
            tasks_of: Returns every task of a goal, deleted included
            clock: Timestamp source (UTC ISO-8601)
        """
        self._lookup = lookup
        self._children_of = children_of
        self._tasks_of = tasks_of
        self._clock = clock or utc_now_iso

    def recheck_parent(self, goal_id: int, parent_id: Optional[str]) -> Optional[Task]:
        """
        Re-derive a parent's completion flag from its non-deleted children.

        Returns:
            The parent if its flag changed, otherwise None
        """
        if parent_id is None:
            return None

        parent = self._lookup(goal_id, parent_id)
        if parent is None:
            return None

        live_children = [c for c in self._children_of(goal_id, parent_id) if not c.deleted]
        all_complete = bool(live_children) and all(c.is_complete for c in live_children)

        if all_complete == parent.is_complete:
            return None

        parent.is_complete = all_complete
        parent.updated_at = self._clock()
        logger.debug(
            "Parent %s in goal %s is now %s",
            parent_id,
            goal_id,
            "complete" if all_complete else "incomplete",
        )
        return parent

    def recheck_parents(self, goal_id: int, parent_ids: List[Optional[str]]) -> List[Task]:
        """Recheck each distinct parent once, returning those that changed."""
        changed: List[Task] = []
        seen = set()
        for parent_id in parent_ids:
            if parent_id is None or parent_id in seen:
                continue
            seen.add(parent_id)
            parent = self.recheck_parent(goal_id, parent_id)
            if parent is not None:
                changed.append(parent)
        return changed

    def summarize(self, goal_id: int) -> Dict[str, Any]:
        """
        Count tasks for a goal.

        Returns:
            Dict with total/completed/remaining/deleted counts over live
            tasks (deleted rows only appear in ``deleted``) and a
            percentage rounded to an int.
        """
        tasks = self._tasks_of(goal_id)
        live = [t for t in tasks if not t.deleted]
        completed = sum(1 for t in live if t.is_complete)
        total = len(live)

        return {
            "goal_id": goal_id,
            "total_tasks": total,
            "completed_tasks": completed,
            "remaining_tasks": total - completed,
            "deleted_tasks": len(tasks) - total,
            "top_level_tasks": sum(1 for t in live if t.parent_id is None),
            "percentage": int((completed / total) * 100) if total else 0,
        }
