"""
Task hierarchy store.

Owns the goals, plans and tasks of a store snapshot and enforces the
structural rules of the task tree:

- a child can only be created under a task that exists in the same goal
  (deleted or not);
- a task with live children is only soft-deleted when the caller asks for
  its children to go too;
- ids are minted from per-parent counters and never reused.

Every public mutation runs as a transaction: the snapshot is copied, the
operation is applied, and the result is flushed to the storage backend.
Any exception (validation or storage) restores the copy, so a failed call
leaves no partial state behind.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from taskplan_mcp.core.errors import InvalidReferenceError, NotFoundError, StructuralConflictError
from taskplan_mcp.core.models import (
    CompletionResult,
    Goal,
    IncludeSubtasks,
    Plan,
    RemovalResult,
    StoreSnapshot,
    Task,
    utc_now_iso,
)
from taskplan_mcp.core.progress import CompletionPropagator
from taskplan_mcp.core.query import select_tasks
from taskplan_mcp.core.storage import StorageBackend
from taskplan_mcp.core.task_ids import (
    IdentifierAllocator,
    compose_task_id,
    is_valid_task_id,
    parent_key,
    sort_task_ids,
    task_id_sort_key,
)

logger = logging.getLogger(__name__)

TaskKey = Tuple[int, str]
ChildKey = Tuple[int, Optional[str]]


class TaskHierarchyStore:
    """Goals, plans and hierarchical tasks backed by a storage backend."""

    def __init__(self, storage: StorageBackend, clock: Optional[Callable[[], str]] = None):
        """
        Args:
            storage: Backend the snapshot is loaded from and flushed to
            clock: Timestamp source, UTC ISO-8601 (defaults to now)
        """
        self._storage = storage
        self._clock = clock or utc_now_iso
        self._lock = threading.Lock()

        self._snapshot: StoreSnapshot = storage.load()
        self._allocator = IdentifierAllocator(self._snapshot.id_counters)
        self._tasks: Dict[TaskKey, Task] = {}
        self._children: Dict[ChildKey, List[str]] = {}
        self._rebuild_index()

        self._propagator = CompletionPropagator(
            lookup=self._find_task,
            children_of=self._direct_children,
            tasks_of=self._goal_tasks,
            clock=self._clock,
        )
        logger.debug(
            "Loaded task store from %s: %d goals, %d tasks",
            storage.describe(),
            len(self._snapshot.goals),
            len(self._snapshot.tasks),
        )

    # ------------------------------------------------------------------
    # Internal state helpers (callers hold the lock)
    # ------------------------------------------------------------------

    def _rebuild_index(self) -> None:
        self._tasks = {}
        self._children = {}
        for task in self._snapshot.tasks:
            self._index_task(task)

    def _index_task(self, task: Task) -> None:
        self._tasks[(task.goal_id, task.id)] = task
        self._children.setdefault((task.goal_id, task.parent_id), []).append(task.id)

    def _find_task(self, goal_id: int, task_id: str) -> Optional[Task]:
        return self._tasks.get((goal_id, task_id))

    def _direct_children(self, goal_id: int, parent_id: str) -> List[Task]:
        child_ids = self._children.get((goal_id, parent_id), [])
        return [self._tasks[(goal_id, child_id)] for child_id in child_ids]

    def _goal_tasks(self, goal_id: int) -> List[Task]:
        return [t for t in self._snapshot.tasks if t.goal_id == goal_id]

    def _require_plan(self, goal_id: int) -> Plan:
        plan = self._snapshot.plans.get(goal_id)
        if plan is None:
            raise NotFoundError(
                f"No plan found for goal {goal_id}",
                remediation="Create the goal first with the goal tool (action=create)",
                details={"goal_id": goal_id},
            )
        return plan

    @contextmanager
    def _transaction(self) -> Iterator[StoreSnapshot]:
        """Apply a mutation atomically and flush it; roll back on any error."""
        with self._lock:
            backup = self._snapshot.model_copy(deep=True)
            try:
                yield self._snapshot
                self._storage.save(self._snapshot)
            except Exception:
                self._snapshot = backup
                self._allocator.rebind(self._snapshot.id_counters)
                self._rebuild_index()
                raise

    def _insert_task(
        self,
        goal_id: int,
        title: str,
        description: str,
        parent_id: Optional[str],
    ) -> Task:
        plan = self._require_plan(goal_id)

        if parent_id is not None and self._find_task(goal_id, parent_id) is None:
            raise InvalidReferenceError(
                f'Parent task with ID "{parent_id}" not found for goal {goal_id}.',
                remediation="Use the id of an existing task as parent_id, or omit it",
                details={"goal_id": goal_id, "parent_id": parent_id},
            )

        sequence = self._allocator.allocate(goal_id, parent_key(parent_id))
        now = self._clock()
        task = Task(
            id=compose_task_id(parent_id, sequence),
            goal_id=goal_id,
            parent_id=parent_id,
            title=title,
            description=description,
            is_complete=False,
            deleted=False,
            created_at=now,
            updated_at=now,
        )
        self._snapshot.tasks.append(task)
        self._index_task(task)
        plan.updated_at = now
        return task

    # ------------------------------------------------------------------
    # Goals and plans
    # ------------------------------------------------------------------

    def create_goal(self, description: str, repo_name: str) -> Goal:
        """Create a goal together with its plan and id counters."""
        with self._transaction() as snapshot:
            goal_id = snapshot.next_goal_id
            snapshot.next_goal_id = goal_id + 1

            now = self._clock()
            goal = Goal(id=goal_id, description=description, repo_name=repo_name, created_at=now)
            snapshot.goals[goal_id] = goal
            snapshot.plans[goal_id] = Plan(goal_id=goal_id, updated_at=now)
            self._allocator.ensure_goal(goal_id)

        logger.info("Created goal %s for repo %s", goal.id, repo_name)
        return goal.model_copy()

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        with self._lock:
            goal = self._snapshot.goals.get(goal_id)
            return goal.model_copy() if goal else None

    def list_goals(self) -> List[Goal]:
        with self._lock:
            return [self._snapshot.goals[k].model_copy() for k in sorted(self._snapshot.goals)]

    def create_plan(self, goal_id: int) -> Plan:
        """
        Create the plan record for an existing goal.

        Returns the existing plan unchanged if the goal already has one.

        Raises:
            NotFoundError: If the goal does not exist
        """
        with self._transaction() as snapshot:
            if goal_id not in snapshot.goals:
                raise NotFoundError(f"Goal {goal_id} not found", details={"goal_id": goal_id})
            plan = snapshot.plans.get(goal_id)
            if plan is None:
                plan = Plan(goal_id=goal_id, updated_at=self._clock())
                snapshot.plans[goal_id] = plan
            self._allocator.ensure_goal(goal_id)
        return plan.model_copy()

    def get_plan(self, goal_id: int) -> Optional[Plan]:
        with self._lock:
            plan = self._snapshot.plans.get(goal_id)
            return plan.model_copy() if plan else None

    # ------------------------------------------------------------------
    # Task creation
    # ------------------------------------------------------------------

    def create_task(
        self,
        goal_id: int,
        title: str,
        description: str,
        parent_id: Optional[str] = None,
    ) -> Task:
        """
        Create a single task.

        Raises:
            NotFoundError: If the goal has no plan
            InvalidReferenceError: If ``parent_id`` does not name a task in the goal
        """
        with self._transaction():
            task = self._insert_task(goal_id, title, description, parent_id)
        logger.debug("Created task %s in goal %s", task.id, goal_id)
        return task.model_copy()

    def add_tasks(self, goal_id: int, entries: Sequence[Mapping[str, Any]]) -> List[Task]:
        """
        Create a batch of tasks, optionally nested.

        Each entry carries ``title``, ``description``, an optional
        ``parent_id`` and optional ``subtasks`` (entries of the same shape).
        Subtasks are created under the id just minted for their entry, so
        their own ``parent_id`` is ignored. The batch is all-or-nothing.

        Returns:
            Created tasks in creation order (each entry before its subtasks)
        """
        created: List[Task] = []

        def create_entry(entry: Mapping[str, Any], parent_override: Optional[str], nested: bool) -> None:
            parent_id = parent_override if nested else entry.get("parent_id")
            task = self._insert_task(goal_id, entry["title"], entry["description"], parent_id)
            created.append(task)
            for subtask in entry.get("subtasks") or []:
                create_entry(subtask, task.id, True)

        with self._transaction():
            for entry in entries:
                create_entry(entry, None, False)

        logger.info("Added %d tasks to goal %s", len(created), goal_id)
        return [t.model_copy() for t in created]

    # ------------------------------------------------------------------
    # Lookup and traversal
    # ------------------------------------------------------------------

    def get_task(self, goal_id: int, task_id: str) -> Optional[Task]:
        """Full task record (deleted included), or None."""
        with self._lock:
            task = self._find_task(goal_id, task_id)
            return task.model_copy() if task else None

    def get_children(self, goal_id: int, parent_id: str, include_deleted: bool = False) -> List[Task]:
        """Direct children of a task in id order."""
        with self._lock:
            children = [
                c.model_copy()
                for c in self._direct_children(goal_id, parent_id)
                if include_deleted or not c.deleted
            ]
        return sorted(children, key=lambda t: task_id_sort_key(t.id))

    def get_tasks(
        self,
        goal_id: int,
        task_ids: Optional[Sequence[str]] = None,
        include_subtasks: Union[IncludeSubtasks, str] = IncludeSubtasks.NONE,
        include_deleted: bool = False,
    ) -> List[Task]:
        """
        Query a goal's tasks; see ``select_tasks`` for selection rules.

        An unknown goal yields an empty list.
        """
        with self._lock:
            selected = select_tasks(
                self._goal_tasks(goal_id),
                task_ids=task_ids,
                include_subtasks=include_subtasks,
                include_deleted=include_deleted,
            )
            return [t.model_copy() for t in selected]

    def count_tasks(self, goal_id: int, include_deleted: bool = False) -> int:
        with self._lock:
            return sum(1 for t in self._goal_tasks(goal_id) if include_deleted or not t.deleted)

    def summarize(self, goal_id: int) -> Dict[str, Any]:
        """Progress counts for a goal.

        Raises:
            NotFoundError: If the goal has no plan
        """
        with self._lock:
            plan = self._require_plan(goal_id)
            summary = self._propagator.summarize(goal_id)
            summary["updated_at"] = plan.updated_at
            return summary

    # ------------------------------------------------------------------
    # Soft delete
    # ------------------------------------------------------------------

    def soft_delete_tasks(
        self,
        goal_id: int,
        task_ids: Sequence[str],
        delete_children: bool = False,
    ) -> RemovalResult:
        """
        Soft-delete tasks and recheck the parents they leave behind.

        Ids are processed parent-before-child. Before anything is mutated,
        every requested task with a live direct child fails the whole batch
        unless ``delete_children`` is set. Malformed ids, unknown ids and
        tasks that are already deleted are skipped.

        Raises:
            NotFoundError: If the goal has no plan
            StructuralConflictError: If a task has live children and
                ``delete_children`` is False
        """
        ordered = sort_task_ids(t for t in dict.fromkeys(task_ids) if is_valid_task_id(t))
        removed: List[Task] = []

        with self._transaction():
            plan = self._require_plan(goal_id)

            if not delete_children:
                for task_id in ordered:
                    if self._find_task(goal_id, task_id) is None:
                        continue
                    live = [c.id for c in self._direct_children(goal_id, task_id) if not c.deleted]
                    if live:
                        raise StructuralConflictError(
                            f"Task {task_id} has subtasks and cannot be deleted without "
                            "explicitly setting 'delete_children' to true.",
                            remediation="Pass delete_children=true or remove the subtasks first",
                            details={"task_id": task_id, "children": sort_task_ids(live)},
                        )

            def delete_subtree(task: Task) -> None:
                if delete_children:
                    for child in self._direct_children(goal_id, task.id):
                        delete_subtree(child)
                if not task.deleted:
                    task.deleted = True
                    task.updated_at = self._clock()
                    removed.append(task)

            parents_to_check: List[Optional[str]] = []
            for task_id in ordered:
                task = self._find_task(goal_id, task_id)
                if task is None:
                    continue
                parents_to_check.append(task.parent_id)
                delete_subtree(task)

            changed_parents = self._propagator.recheck_parents(goal_id, parents_to_check)
            plan.updated_at = self._clock()

        logger.info(
            "Soft-deleted %d tasks in goal %s (%d parents changed)",
            len(removed),
            goal_id,
            len(changed_parents),
        )
        return RemovalResult(
            removed_tasks=[t.model_copy() for t in removed],
            completed_parents=[t.model_copy() for t in changed_parents],
        )

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def set_completion(
        self,
        goal_id: int,
        task_ids: Sequence[str],
        complete_children: bool = False,
    ) -> CompletionResult:
        """
        Mark tasks complete and recheck their parents.

        With ``complete_children`` every descendant is completed first.
        Without it, a task whose live children are not all complete is
        skipped: it is left untouched and is absent from ``updated_tasks``.

        Raises:
            NotFoundError: If the goal has no plan
        """
        updated: List[Task] = []
        parents_to_check: List[Optional[str]] = []
        skipped: Set[str] = set()

        with self._transaction():
            plan = self._require_plan(goal_id)

            def complete(task_id: str) -> None:
                task = self._find_task(goal_id, task_id)
                if task is None:
                    return

                children = self._direct_children(goal_id, task_id)
                if complete_children:
                    for child in children:
                        complete(child.id)
                elif not all(c.is_complete for c in children if not c.deleted):
                    logger.warning(
                        "Task %s in goal %s cannot be marked complete because not all "
                        "its non-deleted subtasks are complete.",
                        task_id,
                        goal_id,
                    )
                    skipped.add(task_id)
                    return

                if not task.is_complete:
                    task.is_complete = True
                    task.updated_at = self._clock()
                    updated.append(task)

                if task.parent_id is not None:
                    parents_to_check.append(task.parent_id)

            for task_id in task_ids:
                complete(task_id)

            changed_parents = self._propagator.recheck_parents(goal_id, parents_to_check)
            plan.updated_at = self._clock()

        logger.info(
            "Completed %d tasks in goal %s (%d skipped, %d parents changed)",
            len(updated),
            goal_id,
            len(skipped),
            len(changed_parents),
        )
        return CompletionResult(
            updated_tasks=[t.model_copy() for t in updated],
            completed_parents=[t.model_copy() for t in changed_parents],
        )
