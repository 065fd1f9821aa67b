"""Tests for parent completion rechecks and progress summaries."""

from typing import Dict, List, Optional

import pytest

from taskplan_mcp.core.models import Task
from taskplan_mcp.core.progress import CompletionPropagator


class _Tree:
    """Flat task list with the lookups the propagator expects."""

    def __init__(self, tasks: List[Task]):
        self.tasks = tasks

    def lookup(self, goal_id: int, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.goal_id == goal_id and task.id == task_id:
                return task
        return None

    def children_of(self, goal_id: int, parent_id: str) -> List[Task]:
        return [t for t in self.tasks if t.goal_id == goal_id and t.parent_id == parent_id]

    def tasks_of(self, goal_id: int) -> List[Task]:
        return [t for t in self.tasks if t.goal_id == goal_id]


def _task(task_id: str, parent_id: Optional[str] = None, **fields) -> Task:
    return Task(id=task_id, goal_id=1, parent_id=parent_id, title=task_id, description=task_id, **fields)


def _propagator(tasks: List[Task]) -> CompletionPropagator:
    tree = _Tree(tasks)
    return CompletionPropagator(
        lookup=tree.lookup,
        children_of=tree.children_of,
        tasks_of=tree.tasks_of,
        clock=lambda: "2030-01-01T00:00:00Z",
    )


class TestRecheckParent:
    def test_none_parent_is_noop(self):
        assert _propagator([]).recheck_parent(1, None) is None

    def test_missing_parent_is_noop(self):
        assert _propagator([]).recheck_parent(1, "3") is None

    def test_completes_when_all_live_children_complete(self):
        parent = _task("1")
        tasks = [
            parent,
            _task("1.1", "1", is_complete=True),
            _task("1.2", "1", deleted=True),
        ]

        changed = _propagator(tasks).recheck_parent(1, "1")

        assert changed is parent
        assert parent.is_complete is True
        assert parent.updated_at == "2030-01-01T00:00:00Z"

    def test_reopens_when_a_child_is_incomplete(self):
        parent = _task("1", is_complete=True)
        tasks = [parent, _task("1.1", "1", is_complete=True), _task("1.2", "1")]

        assert _propagator(tasks).recheck_parent(1, "1") is parent
        assert parent.is_complete is False

    def test_no_live_children_means_incomplete(self):
        parent = _task("1", is_complete=True)
        tasks = [parent, _task("1.1", "1", is_complete=True, deleted=True)]

        assert _propagator(tasks).recheck_parent(1, "1") is parent
        assert parent.is_complete is False

    def test_unchanged_returns_none(self):
        parent = _task("1", updated_at="2020-01-01T00:00:00Z")
        tasks = [parent, _task("1.1", "1")]

        assert _propagator(tasks).recheck_parent(1, "1") is None
        assert parent.updated_at == "2020-01-01T00:00:00Z"

    def test_grandparent_not_rechecked(self):
        root = _task("1")
        mid = _task("1.1", "1")
        tasks = [root, mid, _task("1.1.1", "1.1", is_complete=True)]

        _propagator(tasks).recheck_parent(1, "1.1")

        assert mid.is_complete is True
        assert root.is_complete is False


class TestRecheckParents:
    def test_dedupes_and_skips_none(self):
        parent = _task("1")
        tasks = [parent, _task("1.1", "1", is_complete=True)]

        changed = _propagator(tasks).recheck_parents(1, [None, "1", "1"])

        assert changed == [parent]


class TestSummarize:
    @pytest.fixture
    def tasks(self) -> List[Task]:
        return [
            _task("1", is_complete=True),
            _task("2"),
            _task("2.1", "2", is_complete=True),
            _task("3", deleted=True),
        ]

    def test_counts(self, tasks):
        summary: Dict = _propagator(tasks).summarize(1)
        assert summary == {
            "goal_id": 1,
            "total_tasks": 3,
            "completed_tasks": 2,
            "remaining_tasks": 1,
            "deleted_tasks": 1,
            "top_level_tasks": 2,
            "percentage": 66,
        }

    def test_empty_goal(self):
        summary = _propagator([]).summarize(1)
        assert summary["total_tasks"] == 0
        assert summary["percentage"] == 0
