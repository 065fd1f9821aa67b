"""Tests for task selection and hierarchical ordering."""

import pytest

from taskplan_mcp.core.models import IncludeSubtasks, Task
from taskplan_mcp.core.query import select_tasks


def _task(task_id, parent_id=None, deleted=False):
    return Task(
        id=task_id,
        goal_id=1,
        parent_id=parent_id,
        title=f"Task {task_id}",
        description="",
        deleted=deleted,
    )


@pytest.fixture
def tasks():
    # Insertion order deliberately scrambled
    return [
        _task("10"),
        _task("2"),
        _task("1.2", "1"),
        _task("1"),
        _task("1.1", "1"),
        _task("1.1.1", "1.1"),
        _task("2.1", "2", deleted=True),
        _task("3", deleted=True),
    ]


def _ids(result):
    return [t.id for t in result]


class TestWithoutIds:
    def test_none_returns_live_roots(self, tasks):
        assert _ids(select_tasks(tasks)) == ["1", "2", "10"]

    def test_first_level(self, tasks):
        result = select_tasks(tasks, include_subtasks=IncludeSubtasks.FIRST_LEVEL)
        assert _ids(result) == ["1", "1.1", "1.2", "2", "10"]

    def test_recursive(self, tasks):
        result = select_tasks(tasks, include_subtasks="recursive")
        assert _ids(result) == ["1", "1.1", "1.1.1", "1.2", "2", "10"]

    def test_recursive_with_deleted(self, tasks):
        result = select_tasks(tasks, include_subtasks="recursive", include_deleted=True)
        assert _ids(result) == ["1", "1.1", "1.1.1", "1.2", "2", "2.1", "3", "10"]

    def test_empty_list_is_same_as_none(self, tasks):
        assert _ids(select_tasks(tasks, task_ids=[])) == ["1", "2", "10"]


class TestWithIds:
    def test_only_requested(self, tasks):
        assert _ids(select_tasks(tasks, task_ids=["1.1", "2"])) == ["1.1", "2"]

    def test_first_level_children(self, tasks):
        result = select_tasks(tasks, task_ids=["1"], include_subtasks="first-level")
        assert _ids(result) == ["1", "1.1", "1.2"]

    def test_recursive_descendants(self, tasks):
        result = select_tasks(tasks, task_ids=["1"], include_subtasks="recursive")
        assert _ids(result) == ["1", "1.1", "1.1.1", "1.2"]

    def test_overlap_is_deduplicated(self, tasks):
        result = select_tasks(tasks, task_ids=["1", "1.1"], include_subtasks="recursive")
        assert _ids(result) == ["1", "1.1", "1.1.1", "1.2"]

    def test_missing_and_deleted_ids_dropped(self, tasks):
        assert _ids(select_tasks(tasks, task_ids=["3", "99", "2"])) == ["2"]

    def test_deleted_children_filtered(self, tasks):
        result = select_tasks(tasks, task_ids=["2"], include_subtasks="first-level")
        assert _ids(result) == ["2"]

    def test_deleted_included_on_request(self, tasks):
        result = select_tasks(tasks, task_ids=["2", "3"], include_subtasks="first-level", include_deleted=True)
        assert _ids(result) == ["2", "2.1", "3"]


def test_unknown_mode_lists_allowed_values(tasks):
    with pytest.raises(ValueError, match="none, first-level, recursive"):
        select_tasks(tasks, include_subtasks="everything")


def test_input_not_mutated(tasks):
    before = [t.model_copy() for t in tasks]
    select_tasks(tasks, include_subtasks="recursive", include_deleted=True)
    assert tasks == before
