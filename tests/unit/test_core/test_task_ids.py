"""Tests for hierarchical task id helpers and the sequence allocator."""

import pytest

from taskplan_mcp.core.task_ids import (
    ROOT_KEY,
    IdentifierAllocator,
    compose_task_id,
    is_valid_task_id,
    parent_id_from_task_id,
    parent_key,
    sequence_number,
    sort_task_ids,
    task_depth,
    task_id_sort_key,
)


class TestSortOrder:
    def test_numeric_not_lexicographic(self):
        assert sort_task_ids(["10", "2", "1"]) == ["1", "2", "10"]

    def test_prefix_sorts_first(self):
        assert sort_task_ids(["1.2", "1", "2", "1.1"]) == ["1", "1.1", "1.2", "2"]

    def test_deep_ids(self):
        ids = ["1.10", "1.2.1", "1.2", "1.9", "1.2.10", "1.2.2"]
        assert sort_task_ids(ids) == ["1.2", "1.2.1", "1.2.2", "1.2.10", "1.9", "1.10"]

    def test_sort_returns_new_list(self):
        ids = ["2", "1"]
        result = sort_task_ids(ids)
        assert ids == ["2", "1"]
        assert result == ["1", "2"]

    def test_sort_key_is_int_tuple(self):
        assert task_id_sort_key("3.14.1") == (3, 14, 1)


class TestParentIdFromTaskId:
    @pytest.mark.parametrize(
        "task_id,expected",
        [
            ("1.2.3", "1.2"),
            ("4.1", "4"),
            ("7", None),
            ("", None),
        ],
    )
    def test_parent_derivation(self, task_id, expected):
        assert parent_id_from_task_id(task_id) == expected


class TestIdHelpers:
    def test_sequence_number(self):
        assert sequence_number("1.12") == 12
        assert sequence_number("3") == 3

    def test_task_depth(self):
        assert task_depth("1") == 1
        assert task_depth("1.2.3") == 3

    def test_compose_task_id(self):
        assert compose_task_id(None, 4) == "4"
        assert compose_task_id("1.2", 3) == "1.2.3"

    def test_parent_key(self):
        assert parent_key(None) == ROOT_KEY
        assert parent_key("1.2") == "1.2"

    @pytest.mark.parametrize("task_id", ["1", "1.2", "10.3.45"])
    def test_valid_ids(self, task_id):
        assert is_valid_task_id(task_id)

    @pytest.mark.parametrize("task_id", ["", "0", "1.0", "1.", ".1", "a", "1..2", "01", 1, None])
    def test_invalid_ids(self, task_id):
        assert not is_valid_task_id(task_id)


class TestIdentifierAllocator:
    def test_ensure_goal_seeds_root_counter(self):
        counters = {}
        allocator = IdentifierAllocator(counters)
        allocator.ensure_goal(1)
        assert counters == {1: {"root": 0}}

    def test_ensure_goal_keeps_existing(self):
        counters = {1: {"root": 5, "2": 1}}
        IdentifierAllocator(counters).ensure_goal(1)
        assert counters == {1: {"root": 5, "2": 1}}

    def test_allocate_is_monotonic_per_parent(self):
        allocator = IdentifierAllocator({})
        assert [allocator.allocate(1, "root") for _ in range(3)] == [1, 2, 3]
        assert allocator.allocate(1, "2") == 1
        assert allocator.allocate(1, "root") == 4

    def test_counters_are_goal_scoped(self):
        allocator = IdentifierAllocator({})
        allocator.allocate(1, "root")
        allocator.allocate(1, "root")
        assert allocator.allocate(2, "root") == 1

    def test_allocate_lazily_installs_goal(self):
        counters = {}
        allocator = IdentifierAllocator(counters)
        assert allocator.allocate(3, "1") == 1
        assert counters[3] == {"root": 0, "1": 1}

    def test_peek(self):
        allocator = IdentifierAllocator({1: {"root": 2}})
        assert allocator.peek(1, "root") == 2
        assert allocator.peek(1, "1") == 0
        assert allocator.peek(9, "root") == 0

    def test_rebind(self):
        allocator = IdentifierAllocator({1: {"root": 7}})
        replacement = {1: {"root": 1}}
        allocator.rebind(replacement)
        assert allocator.allocate(1, "root") == 2
        assert replacement[1]["root"] == 2
