"""Tests for the JSON file and in-memory storage backends."""

import json

import pytest

from taskplan_mcp.core.errors import StorageError
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.models import Goal, Plan, StoreSnapshot, Task
from taskplan_mcp.core.storage import JsonFileStorage, MemoryStorage, create_storage


def _snapshot() -> StoreSnapshot:
    return StoreSnapshot(
        next_goal_id=2,
        goals={1: Goal(id=1, description="Goal", repo_name="repo")},
        plans={1: Plan(goal_id=1)},
        tasks=[Task(id="1", goal_id=1, title="T", description="D")],
        id_counters={1: {"root": 1}},
    )


class TestJsonFileStorage:
    def test_missing_file_loads_empty(self, tmp_path):
        snapshot = JsonFileStorage(tmp_path / "nope.json").load()
        assert snapshot.goals == {}
        assert snapshot.tasks == []
        assert snapshot.next_goal_id == 1

    def test_save_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        JsonFileStorage(path).save(_snapshot())
        assert path.exists()

    def test_save_then_load(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "store.json")
        storage.save(_snapshot())

        loaded = storage.load()
        assert loaded.next_goal_id == 2
        assert loaded.goals[1].repo_name == "repo"
        assert loaded.tasks[0].id == "1"
        assert loaded.id_counters == {1: {"root": 1}}

    def test_save_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStorage(path).save(_snapshot())
        assert not (tmp_path / "store.json.tmp").exists()

    def test_corrupt_json_raises_storage_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError, match="not valid JSON"):
            JsonFileStorage(path).load()

    def test_non_object_root_raises_storage_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(path).load()

    def test_invalid_layout_raises_storage_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({"tasks": [{"id": "1"}]}), encoding="utf-8")
        with pytest.raises(StorageError, match="invalid layout"):
            JsonFileStorage(path).load()

    def test_missing_counters_are_reset(self, tmp_path):
        path = tmp_path / "store.json"
        data = _snapshot().model_dump(mode="json")
        del data["id_counters"]
        path.write_text(json.dumps(data), encoding="utf-8")

        assert JsonFileStorage(path).load().id_counters == {}

    def test_malformed_counters_are_reset_with_warning(self, tmp_path, caplog):
        path = tmp_path / "store.json"
        data = _snapshot().model_dump(mode="json")
        data["id_counters"] = "garbage"
        path.write_text(json.dumps(data), encoding="utf-8")

        with caplog.at_level("WARNING", logger="taskplan_mcp.core.storage"):
            snapshot = JsonFileStorage(path).load()

        assert snapshot.id_counters == {}
        assert "malformed id counters" in caplog.text

    def test_describe_is_path(self, tmp_path):
        path = tmp_path / "store.json"
        assert JsonFileStorage(path).describe() == str(path)


class TestMemoryStorage:
    def test_empty_load(self):
        assert MemoryStorage().load().tasks == []

    def test_save_is_a_copy(self):
        storage = MemoryStorage()
        snapshot = _snapshot()
        storage.save(snapshot)
        snapshot.tasks[0].title = "changed"

        assert storage.load().tasks[0].title == "T"
        assert storage.save_count == 1


class TestCreateStorage:
    def test_none_is_memory(self):
        assert isinstance(create_storage(None), MemoryStorage)

    def test_memory_keyword(self):
        assert isinstance(create_storage("memory"), MemoryStorage)

    def test_path_is_json_file(self, tmp_path):
        storage = create_storage(tmp_path / "x.json")
        assert isinstance(storage, JsonFileStorage)


class TestStorePersistence:
    def test_store_survives_restart(self, file_store, make_file_store):
        goal = file_store.create_goal("Persist", "repo")
        file_store.add_tasks(
            goal.id,
            [{"title": "A", "description": "a", "subtasks": [{"title": "B", "description": "b"}]}],
        )
        file_store.soft_delete_tasks(goal.id, ["1.1"])

        reopened = make_file_store()
        assert reopened.get_goal(goal.id).description == "Persist"
        assert [t.id for t in reopened.get_tasks(goal.id, include_subtasks="recursive")] == ["1"]
        # Counter survives: deleted id "1.1" is not reissued
        assert reopened.create_task(goal.id, "C", "c", parent_id="1").id == "1.2"
        assert reopened.create_goal("Next", "repo").id == goal.id + 1

    def test_counters_reseeded_after_legacy_load(self, store_path, make_file_store):
        store = make_file_store()
        goal = store.create_goal("Legacy", "repo")

        data = json.loads(store_path.read_text(encoding="utf-8"))
        del data["id_counters"]
        store_path.write_text(json.dumps(data), encoding="utf-8")

        reopened = make_file_store()
        assert reopened.create_task(goal.id, "A", "a").id == "1"

    def test_failed_flush_rolls_back(self, memory_storage, clock, monkeypatch):
        store = TaskHierarchyStore(memory_storage, clock=clock)
        goal = store.create_goal("Rollback", "repo")

        def failing_save(snapshot):
            raise StorageError("disk full")

        monkeypatch.setattr(memory_storage, "save", failing_save)
        with pytest.raises(StorageError):
            store.create_task(goal.id, "A", "a")

        assert store.get_tasks(goal.id) == []
        monkeypatch.undo()
        assert store.create_task(goal.id, "A", "a").id == "1"
