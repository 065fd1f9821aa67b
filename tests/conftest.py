"""
Root pytest configuration and shared fixtures.

Provides task stores over both backends, a deterministic clock and the
helper for reading minified tool output.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Union

import pytest
from mcp.types import TextContent

from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.storage import JsonFileStorage, MemoryStorage

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools wrapped with canonical_tool return TextContent with minified
    JSON. This helper extracts the dict for test assertions.

    Raises:
        TypeError: If result is neither dict nor TextContent
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(
        f"Expected dict or TextContent, got {type(result).__name__}"
    )


class FakeClock:
    """Monotonic clock returning distinct ISO-8601 timestamps."""

    start = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        moment = self.start + timedelta(seconds=self.ticks)
        return moment.isoformat().replace("+00:00", "Z")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(memory_storage: MemoryStorage, clock: FakeClock) -> TaskHierarchyStore:
    """In-memory store with a deterministic clock."""
    return TaskHierarchyStore(memory_storage, clock=clock)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "taskplan.json"


@pytest.fixture
def file_store(store_path: Path) -> TaskHierarchyStore:
    """Store persisted to a JSON file under ``tmp_path``."""
    return TaskHierarchyStore(JsonFileStorage(store_path))


@pytest.fixture
def make_file_store(store_path: Path) -> Callable[[], TaskHierarchyStore]:
    """Factory that reopens the same store file (simulates a restart)."""

    def _make() -> TaskHierarchyStore:
        return TaskHierarchyStore(JsonFileStorage(store_path))

    return _make


@pytest.fixture
def goal_id(store: TaskHierarchyStore) -> int:
    """A freshly created goal in ``store``."""
    return store.create_goal("Ship the billing page", "acme/web").id


def assert_response_envelope(response: Dict[str, Any]) -> None:
    """Check the response-v2 envelope keys."""
    assert set(response) == {"success", "data", "error", "meta"}
    assert response["meta"]["version"] == RESPONSE_CONTRACT_VERSION
