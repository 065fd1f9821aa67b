"""Pydantic models for goals, plans and hierarchical tasks.

These records are what the store persists and what tools serialize.
Tasks are addressed by dot-notation ids ("1", "1.2", "1.2.3") that are
unique within their goal and never renumbered.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

SCHEMA_VERSION = 1

# Fields hidden from task responses
_RESPONSE_EXCLUDE = {"created_at", "updated_at", "parent_id"}


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing ``Z``."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class IncludeSubtasks(str, Enum):
    """How many levels of descendants a task query returns."""

    NONE = "none"
    FIRST_LEVEL = "first-level"
    RECURSIVE = "recursive"


class Goal(BaseModel):
    """A named unit of work scope. Immutable once created."""

    id: int = Field(..., ge=1)
    description: str
    repo_name: str
    created_at: str = Field(default_factory=utc_now_iso)


class Plan(BaseModel):
    """Per-goal plan record; task membership is derived from ``goal_id``."""

    goal_id: int
    updated_at: str = Field(default_factory=utc_now_iso)


class Task(BaseModel):
    """A unit of work in a goal's task tree."""

    id: str = Field(..., description="Dot-notation hierarchical id")
    goal_id: int
    parent_id: Optional[str] = Field(
        default=None, description="Parent task id, None for top-level tasks"
    )
    title: str
    description: str
    is_complete: bool = False
    deleted: bool = False
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    def to_response(self) -> Dict[str, Any]:
        """Response shape: everything but timestamps and ``parent_id``."""
        return self.model_dump(mode="json", exclude=_RESPONSE_EXCLUDE)


class StoreSnapshot(BaseModel):
    """Complete persisted state of a task store."""

    schema_version: int = SCHEMA_VERSION
    next_goal_id: int = 1
    goals: Dict[int, Goal] = Field(default_factory=dict)
    plans: Dict[int, Plan] = Field(default_factory=dict)
    tasks: List[Task] = Field(default_factory=list)
    # goal_id -> parent key ("root" or a task id) -> highest sequence issued
    id_counters: Dict[int, Dict[str, int]] = Field(default_factory=dict)


class RemovalResult(BaseModel):
    """Outcome of a soft-delete batch."""

    removed_tasks: List[Task] = Field(default_factory=list)
    completed_parents: List[Task] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "removed_tasks": [t.to_response() for t in self.removed_tasks],
            "completed_parents": [t.to_response() for t in self.completed_parents],
        }


class CompletionResult(BaseModel):
    """Outcome of a completion batch."""

    updated_tasks: List[Task] = Field(default_factory=list)
    completed_parents: List[Task] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated_tasks": [t.to_response() for t in self.updated_tasks],
            "completed_parents": [t.to_response() for t in self.completed_parents],
        }
