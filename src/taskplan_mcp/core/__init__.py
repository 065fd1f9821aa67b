"""Core task hierarchy store and shared infrastructure for taskplan-mcp."""

from taskplan_mcp.core.errors import (
    InvalidReferenceError,
    NotFoundError,
    StorageError,
    StructuralConflictError,
    TaskPlanError,
)
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.models import (
    CompletionResult,
    Goal,
    IncludeSubtasks,
    Plan,
    RemovalResult,
    StoreSnapshot,
    Task,
)
from taskplan_mcp.core.storage import JsonFileStorage, MemoryStorage, StorageBackend

__all__ = [
    "TaskHierarchyStore",
    "StorageBackend",
    "JsonFileStorage",
    "MemoryStorage",
    "Goal",
    "Plan",
    "Task",
    "IncludeSubtasks",
    "StoreSnapshot",
    "RemovalResult",
    "CompletionResult",
    "TaskPlanError",
    "NotFoundError",
    "InvalidReferenceError",
    "StructuralConflictError",
    "StorageError",
]
