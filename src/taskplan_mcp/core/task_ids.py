"""
Hierarchical task id helpers and the per-parent sequence allocator.

Task ids are dot-separated positive integers: "3" is the third top-level
task ever created in a goal, "3.2" the second child ever created under
"3". Sequence numbers come from a counter per ``(goal_id, parent_key)``
that only ever grows, so ids of soft-deleted tasks are never handed out
again.
"""

import logging
import re
from typing import Dict, Iterable, List, MutableMapping, Optional, Tuple

logger = logging.getLogger(__name__)

ROOT_KEY = "root"

_TASK_ID_PATTERN = re.compile(r"^[1-9]\d*(\.[1-9]\d*)*$")


def is_valid_task_id(task_id: object) -> bool:
    """True if ``task_id`` is a well-formed dot-notation id such as "1.2"."""
    return isinstance(task_id, str) and bool(_TASK_ID_PATTERN.match(task_id))


def task_id_sort_key(task_id: str) -> Tuple[int, ...]:
    """
    Sort key that orders ids hierarchically.

    Segments compare numerically left to right; when one id is a prefix of
    the other the shorter one sorts first ("1" < "1.1" < "1.2" < "2" < "10").
    """
    return tuple(int(part) for part in task_id.split("."))


def sort_task_ids(task_ids: Iterable[str]) -> List[str]:
    """Return ``task_ids`` as a new hierarchically sorted list."""
    return sorted(task_ids, key=task_id_sort_key)


def parent_id_from_task_id(task_id: str) -> Optional[str]:
    """
    Derive the parent id from a task id.

    Returns:
        "1.2" for "1.2.3"; None for a top-level id or an empty string
    """
    if not task_id:
        return None
    parts = task_id.split(".")
    if len(parts) == 1:
        return None
    return ".".join(parts[:-1])


def sequence_number(task_id: str) -> int:
    """Last segment of a task id as an integer."""
    return int(task_id.split(".")[-1])


def task_depth(task_id: str) -> int:
    """Number of segments in the id; top-level tasks have depth 1."""
    return len(task_id.split("."))


def compose_task_id(parent_id: Optional[str], sequence: int) -> str:
    """Build a task id from its parent id and sequence number."""
    if parent_id is None:
        return str(sequence)
    return f"{parent_id}.{sequence}"


def parent_key(parent_id: Optional[str]) -> str:
    """Counter key for a parent id: "root" for top-level tasks."""
    return ROOT_KEY if parent_id is None else parent_id


class IdentifierAllocator:
    """
    Issues per-parent monotonic sequence numbers.

    Operates on the counters mapping owned by the store snapshot
    (``{goal_id: {parent_key: highest_issued}}``), so allocations are
    persisted together with the tasks that use them.
    """

    def __init__(self, counters: MutableMapping[int, Dict[str, int]]):
        self._counters = counters

    def rebind(self, counters: MutableMapping[int, Dict[str, int]]) -> None:
        """Point the allocator at a different counters mapping."""
        self._counters = counters

    def ensure_goal(self, goal_id: int) -> Dict[str, int]:
        """Return the goal's counters, creating ``{"root": 0}`` if missing."""
        goal_counters = self._counters.get(goal_id)
        if goal_counters is None:
            goal_counters = {ROOT_KEY: 0}
            self._counters[goal_id] = goal_counters
            logger.debug("Initialized id counters for goal %s", goal_id)
        return goal_counters

    def peek(self, goal_id: int, key: str) -> int:
        """Highest sequence issued under ``key`` (0 if none)."""
        return self._counters.get(goal_id, {}).get(key, 0)

    def allocate(self, goal_id: int, key: str) -> int:
        """Increment and return the next sequence number under ``key``."""
        goal_counters = self.ensure_goal(goal_id)
        next_sequence = goal_counters.get(key, 0) + 1
        goal_counters[key] = next_sequence
        return next_sequence
