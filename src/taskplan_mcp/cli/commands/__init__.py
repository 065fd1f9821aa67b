"""CLI command groups."""

from taskplan_mcp.cli.commands.goals import goals
from taskplan_mcp.cli.commands.tasks import tasks

__all__ = [
    "goals",
    "tasks",
]
