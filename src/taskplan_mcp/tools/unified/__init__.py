"""Unified action-based MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .goal import register_unified_goal_tool
from .task import register_unified_task_tool

if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP
    from taskplan_mcp.config import ServerConfig
    from taskplan_mcp.core.hierarchy import TaskHierarchyStore


def register_unified_tools(
    mcp: "FastMCP", config: "ServerConfig", store: "TaskHierarchyStore"
) -> None:
    """Register all unified tool routers."""
    register_unified_goal_tool(mcp, config, store)
    register_unified_task_tool(mcp, config, store)


__all__ = [
    "register_unified_tools",
    "register_unified_goal_tool",
    "register_unified_task_tool",
]
