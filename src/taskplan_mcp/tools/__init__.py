"""MCP tool registration surface.

Only the unified action-routed tools (goal, task) are exported.
"""

from taskplan_mcp.tools.unified import register_unified_tools

__all__ = [
    "register_unified_tools",
]
