"""
MCP resources for taskplan-mcp.

Provides read-only resource handlers for goals and their task trees.
"""

from taskplan_mcp.resources.goals import register_goal_resources

__all__ = ["register_goal_resources"]
