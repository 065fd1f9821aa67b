"""MCP prompts for taskplan-mcp."""

from taskplan_mcp.prompts.workflows import register_workflow_prompts

__all__ = ["register_workflow_prompts"]
