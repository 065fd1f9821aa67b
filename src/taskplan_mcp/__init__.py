"""Taskplan MCP - MCP server for goal-scoped hierarchical task planning."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("taskplan-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

from taskplan_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
