"""taskplan CLI - command-line access to the task store.

All commands emit structured JSON (response-v2 envelopes) for reliable
parsing by AI coding assistants.
"""

from taskplan_mcp.cli.config import CLIContext, create_context
from taskplan_mcp.cli.logging import cli_command, get_cli_logger, get_request_id
from taskplan_mcp.cli.main import cli
from taskplan_mcp.cli.output import emit, emit_error, emit_success
from taskplan_mcp.cli.registry import get_context, set_context

__all__ = [
    # Entry point
    "cli",
    # Context
    "CLIContext",
    "create_context",
    "get_context",
    "set_context",
    # Output
    "emit",
    "emit_error",
    "emit_success",
    # Logging
    "cli_command",
    "get_cli_logger",
    "get_request_id",
]
