"""Command registry for the taskplan CLI.

Centralized registration of the command groups (goals, tasks).
"""

from typing import Optional

import click

from taskplan_mcp.cli.config import CLIContext

# Module-level storage for CLI context (for testing)
_cli_context: Optional[CLIContext] = None


def set_context(ctx: CLIContext) -> None:
    """Set the CLI context at module level.

    Primarily used for testing when not using Click's context.
    """
    global _cli_context
    _cli_context = ctx


def get_context(ctx: Optional[click.Context] = None) -> CLIContext:
    """Get CLI context from Click context or module-level storage.

    Args:
        ctx: Optional Click context with cli_context stored in obj.
             If None, returns module-level context.

    Raises:
        RuntimeError: If no context is available.
    """
    if ctx is not None:
        return ctx.obj["cli_context"]

    if _cli_context is not None:
        return _cli_context

    raise RuntimeError("No CLI context available. Call set_context() first.")


def register_all_commands(cli: click.Group) -> None:
    """Register all command groups with the CLI.

    Args:
        cli: The main Click group to register commands with.
    """
    from taskplan_mcp.cli.commands import goals, tasks

    cli.add_command(goals)
    cli.add_command(tasks)

    @cli.command("version")
    @click.pass_context
    def version(ctx: click.Context) -> None:
        """Show CLI version information."""
        from taskplan_mcp.cli.output import emit

        cli_ctx = get_context(ctx)
        db_path = cli_ctx.db_path

        emit(
            {
                "version": cli_ctx.config.server_version,
                "name": "taskplan-cli",
                "json_only": True,
                "db_path": str(db_path) if db_path else "memory",
            }
        )
