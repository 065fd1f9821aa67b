"""taskplan CLI entry point.

JSON-only output for AI coding assistants.
"""

import click

from taskplan_mcp.cli.config import create_context
from taskplan_mcp.cli.registry import register_all_commands


@click.group()
@click.option(
    "--db-path",
    envvar="TASKPLAN_MCP_DB_PATH",
    type=click.Path(dir_okay=False),
    help='Override the task store file ("memory" for an ephemeral store)',
)
@click.pass_context
def cli(ctx: click.Context, db_path: str | None) -> None:
    """taskplan - goal-scoped hierarchical task planning.

    All commands output JSON for reliable parsing by AI coding tools.
    """
    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = create_context(db_path=db_path)


# Register all command groups
register_all_commands(cli)


if __name__ == "__main__":
    cli()
