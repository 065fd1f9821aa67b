"""taskplan CLI module entry point.

Enables running the CLI via: python -m taskplan_mcp.cli
"""

from taskplan_mcp.cli.main import cli

if __name__ == "__main__":
    cli()
