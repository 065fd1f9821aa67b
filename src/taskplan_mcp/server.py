"""FastMCP server for taskplan-mcp.

Exposes the unified ``goal`` and ``task`` tools, goal resources and the
``plan_goal`` prompt over the stdio transport.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from taskplan_mcp.config import ServerConfig, get_config
from taskplan_mcp.core.errors import StorageError
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.observability import audit_log
from taskplan_mcp.prompts.workflows import register_workflow_prompts
from taskplan_mcp.resources.goals import register_goal_resources
from taskplan_mcp.tools.unified import register_unified_tools

logger = logging.getLogger(__name__)


def create_store(config: ServerConfig) -> TaskHierarchyStore:
    """Open the task store described by ``config``."""
    storage = config.create_storage()
    logger.info("Using task store: %s", storage.describe())
    return TaskHierarchyStore(storage)


def create_server(
    config: Optional[ServerConfig] = None,
    store: Optional[TaskHierarchyStore] = None,
) -> FastMCP:
    """Create and configure the FastMCP server instance."""

    if config is None:
        config = get_config()

    config.setup_logging()

    if store is None:
        store = create_store(config)

    mcp = FastMCP(name=config.server_name)

    register_unified_tools(mcp, config, store)
    register_goal_resources(mcp, config, store)
    register_workflow_prompts(mcp, config, store)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the taskplan-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting %s v%s", config.server_name, config.server_version)
        audit_log("tool_invocation", tool="server_start", version=config.server_version)

        server.run()

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except StorageError as exc:
        logger.error("Cannot open task store: %s", exc.message)
        audit_log("tool_invocation", tool="server_error", error=exc.message, success=False)
        sys.exit(1)
    except Exception as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        audit_log("tool_invocation", tool="server_error", error=str(exc), success=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
