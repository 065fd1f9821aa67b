"""Tool registration helper: one canonical name, minified JSON output."""

from __future__ import annotations

import functools
import json
import logging
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent

from taskplan_mcp.core.observability import mcp_tool

logger = logging.getLogger(__name__)


def _minify_response(result: dict[str, Any]) -> TextContent:
    return TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )


def canonical_tool(
    mcp: FastMCP,
    *,
    canonical_name: str,
    **tool_kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Register a sync tool under ``canonical_name``.

    Dict results (response envelopes) are returned to the client as a
    single minified JSON ``TextContent``. The function is instrumented
    with ``mcp_tool`` before being handed to FastMCP.

    Args:
        mcp: FastMCP instance
        canonical_name: Name clients call the tool by
        **tool_kwargs: Passed through to ``mcp.tool()``
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = func(*args, **kwargs)
            if isinstance(result, dict):
                return _minify_response(result)
            return result

        instrumented = mcp_tool(tool_name=canonical_name)(wrapper)
        logger.debug("Registering tool %s", canonical_name)
        return mcp.tool(name=canonical_name, **tool_kwargs)(instrumented)

    return decorator
