"""JSON output helpers for the taskplan CLI.

Every command prints exactly one response-v2 envelope: successes go to
stdout, errors to stderr followed by exit code 1. Envelopes are built with
``taskplan_mcp.core.responses`` so CLI output matches the MCP tools.
"""

import json
import sys
from dataclasses import asdict
from typing import Any, Mapping, NoReturn, Sequence

from taskplan_mcp.cli.logging import generate_request_id, get_request_id
from taskplan_mcp.core.errors import TaskPlanError
from taskplan_mcp.core.responses import error_response, success_response


def _request_id() -> str:
    return get_request_id() or generate_request_id()


def emit(data: Any) -> None:
    """Print minified JSON to stdout."""
    print(json.dumps(data, separators=(",", ":"), default=str))


def emit_error(
    message: str,
    code: str = "INTERNAL_ERROR",
    *,
    error_type: str = "internal",
    remediation: str | None = None,
    details: Mapping[str, Any] | None = None,
) -> NoReturn:
    """Print an error envelope to stderr and exit with code 1.

    Raises:
        SystemExit: Always exits with code 1.
    """
    response = error_response(
        message=message,
        error_code=code,
        error_type=error_type,
        remediation=remediation,
        details=details,
        request_id=_request_id(),
    )
    print(json.dumps(asdict(response), separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)


def emit_task_error(exc: TaskPlanError) -> NoReturn:
    """Report a typed store exception with its canonical code."""
    emit_error(
        exc.message,
        code=exc.error_code.value,
        error_type=exc.error_type.value,
        remediation=exc.remediation,
        details=exc.details or None,
    )


def emit_success(
    data: Any,
    *,
    warnings: Sequence[str] | None = None,
    telemetry: Mapping[str, Any] | None = None,
) -> None:
    """Print a success envelope to stdout; non-dict data goes under ``result``."""
    payload = data if isinstance(data, dict) else {"result": data}
    response = success_response(
        data=payload,
        warnings=warnings,
        telemetry=telemetry,
        request_id=_request_id(),
    )
    emit(asdict(response))


def emit_envelope_error(envelope: Mapping[str, Any]) -> NoReturn:
    """Print a prebuilt error envelope to stderr and exit with code 1."""
    print(json.dumps(envelope, separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)
