"""JSON output helpers for the jira-mcp CLI.

The CLI emits response-v2 JSON only, built with the same helpers as the MCP
tools, so scripts can branch on ``success`` and ``data.error_code``.
"""

import json
import sys
from dataclasses import asdict
from typing import Any, Mapping, NoReturn, Sequence

from jira_mcp.core.context import generate_correlation_id
from jira_mcp.core.responses import error_response, success_response


def emit(data: Any) -> None:
    """Emit minified JSON to stdout."""
    print(json.dumps(data, separators=(",", ":"), default=str))


def emit_error(
    message: str,
    code: str = "INTERNAL_ERROR",
    *,
    error_type: str = "internal",
    remediation: str | None = None,
    details: Mapping[str, Any] | None = None,
) -> NoReturn:
    """Emit error JSON to stderr and exit with code 1.

    Raises:
        SystemExit: Always exits with code 1.
    """
    response = error_response(
        message=message,
        error_code=code,
        error_type=error_type,
        remediation=remediation,
        details=details,
        request_id=generate_correlation_id("cli"),
    )
    print(json.dumps(asdict(response), separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)


def emit_success(
    data: Mapping[str, Any],
    *,
    warnings: Sequence[str] | None = None,
) -> None:
    """Emit a success response envelope to stdout."""
    response = success_response(
        data=data,
        warnings=warnings,
        request_id=generate_correlation_id("cli"),
    )
    emit(asdict(response))
