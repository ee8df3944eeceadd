"""Request context propagation for tool invocations.

Every tool call runs inside :func:`request_context`, which binds a correlation
ID plus the tool and operation names to context variables. The logging
``ContextFilter`` and the error response builder read them back, so log lines
and error payloads for one call share the same ``request_id``.

Usage:
    from jira_mcp.core.context import request_context, get_correlation_id

    with request_context(tool_name="manage_jira_sprint", operation="get") as ctx:
        logger.info("handling %s", ctx.correlation_id)
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

__all__ = [
    "correlation_id_var",
    "tool_name_var",
    "operation_var",
    "start_time_var",
    "RequestContext",
    "generate_correlation_id",
    "request_context",
    "get_correlation_id",
    "get_tool_name",
    "get_operation",
    "get_current_context",
]

# -----------------------------------------------------------------------------
# Context Variables
# -----------------------------------------------------------------------------

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
"""Request correlation ID for tracing a tool call across components."""

tool_name_var: ContextVar[str] = ContextVar("tool_name", default="")
"""Name of the MCP tool currently handling the call."""

operation_var: ContextVar[str] = ContextVar("operation", default="")
"""Operation discriminator of the current call (get, list, update...)."""

start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)
"""Call start time as Unix timestamp."""


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID.

    Format: {prefix}_{12_hex_chars}, e.g. "req_a1b2c3d4e5f6".
    """
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass
class RequestContext:
    """Snapshot of the current request context.

    Attributes:
        correlation_id: Unique request identifier
        tool_name: MCP tool handling the request
        operation: Operation requested from the tool
        start_time: Request start timestamp
    """

    correlation_id: str = ""
    tool_name: str = ""
    operation: str = ""
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds elapsed since the request started."""
        if self.start_time <= 0:
            return 0.0
        return (time.time() - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for logging/serialization."""
        return {
            "correlation_id": self.correlation_id,
            "tool_name": self.tool_name,
            "operation": self.operation,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


@contextmanager
def request_context(
    *,
    tool_name: str = "",
    operation: str = "",
    correlation_id: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Bind request context variables for the duration of the block.

    Context variables are task-local, so the manager is safe to use inside
    coroutines as long as enter and exit happen in the same task.

    Args:
        tool_name: MCP tool name
        operation: Requested operation (may be empty before validation)
        correlation_id: Request ID (auto-generated if None)

    Yields:
        RequestContext snapshot
    """
    corr_id = correlation_id or generate_correlation_id()
    start = time.time()

    token_corr = correlation_id_var.set(corr_id)
    token_tool = tool_name_var.set(tool_name)
    token_op = operation_var.set(operation)
    token_start = start_time_var.set(start)

    try:
        yield RequestContext(
            correlation_id=corr_id,
            tool_name=tool_name,
            operation=operation,
            start_time=start,
        )
    finally:
        correlation_id_var.reset(token_corr)
        tool_name_var.reset(token_tool)
        operation_var.reset(token_op)
        start_time_var.reset(token_start)


# -----------------------------------------------------------------------------
# Context Accessors
# -----------------------------------------------------------------------------


def get_correlation_id() -> str:
    """Current correlation ID, or empty string outside a request."""
    return correlation_id_var.get()


def get_tool_name() -> str:
    return tool_name_var.get()


def get_operation() -> str:
    return operation_var.get()


def get_current_context() -> RequestContext:
    """Get a snapshot of all current context values."""
    return RequestContext(
        correlation_id=get_correlation_id(),
        tool_name=get_tool_name(),
        operation=get_operation(),
        start_time=start_time_var.get(),
    )
