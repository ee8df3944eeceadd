"""Structured logging configuration with automatic context injection.

Log records emitted while a tool call is in flight carry the call's
correlation ID, tool name and operation, so all lines belonging to one
invocation (including best-effort expansion failures) can be grouped.

Logs always go to stderr: stdout is the MCP stdio transport.

Usage:
    from jira_mcp.core.logging_config import configure_logging

    configure_logging(level="DEBUG", format="human")
    logger = logging.getLogger(__name__)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from jira_mcp.core.context import get_current_context

__all__ = [
    "ContextFilter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "configure_logging",
]

ROOT_LOGGER = "jira_mcp"

_CONTEXT_ATTRS = ("correlation_id", "tool_name", "operation", "elapsed_ms")


class ContextFilter(logging.Filter):
    """Logging filter that injects request context into log records.

    Adds ``correlation_id``, ``tool_name``, ``operation`` and ``elapsed_ms``
    to every record. Outside a tool call the values are placeholders.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in get_current_context().to_dict().items():
            setattr(record, key, "-" if value == "" else value)
        return True


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter for machine-readable output.

    Example output:
        {"timestamp":"2024-01-15T10:30:45.123Z","level":"WARNING",
         "logger":"jira_mcp.core.expansion","message":"Expansion omitted",
         "correlation_id":"req_a1b2c3d4e5f6","tool_name":"manage_jira_issue",
         "operation":"get","elapsed_ms":42.5}
    """

    def __init__(self, *, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

        # Standard attributes to exclude from "extra"
        self._standard_attrs = {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "message",
            "exc_info",
            "exc_text",
            "stack_info",
            *_CONTEXT_ATTRS,
        }

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in _CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "-"):
                log_entry[attr] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra = {}
            for key, value in record.__dict__.items():
                if key in self._standard_attrs:
                    continue
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with context prefix.

    Produces logs in format:
        2024-01-15 10:30:45 [LEVEL] [correlation_id] logger: message
    """

    def __init__(self, *, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        parts = []

        if self.include_timestamp:
            ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
            parts.append(ts)

        parts.append(f"[{record.levelname}]")

        corr_id = getattr(record, "correlation_id", "-")
        if corr_id and corr_id != "-":
            parts.append(f"[{corr_id}]")

        logger_name = record.name
        if logger_name.startswith(f"{ROOT_LOGGER}."):
            logger_name = logger_name[len(ROOT_LOGGER) + 1 :]
        parts.append(f"{logger_name}:")
        parts.append(record.getMessage())

        result = " ".join(parts)
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


def configure_logging(
    *,
    level: Union[int, str] = logging.INFO,
    format: str = "structured",  # "structured" or "human"
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the root jira_mcp logger.

    Args:
        level: Log level (default: INFO)
        format: Output format ("structured" for JSON, "human" for readable)
        stream: Output stream (default: stderr)

    Returns:
        Configured root logger for jira_mcp
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())
    handler.addFilter(ContextFilter())

    logger.addHandler(handler)
    return logger
