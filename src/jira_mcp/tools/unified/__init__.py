"""Unified operation-based Jira tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

from .board import BOARD_DESCRIPTOR, register_unified_board_tool
from .filter import FILTER_DESCRIPTOR, register_unified_filter_tool
from .issue import ISSUE_DESCRIPTOR, register_unified_issue_tool
from .project import PROJECT_DESCRIPTOR, register_unified_project_tool
from .sprint import SPRINT_DESCRIPTOR, register_unified_sprint_tool

if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP

    from jira_mcp.config import ServerConfig
    from jira_mcp.core.descriptors import ToolDescriptor
    from jira_mcp.core.upstream import Upstream


TOOL_DESCRIPTORS: Tuple["ToolDescriptor", ...] = (
    ISSUE_DESCRIPTOR,
    BOARD_DESCRIPTOR,
    SPRINT_DESCRIPTOR,
    FILTER_DESCRIPTOR,
    PROJECT_DESCRIPTOR,
)


def register_unified_tools(
    mcp: "FastMCP", config: "ServerConfig", client: "Upstream"
) -> None:
    """Register all unified Jira tools against one upstream client."""
    register_unified_issue_tool(mcp, config, client)
    register_unified_board_tool(mcp, config, client)
    register_unified_sprint_tool(mcp, config, client)
    register_unified_filter_tool(mcp, config, client)
    register_unified_project_tool(mcp, config, client)


__all__ = [
    "TOOL_DESCRIPTORS",
    "register_unified_tools",
    "register_unified_issue_tool",
    "register_unified_board_tool",
    "register_unified_sprint_tool",
    "register_unified_filter_tool",
    "register_unified_project_tool",
]
