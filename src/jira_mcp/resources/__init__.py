"""MCP resources for jira-mcp."""

from jira_mcp.resources.tools import register_tool_resources

__all__ = ["register_tool_resources"]
