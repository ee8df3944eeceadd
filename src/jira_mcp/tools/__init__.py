"""MCP tool registrations for jira-mcp."""

from jira_mcp.tools.unified import register_unified_tools

__all__ = ["register_unified_tools"]
