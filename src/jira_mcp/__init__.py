"""Jira MCP - multi-operation Jira tools for MCP clients."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("jira-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.4.0"

from jira_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
