"""jira-mcp command-line interface (JSON output)."""

from jira_mcp.cli.main import cli
from jira_mcp.cli.output import emit, emit_error, emit_success

__all__ = ["cli", "emit", "emit_error", "emit_success"]
