"""CLI module entry point.

Enables running the CLI via: python -m jira_mcp.cli
"""

from jira_mcp.cli.main import cli

if __name__ == "__main__":
    cli()
