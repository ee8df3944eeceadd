"""jira-mcp CLI entry point.

JSON-only output; logs go to stderr.
"""

import asyncio

import click

from jira_mcp.config import ServerConfig, set_config
from jira_mcp.core.errors import ToolError, UpstreamError
from jira_mcp.core.jira_client import JiraClient
from jira_mcp.cli.output import emit_error, emit_success


@click.group()
@click.option(
    "--config",
    "config_file",
    envvar="JIRA_MCP_CONFIG_FILE",
    type=click.Path(exists=False),
    help="Path to a jira-mcp.toml file",
)
@click.pass_context
def cli(ctx: click.Context, config_file: str | None) -> None:
    """jira-mcp - Jira tools for MCP clients."""
    ctx.ensure_object(dict)
    config = ServerConfig.from_env(config_file)
    set_config(config)
    ctx.obj["config"] = config


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the MCP server over stdio."""
    from jira_mcp.server import main

    main()


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check that Jira is reachable with the configured credentials."""
    config: ServerConfig = ctx.obj["config"]
    config.setup_logging()

    missing = config.jira.missing()
    if missing:
        emit_error(
            f"Missing Jira configuration: {', '.join(missing)}",
            "MISSING_REQUIRED",
            error_type="validation",
            remediation="Set JIRA_HOST, JIRA_EMAIL and JIRA_API_TOKEN",
            details={"missing": missing},
        )

    client = JiraClient(config.jira)
    try:
        myself = asyncio.run(client.health_check())
    except UpstreamError as exc:
        failure = ToolError.upstream(exc, "health").to_response()
        emit_error(
            failure["error"],
            failure["data"]["error_code"],
            error_type=failure["data"]["error_type"],
            remediation=failure["data"].get("remediation"),
            details=failure["data"].get("details"),
        )

    emit_success(
        {
            "healthy": True,
            "host": config.jira.base_url,
            "account": myself.get("displayName"),
            "server_version": config.server_version,
        }
    )


if __name__ == "__main__":
    cli()
