"""FastMCP server for jira-mcp.

This server exposes five operation-discriminated tools (issue, board,
sprint, filter, project) plus documentation resources generated from their
descriptors.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig, get_config
from jira_mcp.core.jira_client import JiraClient
from jira_mcp.core.upstream import Upstream
from jira_mcp.resources.tools import register_tool_resources
from jira_mcp.tools.unified import TOOL_DESCRIPTORS, register_unified_tools

logger = logging.getLogger(__name__)


def _build_client(config: ServerConfig) -> JiraClient:
    """Build the Jira client, refusing to start without credentials."""

    missing = config.jira.missing()
    if missing:
        raise ValueError(
            f"Missing Jira configuration: {', '.join(missing)}. "
            "Set them in the environment or in jira-mcp.toml."
        )
    return JiraClient(config.jira)


def create_server(
    config: Optional[ServerConfig] = None, client: Optional[Upstream] = None
) -> FastMCP:
    """Create and configure the FastMCP server instance.

    Args:
        config: Server configuration (defaults to the process configuration)
        client: Upstream client shared by every tool (defaults to a
            ``JiraClient`` built from ``config``)

    Raises:
        ValueError: If no client is given and Jira credentials are missing
    """

    if config is None:
        config = get_config()

    config.setup_logging()

    if client is None:
        client = _build_client(config)

    mcp = FastMCP(name=config.server_name)

    register_unified_tools(mcp, config, client)
    register_tool_resources(mcp, config, TOOL_DESCRIPTORS)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the jira-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting %s v%s", config.server_name, config.server_version)
        server.run()

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except BaseException as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
