"""
Server configuration for jira-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (jira-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- JIRA_HOST: Jira Cloud site, e.g. your-team.atlassian.net
- JIRA_EMAIL: Account email used for basic auth
- JIRA_API_TOKEN: API token for that account
- JIRA_TIMEOUT: Per-request timeout in seconds (default: 30)
- JIRA_START_DATE_FIELD: Custom field id holding issue start dates
- JIRA_STORY_POINTS_FIELD: Custom field id holding story points
- JIRA_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- JIRA_MCP_STRUCTURED_LOGGING: JSON log lines (true/false)
- JIRA_MCP_SERVER_NAME: MCP server name advertised to clients
- JIRA_MCP_CONFIG_FILE: Path to TOML config file

Example jira-mcp.toml:

    [jira]
    host = "your-team.atlassian.net"
    email = "you@example.com"
    timeout = 20

    [jira.custom_fields]
    start_date = "customfield_10015"
    story_points = "customfield_10016"

    [logging]
    level = "DEBUG"
    structured = false

The API token is read from the environment only.
"""

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from jira_mcp.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("jira-mcp")
    except PackageNotFoundError:
        return "0.4.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()

DEFAULT_START_DATE_FIELD = "customfield_10015"
DEFAULT_STORY_POINTS_FIELD = "customfield_10016"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


@dataclass
class JiraSettings:
    """Connection settings for the Jira Cloud site.

    Attributes:
        host: Site host name or base URL
        email: Account email for basic auth
        api_token: API token paired with ``email``
        timeout: Per-request timeout in seconds
        start_date_field: Custom field id for issue start dates
        story_points_field: Custom field id for story points
    """

    host: str = ""
    email: str = ""
    api_token: str = ""
    timeout: float = 30.0
    start_date_field: str = DEFAULT_START_DATE_FIELD
    story_points_field: str = DEFAULT_STORY_POINTS_FIELD

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "JiraSettings":
        """Create settings from the [jira] TOML section."""
        custom = data.get("custom_fields", {})
        return cls(
            host=str(data.get("host", "")),
            email=str(data.get("email", "")),
            timeout=float(data.get("timeout", 30.0)),
            start_date_field=str(custom.get("start_date", DEFAULT_START_DATE_FIELD)),
            story_points_field=str(
                custom.get("story_points", DEFAULT_STORY_POINTS_FIELD)
            ),
        )

    @property
    def base_url(self) -> str:
        """Host as an https base URL without trailing slash."""
        host = self.host.strip().rstrip("/")
        if host and not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return host

    def missing(self) -> List[str]:
        """Names of the environment variables still needed to connect."""
        required = {
            "JIRA_HOST": self.host,
            "JIRA_EMAIL": self.email,
            "JIRA_API_TOKEN": self.api_token,
        }
        return [name for name, value in required.items() if not value]


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Jira connection
    jira: JiraSettings = field(default_factory=JiraSettings)

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "jira-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("JIRA_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["jira-mcp.toml", ".jira-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        if "jira" in data:
            self.jira = JiraSettings.from_toml_dict(data["jira"])

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = str(log["level"]).upper()
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "server" in data:
            server = data["server"]
            if "name" in server:
                self.server_name = str(server["name"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if host := os.environ.get("JIRA_HOST"):
            self.jira.host = host
        if email := os.environ.get("JIRA_EMAIL"):
            self.jira.email = email
        if token := os.environ.get("JIRA_API_TOKEN"):
            self.jira.api_token = token
        if timeout := os.environ.get("JIRA_TIMEOUT"):
            try:
                self.jira.timeout = float(timeout)
            except ValueError:
                logger.warning(
                    "Invalid JIRA_TIMEOUT '%s', keeping %.1fs", timeout, self.jira.timeout
                )
        if start_field := os.environ.get("JIRA_START_DATE_FIELD"):
            self.jira.start_date_field = start_field
        if points_field := os.environ.get("JIRA_STORY_POINTS_FIELD"):
            self.jira.story_points_field = points_field

        if level := os.environ.get("JIRA_MCP_LOG_LEVEL"):
            self.log_level = level.upper()
        if structured := os.environ.get("JIRA_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)
        if name := os.environ.get("JIRA_MCP_SERVER_NAME"):
            self.server_name = name

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)
        configure_logging(
            level=level,
            format="structured" if self.structured_logging else "human",
        )


# Global configuration instance, used by the command-line entry points only
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
