"""
Root pytest configuration and shared fixtures.

Provides the in-memory upstream, a ready configuration and helpers for
decoding tool results.
"""

import json
from typing import Any, Dict, Union

import pytest
from mcp.types import TextContent

from jira_mcp.config import JiraSettings, ServerConfig
from tests.fakes import FakeUpstream

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools wrapped with canonical_tool return TextContent with minified JSON.
    This helper extracts the dict for test assertions.

    Args:
        result: Tool result - either dict (non-minified) or TextContent (minified)

    Returns:
        Parsed dictionary from the response

    Raises:
        TypeError: If result is neither dict nor TextContent
        json.JSONDecodeError: If TextContent.text is not valid JSON
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(
        f"Expected dict or TextContent, got {type(result).__name__}"
    )


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    """Empty in-memory upstream recording every call."""
    return FakeUpstream()


@pytest.fixture
def test_config() -> ServerConfig:
    """Configuration with complete Jira credentials and plain logging."""
    return ServerConfig(
        jira=JiraSettings(
            host="example.atlassian.net",
            email="ada@example.com",
            api_token="token-123",
        ),
        log_level="WARNING",
        structured_logging=False,
    )
