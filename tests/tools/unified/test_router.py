"""Tests for the consolidated tool action router."""

import pytest

from jira_mcp.tools.unified.router import ActionDefinition, ActionRouter, ActionRouterError


def _router():
    return ActionRouter(
        tool_name="manage_widget",
        actions=[
            ActionDefinition(name="get", handler=lambda **kw: ("get", kw), summary="Get"),
            ActionDefinition(
                name="list", handler=lambda **kw: ("list", kw), aliases=("search",)
            ),
        ],
    )


class TestActionRouter:
    def test_allowed_actions_in_declaration_order(self):
        assert _router().allowed_actions() == ("get", "list")

    def test_describe(self):
        assert _router().describe() == {"get": "Get", "list": ""}

    def test_dispatch_passes_kwargs(self):
        assert _router().dispatch(action="get", request=1) == ("get", {"request": 1})

    def test_alias_routes_to_action(self):
        assert _router().dispatch(action="search")[0] == "list"

    def test_unknown_action(self):
        """Should raise with the allowed actions attached."""
        with pytest.raises(ActionRouterError) as exc_info:
            _router().dispatch(action="explode")
        assert exc_info.value.allowed_actions == ("get", "list")

    def test_missing_action(self):
        with pytest.raises(ActionRouterError):
            _router().dispatch()

    def test_duplicate_action_rejected(self):
        with pytest.raises(ValueError, match="Duplicate action"):
            ActionRouter(
                tool_name="t",
                actions=[
                    ActionDefinition(name="get", handler=print),
                    ActionDefinition(name="get", handler=print),
                ],
            )

    def test_alias_clash_rejected(self):
        with pytest.raises(ValueError, match="alias"):
            ActionRouter(
                tool_name="t",
                actions=[
                    ActionDefinition(name="get", handler=print),
                    ActionDefinition(name="list", handler=print, aliases=("get",)),
                ],
            )
