"""Unified Jira board tool with operation routing and validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig
from jira_mcp.core.descriptors import (
    MAX_RESULTS,
    PROJECT_KEY,
    SHAPE_ACK,
    SHAPE_LIST,
    START_AT,
    EntitySpec,
    Expansion,
    OperationSpec,
    ToolDescriptor,
    numeric_id,
    one_of,
    param,
    text,
)
from jira_mcp.core.envelope import Ack, ListPage, Primary, Single
from jira_mcp.core.errors import ToolError
from jira_mcp.core.naming import canonical_tool
from jira_mcp.core.normalize import PAGINATION_ALIASES, build_alias_table, present_arguments
from jira_mcp.core.pagination import make_page
from jira_mcp.core.result import Err, Ok, Result
from jira_mcp.core.upstream import Page, Upstream
from jira_mcp.core.validation import ToolRequest
from jira_mcp.tools.unified.engine import ToolEngine

logger = logging.getLogger(__name__)

TOOL_NAME = "manage_jira_board"

BOARD_TYPES = ("scrum", "kanban")

_ACTION_SUMMARY = {
    "get": "Retrieve a board with optional expansions",
    "list": "List boards with pagination",
    "create": "Create a board from a saved filter",
    "update": "Rename a board",
    "delete": "Delete a board",
    "get_configuration": "Retrieve a board's column and estimation configuration",
}


@dataclass(frozen=True)
class GetBoard:
    board_id: int = param("boardId", numeric_id(123), required=True)


@dataclass(frozen=True)
class ListBoards:
    start_at: Optional[int] = param("startAt", START_AT)
    max_results: Optional[int] = param("maxResults", MAX_RESULTS)
    project_key: Optional[str] = param(
        "projectKey", PROJECT_KEY, description="Only boards located in this project"
    )
    board_type: Optional[str] = param("type", one_of(*BOARD_TYPES))


@dataclass(frozen=True)
class CreateBoard:
    name: str = param("name", text("Team Alpha board"), required=True)
    board_type: str = param("type", one_of(*BOARD_TYPES), required=True)
    filter_id: int = param(
        "filterId",
        numeric_id(10001),
        required=True,
        description="Saved filter selecting the board's issues",
    )
    project_key: Optional[str] = param("projectKey", PROJECT_KEY)


@dataclass(frozen=True)
class UpdateBoard:
    board_id: int = param("boardId", numeric_id(123), required=True)
    name: str = param("name", text("Team Alpha board"), required=True)


@dataclass(frozen=True)
class DeleteBoard:
    board_id: int = param("boardId", numeric_id(123), required=True)


@dataclass(frozen=True)
class GetBoardConfiguration:
    board_id: int = param("boardId", numeric_id(123), required=True)


async def _fetch_sprints(client: Upstream, board: Mapping[str, Any]) -> List[Dict[str, Any]]:
    listing = await client.list(
        "board_sprint", {"boardId": board["id"]}, Page(start_at=0, max_results=50)
    )
    return listing.items


async def _fetch_issues(client: Upstream, board: Mapping[str, Any]) -> List[Dict[str, Any]]:
    listing = await client.list(
        "board_issue", {"boardId": board["id"]}, Page(start_at=0, max_results=50)
    )
    return listing.items


async def _fetch_configuration(client: Upstream, board: Mapping[str, Any]) -> Dict[str, Any]:
    return await client.fetch("board_configuration", board["id"])


def _related(board: Mapping[str, Any]) -> Dict[str, Any]:
    location = board.get("location") or {}
    project = location.get("projectName")
    if not project and location.get("projectId"):
        project = f"Project {location['projectId']}"
    return {"project": project}


def _suggested_actions(board: Mapping[str, Any]) -> List[Dict[str, str]]:
    actions = [{"text": f"View all issues on {board.get('name')}"}]
    active = [s for s in board.get("sprints") or [] if s.get("state") == "active"]
    if active:
        actions.append(
            {
                "text": f"View active sprint: {active[0].get('name')}",
                "action_id": str(active[0].get("id")),
            }
        )
    return actions


def _board_type(board: Mapping[str, Any]) -> Optional[str]:
    return board.get("type")


BOARD_ENTITY = EntitySpec(
    name="board",
    expansions=(
        Expansion("sprints", _fetch_sprints, "Sprints of the board, all states"),
        Expansion("issues", _fetch_issues, "First page of issues on the board"),
        Expansion("configuration", _fetch_configuration, "Columns and estimation settings"),
    ),
    related=_related,
    suggested_actions=_suggested_actions,
    status_of=_board_type,
)

BOARD_CONFIGURATION_ENTITY = EntitySpec(name="board_configuration")

BOARD_ALIASES = build_alias_table(
    {
        "board_id": "boardId",
        "project_key": "projectKey",
        "filter_id": "filterId",
    },
    PAGINATION_ALIASES,
)

BOARD_DESCRIPTOR = ToolDescriptor(
    tool_name=TOOL_NAME,
    entity=BOARD_ENTITY,
    aliases=BOARD_ALIASES,
    description="Get, list, create, update, delete Jira boards and read their configuration.",
    operations=(
        OperationSpec("get", GetBoard, _ACTION_SUMMARY["get"], example={"boardId": 123}),
        OperationSpec(
            "list",
            ListBoards,
            _ACTION_SUMMARY["list"],
            shape=SHAPE_LIST,
            example={"startAt": 0, "maxResults": 50},
        ),
        OperationSpec(
            "create",
            CreateBoard,
            _ACTION_SUMMARY["create"],
            mutating=True,
            example={"name": "Team Alpha board", "type": "scrum", "filterId": 10001},
        ),
        OperationSpec(
            "update",
            UpdateBoard,
            _ACTION_SUMMARY["update"],
            mutating=True,
            example={"boardId": 123, "name": "Team Alpha board"},
        ),
        OperationSpec(
            "delete",
            DeleteBoard,
            _ACTION_SUMMARY["delete"],
            shape=SHAPE_ACK,
            mutating=True,
            example={"boardId": 123},
        ),
        OperationSpec(
            "get_configuration",
            GetBoardConfiguration,
            _ACTION_SUMMARY["get_configuration"],
            entity=BOARD_CONFIGURATION_ENTITY,
            example={"boardId": 123},
        ),
    ),
)


async def _handle_get(*, client: Upstream, request: ToolRequest[GetBoard]) -> Result[Primary]:
    return Ok(Single(await client.fetch("board", request.payload.board_id)))


async def _handle_list(
    *, client: Upstream, request: ToolRequest[ListBoards]
) -> Result[Primary]:
    payload = request.payload
    page = make_page(payload.start_at, payload.max_results)
    criteria = {"projectKey": payload.project_key, "type": payload.board_type}
    listing = await client.list(
        "board", {k: v for k, v in criteria.items() if v is not None}, page
    )
    return Ok(ListPage(items=listing.items, total=listing.total, page=page))


async def _handle_create(
    *, client: Upstream, request: ToolRequest[CreateBoard]
) -> Result[Primary]:
    payload = request.payload
    board = await client.mutate(
        "board",
        None,
        {
            "name": payload.name,
            "type": payload.board_type,
            "filterId": payload.filter_id,
            "projectKey": payload.project_key,
        },
    )
    logger.info("Created board %s", board.get("id"))
    return Ok(Single(board))


async def _handle_update(
    *, client: Upstream, request: ToolRequest[UpdateBoard]
) -> Result[Primary]:
    # Jira Agile exposes no endpoint for renaming a board
    return Err(ToolError.not_yet_implemented(TOOL_NAME, request.operation))


async def _handle_delete(
    *, client: Upstream, request: ToolRequest[DeleteBoard]
) -> Result[Primary]:
    board_id = request.payload.board_id
    await client.perform_action("board", board_id, "delete")
    logger.info("Deleted board %s", board_id)
    return Ok(Ack({"boardId": board_id, "deleted": True}))


async def _handle_get_configuration(
    *, client: Upstream, request: ToolRequest[GetBoardConfiguration]
) -> Result[Primary]:
    return Ok(Single(await client.fetch("board_configuration", request.payload.board_id)))


BOARD_HANDLERS = {
    "get": _handle_get,
    "list": _handle_list,
    "create": _handle_create,
    "update": _handle_update,
    "delete": _handle_delete,
    "get_configuration": _handle_get_configuration,
}


def build_board_engine(client: Upstream) -> ToolEngine:
    return ToolEngine(BOARD_DESCRIPTOR, BOARD_HANDLERS, client)


def register_unified_board_tool(
    mcp: FastMCP, config: ServerConfig, client: Upstream
) -> None:
    """Register the consolidated board tool."""
    engine = build_board_engine(client)

    @canonical_tool(
        mcp,
        canonical_name=TOOL_NAME,
        description=BOARD_DESCRIPTOR.description,
    )
    async def manage_jira_board(
        operation: str,
        boardId: Optional[Union[int, str]] = None,
        name: Optional[str] = None,
        type: Optional[str] = None,
        filterId: Optional[Union[int, str]] = None,
        projectKey: Optional[str] = None,
        startAt: Optional[int] = None,
        maxResults: Optional[int] = None,
        expand: Optional[List[str]] = None,
        board_id: Optional[Union[int, str]] = None,
        filter_id: Optional[Union[int, str]] = None,
        project_key: Optional[str] = None,
        start_at: Optional[int] = None,
        max_results: Optional[int] = None,
    ) -> dict:
        arguments = {
            "operation": operation,
            "board_id": board_id,
            "filter_id": filter_id,
            "project_key": project_key,
            "start_at": start_at,
            "max_results": max_results,
            "boardId": boardId,
            "name": name,
            "type": type,
            "filterId": filterId,
            "projectKey": projectKey,
            "startAt": startAt,
            "maxResults": maxResults,
            "expand": expand,
        }
        return await engine.invoke(present_arguments(arguments))

    logger.debug("Registered unified board tool")


__all__ = [
    "BOARD_DESCRIPTOR",
    "build_board_engine",
    "register_unified_board_tool",
]
