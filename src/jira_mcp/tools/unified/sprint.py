"""Unified Jira sprint tool with operation routing and lifecycle checks.

Sprints move ``future -> active -> closed``. Closed sprints are read-only:
``update`` and ``manage_issues`` are refused before any mutating call, and a
requested ``state`` must follow the lifecycle. The engine reads the sprint
once to decide, and handlers receive that read as ``request.current``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig
from jira_mcp.core.descriptors import (
    ISSUE_KEY,
    MAX_RESULTS,
    SHAPE_ACK,
    SHAPE_LIST,
    START_AT,
    EntitySpec,
    Expansion,
    OperationSpec,
    StateMachine,
    ToolDescriptor,
    at_least_one_of,
    iso_date,
    numeric_id,
    one_of,
    param,
    payload_patch,
    string_list,
    text,
)
from jira_mcp.core.envelope import Ack, ListPage, Primary, Single
from jira_mcp.core.naming import canonical_tool
from jira_mcp.core.normalize import PAGINATION_ALIASES, build_alias_table, present_arguments
from jira_mcp.core.pagination import make_page
from jira_mcp.core.result import Ok, Result
from jira_mcp.core.upstream import Page, Upstream
from jira_mcp.core.validation import ToolRequest
from jira_mcp.tools.unified.engine import ToolEngine

logger = logging.getLogger(__name__)

TOOL_NAME = "manage_jira_sprint"

SPRINT_STATES = ("future", "active", "closed")

_ACTION_SUMMARY = {
    "get": "Retrieve a sprint with optional expansions",
    "create": "Create a future sprint on a board",
    "update": "Update sprint fields or move it through its lifecycle",
    "delete": "Delete a sprint",
    "list": "List the sprints of a board",
    "manage_issues": "Add issues to or remove issues from a sprint",
}


@dataclass(frozen=True)
class GetSprint:
    sprint_id: int = param("sprintId", numeric_id(456), required=True)


@dataclass(frozen=True)
class CreateSprint:
    board_id: int = param("boardId", numeric_id(123), required=True)
    name: str = param("name", text("Sprint 12"), required=True)
    start_date: Optional[str] = param("startDate", iso_date("2025-01-06T09:00:00.000Z"))
    end_date: Optional[str] = param("endDate", iso_date("2025-01-20T17:00:00.000Z"))
    goal: Optional[str] = param("goal", text("Ship the billing revamp"))


@dataclass(frozen=True)
class UpdateSprint:
    sprint_id: int = param("sprintId", numeric_id(456), required=True)
    name: Optional[str] = param("name", text("Sprint 12"))
    goal: Optional[str] = param("goal", text("Ship the billing revamp"))
    start_date: Optional[str] = param("startDate", iso_date("2025-01-06T09:00:00.000Z"))
    end_date: Optional[str] = param("endDate", iso_date("2025-01-20T17:00:00.000Z"))
    state: Optional[str] = param(
        "state", one_of(*SPRINT_STATES), description="Lifecycle: future -> active -> closed"
    )


@dataclass(frozen=True)
class DeleteSprint:
    sprint_id: int = param("sprintId", numeric_id(456), required=True)


@dataclass(frozen=True)
class ListSprints:
    board_id: int = param("boardId", numeric_id(123), required=True)
    state: Optional[str] = param("state", one_of(*SPRINT_STATES))
    start_at: Optional[int] = param("startAt", START_AT)
    max_results: Optional[int] = param("maxResults", MAX_RESULTS)


@dataclass(frozen=True)
class ManageSprintIssues:
    sprint_id: int = param("sprintId", numeric_id(456), required=True)
    add: Optional[Tuple[str, ...]] = param(
        "add", string_list(ISSUE_KEY, example=["PROJ-1", "PROJ-2"])
    )
    remove: Optional[Tuple[str, ...]] = param(
        "remove",
        string_list(ISSUE_KEY, example=["PROJ-3"]),
        description="Issues moved back to the backlog",
    )


async def _fetch_issues(client: Upstream, sprint: Mapping[str, Any]) -> List[Dict[str, Any]]:
    listing = await client.list(
        "sprint_issue", {"sprintId": sprint["id"]}, Page(start_at=0, max_results=50)
    )
    return listing.items


async def _fetch_report(client: Upstream, sprint: Mapping[str, Any]) -> Dict[str, Any]:
    return await client.fetch(
        "sprint_report", sprint["id"], params={"rapidViewId": sprint.get("boardId")}
    )


async def _fetch_board(client: Upstream, sprint: Mapping[str, Any]) -> Dict[str, Any]:
    return await client.fetch("board", sprint["boardId"])


def _related(sprint: Mapping[str, Any]) -> Dict[str, Any]:
    board_id = sprint.get("boardId")
    return {"board": str(board_id) if board_id is not None else None}


_STATE_ACTIONS = {
    "future": [
        {"text": "Start Sprint", "action_id": "start_sprint"},
        {"text": "Add Issues to Sprint", "action_id": "add_issues"},
        {"text": "Edit Sprint", "action_id": "update_sprint"},
    ],
    "active": [
        {"text": "Complete Sprint", "action_id": "complete_sprint"},
        {"text": "Add Issues to Sprint", "action_id": "add_issues"},
        {"text": "Remove Issues from Sprint", "action_id": "remove_issues"},
        {"text": "Edit Sprint", "action_id": "update_sprint"},
    ],
    "closed": [
        {"text": "View Sprint Report", "action_id": "view_report"},
        {"text": "Create New Sprint", "action_id": "create_sprint"},
    ],
}


def _suggested_actions(sprint: Mapping[str, Any]) -> List[Dict[str, str]]:
    return [dict(action) for action in _STATE_ACTIONS.get(sprint.get("state"), [])]


def _list_actions(pagination: Mapping[str, Any]) -> List[Dict[str, str]]:
    return [{"text": "Create new sprint", "action_id": "create_sprint"}]


def _sprint_state(sprint: Mapping[str, Any]) -> Optional[str]:
    return sprint.get("state")


SPRINT_ENTITY = EntitySpec(
    name="sprint",
    expansions=(
        Expansion("issues", _fetch_issues, "First page of issues in the sprint"),
        Expansion("report", _fetch_report, "Completed, incomplete, punted and added issue counts"),
        Expansion("board", _fetch_board, "The sprint's origin board"),
    ),
    related=_related,
    suggested_actions=_suggested_actions,
    status_of=_sprint_state,
    status_seed=SPRINT_STATES,
    status_source="issues",
    list_actions=_list_actions,
)

SPRINT_LIFECYCLE = StateMachine(
    entity_type="sprint",
    id_attr="sprint_id",
    state_field="state",
    guarded=frozenset({"update", "manage_issues"}),
    transitions={
        "future": frozenset({"active"}),
        "active": frozenset({"closed"}),
    },
    terminal=frozenset({"closed"}),
    target_attr="state",
)

SPRINT_ALIASES = build_alias_table(
    {
        "sprint_id": "sprintId",
        "board_id": "boardId",
        "start_date": "startDate",
        "end_date": "endDate",
    },
    PAGINATION_ALIASES,
)

SPRINT_DESCRIPTOR = ToolDescriptor(
    tool_name=TOOL_NAME,
    entity=SPRINT_ENTITY,
    aliases=SPRINT_ALIASES,
    state_machine=SPRINT_LIFECYCLE,
    description="Get, create, update, delete and list Jira sprints, and move issues in and out.",
    operations=(
        OperationSpec("get", GetSprint, _ACTION_SUMMARY["get"], example={"sprintId": 456}),
        OperationSpec(
            "create",
            CreateSprint,
            _ACTION_SUMMARY["create"],
            mutating=True,
            example={"boardId": 123, "name": "Sprint 12"},
        ),
        OperationSpec(
            "update",
            UpdateSprint,
            _ACTION_SUMMARY["update"],
            rules=(at_least_one_of("name", "goal", "startDate", "endDate", "state"),),
            mutating=True,
            example={"sprintId": 456, "state": "active"},
        ),
        OperationSpec(
            "delete",
            DeleteSprint,
            _ACTION_SUMMARY["delete"],
            shape=SHAPE_ACK,
            mutating=True,
            example={"sprintId": 456},
        ),
        OperationSpec(
            "list",
            ListSprints,
            _ACTION_SUMMARY["list"],
            shape=SHAPE_LIST,
            example={"boardId": 123, "state": "active"},
        ),
        OperationSpec(
            "manage_issues",
            ManageSprintIssues,
            _ACTION_SUMMARY["manage_issues"],
            rules=(at_least_one_of("add", "remove"),),
            mutating=True,
            example={"sprintId": 456, "add": ["PROJ-1"]},
        ),
    ),
)


async def _handle_get(*, client: Upstream, request: ToolRequest[GetSprint]) -> Result[Primary]:
    return Ok(Single(await client.fetch("sprint", request.payload.sprint_id)))


async def _handle_create(
    *, client: Upstream, request: ToolRequest[CreateSprint]
) -> Result[Primary]:
    sprint = await client.mutate(
        "sprint", None, payload_patch(request.payload, request.provided)
    )
    logger.info("Created sprint %s", sprint.get("id"))
    return Ok(Single(sprint))


async def _handle_update(
    *, client: Upstream, request: ToolRequest[UpdateSprint]
) -> Result[Primary]:
    patch = payload_patch(request.payload, request.provided)
    patch.pop("sprintId", None)
    sprint = await client.mutate("sprint", request.payload.sprint_id, patch)
    if request.current and sprint.get("state") != request.current.get("state"):
        logger.info(
            "Sprint %s moved from %s to %s",
            request.payload.sprint_id,
            request.current.get("state"),
            sprint.get("state"),
        )
    return Ok(Single(sprint))


async def _handle_delete(
    *, client: Upstream, request: ToolRequest[DeleteSprint]
) -> Result[Primary]:
    sprint_id = request.payload.sprint_id
    await client.perform_action("sprint", sprint_id, "delete")
    logger.info("Deleted sprint %s", sprint_id)
    return Ok(Ack({"sprintId": sprint_id, "deleted": True}))


async def _handle_list(
    *, client: Upstream, request: ToolRequest[ListSprints]
) -> Result[Primary]:
    payload = request.payload
    page = make_page(payload.start_at, payload.max_results)
    criteria: Dict[str, Any] = {"boardId": payload.board_id}
    if payload.state:
        criteria["state"] = payload.state
    listing = await client.list("board_sprint", criteria, page)
    return Ok(ListPage(items=listing.items, total=listing.total, page=page))


async def _handle_manage_issues(
    *, client: Upstream, request: ToolRequest[ManageSprintIssues]
) -> Result[Primary]:
    payload = request.payload
    if payload.add:
        await client.perform_action(
            "sprint", payload.sprint_id, "add_issues", {"issues": list(payload.add)}
        )
    if payload.remove:
        await client.perform_action(
            "sprint", payload.sprint_id, "remove_issues", {"issues": list(payload.remove)}
        )
    sprint = dict(request.current or {}) or await client.fetch("sprint", payload.sprint_id)
    return Ok(
        Single(
            sprint,
            summary={
                "issues_added": len(payload.add or ()),
                "issues_removed": len(payload.remove or ()),
            },
        )
    )


SPRINT_HANDLERS = {
    "get": _handle_get,
    "create": _handle_create,
    "update": _handle_update,
    "delete": _handle_delete,
    "list": _handle_list,
    "manage_issues": _handle_manage_issues,
}


def build_sprint_engine(client: Upstream) -> ToolEngine:
    return ToolEngine(SPRINT_DESCRIPTOR, SPRINT_HANDLERS, client)


def register_unified_sprint_tool(
    mcp: FastMCP, config: ServerConfig, client: Upstream
) -> None:
    """Register the consolidated sprint tool."""
    engine = build_sprint_engine(client)

    @canonical_tool(
        mcp,
        canonical_name=TOOL_NAME,
        description=SPRINT_DESCRIPTOR.description,
    )
    async def manage_jira_sprint(
        operation: str,
        sprintId: Optional[Union[int, str]] = None,
        boardId: Optional[Union[int, str]] = None,
        name: Optional[str] = None,
        goal: Optional[str] = None,
        startDate: Optional[str] = None,
        endDate: Optional[str] = None,
        state: Optional[str] = None,
        add: Optional[List[str]] = None,
        remove: Optional[List[str]] = None,
        startAt: Optional[int] = None,
        maxResults: Optional[int] = None,
        expand: Optional[List[str]] = None,
        sprint_id: Optional[Union[int, str]] = None,
        board_id: Optional[Union[int, str]] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        start_at: Optional[int] = None,
        max_results: Optional[int] = None,
    ) -> dict:
        arguments = {
            "operation": operation,
            "sprint_id": sprint_id,
            "board_id": board_id,
            "start_date": start_date,
            "end_date": end_date,
            "start_at": start_at,
            "max_results": max_results,
            "sprintId": sprintId,
            "boardId": boardId,
            "name": name,
            "goal": goal,
            "startDate": startDate,
            "endDate": endDate,
            "state": state,
            "add": add,
            "remove": remove,
            "startAt": startAt,
            "maxResults": maxResults,
            "expand": expand,
        }
        return await engine.invoke(present_arguments(arguments))

    logger.debug("Registered unified sprint tool")


__all__ = [
    "SPRINT_DESCRIPTOR",
    "build_sprint_engine",
    "register_unified_sprint_tool",
]
