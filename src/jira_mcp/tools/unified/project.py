"""Unified Jira project tool with operation routing and validation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig
from jira_mcp.core.concurrency import MAX_CONCURRENT_FETCHES, ConcurrencyLimiter
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
    at_least_one_of,
    boolean,
    param,
    text,
)
from jira_mcp.core.envelope import ListPage, Primary, Single, count_statuses
from jira_mcp.core.errors import ToolError, UpstreamError
from jira_mcp.core.naming import canonical_tool
from jira_mcp.core.normalize import PAGINATION_ALIASES, build_alias_table, present_arguments
from jira_mcp.core.pagination import MAX_PAGE_SIZE, make_page
from jira_mcp.core.result import Err, Ok, Result
from jira_mcp.core.upstream import Page, Upstream
from jira_mcp.core.validation import ToolRequest
from jira_mcp.tools.unified.engine import ToolEngine

logger = logging.getLogger(__name__)

TOOL_NAME = "manage_jira_project"

RECENT_ISSUE_COUNT = 5

_ACTION_SUMMARY = {
    "get": "Retrieve a project with issue status counts",
    "list": "List projects with pagination",
    "create": "Create a project",
    "update": "Update project details",
    "delete": "Delete a project",
}


@dataclass(frozen=True)
class GetProject:
    project_key: str = param("projectKey", PROJECT_KEY, required=True)
    include_status_counts: bool = param(
        "includeStatusCounts",
        boolean(),
        default=True,
        description="Count issues per status (first page of project issues)",
    )


@dataclass(frozen=True)
class ListProjects:
    start_at: Optional[int] = param("startAt", START_AT)
    max_results: Optional[int] = param("maxResults", MAX_RESULTS)
    include_status_counts: bool = param("includeStatusCounts", boolean(), default=False)


@dataclass(frozen=True)
class CreateProject:
    key: str = param("key", PROJECT_KEY, required=True)
    name: str = param("name", text("Payments Platform"), required=True)
    description: Optional[str] = param("description", text("Billing and invoicing"))
    lead: Optional[str] = param("lead", text("5b10ac8d82e05b22cc7d4ef5"))


@dataclass(frozen=True)
class UpdateProject:
    project_key: str = param("projectKey", PROJECT_KEY, required=True)
    name: Optional[str] = param("name", text("Payments Platform"))
    description: Optional[str] = param("description", text("Billing and invoicing"))
    lead: Optional[str] = param("lead", text("5b10ac8d82e05b22cc7d4ef5"))


@dataclass(frozen=True)
class DeleteProject:
    project_key: str = param("projectKey", PROJECT_KEY, required=True)


async def _fetch_boards(client: Upstream, project: Mapping[str, Any]) -> List[Dict[str, Any]]:
    listing = await client.list(
        "board", {"projectKey": project["key"]}, Page(start_at=0, max_results=50)
    )
    return listing.items


async def _fetch_components(
    client: Upstream, project: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("project_component", {"projectKey": project["key"]})
    return listing.items


async def _fetch_versions(client: Upstream, project: Mapping[str, Any]) -> List[Dict[str, Any]]:
    listing = await client.list("project_version", {"projectKey": project["key"]})
    return listing.items


async def _fetch_recent_issues(
    client: Upstream, project: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list(
        "issue",
        {"jql": f"project = {project['key']} ORDER BY updated DESC"},
        Page(start_at=0, max_results=RECENT_ISSUE_COUNT),
    )
    return listing.items


def _related(project: Mapping[str, Any]) -> Dict[str, Any]:
    return {"lead": project.get("lead")}


def _suggested_actions(project: Mapping[str, Any]) -> List[Dict[str, str]]:
    key = project.get("key")
    return [
        {"text": f"View all issues in {key}"},
        {"text": f"Create issue in {key}"},
    ]


PROJECT_ENTITY = EntitySpec(
    name="project",
    expansions=(
        Expansion("boards", _fetch_boards, "Boards located in the project"),
        Expansion("components", _fetch_components, "Project components"),
        Expansion("versions", _fetch_versions, "Released and unreleased versions"),
        Expansion(
            "recent_issues",
            _fetch_recent_issues,
            f"The {RECENT_ISSUE_COUNT} most recently updated issues",
        ),
    ),
    related=_related,
    suggested_actions=_suggested_actions,
)

PROJECT_ALIASES = build_alias_table(
    {
        "project_key": "projectKey",
        "include_status_counts": "includeStatusCounts",
    },
    PAGINATION_ALIASES,
)

PROJECT_DESCRIPTOR = ToolDescriptor(
    tool_name=TOOL_NAME,
    entity=PROJECT_ENTITY,
    aliases=PROJECT_ALIASES,
    description="Get and list Jira projects with issue status counts.",
    operations=(
        OperationSpec("get", GetProject, _ACTION_SUMMARY["get"], example={"projectKey": "PROJ"}),
        OperationSpec(
            "list",
            ListProjects,
            _ACTION_SUMMARY["list"],
            shape=SHAPE_LIST,
            example={"startAt": 0, "maxResults": 20},
        ),
        OperationSpec(
            "create",
            CreateProject,
            _ACTION_SUMMARY["create"],
            mutating=True,
            example={"key": "PAY", "name": "Payments Platform"},
        ),
        OperationSpec(
            "update",
            UpdateProject,
            _ACTION_SUMMARY["update"],
            rules=(at_least_one_of("name", "description", "lead"),),
            mutating=True,
            example={"projectKey": "PROJ", "name": "Payments Platform"},
        ),
        OperationSpec(
            "delete",
            DeleteProject,
            _ACTION_SUMMARY["delete"],
            shape=SHAPE_ACK,
            mutating=True,
            example={"projectKey": "PROJ"},
        ),
    ),
)


async def _status_counts(client: Upstream, project_key: str) -> Optional[Dict[str, int]]:
    """Per-status counts over the first page of project issues, or None."""
    try:
        listing = await client.list(
            "issue",
            {"jql": f"project = {project_key}"},
            Page(start_at=0, max_results=MAX_PAGE_SIZE),
        )
    except UpstreamError as exc:
        logger.warning(
            "Status counts omitted for project %s: %s", project_key, exc.reason.value
        )
        return None
    return count_statuses(listing.items, lambda issue: issue.get("status"))


async def _handle_get(*, client: Upstream, request: ToolRequest[GetProject]) -> Result[Primary]:
    payload = request.payload
    project = await client.fetch("project", payload.project_key)
    summary: Dict[str, Any] = {}
    if payload.include_status_counts:
        counts = await _status_counts(client, payload.project_key)
        if counts is not None:
            summary["status_counts"] = counts
    return Ok(Single(project, summary=summary))


async def _handle_list(
    *, client: Upstream, request: ToolRequest[ListProjects]
) -> Result[Primary]:
    payload = request.payload
    page = make_page(payload.start_at, payload.max_results)
    listing = await client.list("project", page=page)
    items = listing.items
    if payload.include_status_counts and items:
        limiter = ConcurrencyLimiter(MAX_CONCURRENT_FETCHES, name="project")
        counts = await asyncio.gather(
            *(limiter.run(_status_counts(client, project["key"])) for project in items)
        )
        items = [
            {**project, "status_counts": project_counts}
            if project_counts is not None
            else project
            for project, project_counts in zip(items, counts)
        ]
    return Ok(ListPage(items=items, total=listing.total, page=page))


async def _handle_not_yet_implemented(
    *, client: Upstream, request: ToolRequest[Any]
) -> Result[Primary]:
    return Err(ToolError.not_yet_implemented(TOOL_NAME, request.operation))


PROJECT_HANDLERS = {
    "get": _handle_get,
    "list": _handle_list,
    "create": _handle_not_yet_implemented,
    "update": _handle_not_yet_implemented,
    "delete": _handle_not_yet_implemented,
}


def build_project_engine(client: Upstream) -> ToolEngine:
    return ToolEngine(PROJECT_DESCRIPTOR, PROJECT_HANDLERS, client)


def register_unified_project_tool(
    mcp: FastMCP, config: ServerConfig, client: Upstream
) -> None:
    """Register the consolidated project tool."""
    engine = build_project_engine(client)

    @canonical_tool(
        mcp,
        canonical_name=TOOL_NAME,
        description=PROJECT_DESCRIPTOR.description,
    )
    async def manage_jira_project(
        operation: str,
        projectKey: Optional[str] = None,
        key: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        lead: Optional[str] = None,
        includeStatusCounts: Optional[bool] = None,
        startAt: Optional[int] = None,
        maxResults: Optional[int] = None,
        expand: Optional[List[str]] = None,
        project_key: Optional[str] = None,
        include_status_counts: Optional[bool] = None,
        start_at: Optional[int] = None,
        max_results: Optional[int] = None,
    ) -> dict:
        arguments = {
            "operation": operation,
            "project_key": project_key,
            "include_status_counts": include_status_counts,
            "start_at": start_at,
            "max_results": max_results,
            "projectKey": projectKey,
            "key": key,
            "name": name,
            "description": description,
            "lead": lead,
            "includeStatusCounts": includeStatusCounts,
            "startAt": startAt,
            "maxResults": maxResults,
            "expand": expand,
        }
        return await engine.invoke(present_arguments(arguments))

    logger.debug("Registered unified project tool")


__all__ = [
    "PROJECT_DESCRIPTOR",
    "build_project_engine",
    "register_unified_project_tool",
]
