"""Unified Jira filter tool with operation routing and validation.

Besides managing saved filters, this tool runs searches: ``execute_filter``
runs a saved filter and ``execute_jql`` runs an ad-hoc JQL query. Both
return a page of issues composed as the ``search`` entity, whose expansions
enrich each issue independently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig
from jira_mcp.core.descriptors import (
    MAX_RESULTS,
    SHAPE_ACK,
    SHAPE_LIST,
    START_AT,
    EntitySpec,
    Expansion,
    OperationSpec,
    ToolDescriptor,
    at_least_one_of,
    boolean,
    integer,
    numeric_id,
    param,
    payload_patch,
    record_list,
    text,
)
from jira_mcp.core.envelope import Ack, ListPage, Primary, Single
from jira_mcp.core.naming import canonical_tool
from jira_mcp.core.normalize import PAGINATION_ALIASES, build_alias_table, present_arguments
from jira_mcp.core.pagination import SEARCH_PAGE_SIZE, make_page
from jira_mcp.core.result import Ok, Result
from jira_mcp.core.upstream import Page, Upstream
from jira_mcp.core.validation import ToolRequest
from jira_mcp.tools.unified.engine import ToolEngine

logger = logging.getLogger(__name__)

TOOL_NAME = "manage_jira_filter"

COMMENT_PREVIEW_COUNT = 3

_ACTION_SUMMARY = {
    "get": "Retrieve a saved filter with optional expansions",
    "list": "List saved filters visible to the account",
    "create": "Create a saved filter",
    "update": "Update a saved filter",
    "delete": "Delete a saved filter",
    "execute_filter": "Run a saved filter and return matching issues",
    "execute_jql": "Run a JQL query and return matching issues",
}

# Fields of a filter that are only returned through expansions
_EXPANDED_FIELDS = ("jql", "description", "sharePermissions")


def _valid_share_permission(permission: Mapping[str, Any]) -> bool:
    kind = permission.get("type")
    if kind == "group":
        return isinstance(permission.get("group"), str) and bool(permission["group"])
    if kind == "project":
        return permission.get("project") not in (None, "")
    return kind == "global"


SHARE_PERMISSIONS = record_list(
    _valid_share_permission,
    "a list of {type: group|project|global} objects; group needs 'group', "
    "project needs 'project'",
    [{"type": "group", "group": "developers"}],
)

SEARCH_MAX_RESULTS = integer(1, 100, SEARCH_PAGE_SIZE)


@dataclass(frozen=True)
class GetFilter:
    filter_id: int = param("filterId", numeric_id(10001), required=True)


@dataclass(frozen=True)
class ListFilters:
    start_at: Optional[int] = param("startAt", START_AT)
    max_results: Optional[int] = param("maxResults", MAX_RESULTS)


@dataclass(frozen=True)
class CreateFilter:
    name: str = param("name", text("My open bugs"), required=True)
    jql: str = param(
        "jql", text("project = PROJ AND status = Open"), required=True
    )
    description: Optional[str] = param("description", text("Bugs assigned to me"))
    favourite: Optional[bool] = param("favourite", boolean())
    share_permissions: Optional[Tuple[Mapping[str, Any], ...]] = param(
        "sharePermissions", SHARE_PERMISSIONS
    )


@dataclass(frozen=True)
class UpdateFilter:
    filter_id: int = param("filterId", numeric_id(10001), required=True)
    name: Optional[str] = param("name", text("My open bugs"))
    jql: Optional[str] = param("jql", text("project = PROJ AND status = Open"))
    description: Optional[str] = param("description", text("Bugs assigned to me"))
    favourite: Optional[bool] = param("favourite", boolean())
    share_permissions: Optional[Tuple[Mapping[str, Any], ...]] = param(
        "sharePermissions", SHARE_PERMISSIONS
    )


@dataclass(frozen=True)
class DeleteFilter:
    filter_id: int = param("filterId", numeric_id(10001), required=True)


@dataclass(frozen=True)
class ExecuteFilter:
    filter_id: int = param("filterId", numeric_id(10001), required=True)
    start_at: Optional[int] = param("startAt", START_AT)
    max_results: Optional[int] = param("maxResults", SEARCH_MAX_RESULTS)


@dataclass(frozen=True)
class ExecuteJql:
    jql: str = param("jql", text("project = PROJ ORDER BY updated DESC"), required=True)
    start_at: Optional[int] = param("startAt", START_AT)
    max_results: Optional[int] = param("maxResults", SEARCH_MAX_RESULTS)


# ---------------------------------------------------------------------------
# Filter entity
# ---------------------------------------------------------------------------


async def _fetch_jql(client: Upstream, saved: Mapping[str, Any]) -> str:
    return (await client.fetch("filter", saved["id"], params={"expand": "jql"}))["jql"]


async def _fetch_description(client: Upstream, saved: Mapping[str, Any]) -> str:
    fetched = await client.fetch("filter", saved["id"], params={"expand": "description"})
    return fetched["description"]


async def _fetch_permissions(
    client: Upstream, saved: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("filter_permission", {"filterId": saved["id"]})
    return listing.items


async def _fetch_issue_count(client: Upstream, saved: Mapping[str, Any]) -> int:
    listing = await client.list(
        "issue", {"jql": f"filter = {saved['id']}"}, Page(start_at=0, max_results=1)
    )
    return listing.total


def _filter_related(saved: Mapping[str, Any]) -> Dict[str, Any]:
    return {"owner": saved.get("owner")}


def _filter_actions(saved: Mapping[str, Any]) -> List[Dict[str, str]]:
    name = saved.get("name")
    actions = [{"text": f"View filter results: {name}"}]
    if saved.get("jql"):
        actions.append({"text": f"Edit JQL: {name}"})
    if not saved.get("favourite"):
        actions.append({"text": "Add to favorites"})
    return actions


FILTER_ENTITY = EntitySpec(
    name="filter",
    expansions=(
        Expansion("jql", _fetch_jql, "The filter's JQL query"),
        Expansion("description", _fetch_description, "Filter description"),
        Expansion(
            "permissions",
            _fetch_permissions,
            "Share permissions",
            key="sharePermissions",
        ),
        Expansion("issue_count", _fetch_issue_count, "Number of matching issues", key="issueCount"),
    ),
    related=_filter_related,
    suggested_actions=_filter_actions,
)


# ---------------------------------------------------------------------------
# Search entity
# ---------------------------------------------------------------------------


async def _fetch_issue_details(client: Upstream, issue: Mapping[str, Any]) -> Dict[str, Any]:
    return await client.fetch("issue", issue["key"])


async def _fetch_issue_transitions(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("issue_transition", {"issueKey": issue["key"]})
    return listing.items


async def _fetch_comments_preview(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list(
        "issue_comment",
        {"issueKey": issue["key"]},
        Page(start_at=0, max_results=COMMENT_PREVIEW_COUNT),
    )
    return listing.items


def _issue_status(issue: Mapping[str, Any]) -> Optional[str]:
    return issue.get("status")


def _search_actions(pagination: Mapping[str, Any]) -> List[Dict[str, str]]:
    if pagination.get("hasMore"):
        return [{"text": "Load more results"}]
    return []


SEARCH_ENTITY = EntitySpec(
    name="search",
    expansions=(
        Expansion("issue_details", _fetch_issue_details, "Full issue fields", key="details"),
        Expansion("transitions", _fetch_issue_transitions, "Available workflow transitions"),
        Expansion(
            "comments_preview",
            _fetch_comments_preview,
            f"The {COMMENT_PREVIEW_COUNT} newest comments",
        ),
    ),
    status_of=_issue_status,
    list_actions=_search_actions,
)

FILTER_ALIASES = build_alias_table(
    {
        "filter_id": "filterId",
        "share_permissions": "sharePermissions",
    },
    PAGINATION_ALIASES,
)

FILTER_DESCRIPTOR = ToolDescriptor(
    tool_name=TOOL_NAME,
    entity=FILTER_ENTITY,
    aliases=FILTER_ALIASES,
    description="Manage saved Jira filters and run filter or JQL searches.",
    operations=(
        OperationSpec("get", GetFilter, _ACTION_SUMMARY["get"], example={"filterId": 10001}),
        OperationSpec(
            "list",
            ListFilters,
            _ACTION_SUMMARY["list"],
            shape=SHAPE_LIST,
            example={"startAt": 0, "maxResults": 50},
        ),
        OperationSpec(
            "create",
            CreateFilter,
            _ACTION_SUMMARY["create"],
            mutating=True,
            example={"name": "My open bugs", "jql": "project = PROJ AND type = Bug"},
        ),
        OperationSpec(
            "update",
            UpdateFilter,
            _ACTION_SUMMARY["update"],
            rules=(
                at_least_one_of(
                    "name", "jql", "description", "favourite", "sharePermissions"
                ),
            ),
            mutating=True,
            example={"filterId": 10001, "jql": "project = PROJ AND status = Open"},
        ),
        OperationSpec(
            "delete",
            DeleteFilter,
            _ACTION_SUMMARY["delete"],
            shape=SHAPE_ACK,
            mutating=True,
            example={"filterId": 10001},
        ),
        OperationSpec(
            "execute_filter",
            ExecuteFilter,
            _ACTION_SUMMARY["execute_filter"],
            shape=SHAPE_LIST,
            entity=SEARCH_ENTITY,
            example={"filterId": 10001, "maxResults": 25},
        ),
        OperationSpec(
            "execute_jql",
            ExecuteJql,
            _ACTION_SUMMARY["execute_jql"],
            shape=SHAPE_LIST,
            entity=SEARCH_ENTITY,
            example={"jql": "assignee = currentUser() AND resolution = Unresolved"},
        ),
    ),
)


# ---------------------------------------------------------------------------
# Operation handlers
# ---------------------------------------------------------------------------


def _summarize_filter(saved: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in saved.items() if k not in _EXPANDED_FIELDS}


def _summarize_issue(issue: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "key": issue.get("key"),
        "summary": issue.get("summary"),
        "status": issue.get("status"),
        "issueType": issue.get("issueType"),
        "assignee": issue.get("assignee"),
        "priority": issue.get("priority"),
        "updated": issue.get("updated"),
    }


async def _search(client: Upstream, jql: str, page: Page) -> ListPage:
    listing = await client.list("issue", {"jql": jql}, page)
    return ListPage(
        items=[_summarize_issue(issue) for issue in listing.items],
        total=listing.total,
        page=page,
    )


async def _handle_get(*, client: Upstream, request: ToolRequest[GetFilter]) -> Result[Primary]:
    saved = await client.fetch("filter", request.payload.filter_id)
    return Ok(Single(_summarize_filter(saved)))


async def _handle_list(
    *, client: Upstream, request: ToolRequest[ListFilters]
) -> Result[Primary]:
    payload = request.payload
    page = make_page(payload.start_at, payload.max_results)
    listing = await client.list("filter", page=page)
    return Ok(
        ListPage(
            items=[_summarize_filter(saved) for saved in listing.items],
            total=listing.total,
            page=page,
        )
    )


async def _handle_create(
    *, client: Upstream, request: ToolRequest[CreateFilter]
) -> Result[Primary]:
    saved = await client.mutate(
        "filter", None, payload_patch(request.payload, request.provided)
    )
    logger.info("Created filter %s", saved.get("id"))
    return Ok(Single(_summarize_filter(saved)))


async def _handle_update(
    *, client: Upstream, request: ToolRequest[UpdateFilter]
) -> Result[Primary]:
    patch = payload_patch(request.payload, request.provided)
    patch.pop("filterId", None)
    saved = await client.mutate("filter", request.payload.filter_id, patch)
    return Ok(Single(_summarize_filter(saved)))


async def _handle_delete(
    *, client: Upstream, request: ToolRequest[DeleteFilter]
) -> Result[Primary]:
    filter_id = request.payload.filter_id
    await client.perform_action("filter", filter_id, "delete")
    logger.info("Deleted filter %s", filter_id)
    return Ok(Ack({"filterId": filter_id, "deleted": True}))


async def _handle_execute_filter(
    *, client: Upstream, request: ToolRequest[ExecuteFilter]
) -> Result[Primary]:
    payload = request.payload
    page = make_page(payload.start_at, payload.max_results, default=SEARCH_PAGE_SIZE)
    return Ok(await _search(client, f"filter = {payload.filter_id}", page))


async def _handle_execute_jql(
    *, client: Upstream, request: ToolRequest[ExecuteJql]
) -> Result[Primary]:
    payload = request.payload
    page = make_page(payload.start_at, payload.max_results, default=SEARCH_PAGE_SIZE)
    return Ok(await _search(client, payload.jql, page))


FILTER_HANDLERS = {
    "get": _handle_get,
    "list": _handle_list,
    "create": _handle_create,
    "update": _handle_update,
    "delete": _handle_delete,
    "execute_filter": _handle_execute_filter,
    "execute_jql": _handle_execute_jql,
}


def build_filter_engine(client: Upstream) -> ToolEngine:
    return ToolEngine(FILTER_DESCRIPTOR, FILTER_HANDLERS, client)


def register_unified_filter_tool(
    mcp: FastMCP, config: ServerConfig, client: Upstream
) -> None:
    """Register the consolidated filter tool."""
    engine = build_filter_engine(client)

    @canonical_tool(
        mcp,
        canonical_name=TOOL_NAME,
        description=FILTER_DESCRIPTOR.description,
    )
    async def manage_jira_filter(
        operation: str,
        filterId: Optional[Union[int, str]] = None,
        name: Optional[str] = None,
        jql: Optional[str] = None,
        description: Optional[str] = None,
        favourite: Optional[bool] = None,
        sharePermissions: Optional[List[Dict[str, Any]]] = None,
        startAt: Optional[int] = None,
        maxResults: Optional[int] = None,
        expand: Optional[List[str]] = None,
        filter_id: Optional[Union[int, str]] = None,
        share_permissions: Optional[List[Dict[str, Any]]] = None,
        start_at: Optional[int] = None,
        max_results: Optional[int] = None,
    ) -> dict:
        arguments = {
            "operation": operation,
            "filter_id": filter_id,
            "share_permissions": share_permissions,
            "start_at": start_at,
            "max_results": max_results,
            "filterId": filterId,
            "name": name,
            "jql": jql,
            "description": description,
            "favourite": favourite,
            "sharePermissions": sharePermissions,
            "startAt": startAt,
            "maxResults": maxResults,
            "expand": expand,
        }
        return await engine.invoke(present_arguments(arguments))

    logger.debug("Registered unified filter tool")


__all__ = [
    "FILTER_DESCRIPTOR",
    "build_filter_engine",
    "register_unified_filter_tool",
]
