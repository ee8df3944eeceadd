"""Unified Jira issue tool with operation routing and validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig
from jira_mcp.core.descriptors import (
    ISSUE_KEY,
    PROJECT_KEY,
    SHAPE_ACK,
    EntitySpec,
    Expansion,
    OperationSpec,
    ToolDescriptor,
    at_least_one_of,
    numeric_id,
    opaque_mapping,
    param,
    payload_patch,
    string_list,
    text,
)
from jira_mcp.core.envelope import Ack, Primary, Single
from jira_mcp.core.naming import canonical_tool
from jira_mcp.core.normalize import build_alias_table, present_arguments
from jira_mcp.core.result import Ok, Result
from jira_mcp.core.upstream import Page, Upstream
from jira_mcp.core.validation import ToolRequest
from jira_mcp.tools.unified.engine import ToolEngine

logger = logging.getLogger(__name__)

TOOL_NAME = "manage_jira_issue"

_ACTION_SUMMARY = {
    "get": "Retrieve an issue with optional expansions",
    "create": "Create an issue in a project",
    "update": "Update fields of an existing issue",
    "delete": "Delete an issue",
    "transition": "Move an issue through its workflow",
    "comment": "Add a comment to an issue",
    "link": "Link an issue to another issue",
}

_MUTABLE_FIELDS = (
    "summary",
    "description",
    "parent",
    "assignee",
    "priority",
    "labels",
    "customFields",
)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GetIssue:
    issue_key: str = param("issueKey", ISSUE_KEY, required=True)


@dataclass(frozen=True)
class CreateIssue:
    project_key: str = param("projectKey", PROJECT_KEY, required=True)
    summary: str = param("summary", text("Fix login redirect loop"), required=True)
    issue_type: str = param("issueType", text("Task"), required=True)
    description: Optional[str] = param("description", text("Steps to reproduce..."))
    assignee: Optional[str] = param(
        "assignee",
        text("5b10ac8d82e05b22cc7d4ef5"),
        description="Atlassian account id of the assignee",
    )
    priority: Optional[str] = param("priority", text("High"))
    labels: Optional[Tuple[str, ...]] = param("labels", string_list(example=["backend"]))
    custom_fields: Optional[Mapping[str, Any]] = param(
        "customFields",
        opaque_mapping({"customfield_10016": 3}),
        description="Custom field values keyed by field id, sent as-is",
    )


@dataclass(frozen=True)
class UpdateIssue:
    issue_key: str = param("issueKey", ISSUE_KEY, required=True)
    summary: Optional[str] = param("summary", text("Fix login redirect loop"))
    description: Optional[str] = param("description", text("Steps to reproduce..."))
    parent: Optional[str] = param(
        "parent",
        ISSUE_KEY,
        nullable=True,
        description="Parent issue key; null or empty string removes the parent",
    )
    assignee: Optional[str] = param("assignee", text("5b10ac8d82e05b22cc7d4ef5"))
    priority: Optional[str] = param("priority", text("High"))
    labels: Optional[Tuple[str, ...]] = param("labels", string_list(example=["backend"]))
    custom_fields: Optional[Mapping[str, Any]] = param(
        "customFields", opaque_mapping({"customfield_10016": 3})
    )


@dataclass(frozen=True)
class DeleteIssue:
    issue_key: str = param("issueKey", ISSUE_KEY, required=True)


@dataclass(frozen=True)
class TransitionIssue:
    issue_key: str = param("issueKey", ISSUE_KEY, required=True)
    transition_id: int = param(
        "transitionId",
        numeric_id(31),
        required=True,
        description="Id from the issue's transitions expansion",
    )
    comment: Optional[str] = param("comment", text("Deployed to staging"))


@dataclass(frozen=True)
class CommentIssue:
    issue_key: str = param("issueKey", ISSUE_KEY, required=True)
    comment: str = param("comment", text("Looks good to me"), required=True)


@dataclass(frozen=True)
class LinkIssue:
    issue_key: str = param("issueKey", ISSUE_KEY, required=True)
    linked_issue_key: str = param("linkedIssueKey", ISSUE_KEY, required=True)
    link_type: str = param("linkType", text("Blocks"), required=True)
    comment: Optional[str] = param("comment", text("Blocked until the API ships"))


# ---------------------------------------------------------------------------
# Entity rules
# ---------------------------------------------------------------------------


async def _fetch_comments(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("issue_comment", {"issueKey": issue["key"]})
    return listing.items


async def _fetch_transitions(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("issue_transition", {"issueKey": issue["key"]})
    return listing.items


async def _fetch_attachments(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("issue_attachment", {"issueKey": issue["key"]})
    return listing.items


async def _fetch_related_issues(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list(
        "issue",
        {"jql": f'issue in linkedIssues("{issue["key"]}")'},
        Page(start_at=0, max_results=50),
    )
    return [
        {
            "key": related["key"],
            "summary": related.get("summary"),
            "status": related.get("status"),
            "issueType": related.get("issueType"),
        }
        for related in listing.items
    ]


async def _fetch_history(
    client: Upstream, issue: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    listing = await client.list("issue_changelog", {"issueKey": issue["key"]})
    return listing.items


def _related(issue: Mapping[str, Any]) -> Dict[str, Any]:
    linked = [
        link.get("outward") or link.get("inward")
        for link in issue.get("issueLinks") or []
    ]
    return {
        "parent": issue.get("parent"),
        "linked_issues": [key for key in linked if key],
    }


_COMMON_TRANSITIONS = ("Done", "In Progress", "To Do", "Closed", "Resolved")


def _suggested_actions(issue: Mapping[str, Any]) -> List[Dict[str, str]]:
    actions: List[Dict[str, str]] = []
    transitions = issue.get("transitions") or []
    for name in _COMMON_TRANSITIONS:
        match = next((t for t in transitions if t.get("name") == name), None)
        if match is not None:
            actions.append({"text": f"Move to {name}", "action_id": str(match["id"])})
    if not issue.get("assignee"):
        actions.append({"text": "Assign to team member"})
    return actions


ISSUE_ENTITY = EntitySpec(
    name="issue",
    expansions=(
        Expansion("comments", _fetch_comments, "Comments, newest first"),
        Expansion("transitions", _fetch_transitions, "Workflow transitions available now"),
        Expansion("attachments", _fetch_attachments, "Attachment metadata"),
        Expansion("related_issues", _fetch_related_issues, "Issues linked to this one"),
        Expansion("history", _fetch_history, "Field change history"),
    ),
    related=_related,
    suggested_actions=_suggested_actions,
)

ISSUE_ALIASES = build_alias_table(
    {
        "issue_key": "issueKey",
        "project_key": "projectKey",
        "issue_type": "issueType",
        "transition_id": "transitionId",
        "linked_issue_key": "linkedIssueKey",
        "link_type": "linkType",
        "custom_fields": "customFields",
    }
)

ISSUE_DESCRIPTOR = ToolDescriptor(
    tool_name=TOOL_NAME,
    entity=ISSUE_ENTITY,
    aliases=ISSUE_ALIASES,
    description="Get, create, update, delete, transition, comment on and link Jira issues.",
    operations=(
        OperationSpec(
            "get", GetIssue, _ACTION_SUMMARY["get"], example={"issueKey": "PROJ-123"}
        ),
        OperationSpec(
            "create",
            CreateIssue,
            _ACTION_SUMMARY["create"],
            mutating=True,
            example={"projectKey": "PROJ", "summary": "Fix login", "issueType": "Bug"},
        ),
        OperationSpec(
            "update",
            UpdateIssue,
            _ACTION_SUMMARY["update"],
            rules=(at_least_one_of(*_MUTABLE_FIELDS),),
            mutating=True,
            example={"issueKey": "PROJ-123", "summary": "Fix login redirect"},
        ),
        OperationSpec(
            "delete",
            DeleteIssue,
            _ACTION_SUMMARY["delete"],
            shape=SHAPE_ACK,
            mutating=True,
            example={"issueKey": "PROJ-123"},
        ),
        OperationSpec(
            "transition",
            TransitionIssue,
            _ACTION_SUMMARY["transition"],
            mutating=True,
            example={"issueKey": "PROJ-123", "transitionId": "31"},
        ),
        OperationSpec(
            "comment",
            CommentIssue,
            _ACTION_SUMMARY["comment"],
            mutating=True,
            example={"issueKey": "PROJ-123", "comment": "Looks good to me"},
        ),
        OperationSpec(
            "link",
            LinkIssue,
            _ACTION_SUMMARY["link"],
            mutating=True,
            example={
                "issueKey": "PROJ-123",
                "linkedIssueKey": "PROJ-124",
                "linkType": "Blocks",
            },
        ),
    ),
)


# ---------------------------------------------------------------------------
# Operation handlers
# ---------------------------------------------------------------------------


async def _handle_get(*, client: Upstream, request: ToolRequest[GetIssue]) -> Result[Primary]:
    issue = await client.fetch("issue", request.payload.issue_key)
    return Ok(Single(issue))


async def _handle_create(
    *, client: Upstream, request: ToolRequest[CreateIssue]
) -> Result[Primary]:
    issue = await client.mutate(
        "issue", None, payload_patch(request.payload, request.provided)
    )
    logger.info("Created issue %s", issue.get("key"))
    return Ok(Single(issue))


async def _handle_update(
    *, client: Upstream, request: ToolRequest[UpdateIssue]
) -> Result[Primary]:
    patch = payload_patch(request.payload, request.provided)
    patch.pop("issueKey", None)
    issue = await client.mutate("issue", request.payload.issue_key, patch)
    return Ok(Single(issue))


async def _handle_delete(
    *, client: Upstream, request: ToolRequest[DeleteIssue]
) -> Result[Primary]:
    key = request.payload.issue_key
    await client.perform_action("issue", key, "delete")
    logger.info("Deleted issue %s", key)
    return Ok(Ack({"issueKey": key, "deleted": True}))


async def _handle_transition(
    *, client: Upstream, request: ToolRequest[TransitionIssue]
) -> Result[Primary]:
    payload = request.payload
    await client.perform_action(
        "issue",
        payload.issue_key,
        "transition",
        {"transitionId": payload.transition_id, "comment": payload.comment},
    )
    return Ok(Single(await client.fetch("issue", payload.issue_key)))


async def _handle_comment(
    *, client: Upstream, request: ToolRequest[CommentIssue]
) -> Result[Primary]:
    payload = request.payload
    await client.perform_action(
        "issue", payload.issue_key, "comment", {"body": payload.comment}
    )
    return Ok(Single(await client.fetch("issue", payload.issue_key)))


async def _handle_link(*, client: Upstream, request: ToolRequest[LinkIssue]) -> Result[Primary]:
    payload = request.payload
    await client.perform_action(
        "issue",
        payload.issue_key,
        "link",
        {
            "linkedIssueKey": payload.linked_issue_key,
            "linkType": payload.link_type,
            "comment": payload.comment,
        },
    )
    return Ok(Single(await client.fetch("issue", payload.issue_key)))


ISSUE_HANDLERS = {
    "get": _handle_get,
    "create": _handle_create,
    "update": _handle_update,
    "delete": _handle_delete,
    "transition": _handle_transition,
    "comment": _handle_comment,
    "link": _handle_link,
}


def build_issue_engine(client: Upstream) -> ToolEngine:
    return ToolEngine(ISSUE_DESCRIPTOR, ISSUE_HANDLERS, client)


def register_unified_issue_tool(
    mcp: FastMCP, config: ServerConfig, client: Upstream
) -> None:
    """Register the consolidated issue tool."""
    engine = build_issue_engine(client)

    @canonical_tool(
        mcp,
        canonical_name=TOOL_NAME,
        description=ISSUE_DESCRIPTOR.description,
    )
    async def manage_jira_issue(
        operation: str,
        issueKey: Optional[str] = None,
        projectKey: Optional[str] = None,
        summary: Optional[str] = None,
        issueType: Optional[str] = None,
        description: Optional[str] = None,
        parent: Optional[str] = None,
        assignee: Optional[str] = None,
        priority: Optional[str] = None,
        labels: Optional[List[str]] = None,
        customFields: Optional[Dict[str, Any]] = None,
        transitionId: Optional[Union[int, str]] = None,
        comment: Optional[str] = None,
        linkedIssueKey: Optional[str] = None,
        linkType: Optional[str] = None,
        expand: Optional[List[str]] = None,
        issue_key: Optional[str] = None,
        project_key: Optional[str] = None,
        issue_type: Optional[str] = None,
        transition_id: Optional[Union[int, str]] = None,
        linked_issue_key: Optional[str] = None,
        link_type: Optional[str] = None,
        custom_fields: Optional[Dict[str, Any]] = None,
    ) -> dict:
        arguments = {
            "operation": operation,
            "issue_key": issue_key,
            "project_key": project_key,
            "issue_type": issue_type,
            "transition_id": transition_id,
            "linked_issue_key": linked_issue_key,
            "link_type": link_type,
            "custom_fields": custom_fields,
            "issueKey": issueKey,
            "projectKey": projectKey,
            "summary": summary,
            "issueType": issueType,
            "description": description,
            "parent": parent,
            "assignee": assignee,
            "priority": priority,
            "labels": labels,
            "customFields": customFields,
            "transitionId": transitionId,
            "comment": comment,
            "linkedIssueKey": linkedIssueKey,
            "linkType": linkType,
            "expand": expand,
        }
        return await engine.invoke(present_arguments(arguments))

    logger.debug("Registered unified issue tool")


__all__ = [
    "ISSUE_DESCRIPTOR",
    "build_issue_engine",
    "register_unified_issue_tool",
]
