"""Jira Cloud client.

This module implements ``JiraClient``, the HTTP implementation of the
``Upstream`` protocol. It speaks Jira REST v3 (``/rest/api/3``) for issues,
projects and filters, and the Agile API (``/rest/agile/1.0``) for boards and
sprints. Raw Jira payloads are projected into flat dicts so handlers and
expansion fetches never see Jira's nested ``fields`` structure.

Routing table (entity type -> endpoint):

    fetch   issue, board, board_configuration, sprint, sprint_report,
            project, filter, myself
    list    issue (JQL search), issue_comment, issue_transition,
            issue_changelog, issue_attachment, board, board_sprint,
            board_issue, sprint_issue, project, project_component,
            project_version, filter, filter_permission
    mutate  issue, board (create), sprint, filter
    action  issue: delete, transition, comment, link
            board: delete
            sprint: delete, add_issues, remove_issues
            filter: delete

Failures raise ``UpstreamError``; the client never retries.

Example usage:
    client = JiraClient(JiraSettings(host="team.atlassian.net", email=..., api_token=...))
    sprint = await client.fetch("sprint", 456)
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from jira_mcp.config import JiraSettings
from jira_mcp.core.adf import adf_to_text, text_to_adf
from jira_mcp.core.errors import UpstreamError, UpstreamReason
from jira_mcp.core.upstream import EntityId, Listing, Page

logger = logging.getLogger(__name__)

API = "/rest/api/3"
AGILE = "/rest/agile/1.0"
GREENHOPPER = "/rest/greenhopper/1.0"

FILTER_EXPAND = "description,jql,owner,favourite,viewUrl,sharePermissions"

_STATUS_REASONS = {
    400: UpstreamReason.BAD_REQUEST,
    401: UpstreamReason.UNAUTHORIZED,
    403: UpstreamReason.PERMISSION_DENIED,
    404: UpstreamReason.NOT_FOUND,
    429: UpstreamReason.RATE_LIMITED,
}


def _display_name(user: Any) -> Optional[str]:
    if isinstance(user, Mapping):
        return user.get("displayName") or None
    return None


def _name(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        return value.get("name") or None
    return None


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, Mapping)):
        return bool(value)
    return True


class JiraClient:
    """Jira Cloud implementation of the upstream collaborator.

    Attributes:
        settings: Connection settings (host, credentials, custom field ids)

    A fresh ``httpx.AsyncClient`` is opened per request; the settings object
    is the only state shared between calls.
    """

    def __init__(
        self,
        settings: JiraSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            settings: Jira connection settings
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)

        Raises:
            ValueError: If the host is not configured
        """
        if not settings.base_url:
            raise ValueError("Jira host required. Set JIRA_HOST or [jira].host.")
        self.settings = settings
        self._base_url = settings.base_url
        self._auth = httpx.BasicAuth(settings.email, settings.api_token)
        self._timeout = settings.timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (or None).

        Raises:
            UpstreamError: Classified by HTTP status or transport failure
        """
        url = f"{self._base_url}{path}"
        logger.debug("Jira %s %s", method, path)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                auth=self._auth,
                transport=self._transport,
                headers={"Accept": "application/json"},
            ) as client:
                response = await client.request(
                    method, url, params=dict(params) if params else None, json=json
                )
        except httpx.TimeoutException as e:
            raise UpstreamError(
                UpstreamReason.NETWORK, f"Jira request timed out: {method} {path}"
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(
                UpstreamReason.NETWORK, f"Could not reach Jira: {e}"
            ) from e

        if response.status_code >= 400:
            raise self._error_for(response, method, path)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                UpstreamReason.SERVER_ERROR,
                f"Jira returned a non-JSON response for {method} {path}",
                status_code=response.status_code,
            ) from e

    def _error_for(self, response: httpx.Response, method: str, path: str) -> UpstreamError:
        status = response.status_code
        reason = _STATUS_REASONS.get(status)
        if reason is None:
            reason = (
                UpstreamReason.SERVER_ERROR if status >= 500 else UpstreamReason.BAD_REQUEST
            )
        detail = self._extract_error_message(response)
        return UpstreamError(
            reason,
            f"Jira API error {status} on {method} {path}: {detail}",
            status_code=status,
            retry_after=self._parse_retry_after(response),
        )

    def _parse_retry_after(self, response: httpx.Response) -> Optional[float]:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return None

    def _extract_error_message(self, response: httpx.Response) -> str:
        """Pull Jira's errorMessages/errors out of an error body."""
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] if response.text else "Unknown error"
        if not isinstance(data, Mapping):
            return str(data)[:200]
        messages = list(data.get("errorMessages") or [])
        errors = data.get("errors") or {}
        if isinstance(errors, Mapping):
            messages.extend(f"{k}: {v}" for k, v in errors.items())
        if data.get("message"):
            messages.append(str(data["message"]))
        return "; ".join(messages) or response.text[:200] or "Unknown error"

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    @property
    def _issue_fields(self) -> List[str]:
        return [
            "summary",
            "description",
            "issuetype",
            "project",
            "assignee",
            "reporter",
            "status",
            "priority",
            "resolution",
            "labels",
            "duedate",
            "parent",
            "timeestimate",
            "issuelinks",
            "created",
            "updated",
            self.settings.start_date_field,
            self.settings.story_points_field,
        ]

    def _project_issue(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        fields = raw.get("fields") or {}
        links = []
        for link in fields.get("issuelinks") or []:
            links.append(
                {
                    "type": _name(link.get("type")) or "",
                    "outward": (link.get("outwardIssue") or {}).get("key"),
                    "inward": (link.get("inwardIssue") or {}).get("key"),
                }
            )
        issue: Dict[str, Any] = {
            "id": raw.get("id"),
            "key": raw.get("key"),
            "summary": fields.get("summary") or "",
            "description": adf_to_text(fields.get("description")),
            "issueType": _name(fields.get("issuetype")),
            "project": (fields.get("project") or {}).get("key"),
            "status": _name(fields.get("status")) or "",
            "statusCategory": ((fields.get("status") or {}).get("statusCategory") or {}).get(
                "key"
            ),
            "priority": _name(fields.get("priority")),
            "assignee": _display_name(fields.get("assignee")),
            "reporter": _display_name(fields.get("reporter")) or "",
            "resolution": _name(fields.get("resolution")),
            "labels": list(fields.get("labels") or []),
            "parent": (fields.get("parent") or {}).get("key"),
            "dueDate": fields.get("duedate"),
            "startDate": fields.get(self.settings.start_date_field),
            "storyPoints": fields.get(self.settings.story_points_field),
            "timeEstimate": fields.get("timeestimate"),
            "issueLinks": links,
            "created": fields.get("created"),
            "updated": fields.get("updated"),
        }
        custom = self._populated_custom_fields(fields)
        if custom:
            issue["customFields"] = custom
        return issue

    def _populated_custom_fields(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        known = {self.settings.start_date_field, self.settings.story_points_field}
        return {
            field_id: value
            for field_id, value in fields.items()
            if field_id.startswith("customfield_")
            and field_id not in known
            and _is_populated(value)
        }

    @staticmethod
    def _project_board(raw: Mapping[str, Any]) -> Dict[str, Any]:
        board: Dict[str, Any] = {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "type": raw.get("type"),
        }
        location = raw.get("location")
        if isinstance(location, Mapping):
            board["location"] = {
                "projectId": location.get("projectId"),
                "projectKey": location.get("projectKey"),
                "projectName": location.get("projectName") or location.get("name"),
            }
        return board

    @staticmethod
    def _project_sprint(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "state": raw.get("state"),
            "goal": raw.get("goal") or None,
            "startDate": raw.get("startDate"),
            "endDate": raw.get("endDate"),
            "completeDate": raw.get("completeDate"),
            "boardId": raw.get("originBoardId"),
        }

    @staticmethod
    def _project_project(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "key": raw.get("key"),
            "name": raw.get("name"),
            "description": raw.get("description") or "",
            "lead": _display_name(raw.get("lead")),
            "projectType": raw.get("projectTypeKey"),
        }

    @staticmethod
    def _project_permission(raw: Mapping[str, Any]) -> Dict[str, Any]:
        permission: Dict[str, Any] = {"type": raw.get("type")}
        if isinstance(raw.get("group"), Mapping):
            permission["group"] = raw["group"].get("name")
        if isinstance(raw.get("project"), Mapping):
            permission["project"] = raw["project"].get("key") or raw["project"].get("id")
        return permission

    def _project_filter(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": str(raw.get("id")),
            "name": raw.get("name"),
            "owner": _display_name(raw.get("owner")) or "",
            "favourite": bool(raw.get("favourite", False)),
            "viewUrl": raw.get("viewUrl"),
            "description": raw.get("description") or "",
            "jql": raw.get("jql") or "",
            "sharePermissions": [
                self._project_permission(p) for p in raw.get("sharePermissions") or []
            ],
        }

    @staticmethod
    def _project_comment(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "author": _display_name(raw.get("author")) or "",
            "body": adf_to_text(raw.get("body")),
            "created": raw.get("created"),
        }

    @staticmethod
    def _project_transition(raw: Mapping[str, Any]) -> Dict[str, Any]:
        target = raw.get("to") or {}
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "to": {"id": target.get("id"), "name": target.get("name")},
        }

    @staticmethod
    def _project_change(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "author": _display_name(raw.get("author")) or "",
            "created": raw.get("created"),
            "items": [
                {
                    "field": item.get("field"),
                    "from": item.get("fromString"),
                    "to": item.get("toString"),
                }
                for item in raw.get("items") or []
            ],
        }

    @staticmethod
    def _project_attachment(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "filename": raw.get("filename"),
            "mimeType": raw.get("mimeType"),
            "size": raw.get("size"),
            "created": raw.get("created"),
            "author": _display_name(raw.get("author")) or "",
            "url": raw.get("content"),
        }

    @staticmethod
    def _project_component(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "description": raw.get("description") or "",
            "lead": _display_name(raw.get("lead")),
        }

    @staticmethod
    def _project_version(raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "released": bool(raw.get("released", False)),
            "archived": bool(raw.get("archived", False)),
            "releaseDate": raw.get("releaseDate"),
        }

    @staticmethod
    def _project_sprint_report(raw: Mapping[str, Any]) -> Dict[str, Any]:
        contents = raw.get("contents") or {}
        velocity = (contents.get("completedIssuesEstimateSum") or {}).get("value")
        return {
            "completedIssues": len(contents.get("completedIssues") or []),
            "incompletedIssues": len(contents.get("issuesNotCompletedInCurrentSprint") or []),
            "puntedIssues": len(contents.get("puntedIssues") or []),
            "addedIssues": len(contents.get("issueKeysAddedDuringSprint") or {}),
            "velocityPoints": velocity,
        }

    # ------------------------------------------------------------------
    # Upstream protocol
    # ------------------------------------------------------------------

    async def fetch(
        self,
        entity_type: str,
        entity_id: EntityId,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        params = dict(params or {})
        if entity_type == "issue":
            # Single reads also pull navigable custom fields for customFields
            params.setdefault("fields", ",".join([*self._issue_fields, "*navigable"]))
            raw = await self._request("GET", f"{API}/issue/{entity_id}", params=params)
            return self._project_issue(raw)
        if entity_type == "board":
            raw = await self._request("GET", f"{AGILE}/board/{entity_id}")
            return self._project_board(raw)
        if entity_type == "board_configuration":
            raw = await self._request("GET", f"{AGILE}/board/{entity_id}/configuration")
            columns = (raw.get("columnConfig") or {}).get("columns") or []
            return {
                "id": raw.get("id"),
                "name": raw.get("name"),
                "filterId": (raw.get("filter") or {}).get("id"),
                "columns": [
                    {
                        "name": c.get("name"),
                        "statuses": [s.get("id") for s in c.get("statuses") or []],
                    }
                    for c in columns
                ],
                "estimationField": (
                    (raw.get("estimation") or {}).get("field") or {}
                ).get("displayName"),
                "rankingField": (raw.get("ranking") or {}).get("rankCustomFieldId"),
            }
        if entity_type == "sprint":
            raw = await self._request("GET", f"{AGILE}/sprint/{entity_id}")
            return self._project_sprint(raw)
        if entity_type == "sprint_report":
            params["sprintId"] = entity_id
            raw = await self._request(
                "GET", f"{GREENHOPPER}/rapid/charts/sprintreport", params=params
            )
            return self._project_sprint_report(raw)
        if entity_type == "project":
            raw = await self._request("GET", f"{API}/project/{entity_id}")
            return self._project_project(raw)
        if entity_type == "filter":
            params.setdefault("expand", FILTER_EXPAND)
            raw = await self._request("GET", f"{API}/filter/{entity_id}", params=params)
            return self._project_filter(raw)
        if entity_type == "myself":
            raw = await self._request("GET", f"{API}/myself")
            return {
                "accountId": raw.get("accountId"),
                "displayName": raw.get("displayName"),
                "emailAddress": raw.get("emailAddress"),
            }
        raise ValueError(f"Unsupported entity type for fetch: {entity_type}")

    async def list(
        self,
        entity_type: str,
        filter: Optional[Mapping[str, Any]] = None,
        page: Optional[Page] = None,
    ) -> Listing:
        criteria = dict(filter or {})
        page = page or Page()
        window = {"startAt": page.start_at, "maxResults": page.max_results}

        if entity_type == "issue":
            body = {
                "jql": criteria["jql"],
                "fields": self._issue_fields,
                **window,
            }
            raw = await self._request("POST", f"{API}/search", json=body)
            issues = [self._project_issue(i) for i in raw.get("issues") or []]
            return Listing(items=issues, total=int(raw.get("total", len(issues))))

        if entity_type == "issue_comment":
            raw = await self._request(
                "GET",
                f"{API}/issue/{criteria['issueKey']}/comment",
                params={**window, "orderBy": "-created"},
            )
            comments = [self._project_comment(c) for c in raw.get("comments") or []]
            return Listing(items=comments, total=int(raw.get("total", len(comments))))

        if entity_type == "issue_transition":
            raw = await self._request(
                "GET", f"{API}/issue/{criteria['issueKey']}/transitions"
            )
            transitions = [self._project_transition(t) for t in raw.get("transitions") or []]
            return Listing(items=transitions, total=len(transitions))

        if entity_type == "issue_changelog":
            raw = await self._request(
                "GET", f"{API}/issue/{criteria['issueKey']}/changelog", params=window
            )
            changes = [self._project_change(c) for c in raw.get("values") or []]
            return Listing(items=changes, total=int(raw.get("total", len(changes))))

        if entity_type == "issue_attachment":
            raw = await self._request(
                "GET",
                f"{API}/issue/{criteria['issueKey']}",
                params={"fields": "attachment"},
            )
            attachments = [
                self._project_attachment(a)
                for a in (raw.get("fields") or {}).get("attachment") or []
            ]
            return Listing(items=attachments, total=len(attachments))

        if entity_type == "board":
            params = dict(window)
            if criteria.get("projectKey"):
                params["projectKeyOrId"] = criteria["projectKey"]
            if criteria.get("type"):
                params["type"] = criteria["type"]
            raw = await self._request("GET", f"{AGILE}/board", params=params)
            return self._agile_listing(raw, self._project_board, page)

        if entity_type == "board_sprint":
            params = dict(window)
            if criteria.get("state"):
                params["state"] = criteria["state"]
            raw = await self._request(
                "GET", f"{AGILE}/board/{criteria['boardId']}/sprint", params=params
            )
            return self._agile_listing(raw, self._project_sprint, page)

        if entity_type in ("board_issue", "sprint_issue"):
            owner, key = (
                ("board", "boardId") if entity_type == "board_issue" else ("sprint", "sprintId")
            )
            raw = await self._request(
                "GET",
                f"{AGILE}/{owner}/{criteria[key]}/issue",
                params={**window, "fields": ",".join(self._issue_fields)},
            )
            issues = [self._project_issue(i) for i in raw.get("issues") or []]
            return Listing(items=issues, total=int(raw.get("total", len(issues))))

        if entity_type == "project":
            raw = await self._request(
                "GET", f"{API}/project/search", params={**window, "expand": "description,lead"}
            )
            return self._agile_listing(raw, self._project_project, page)

        if entity_type == "project_component":
            raw = await self._request(
                "GET", f"{API}/project/{criteria['projectKey']}/components"
            )
            components = [self._project_component(c) for c in raw or []]
            return Listing(items=components, total=len(components))

        if entity_type == "project_version":
            raw = await self._request(
                "GET", f"{API}/project/{criteria['projectKey']}/versions"
            )
            versions = [self._project_version(v) for v in raw or []]
            return Listing(items=versions, total=len(versions))

        if entity_type == "filter":
            raw = await self._request(
                "GET", f"{API}/filter/search", params={**window, "expand": FILTER_EXPAND}
            )
            return self._agile_listing(raw, self._project_filter, page)

        if entity_type == "filter_permission":
            raw = await self._request(
                "GET", f"{API}/filter/{criteria['filterId']}/permission"
            )
            permissions = [self._project_permission(p) for p in raw or []]
            return Listing(items=permissions, total=len(permissions))

        raise ValueError(f"Unsupported entity type for list: {entity_type}")

    @staticmethod
    def _agile_listing(raw: Mapping[str, Any], project, page: Page) -> Listing:
        """Listing from a ``{values, total?, isLast?}`` page.

        Some Agile endpoints omit ``total``; it is then derived from
        ``isLast`` so that ``hasMore`` stays exact.
        """
        items = [project(v) for v in raw.get("values") or []]
        if "total" in raw:
            total = int(raw["total"])
        else:
            total = page.start_at + len(items) + (0 if raw.get("isLast", True) else 1)
        return Listing(items=items, total=total)

    async def mutate(
        self,
        entity_type: str,
        entity_id: Optional[EntityId],
        patch: Mapping[str, Any],
    ) -> Dict[str, Any]:
        if entity_type == "issue":
            fields = self._issue_patch(patch)
            if entity_id is None:
                created = await self._request("POST", f"{API}/issue", json={"fields": fields})
                return await self.fetch("issue", created["key"])
            await self._request("PUT", f"{API}/issue/{entity_id}", json={"fields": fields})
            return await self.fetch("issue", entity_id)

        if entity_type == "board" and entity_id is None:
            body: Dict[str, Any] = {
                "name": patch["name"],
                "type": patch["type"],
                "filterId": patch["filterId"],
            }
            if patch.get("projectKey"):
                body["location"] = {"type": "project", "projectKeyOrId": patch["projectKey"]}
            raw = await self._request("POST", f"{AGILE}/board", json=body)
            return self._project_board(raw)

        if entity_type == "sprint":
            body = {k: v for k, v in patch.items() if k != "boardId" and v is not None}
            if entity_id is None:
                body["originBoardId"] = patch["boardId"]
                raw = await self._request("POST", f"{AGILE}/sprint", json=body)
            else:
                raw = await self._request("POST", f"{AGILE}/sprint/{entity_id}", json=body)
            return self._project_sprint(raw)

        if entity_type == "filter":
            body = {k: v for k, v in patch.items() if v is not None and k != "sharePermissions"}
            if patch.get("sharePermissions") is not None:
                body["sharePermissions"] = [
                    self._permission_body(p) for p in patch["sharePermissions"]
                ]
            params = {"expand": FILTER_EXPAND}
            if entity_id is None:
                raw = await self._request("POST", f"{API}/filter", params=params, json=body)
            else:
                raw = await self._request(
                    "PUT", f"{API}/filter/{entity_id}", params=params, json=body
                )
            return self._project_filter(raw)

        raise ValueError(f"Unsupported entity type for mutate: {entity_type}")

    def _issue_patch(self, patch: Mapping[str, Any]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if patch.get("projectKey"):
            fields["project"] = {"key": patch["projectKey"]}
        if patch.get("issueType"):
            fields["issuetype"] = {"name": patch["issueType"]}
        if patch.get("summary") is not None:
            fields["summary"] = patch["summary"]
        if patch.get("description") is not None:
            fields["description"] = text_to_adf(patch["description"])
        if "parent" in patch:
            fields["parent"] = {"key": patch["parent"]} if patch["parent"] else None
        if patch.get("assignee") is not None:
            fields["assignee"] = {"accountId": patch["assignee"]}
        if patch.get("priority") is not None:
            fields["priority"] = {"name": patch["priority"]}
        if patch.get("labels") is not None:
            fields["labels"] = list(patch["labels"])
        for field_id, value in (patch.get("customFields") or {}).items():
            fields[field_id] = value
        return fields

    @staticmethod
    def _permission_body(permission: Mapping[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {"type": permission["type"]}
        if permission["type"] == "group":
            body["group"] = {"name": permission["group"]}
        elif permission["type"] == "project":
            body["project"] = {"id": str(permission["project"])}
        return body

    async def perform_action(
        self,
        entity_type: str,
        entity_id: EntityId,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> None:
        payload = payload or {}

        if action == "delete" and entity_type in ("issue", "board", "sprint", "filter"):
            base = AGILE if entity_type in ("board", "sprint") else API
            await self._request("DELETE", f"{base}/{entity_type}/{entity_id}")
            return

        if entity_type == "issue" and action == "transition":
            body: Dict[str, Any] = {"transition": {"id": str(payload["transitionId"])}}
            if payload.get("comment"):
                body["update"] = {
                    "comment": [{"add": {"body": text_to_adf(payload["comment"])}}]
                }
            await self._request("POST", f"{API}/issue/{entity_id}/transitions", json=body)
            return

        if entity_type == "issue" and action == "comment":
            await self._request(
                "POST",
                f"{API}/issue/{entity_id}/comment",
                json={"body": text_to_adf(payload["body"])},
            )
            return

        if entity_type == "issue" and action == "link":
            body = {
                "type": {"name": payload["linkType"]},
                "inwardIssue": {"key": entity_id},
                "outwardIssue": {"key": payload["linkedIssueKey"]},
            }
            if payload.get("comment"):
                body["comment"] = {"body": text_to_adf(payload["comment"])}
            await self._request("POST", f"{API}/issueLink", json=body)
            return

        if entity_type == "sprint" and action == "add_issues":
            await self._request(
                "POST",
                f"{AGILE}/sprint/{entity_id}/issue",
                json={"issues": list(payload["issues"])},
            )
            return

        if entity_type == "sprint" and action == "remove_issues":
            await self._request(
                "POST", f"{AGILE}/backlog/issue", json={"issues": list(payload["issues"])}
            )
            return

        raise ValueError(f"Unsupported action {action!r} for {entity_type}")

    async def health_check(self) -> Dict[str, Any]:
        """Verify credentials by reading the current user.

        Raises:
            UpstreamError: If Jira rejects the credentials or is unreachable
        """
        return await self.fetch("myself", "me")
