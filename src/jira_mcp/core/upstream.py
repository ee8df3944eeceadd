"""Interface to the issue-tracking service.

Handlers and expansion fetches only talk to the service through this
protocol. ``JiraClient`` implements it over HTTP; tests substitute an
in-memory fake. Entity types are plain strings such as ``"issue"``,
``"sprint"`` or ``"issue_comment"``; see ``jira_mcp.core.jira_client`` for the
full routing table.

Every method raises ``UpstreamError`` on failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

EntityId = Union[int, str]


@dataclass(frozen=True)
class Page:
    """A window into a listing."""

    start_at: int = 0
    max_results: int = 50


@dataclass
class Listing:
    """One page of entities plus the total number available."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0


class Upstream(Protocol):
    async def fetch(
        self,
        entity_type: str,
        entity_id: EntityId,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Read one entity; ``UpstreamError(NOT_FOUND)`` when it is absent."""
        ...

    async def list(
        self,
        entity_type: str,
        filter: Optional[Mapping[str, Any]] = None,
        page: Optional[Page] = None,
    ) -> Listing:
        """Read one page of entities matching ``filter``."""
        ...

    async def mutate(
        self,
        entity_type: str,
        entity_id: Optional[EntityId],
        patch: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """Create (``entity_id=None``) or update an entity and return it."""
        ...

    async def perform_action(
        self,
        entity_type: str,
        entity_id: EntityId,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Run a side-effecting action (delete, transition, comment...)."""
        ...
