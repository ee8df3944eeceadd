"""Response composition.

Every successful tool call answers with the same three-part envelope,
whatever the entity:

    {
        "data": {...} | [...],
        "_metadata": {
            "available_expansions": [...],   # always present
            "pagination": {...}?,            # list operations
            "related": {...}?                # when the entity references others
        },
        "_summary": {
            "status_counts": {...}?,
            "suggested_actions": [{"text": "...", "action_id": "..."}]?
        }
    }

``available_expansions`` is the entity vocabulary minus the expansions that
were actually resolved, in vocabulary order.

Handlers describe their primary result with one of :class:`Single`,
:class:`ListPage` or :class:`Ack`; the engine hands it here together with the
resolved expansion names.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from jira_mcp.core.descriptors import EntitySpec
from jira_mcp.core.pagination import pagination_metadata
from jira_mcp.core.upstream import Page


@dataclass
class Single:
    """One entity fetched or mutated by the handler.

    ``summary`` carries precomputed ``_summary`` entries (e.g. status counts
    gathered by the handler).
    """

    entity: Dict[str, Any]
    summary: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ListPage:
    """One page of entities."""

    items: List[Dict[str, Any]]
    total: int
    page: Page
    summary: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Ack:
    """Acknowledgement of an operation that returns no entity (delete)."""

    data: Dict[str, Any]


Primary = Union[Single, ListPage, Ack]


def available_expansions(spec: EntitySpec, resolved: FrozenSet[str]) -> List[str]:
    return [name for name in spec.vocabulary if name not in resolved]


def count_statuses(
    items: Iterable[Mapping[str, Any]],
    status_of: Callable[[Mapping[str, Any]], Optional[str]],
    seed: Iterable[str] = (),
) -> Dict[str, int]:
    """Count items per status, starting every seeded status at zero."""
    counts: Dict[str, int] = {status: 0 for status in seed}
    tally = Counter(s for s in (status_of(item) for item in items) if s)
    for status, count in tally.items():
        counts[status] = counts.get(status, 0) + count
    return counts


def _issue_status(issue: Mapping[str, Any]) -> Optional[str]:
    return issue.get("status") or None


def _compact(mapping: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in mapping.items() if v not in (None, "", [], {})}


def compose_single(
    entity: Mapping[str, Any],
    spec: EntitySpec,
    resolved: FrozenSet[str] = frozenset(),
    extra_summary: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Envelope for a single entity."""
    metadata: Dict[str, Any] = {
        "available_expansions": available_expansions(spec, resolved),
    }
    related = _compact(spec.related(entity))
    if related:
        metadata["related"] = related

    summary: Dict[str, Any] = dict(extra_summary or {})
    if spec.status_source and "status_counts" not in summary:
        attached = entity.get(spec.status_source)
        if isinstance(attached, list) and attached:
            summary["status_counts"] = count_statuses(attached, _issue_status)
    actions = spec.suggested_actions(entity)
    if actions:
        summary["suggested_actions"] = actions

    return {"data": dict(entity), "_metadata": metadata, "_summary": summary}


def compose_list(
    listing: ListPage,
    spec: EntitySpec,
    resolved: FrozenSet[str] = frozenset(),
) -> Dict[str, Any]:
    """Envelope for a page of entities."""
    pagination = pagination_metadata(listing.page, len(listing.items), listing.total)
    metadata: Dict[str, Any] = {
        "available_expansions": available_expansions(spec, resolved),
        "pagination": pagination,
    }

    summary: Dict[str, Any] = dict(listing.summary)
    if spec.status_of is not None and "status_counts" not in summary:
        summary["status_counts"] = count_statuses(
            listing.items, spec.status_of, spec.status_seed
        )
    actions = spec.list_actions(pagination)
    if actions:
        summary["suggested_actions"] = actions

    return {"data": list(listing.items), "_metadata": metadata, "_summary": summary}


def compose_ack(ack: Ack, spec: EntitySpec) -> Dict[str, Any]:
    """Envelope for an operation that returns no entity."""
    return {
        "data": dict(ack.data),
        "_metadata": {"available_expansions": list(spec.vocabulary)},
        "_summary": {},
    }


def compose(
    primary: Primary, spec: EntitySpec, resolved: FrozenSet[str] = frozenset()
) -> Dict[str, Any]:
    if isinstance(primary, ListPage):
        return compose_list(primary, spec, resolved)
    if isinstance(primary, Ack):
        return compose_ack(primary, spec)
    return compose_single(primary.entity, spec, resolved, primary.summary)
