"""Best-effort expansion resolution.

Each requested expansion costs exactly one upstream fetch. Fetches run
concurrently, at most ``MAX_CONCURRENT_FETCHES`` at a time per tool call, and
the resolver waits for all of them. A fetch that fails with
an ``UpstreamError`` (or any other ``Exception``) is logged and the expansion
is left out; the primary result is never failed by an expansion. Cancellation
is not swallowed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from jira_mcp.core.concurrency import MAX_CONCURRENT_FETCHES, ConcurrencyLimiter
from jira_mcp.core.descriptors import EntitySpec
from jira_mcp.core.errors import UpstreamError
from jira_mcp.core.upstream import Upstream

logger = logging.getLogger(__name__)


def _describe_failure(error: BaseException) -> str:
    if isinstance(error, UpstreamError):
        return error.reason.value
    return type(error).__name__


async def resolve_expansions(
    client: Upstream,
    entity: Mapping[str, Any],
    requested: Sequence[str],
    spec: EntitySpec,
    limiter: Optional[ConcurrencyLimiter] = None,
) -> Tuple[Dict[str, Any], FrozenSet[str]]:
    """Attach requested expansions to a copy of ``entity``.

    Args:
        limiter: Shared limit for the whole call; a fresh one is used if omitted

    Returns:
        The enriched entity and the names of the expansions actually attached.
    """
    enriched = dict(entity)
    expansions = [spec.expansion(name) for name in requested]
    expansions = [e for e in expansions if e is not None]
    if not expansions:
        return enriched, frozenset()

    if limiter is None:
        limiter = ConcurrencyLimiter(MAX_CONCURRENT_FETCHES, name=spec.name)
    outcomes = await asyncio.gather(
        *(limiter.run(e.fetch(client, entity)) for e in expansions),
        return_exceptions=True,
    )

    resolved = set()
    for expansion, outcome in zip(expansions, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning(
                "Expansion '%s' omitted for %s: %s",
                expansion.name,
                spec.name,
                _describe_failure(outcome),
                extra={"expansion": expansion.name, "failure": str(outcome)},
            )
            continue
        enriched[expansion.attach_as] = outcome
        resolved.add(expansion.name)

    return enriched, frozenset(resolved)


async def resolve_list_expansions(
    client: Upstream,
    items: Sequence[Mapping[str, Any]],
    requested: Sequence[str],
    spec: EntitySpec,
    limiter: Optional[ConcurrencyLimiter] = None,
) -> Tuple[List[Dict[str, Any]], FrozenSet[str]]:
    """Enrich every item of a list page independently.

    An expansion counts as resolved for the page only when every item carries
    it; an empty page resolves nothing.
    """
    if not items or not requested:
        return [dict(item) for item in items], frozenset()

    if limiter is None:
        limiter = ConcurrencyLimiter(MAX_CONCURRENT_FETCHES, name=spec.name)
    results = await asyncio.gather(
        *(resolve_expansions(client, item, requested, spec, limiter) for item in items)
    )
    enriched = [entity for entity, _ in results]
    resolved = frozenset.intersection(*(names for _, names in results))
    return enriched, resolved
