"""Argument normalization.

Tool callers mix snake_case and camelCase spellings of the same parameter
(``sprint_id`` / ``sprintId``). Each tool declares a fixed rename table of
alternate spelling -> canonical spelling; :func:`normalize_arguments` applies
it and leaves every other key untouched.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping

# Parameters shared by every tool that pages through results
PAGINATION_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "start_at": "startAt",
        "max_results": "maxResults",
    }
)


def build_alias_table(*tables: Mapping[str, str]) -> Mapping[str, str]:
    """Merge rename tables into one read-only mapping.

    Raises:
        ValueError: If an alternate spelling is also used as a canonical name,
            which would make normalization non-idempotent.
    """
    merged: Dict[str, str] = {}
    for table in tables:
        merged.update(table)
    chained = set(merged) & set(merged.values())
    if chained:
        raise ValueError(f"Alias table maps onto aliased names: {sorted(chained)}")
    return MappingProxyType(merged)


def normalize_arguments(
    raw: Mapping[str, Any], aliases: Mapping[str, str]
) -> Dict[str, Any]:
    """Return a copy of ``raw`` with alternate spellings renamed.

    Keys are visited in the caller's order. When both spellings of a field
    are present, whichever is visited last wins. Unknown keys pass through.
    No type or presence checks are made.
    """
    canonical: Dict[str, Any] = {}
    for key, value in raw.items():
        canonical[aliases.get(key, key)] = value
    return canonical


def present_arguments(arguments: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop parameters left at None by the MCP layer, which passes every
    declared parameter whether or not the caller sent it."""
    return {key: value for key, value in arguments.items() if value is not None}
