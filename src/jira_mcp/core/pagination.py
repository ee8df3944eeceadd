"""
Pagination utilities for list operations.

Jira pages with offset windows (``startAt`` / ``maxResults``) and reports a
``total``. Every list response of every tool carries the same block:

    "pagination": {"startAt": 0, "maxResults": 2, "total": 5, "hasMore": true}

where ``hasMore`` is true exactly when ``startAt + returned < total``.

Pagination Defaults
===================

    DEFAULT_PAGE_SIZE (50)   - Entity listings (boards, sprints, projects, filters)
    SEARCH_PAGE_SIZE (25)    - JQL search results
    MAX_PAGE_SIZE (100)      - Upper bound accepted from callers
"""

from typing import Any, Dict, Optional

from jira_mcp.core.upstream import Page

#: Default number of entities per page
DEFAULT_PAGE_SIZE: int = 50

#: Default number of issues per search page
SEARCH_PAGE_SIZE: int = 25

#: Maximum allowed page size
MAX_PAGE_SIZE: int = 100


def normalize_page_size(
    requested: Optional[int],
    default: int = DEFAULT_PAGE_SIZE,
    maximum: int = MAX_PAGE_SIZE,
) -> int:
    """Normalize requested page size to valid range.

    Example:
        >>> normalize_page_size(None)
        50
        >>> normalize_page_size(5000)
        100
        >>> normalize_page_size(-1)
        1
    """
    if requested is None:
        return default
    return min(max(1, requested), maximum)


def make_page(
    start_at: Optional[int],
    max_results: Optional[int],
    default: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """Build a :class:`Page` from optional caller input."""
    return Page(
        start_at=max(0, start_at or 0),
        max_results=normalize_page_size(max_results, default=default),
    )


def pagination_metadata(page: Page, returned: int, total: int) -> Dict[str, Any]:
    """Pagination block for ``_metadata.pagination``.

    Example:
        >>> pagination_metadata(Page(0, 2), returned=2, total=5)
        {'startAt': 0, 'maxResults': 2, 'total': 5, 'hasMore': True}
    """
    return {
        "startAt": page.start_at,
        "maxResults": page.max_results,
        "total": total,
        "hasMore": page.start_at + returned < total,
    }
