"""Concurrency limiting for fan-out upstream calls.

Expansions and per-item summaries can turn one tool call into many Jira
requests. A :class:`ConcurrencyLimiter` shared by all fetches of one call
caps how many are in flight at once.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Coroutine, TypeVar

T = TypeVar("T")

# Parallel Jira requests allowed per tool call
MAX_CONCURRENT_FETCHES = 10


class ConcurrencyLimiter:
    """Limit concurrent async operations using a semaphore.

    Example:
        >>> limiter = ConcurrencyLimiter(max_concurrent=5)
        >>> results = await asyncio.gather(*(limiter.run(fetch(k)) for k in keys))
    """

    def __init__(self, max_concurrent: int = MAX_CONCURRENT_FETCHES, *, name: str = ""):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.name = name
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active_count = 0

    @property
    def active_count(self) -> int:
        """Get current number of active operations."""
        return self._active_count

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[None]:
        """Hold one slot for the duration of the context."""
        async with self._semaphore:
            self._active_count += 1
            try:
                yield
            finally:
                self._active_count -= 1

    async def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine once a slot is free."""
        async with self.acquire():
            return await coro
