"""Tests for the concurrency limiter."""

import asyncio

import pytest

from jira_mcp.core.concurrency import MAX_CONCURRENT_FETCHES, ConcurrencyLimiter


class TestConcurrencyLimiter:
    """Tests for ConcurrencyLimiter."""

    @pytest.mark.asyncio
    async def test_caps_parallel_operations(self):
        """Should never run more than max_concurrent coroutines at once."""
        limiter = ConcurrencyLimiter(max_concurrent=3)
        peak = 0

        async def work(n):
            nonlocal peak
            peak = max(peak, limiter.active_count)
            await asyncio.sleep(0)
            return n * 2

        results = await asyncio.gather(*(limiter.run(work(n)) for n in range(20)))
        assert results == [n * 2 for n in range(20)]
        assert peak == 3
        assert limiter.active_count == 0

    @pytest.mark.asyncio
    async def test_slot_released_on_error(self):
        limiter = ConcurrencyLimiter(max_concurrent=1)

        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await limiter.run(boom())
        assert limiter.active_count == 0
        assert await limiter.run(asyncio.sleep(0, result="ok")) == "ok"

    def test_rejects_zero(self):
        with pytest.raises(ValueError):
            ConcurrencyLimiter(max_concurrent=0)

    def test_default_limit(self):
        assert ConcurrencyLimiter().max_concurrent == MAX_CONCURRENT_FETCHES
