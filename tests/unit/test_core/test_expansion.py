"""Tests for best-effort expansion resolution."""

import asyncio
import logging

import pytest

from jira_mcp.core.concurrency import MAX_CONCURRENT_FETCHES, ConcurrencyLimiter
from jira_mcp.core.descriptors import EntitySpec, Expansion
from jira_mcp.core.errors import UpstreamError, UpstreamReason
from jira_mcp.core.expansion import resolve_expansions, resolve_list_expansions
from tests.fakes import CountingUpstream, FakeUpstream


async def _comments(client, entity):
    listing = await client.list("issue_comment", {"issueKey": entity["key"]})
    return listing.items


async def _transitions(client, entity):
    listing = await client.list("issue_transition", {"issueKey": entity["key"]})
    return listing.items


async def _cancelled(client, entity):
    raise asyncio.CancelledError()


ISSUE = EntitySpec(
    name="issue",
    expansions=(
        Expansion("comments", _comments),
        Expansion("transitions", _transitions, key="availableTransitions"),
        Expansion("cancelled", _cancelled),
    ),
)


@pytest.fixture
def upstream():
    fake = FakeUpstream()
    fake.set_listing("issue_comment", [{"id": "1", "body": "hi"}])
    fake.set_listing("issue_transition", [{"id": "31", "name": "Done"}])
    return fake


class TestResolveExpansions:
    """Tests for resolve_expansions."""

    @pytest.mark.asyncio
    async def test_attaches_each_expansion(self, upstream):
        """Should attach every requested dataset under its key."""
        entity, resolved = await resolve_expansions(
            upstream, {"key": "PROJ-1"}, ("comments", "transitions"), ISSUE
        )
        assert entity["comments"] == [{"id": "1", "body": "hi"}]
        assert entity["availableTransitions"] == [{"id": "31", "name": "Done"}]
        assert resolved == frozenset({"comments", "transitions"})

    @pytest.mark.asyncio
    async def test_one_fetch_per_expansion(self, upstream):
        await resolve_expansions(upstream, {"key": "PROJ-1"}, ("comments",), ISSUE)
        assert len(upstream.calls) == 1

    @pytest.mark.asyncio
    async def test_nothing_requested(self, upstream):
        entity, resolved = await resolve_expansions(upstream, {"key": "PROJ-1"}, (), ISSUE)
        assert entity == {"key": "PROJ-1"}
        assert resolved == frozenset()
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_does_not_mutate_input(self, upstream):
        original = {"key": "PROJ-1"}
        await resolve_expansions(upstream, original, ("comments",), ISSUE)
        assert original == {"key": "PROJ-1"}

    @pytest.mark.asyncio
    async def test_partial_failure_omits_expansion(self, upstream, caplog):
        """Should drop a failed expansion, keep the rest and log a warning."""
        upstream.fail("list", "issue_transition", UpstreamReason.PERMISSION_DENIED)
        with caplog.at_level(logging.WARNING, logger="jira_mcp.core.expansion"):
            entity, resolved = await resolve_expansions(
                upstream, {"key": "PROJ-1"}, ("comments", "transitions"), ISSUE
            )
        assert "comments" in entity
        assert "availableTransitions" not in entity
        assert resolved == frozenset({"comments"})
        assert "permission_denied" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_omitted(self, upstream):
        async def broken(client, entity):
            raise KeyError("fields")

        spec = EntitySpec("issue", expansions=(Expansion("broken", broken),))
        entity, resolved = await resolve_expansions(upstream, {"key": "A-1"}, ("broken",), spec)
        assert resolved == frozenset()
        assert "broken" not in entity

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, upstream):
        """Should not swallow cancellation."""
        with pytest.raises(asyncio.CancelledError):
            await resolve_expansions(upstream, {"key": "PROJ-1"}, ("cancelled",), ISSUE)


class TestResolveListExpansions:
    """Tests for resolve_list_expansions."""

    @pytest.mark.asyncio
    async def test_enriches_every_item(self, upstream):
        items, resolved = await resolve_list_expansions(
            upstream, [{"key": "A-1"}, {"key": "A-2"}], ("comments",), ISSUE
        )
        assert all("comments" in item for item in items)
        assert resolved == frozenset({"comments"})
        assert len(upstream.calls) == 2

    @pytest.mark.asyncio
    async def test_resolved_only_when_every_item_has_it(self, upstream):
        """Should treat an expansion missing on any item as unresolved."""
        original = upstream.list

        async def flaky(entity_type, filter=None, page=None):
            if filter and filter.get("issueKey") == "A-2":
                raise UpstreamError(UpstreamReason.NOT_FOUND, "gone")
            return await original(entity_type, filter, page)

        upstream.list = flaky
        items, resolved = await resolve_list_expansions(
            upstream, [{"key": "A-1"}, {"key": "A-2"}], ("comments",), ISSUE
        )
        assert "comments" in items[0]
        assert "comments" not in items[1]
        assert resolved == frozenset()

    @pytest.mark.asyncio
    async def test_empty_page(self, upstream):
        items, resolved = await resolve_list_expansions(upstream, [], ("comments",), ISSUE)
        assert items == []
        assert resolved == frozenset()


class TestFetchLimit:
    """Expansion fan-out shares one concurrency limit per call."""

    @pytest.fixture
    def counting(self):
        fake = CountingUpstream()
        fake.set_listing("issue_comment", [{"id": "1"}])
        fake.set_listing("issue_transition", [{"id": "31"}])
        return fake

    @pytest.mark.asyncio
    async def test_list_fan_out_is_bounded(self, counting):
        """Should keep at most MAX_CONCURRENT_FETCHES fetches in flight."""
        page = [{"key": f"A-{n}"} for n in range(50)]
        items, resolved = await resolve_list_expansions(
            counting, page, ("comments", "transitions"), ISSUE
        )
        assert len(counting.calls) == 100
        assert counting.peak_in_flight == MAX_CONCURRENT_FETCHES
        assert resolved == frozenset({"comments", "transitions"})
        assert all("availableTransitions" in item for item in items)

    @pytest.mark.asyncio
    async def test_explicit_limiter_is_respected(self, counting):
        limiter = ConcurrencyLimiter(max_concurrent=1)
        await resolve_list_expansions(
            counting,
            [{"key": "A-1"}, {"key": "A-2"}],
            ("comments", "transitions"),
            ISSUE,
            limiter,
        )
        assert counting.peak_in_flight == 1
