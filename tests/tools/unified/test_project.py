"""Tests for the manage_jira_project tool."""

import logging

import pytest

from jira_mcp.core.concurrency import MAX_CONCURRENT_FETCHES
from jira_mcp.core.errors import UpstreamReason
from jira_mcp.tools.unified.project import build_project_engine
from tests.fakes import CountingUpstream, FakeUpstream, make_board, make_issue, make_project


@pytest.fixture
def upstream():
    fake = FakeUpstream()
    fake.add("project", make_project("PROJ"), key="key")
    fake.set_listing(
        "issue",
        [
            make_issue("PROJ-1", status="Done"),
            make_issue("PROJ-2", status="To Do"),
            make_issue("PROJ-3", status="Done"),
        ],
    )
    return fake


@pytest.fixture
def engine(upstream):
    return build_project_engine(upstream)


class TestGetProject:
    @pytest.mark.asyncio
    async def test_status_counts_by_default(self, engine, upstream):
        """Should count project issues per status unless disabled."""
        response = await engine.invoke({"operation": "get", "projectKey": "PROJ"})
        assert response["_summary"]["status_counts"] == {"Done": 2, "To Do": 1}
        _, _, criteria, page = upstream.calls_to("list", "issue")[0]
        assert criteria == {"jql": "project = PROJ"}
        assert page.max_results == 100

    @pytest.mark.asyncio
    async def test_status_counts_disabled(self, engine, upstream):
        response = await engine.invoke(
            {"operation": "get", "project_key": "PROJ", "include_status_counts": False}
        )
        assert "status_counts" not in response["_summary"]
        assert upstream.calls_to("list") == []

    @pytest.mark.asyncio
    async def test_status_counts_best_effort(self, engine, upstream, caplog):
        upstream.fail("list", "issue", UpstreamReason.RATE_LIMITED)
        with caplog.at_level(logging.WARNING, logger="jira_mcp.tools.unified.project"):
            response = await engine.invoke({"operation": "get", "projectKey": "PROJ"})
        assert response["data"]["key"] == "PROJ"
        assert "status_counts" not in response["_summary"]
        assert "rate_limited" in caplog.text

    @pytest.mark.asyncio
    async def test_related_and_actions(self, engine):
        response = await engine.invoke({"operation": "get", "projectKey": "PROJ"})
        assert response["_metadata"]["related"] == {"lead": "Ada Lovelace"}
        assert response["_summary"]["suggested_actions"] == [
            {"text": "View all issues in PROJ"},
            {"text": "Create issue in PROJ"},
        ]

    @pytest.mark.asyncio
    async def test_boards_and_recent_issues(self, engine, upstream):
        upstream.set_listing("board", [make_board(1)])
        response = await engine.invoke(
            {
                "operation": "get",
                "projectKey": "PROJ",
                "includeStatusCounts": False,
                "expand": ["boards", "recent_issues"],
            }
        )
        assert response["data"]["boards"][0]["id"] == 1
        assert len(response["data"]["recent_issues"]) == 3
        assert upstream.calls_to("list", "board")[0][2] == {"projectKey": "PROJ"}
        jql = upstream.calls_to("list", "issue")[0][2]["jql"]
        assert jql == "project = PROJ ORDER BY updated DESC"
        assert response["_metadata"]["available_expansions"] == ["components", "versions"]

    @pytest.mark.asyncio
    async def test_include_status_counts_must_be_boolean(self, engine):
        response = await engine.invoke(
            {"operation": "get", "projectKey": "PROJ", "includeStatusCounts": "yes"}
        )
        assert response["data"]["details"]["field"] == "includeStatusCounts"


class TestListProjects:
    @pytest.mark.asyncio
    async def test_list_without_counts(self, engine, upstream):
        upstream.set_listing("project", [make_project("PROJ"), make_project("OPS")])
        response = await engine.invoke({"operation": "list", "maxResults": 1})
        assert [p["key"] for p in response["data"]] == ["PROJ"]
        assert response["_metadata"]["pagination"]["hasMore"] is True
        assert "status_counts" not in response["data"][0]

    @pytest.mark.asyncio
    async def test_list_with_counts(self, engine, upstream):
        upstream.set_listing("project", [make_project("PROJ"), make_project("OPS")])
        response = await engine.invoke({"operation": "list", "includeStatusCounts": True})
        assert response["data"][0]["status_counts"] == {"Done": 2, "To Do": 1}
        assert len(upstream.calls_to("list", "issue")) == 2

    @pytest.mark.asyncio
    async def test_status_count_fan_out_is_bounded(self):
        counting = CountingUpstream()
        counting.set_listing("project", [make_project(f"P{n}") for n in range(40)])
        counting.set_listing("issue", [make_issue("P0-1", status="Done")])
        response = await build_project_engine(counting).invoke(
            {"operation": "list", "maxResults": 40, "includeStatusCounts": True}
        )
        assert all(p["status_counts"] == {"Done": 1} for p in response["data"])
        assert len(counting.calls_to("list", "issue")) == 40
        assert counting.peak_in_flight == MAX_CONCURRENT_FETCHES


class TestUnimplementedOperations:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments",
        [
            {"operation": "create", "key": "PAY", "name": "Payments"},
            {"operation": "update", "projectKey": "PROJ", "name": "Renamed"},
            {"operation": "delete", "projectKey": "PROJ"},
        ],
    )
    async def test_not_yet_implemented(self, engine, upstream, arguments):
        response = await engine.invoke(arguments)
        assert response["success"] is False
        assert response["data"]["details"]["kind"] == "NotYetImplemented"
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_validation_still_applies(self, engine):
        response = await engine.invoke({"operation": "create", "key": "PAY"})
        assert response["data"]["details"]["kind"] == "MissingRequiredField"
