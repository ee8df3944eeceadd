"""Tests for the manage_jira_board tool."""

import pytest

from jira_mcp.tools.unified.board import build_board_engine
from tests.fakes import FakeUpstream, make_board, make_sprint


@pytest.fixture
def upstream():
    fake = FakeUpstream()
    fake.add("board", make_board(123))
    fake.set_listing(
        "board",
        [
            make_board(1, type="scrum"),
            make_board(2, type="kanban"),
            make_board(3, type="scrum"),
            make_board(4, type="scrum"),
            make_board(5, type="kanban"),
        ],
    )
    return fake


@pytest.fixture
def engine(upstream):
    return build_board_engine(upstream)


class TestListBoards:
    @pytest.mark.asyncio
    async def test_first_page_of_two(self, engine):
        """Should return two items and report more of five."""
        response = await engine.invoke({"operation": "list", "maxResults": 2})
        assert [board["id"] for board in response["data"]] == [1, 2]
        assert response["_metadata"]["pagination"] == {
            "startAt": 0,
            "maxResults": 2,
            "total": 5,
            "hasMore": True,
        }
        assert response["_summary"]["status_counts"] == {"scrum": 1, "kanban": 1}

    @pytest.mark.asyncio
    async def test_last_page(self, engine):
        response = await engine.invoke(
            {"operation": "list", "start_at": 4, "max_results": 2}
        )
        assert len(response["data"]) == 1
        assert response["_metadata"]["pagination"]["hasMore"] is False

    @pytest.mark.asyncio
    async def test_filters_passed_through(self, engine, upstream):
        await engine.invoke({"operation": "list", "project_key": "PROJ", "type": "kanban"})
        _, _, criteria, page = upstream.calls_to("list", "board")[0]
        assert criteria == {"projectKey": "PROJ", "type": "kanban"}
        assert page.max_results == 50

    @pytest.mark.asyncio
    async def test_max_results_bounds(self, engine, upstream):
        response = await engine.invoke({"operation": "list", "maxResults": 500})
        assert response["data"]["details"]["field"] == "maxResults"
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_superscript_start_at_is_a_format_error(self, engine, upstream):
        response = await engine.invoke({"operation": "list", "startAt": "²"})
        assert response["data"]["error_code"] == "INVALID_FORMAT"
        assert response["data"]["details"]["field"] == "startAt"
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_list_expansion_per_item(self, engine, upstream):
        upstream.set_listing("board_sprint", [make_sprint(9, "active")])
        response = await engine.invoke(
            {"operation": "list", "maxResults": 2, "expand": ["sprints"]}
        )
        assert all("sprints" in board for board in response["data"])
        assert "sprints" not in response["_metadata"]["available_expansions"]


class TestGetBoard:
    @pytest.mark.asyncio
    async def test_related_project(self, engine):
        response = await engine.invoke({"operation": "get", "boardId": "123"})
        assert response["_metadata"]["related"] == {"project": "Project"}
        assert response["_summary"]["suggested_actions"] == [
            {"text": "View all issues on Board 123"}
        ]

    @pytest.mark.asyncio
    async def test_active_sprint_suggestion(self, engine, upstream):
        upstream.set_listing(
            "board_sprint", [make_sprint(8, "closed"), make_sprint(9, "active", name="S9")]
        )
        response = await engine.invoke(
            {"operation": "get", "boardId": 123, "expand": ["sprints"]}
        )
        assert {"text": "View active sprint: S9", "action_id": "9"} in response["_summary"][
            "suggested_actions"
        ]

    @pytest.mark.asyncio
    async def test_project_fallback_to_id(self, engine, upstream):
        upstream.add("board", make_board(7, location={"projectId": 10000}))
        response = await engine.invoke({"operation": "get", "boardId": 7})
        assert response["_metadata"]["related"] == {"project": "Project 10000"}

    @pytest.mark.asyncio
    async def test_configuration_expansion(self, engine, upstream):
        upstream.add("board_configuration", {"id": 123, "columns": []})
        response = await engine.invoke(
            {"operation": "get", "boardId": 123, "expand": ["configuration"]}
        )
        assert response["data"]["configuration"] == {"id": 123, "columns": []}


class TestBoardMutations:
    @pytest.mark.asyncio
    async def test_create(self, engine, upstream):
        response = await engine.invoke(
            {"operation": "create", "name": "Alpha", "type": "kanban", "filter_id": "10001"}
        )
        patch = upstream.calls_to("mutate", "board")[0][3]
        assert patch == {
            "name": "Alpha",
            "type": "kanban",
            "filterId": 10001,
            "projectKey": None,
        }
        assert response["data"]["name"] == "Alpha"

    @pytest.mark.asyncio
    async def test_create_rejects_bad_type(self, engine, upstream):
        response = await engine.invoke(
            {"operation": "create", "name": "Alpha", "type": "simple", "filterId": 1}
        )
        assert response["data"]["details"]["field"] == "type"
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_update_not_yet_implemented(self, engine, upstream):
        response = await engine.invoke(
            {"operation": "update", "boardId": 123, "name": "Renamed"}
        )
        assert response["data"]["details"]["kind"] == "NotYetImplemented"
        assert upstream.mutating_calls == []

    @pytest.mark.asyncio
    async def test_delete(self, engine):
        response = await engine.invoke({"operation": "delete", "boardId": 123})
        assert response["data"] == {"boardId": 123, "deleted": True}

    @pytest.mark.asyncio
    async def test_get_configuration(self, engine, upstream):
        upstream.add("board_configuration", {"id": 123, "name": "Board", "columns": []})
        response = await engine.invoke({"operation": "get_configuration", "boardId": 123})
        assert response["data"]["name"] == "Board"
        assert response["_metadata"]["available_expansions"] == []

    @pytest.mark.asyncio
    async def test_configuration_rejects_expand(self, engine):
        response = await engine.invoke(
            {"operation": "get_configuration", "boardId": 123, "expand": ["sprints"]}
        )
        assert response["data"]["details"]["kind"] == "InvalidExpansion"
