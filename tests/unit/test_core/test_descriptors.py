"""Tests for descriptor building blocks."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

import pytest

from jira_mcp.core.descriptors import (
    ISSUE_KEY,
    PROJECT_KEY,
    EntitySpec,
    Expansion,
    OperationSpec,
    StateMachine,
    ToolDescriptor,
    boolean,
    integer,
    iso_date,
    numeric_id,
    opaque_mapping,
    param,
    payload_patch,
    record_list,
)
from jira_mcp.core.errors import ErrorKind
from jira_mcp.core.result import Err, Ok


async def _noop(client, entity):
    return None


class TestChecks:
    """Field checks accept or reject without raising."""

    @pytest.mark.parametrize("value", ["PROJ-123", "AB_2-1"])
    def test_issue_key_accepts(self, value):
        assert ISSUE_KEY.apply(value) == (True, value)

    @pytest.mark.parametrize("value", ["proj-123", "PROJ", "PROJ-", 123, None])
    def test_issue_key_rejects(self, value):
        assert ISSUE_KEY.apply(value)[0] is False

    def test_project_key(self):
        assert PROJECT_KEY.apply("PROJ")[0] is True
        assert PROJECT_KEY.apply("PROJ-1")[0] is False

    def test_iso_date(self):
        check = iso_date()
        assert check.apply("2025-01-06T09:00:00.000Z")[0] is True
        assert check.apply("2025-01-06")[0] is True
        assert check.apply("next tuesday")[0] is False
        assert check.apply(20250106)[0] is False

    def test_numeric_id_rejects_non_ascii_digits(self):
        check = numeric_id(7)
        assert check.apply("42") == (True, 42)
        assert check.apply("\u00b2")[0] is False
        assert check.apply("\u0664\u0662")[0] is False

    def test_integer_rejects_non_ascii_digits(self):
        check = integer(0, None, 0)
        assert check.apply("25") == (True, 25)
        assert check.apply("\u00b2")[0] is False

    def test_boolean_is_strict(self):
        check = boolean()
        assert check.apply(False) == (True, False)
        assert check.apply("true")[0] is False

    def test_opaque_mapping_is_read_only(self):
        """Should pass the mapping through as a read-only copy."""
        ok, value = opaque_mapping({"customfield_10020": 5}).apply(
            {"customfield_10020": 8}
        )
        assert ok
        assert isinstance(value, MappingProxyType)
        assert dict(value) == {"customfield_10020": 8}

    def test_opaque_mapping_rejects_non_mappings(self):
        assert opaque_mapping({}).apply(["a"])[0] is False

    def test_record_list(self):
        check = record_list(lambda r: "type" in r, "a list of typed records", [{"type": "x"}])
        ok, value = check.apply([{"type": "global"}])
        assert ok and value[0]["type"] == "global"
        assert check.apply([{"kind": "global"}])[0] is False
        assert check.apply({"type": "global"})[0] is False


@dataclass(frozen=True)
class Patchable:
    item_id: int = param("itemId", required=True)
    name: Optional[str] = param("name")
    parent: Optional[str] = param("parent", nullable=True)


class TestPayloadHelpers:
    """Tests for param declarations and payload_patch."""

    def test_patch_includes_only_provided_fields(self):
        payload = Patchable(item_id=1, name="x", parent=None)
        assert payload_patch(payload, frozenset({"name"})) == {"name": "x"}

    def test_patch_keeps_explicit_null(self):
        """Should carry a provided null so the field is cleared upstream."""
        payload = Patchable(item_id=1)
        assert payload_patch(payload, frozenset({"parent"})) == {"parent": None}

    def test_undeclared_field_rejected(self):
        @dataclass(frozen=True)
        class Loose:
            plain: int = 0

        with pytest.raises(TypeError, match="param"):
            ToolDescriptor(
                tool_name="t",
                entity=EntitySpec("thing"),
                operations=(OperationSpec("get", Loose, "Get"),),
            )


class TestDescriptors:
    """Tests for EntitySpec and ToolDescriptor."""

    def test_duplicate_expansion_rejected(self):
        with pytest.raises(ValueError, match="Duplicate expansion"):
            EntitySpec("thing", expansions=(Expansion("a", _noop), Expansion("a", _noop)))

    def test_duplicate_operation_rejected(self):
        with pytest.raises(ValueError, match="Duplicate operations"):
            ToolDescriptor(
                tool_name="t",
                entity=EntitySpec("thing"),
                operations=(
                    OperationSpec("get", Patchable, "Get"),
                    OperationSpec("get", Patchable, "Get again"),
                ),
            )

    def test_attach_as_defaults_to_name(self):
        assert Expansion("comments", _noop).attach_as == "comments"
        assert Expansion("permissions", _noop, key="sharePermissions").attach_as == (
            "sharePermissions"
        )

    def test_required_and_optional(self):
        spec = OperationSpec("update", Patchable, "Update")
        assert spec.required == ("itemId",)
        assert spec.optional == ("name", "parent")

    def test_entity_for_override(self):
        other = EntitySpec("other")
        descriptor = ToolDescriptor(
            tool_name="t",
            entity=EntitySpec("thing"),
            operations=(
                OperationSpec("get", Patchable, "Get"),
                OperationSpec("config", Patchable, "Config", entity=other),
            ),
        )
        assert descriptor.entity_for(descriptor.operation("config")) is other
        assert descriptor.entity_for(descriptor.operation("get")).name == "thing"
        assert descriptor.operation("missing") is None


@dataclass(frozen=True)
class Lifecycle:
    target: Optional[str] = param("state")


MACHINE = StateMachine(
    entity_type="sprint",
    id_attr="sprint_id",
    state_field="state",
    guarded=frozenset({"update"}),
    transitions={"future": frozenset({"active"}), "active": frozenset({"closed"})},
    terminal=frozenset({"closed"}),
    target_attr="target",
)


class TestStateMachine:
    """Tests for StateMachine.check."""

    def test_forward_transition_allowed(self):
        assert isinstance(
            MACHINE.check("update", {"state": "future"}, Lifecycle("active")), Ok
        )

    def test_same_state_allowed(self):
        assert isinstance(
            MACHINE.check("update", {"state": "active"}, Lifecycle("active")), Ok
        )

    def test_no_target_allowed(self):
        assert isinstance(MACHINE.check("update", {"state": "future"}, Lifecycle()), Ok)

    def test_skip_rejected(self):
        """Should list the legal targets from the current state."""
        result = MACHINE.check("update", {"state": "future"}, Lifecycle("closed"))
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.ILLEGAL_STATE_TRANSITION
        assert result.error.allowed == ("active",)

    def test_terminal_state_is_read_only(self):
        result = MACHINE.check("update", {"state": "closed"}, Lifecycle())
        assert isinstance(result, Err)
        assert "read-only" in result.error.message
