"""Tests for operation validation against tool descriptors."""

from dataclasses import dataclass
from typing import Optional, Tuple

import pytest

from jira_mcp.core.descriptors import (
    ISSUE_KEY,
    EntitySpec,
    Expansion,
    OperationSpec,
    ToolDescriptor,
    at_least_one_of,
    integer,
    numeric_id,
    one_of,
    param,
    string_list,
    text,
)
from jira_mcp.core.errors import ErrorKind
from jira_mcp.core.result import Err, Ok
from jira_mcp.core.validation import ToolRequest, validate_request


async def _noop(client, entity):
    return []


WIDGET = EntitySpec(
    name="widget",
    expansions=(
        Expansion("parts", _noop),
        Expansion("history", _noop),
    ),
)


@dataclass(frozen=True)
class GetWidget:
    widget_id: int = param("widgetId", numeric_id(7), required=True)


@dataclass(frozen=True)
class UpdateWidget:
    widget_id: int = param("widgetId", numeric_id(7), required=True)
    name: Optional[str] = param("name", text("Sprocket"))
    color: Optional[str] = param("color", one_of("red", "blue"))
    size: Optional[int] = param("size", integer(1, 10, 3))
    owner: Optional[str] = param("owner", ISSUE_KEY, nullable=True)
    tags: Optional[Tuple[str, ...]] = param("tags", string_list(example=["a"]))


DESCRIPTOR = ToolDescriptor(
    tool_name="manage_widget",
    entity=WIDGET,
    operations=(
        OperationSpec("get", GetWidget, "Get a widget", example={"widgetId": 7}),
        OperationSpec(
            "update",
            UpdateWidget,
            "Update a widget",
            rules=(at_least_one_of("name", "color", "size", "owner", "tags"),),
            mutating=True,
        ),
    ),
)


def _error(result):
    assert isinstance(result, Err), result
    return result.error


class TestOperationCheck:
    """The operation discriminator is checked first."""

    def test_missing_operation(self):
        """Should report the missing operation and list the legal ones."""
        error = _error(validate_request({"widgetId": 7}, DESCRIPTOR))
        assert error.kind is ErrorKind.INVALID_OPERATION
        assert error.allowed == ("get", "update")
        assert "Missing required field 'operation'" in error.message

    def test_unknown_operation(self):
        error = _error(validate_request({"operation": "explode"}, DESCRIPTOR))
        assert error.kind is ErrorKind.INVALID_OPERATION
        assert error.operation == "explode"
        assert "explode" in error.message

    def test_non_string_operation(self):
        error = _error(validate_request({"operation": 3}, DESCRIPTOR))
        assert error.kind is ErrorKind.INVALID_OPERATION

    def test_operation_checked_before_fields(self):
        """Should report the operation even when fields are also wrong."""
        error = _error(
            validate_request({"operation": "nope", "widgetId": "abc"}, DESCRIPTOR)
        )
        assert error.kind is ErrorKind.INVALID_OPERATION


class TestFieldChecks:
    """Required fields and per-field formats."""

    def test_missing_required_field(self):
        """Should name the field and the operation."""
        error = _error(validate_request({"operation": "get"}, DESCRIPTOR))
        assert error.kind is ErrorKind.MISSING_REQUIRED_FIELD
        assert error.field == "widgetId"
        assert error.operation == "get"
        assert error.example == 7

    @pytest.mark.parametrize("absent", [None, ""])
    def test_none_and_empty_count_as_absent(self, absent):
        error = _error(validate_request({"operation": "get", "widgetId": absent}, DESCRIPTOR))
        assert error.kind is ErrorKind.MISSING_REQUIRED_FIELD

    def test_numeric_string_is_coerced(self):
        """Should accept a string of digits as a numeric ID."""
        result = validate_request({"operation": "get", "widgetId": "42"}, DESCRIPTOR)
        assert isinstance(result, Ok)
        assert result.value.payload == GetWidget(widget_id=42)

    @pytest.mark.parametrize("bad", ["abc", -1, 0, True, 4.5, "\u00b2", "\u0663"])
    def test_bad_numeric_id(self, bad):
        error = _error(validate_request({"operation": "get", "widgetId": bad}, DESCRIPTOR))
        assert error.kind is ErrorKind.INVALID_FIELD_FORMAT
        assert error.field == "widgetId"
        assert error.example == 7

    def test_enum_check(self):
        error = _error(
            validate_request(
                {"operation": "update", "widgetId": 1, "color": "green"}, DESCRIPTOR
            )
        )
        assert error.kind is ErrorKind.INVALID_FIELD_FORMAT
        assert error.field == "color"
        assert "red, blue" in error.message

    def test_integer_bounds(self):
        error = _error(
            validate_request({"operation": "update", "widgetId": 1, "size": 11}, DESCRIPTOR)
        )
        assert error.field == "size"

    @pytest.mark.parametrize("bad", ["\u00b2", "\u00b9\u00b2"])
    def test_non_ascii_digits_rejected(self, bad):
        """Should report digit-like characters int() cannot parse as bad format."""
        error = _error(
            validate_request({"operation": "update", "widgetId": 1, "size": bad}, DESCRIPTOR)
        )
        assert error.kind is ErrorKind.INVALID_FIELD_FORMAT
        assert error.field == "size"

    def test_string_list_becomes_tuple(self):
        result = validate_request(
            {"operation": "update", "widgetId": 1, "tags": ["x", "y"]}, DESCRIPTOR
        )
        assert result.value.payload.tags == ("x", "y")

    def test_pattern_check(self):
        error = _error(
            validate_request(
                {"operation": "update", "widgetId": 1, "owner": "proj-1"}, DESCRIPTOR
            )
        )
        assert error.kind is ErrorKind.INVALID_FIELD_FORMAT
        assert error.example == "PROJ-123"


class TestCrossFieldRules:
    """Rules evaluated after field checks."""

    def test_update_requires_a_field(self):
        """Should require at least one mutable field."""
        error = _error(validate_request({"operation": "update", "widgetId": 1}, DESCRIPTOR))
        assert error.kind is ErrorKind.MISSING_REQUIRED_FIELD
        assert set(error.allowed) == {"name", "color", "size", "owner", "tags"}

    def test_rule_satisfied(self):
        result = validate_request(
            {"operation": "update", "widgetId": 1, "size": 2}, DESCRIPTOR
        )
        assert isinstance(result, Ok)


class TestNullableFields:
    """Nullable fields distinguish 'clear' from 'absent'."""

    def test_null_counts_as_provided(self):
        """Should record a nullable field sent as null as provided."""
        result = validate_request(
            {"operation": "update", "widgetId": 1, "owner": None}, DESCRIPTOR
        )
        assert isinstance(result, Ok)
        assert result.value.payload.owner is None
        assert "owner" in result.value.provided

    def test_empty_string_counts_as_provided(self):
        result = validate_request(
            {"operation": "update", "widgetId": 1, "owner": ""}, DESCRIPTOR
        )
        assert "owner" in result.value.provided

    def test_missing_nullable_is_not_provided(self):
        result = validate_request(
            {"operation": "update", "widgetId": 1, "size": 2}, DESCRIPTOR
        )
        assert result.value.provided == frozenset({"widgetId", "size"})


class TestExpandCheck:
    """Expansion tokens are checked against the entity vocabulary."""

    def test_valid_expansions_dedupe_in_order(self):
        result = validate_request(
            {
                "operation": "get",
                "widgetId": 1,
                "expand": ["history", "parts", "history"],
            },
            DESCRIPTOR,
        )
        assert result.value.expand == ("history", "parts")

    def test_bogus_expansion(self):
        """Should reject the token and list the legal vocabulary."""
        error = _error(
            validate_request(
                {"operation": "get", "widgetId": 1, "expand": ["parts", "bogus"]},
                DESCRIPTOR,
            )
        )
        assert error.kind is ErrorKind.INVALID_EXPANSION
        assert error.message == "Invalid expansion 'bogus'. Valid expansions are: parts, history"
        assert error.allowed == ("parts", "history")

    def test_expand_must_be_a_list(self):
        error = _error(
            validate_request({"operation": "get", "widgetId": 1, "expand": "parts"}, DESCRIPTOR)
        )
        assert error.kind is ErrorKind.INVALID_FIELD_FORMAT
        assert error.field == "expand"

    def test_fields_checked_before_expand(self):
        error = _error(
            validate_request({"operation": "get", "expand": ["bogus"]}, DESCRIPTOR)
        )
        assert error.kind is ErrorKind.MISSING_REQUIRED_FIELD


class TestToolRequest:
    """Successful validation output."""

    def test_extras_pass_through(self):
        """Should keep unrecognized fields untouched."""
        result = validate_request(
            {"operation": "get", "widgetId": 1, "trace": {"x": 1}}, DESCRIPTOR
        )
        request = result.value
        assert isinstance(request, ToolRequest)
        assert request.extras == {"trace": {"x": 1}}
        assert request.current is None

    def test_payload_is_frozen(self):
        result = validate_request({"operation": "get", "widgetId": 1}, DESCRIPTOR)
        with pytest.raises(AttributeError):
            result.value.payload.widget_id = 2
