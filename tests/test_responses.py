"""Tests for the error taxonomy and the response-v2 contract."""

import json
from dataclasses import asdict

import httpx
import pytest

from jira_mcp.core.context import request_context
from jira_mcp.core.errors import ErrorKind, ToolError, UpstreamError, UpstreamReason
from jira_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    sanitize_error_message,
    success_response,
)


class TestSuccessResponse:
    """Tests for success_response."""

    def test_basic(self):
        response = success_response({"healthy": True})
        assert response.success is True
        assert response.data == {"healthy": True}
        assert response.error is None
        assert response.meta["version"] == "response-v2"

    def test_fields_shorthand_and_warnings(self):
        response = success_response(host="x", warnings=["slow"])
        assert response.data == {"host": "x"}
        assert response.meta["warnings"] == ["slow"]

    def test_request_id_from_context(self):
        """Should pick up the correlation ID of the current call."""
        with request_context(correlation_id="req_abc"):
            response = success_response()
        assert response.meta["request_id"] == "req_abc"


class TestErrorResponse:
    """Tests for error_response."""

    def test_codes_are_strings(self):
        response = asdict(
            error_response(
                "nope",
                error_code=ErrorCode.NOT_FOUND,
                error_type=ErrorType.NOT_FOUND,
                remediation="Check the key",
                details={"kind": "UpstreamFailure"},
            )
        )
        assert response["success"] is False
        assert response["error"] == "nope"
        assert response["data"]["error_code"] == "NOT_FOUND"
        assert response["data"]["error_type"] == "not_found"
        assert response["data"]["remediation"] == "Check the key"
        assert response["data"]["details"] == {"kind": "UpstreamFailure"}
        json.dumps(response)

    def test_defaults_to_internal(self):
        response = error_response("boom")
        assert response.data["error_code"] == "INTERNAL_ERROR"
        assert response.data["error_type"] == "internal"


class TestToolError:
    """Tests for ToolError rendering."""

    def test_missing_field(self):
        response = ToolError.missing_field("sprintId", "get", 456).to_response()
        assert response["error"] == "Missing required field 'sprintId' for operation 'get'"
        assert response["data"]["error_code"] == "MISSING_REQUIRED"
        assert response["data"]["details"] == {
            "kind": "MissingRequiredField",
            "field": "sprintId",
            "operation": "get",
            "example": 456,
        }
        assert "456" in response["data"]["remediation"]

    def test_invalid_operation_lists_allowed(self):
        error = ToolError.invalid_operation("explode", ("get", "list"), "manage_jira_board")
        response = error.to_response()
        assert response["data"]["details"]["allowed"] == ["get", "list"]
        assert response["data"]["remediation"] == "Use one of: get, list"

    def test_illegal_state_is_conflict(self):
        response = ToolError.illegal_state("closed", "update").to_response()
        assert response["data"]["error_code"] == "CONFLICT"
        assert response["data"]["details"]["kind"] == "IllegalStateTransition"

    def test_not_yet_implemented(self):
        error = ToolError.not_yet_implemented("manage_jira_project", "create")
        assert error.kind is ErrorKind.NOT_YET_IMPLEMENTED
        assert error.to_response()["data"]["error_code"] == "FEATURE_DISABLED"

    @pytest.mark.parametrize(
        "reason,code",
        [
            (UpstreamReason.NOT_FOUND, "NOT_FOUND"),
            (UpstreamReason.UNAUTHORIZED, "UNAUTHORIZED"),
            (UpstreamReason.PERMISSION_DENIED, "FORBIDDEN"),
            (UpstreamReason.RATE_LIMITED, "RATE_LIMIT_EXCEEDED"),
            (UpstreamReason.BAD_REQUEST, "VALIDATION_ERROR"),
            (UpstreamReason.NETWORK, "UNAVAILABLE"),
            (UpstreamReason.SERVER_ERROR, "INTERNAL_ERROR"),
        ],
    )
    def test_upstream_reason_preserved(self, reason, code):
        """Should carry the upstream classification end to end."""
        error = ToolError.upstream(UpstreamError(reason, "failed"), "get")
        response = error.to_response()
        assert response["data"]["error_code"] == code
        assert response["data"]["details"]["reason"] == reason.value
        assert response["data"]["details"]["kind"] == "UpstreamFailure"

    def test_retry_after_surfaces(self):
        error = ToolError.upstream(
            UpstreamError(UpstreamReason.RATE_LIMITED, "slow down", retry_after=12.0),
            "list",
        )
        assert error.to_response()["data"]["details"]["retry_after_seconds"] == 12.0


class TestSanitizeErrorMessage:
    """Unexpected exceptions never leak internals."""

    def test_http_error(self):
        exc = httpx.ConnectError("https://secret@example.atlassian.net")
        message = sanitize_error_message(exc)
        assert message == "Upstream request failed"
        assert "secret" not in message

    def test_shape_errors(self):
        assert "KeyError" in sanitize_error_message(KeyError("fields"))

    def test_generic(self):
        assert sanitize_error_message(RuntimeError("x")) == (
            "An internal error occurred (RuntimeError)"
        )
