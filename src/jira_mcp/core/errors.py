"""Error taxonomy for tool invocations.

Two families live here:

* ``UpstreamError`` is an exception raised by the Jira client when the service
  rejects a request or cannot be reached. It crosses the client boundary as
  an exception because that is how httpx failures surface.
* ``ToolError`` is a plain value describing why a tool call failed. Validation,
  state checks and handlers return it wrapped in ``Err`` (see
  ``jira_mcp.core.result``); only the tool engine turns it into the external
  error response via :meth:`ToolError.to_response`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from jira_mcp.core.responses import ErrorCode, ErrorType, error_response


class ErrorKind(str, Enum):
    """Kinds of failure a tool call can surface."""

    INVALID_OPERATION = "InvalidOperation"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_FIELD_FORMAT = "InvalidFieldFormat"
    INVALID_EXPANSION = "InvalidExpansion"
    ILLEGAL_STATE_TRANSITION = "IllegalStateTransition"
    UPSTREAM_FAILURE = "UpstreamFailure"
    NOT_YET_IMPLEMENTED = "NotYetImplemented"


class UpstreamReason(str, Enum):
    """Classification of an upstream failure, preserved end to end."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    NETWORK = "network"
    SERVER_ERROR = "server_error"


class UpstreamError(Exception):
    """Raised by the upstream client when a Jira call fails."""

    def __init__(
        self,
        reason: UpstreamReason,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after


_KIND_CODES: Dict[ErrorKind, Tuple[ErrorCode, ErrorType]] = {
    ErrorKind.INVALID_OPERATION: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    ErrorKind.MISSING_REQUIRED_FIELD: (ErrorCode.MISSING_REQUIRED, ErrorType.VALIDATION),
    ErrorKind.INVALID_FIELD_FORMAT: (ErrorCode.INVALID_FORMAT, ErrorType.VALIDATION),
    ErrorKind.INVALID_EXPANSION: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    ErrorKind.ILLEGAL_STATE_TRANSITION: (ErrorCode.CONFLICT, ErrorType.CONFLICT),
    ErrorKind.NOT_YET_IMPLEMENTED: (ErrorCode.FEATURE_DISABLED, ErrorType.FEATURE_FLAG),
}

_UPSTREAM_CODES: Dict[UpstreamReason, Tuple[ErrorCode, ErrorType]] = {
    UpstreamReason.NOT_FOUND: (ErrorCode.NOT_FOUND, ErrorType.NOT_FOUND),
    UpstreamReason.UNAUTHORIZED: (ErrorCode.UNAUTHORIZED, ErrorType.AUTHENTICATION),
    UpstreamReason.PERMISSION_DENIED: (ErrorCode.FORBIDDEN, ErrorType.AUTHORIZATION),
    UpstreamReason.RATE_LIMITED: (ErrorCode.RATE_LIMIT_EXCEEDED, ErrorType.RATE_LIMIT),
    UpstreamReason.BAD_REQUEST: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    UpstreamReason.NETWORK: (ErrorCode.UNAVAILABLE, ErrorType.UNAVAILABLE),
    UpstreamReason.SERVER_ERROR: (ErrorCode.INTERNAL_ERROR, ErrorType.INTERNAL),
}

_UPSTREAM_REMEDIATION: Dict[UpstreamReason, str] = {
    UpstreamReason.NOT_FOUND: "Check the identifier and that the entity still exists.",
    UpstreamReason.UNAUTHORIZED: "Check JIRA_EMAIL and JIRA_API_TOKEN.",
    UpstreamReason.PERMISSION_DENIED: "The configured account lacks permission for this entity.",
    UpstreamReason.RATE_LIMITED: "Wait before retrying; Jira is throttling requests.",
    UpstreamReason.BAD_REQUEST: "Jira rejected the request; check field values and JQL syntax.",
    UpstreamReason.NETWORK: "Check JIRA_HOST and network connectivity.",
    UpstreamReason.SERVER_ERROR: "Jira reported an internal error; retry later.",
}


@dataclass(frozen=True)
class ToolError:
    """A failed tool call, described as data.

    Attributes:
        kind: Failure kind from the taxonomy
        message: Human-readable message naming the offending field/operation
        field: Offending field, when one is to blame
        operation: Operation being attempted
        example: Example of an acceptable value for format errors
        allowed: Legal alternatives (operations, expansions, states)
        reason: Upstream classification for ``UPSTREAM_FAILURE``
        retry_after: Seconds to wait, when the upstream said so
    """

    kind: ErrorKind
    message: str
    field: Optional[str] = None
    operation: Optional[str] = None
    example: Any = None
    allowed: Tuple[str, ...] = ()
    reason: Optional[UpstreamReason] = None
    retry_after: Optional[float] = None

    @classmethod
    def invalid_operation(
        cls, operation: Any, allowed: Sequence[str], tool_name: str
    ) -> "ToolError":
        if operation in (None, ""):
            message = f"Missing required field 'operation' for {tool_name}"
        else:
            message = f"Unsupported operation '{operation}' for {tool_name}"
        return cls(
            kind=ErrorKind.INVALID_OPERATION,
            message=message,
            field="operation",
            operation=None if operation in (None, "") else str(operation),
            allowed=tuple(allowed),
        )

    @classmethod
    def missing_field(
        cls, field: str, operation: str, example: Any = None
    ) -> "ToolError":
        return cls(
            kind=ErrorKind.MISSING_REQUIRED_FIELD,
            message=f"Missing required field '{field}' for operation '{operation}'",
            field=field,
            operation=operation,
            example=example,
        )

    @classmethod
    def missing_one_of(cls, fields: Sequence[str], operation: str) -> "ToolError":
        names = ", ".join(fields)
        return cls(
            kind=ErrorKind.MISSING_REQUIRED_FIELD,
            message=f"Operation '{operation}' requires at least one of: {names}",
            field=fields[0] if len(fields) == 1 else names,
            operation=operation,
            allowed=tuple(fields),
        )

    @classmethod
    def invalid_format(
        cls, field: str, operation: str, expected: str, example: Any
    ) -> "ToolError":
        return cls(
            kind=ErrorKind.INVALID_FIELD_FORMAT,
            message=f"Invalid '{field}' for operation '{operation}': expected {expected}",
            field=field,
            operation=operation,
            example=example,
        )

    @classmethod
    def invalid_expansion(
        cls, token: Any, operation: str, allowed: Sequence[str]
    ) -> "ToolError":
        valid = ", ".join(allowed) if allowed else "none"
        return cls(
            kind=ErrorKind.INVALID_EXPANSION,
            message=f"Invalid expansion '{token}'. Valid expansions are: {valid}",
            field="expand",
            operation=operation,
            example=list(allowed[:1]),
            allowed=tuple(allowed),
        )

    @classmethod
    def illegal_state(
        cls, message: str, operation: str, allowed: Sequence[str] = ()
    ) -> "ToolError":
        return cls(
            kind=ErrorKind.ILLEGAL_STATE_TRANSITION,
            message=message,
            operation=operation,
            allowed=tuple(allowed),
        )

    @classmethod
    def upstream(cls, error: UpstreamError, operation: str) -> "ToolError":
        return cls(
            kind=ErrorKind.UPSTREAM_FAILURE,
            message=error.message,
            operation=operation,
            reason=error.reason,
            retry_after=error.retry_after,
        )

    @classmethod
    def not_yet_implemented(cls, tool_name: str, operation: str) -> "ToolError":
        return cls(
            kind=ErrorKind.NOT_YET_IMPLEMENTED,
            message=f"Operation '{operation}' of {tool_name} is not yet implemented",
            operation=operation,
        )

    def _remediation(self) -> Optional[str]:
        if self.kind is ErrorKind.UPSTREAM_FAILURE and self.reason is not None:
            return _UPSTREAM_REMEDIATION[self.reason]
        if self.kind is ErrorKind.INVALID_OPERATION:
            return f"Use one of: {', '.join(self.allowed)}"
        if self.kind is ErrorKind.INVALID_EXPANSION:
            return f"Use only: {', '.join(self.allowed)}" if self.allowed else (
                "Remove the expand parameter"
            )
        if self.example is not None and self.field:
            return f"Provide {self.field}, for example {self.example!r}"
        if self.kind is ErrorKind.MISSING_REQUIRED_FIELD and self.allowed:
            return f"Provide at least one of: {', '.join(self.allowed)}"
        return None

    def to_details(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {"kind": self.kind.value}
        if self.field:
            details["field"] = self.field
        if self.operation:
            details["operation"] = self.operation
        if self.example is not None:
            details["example"] = self.example
        if self.allowed:
            details["allowed"] = list(self.allowed)
        if self.reason is not None:
            details["reason"] = self.reason.value
        if self.retry_after is not None:
            details["retry_after_seconds"] = self.retry_after
        return details

    def to_response(self) -> Dict[str, Any]:
        """Render as the standard error response dict."""
        if self.kind is ErrorKind.UPSTREAM_FAILURE and self.reason is not None:
            error_code, error_type = _UPSTREAM_CODES[self.reason]
        else:
            error_code, error_type = _KIND_CODES.get(
                self.kind, (ErrorCode.INTERNAL_ERROR, ErrorType.INTERNAL)
            )
        return asdict(
            error_response(
                self.message,
                error_code=error_code,
                error_type=error_type,
                remediation=self._remediation(),
                details=self.to_details(),
            )
        )
