"""Generic execution pipeline shared by every Jira tool.

A :class:`ToolEngine` is built from a tool descriptor, a handler per
operation and the upstream client. ``invoke`` runs one call through:

    normalize -> validate -> state check -> dispatch -> expand -> compose

Stages before dispatch make no upstream calls except the single read the
state check needs. Failures travel as ``Err(ToolError)`` values and are turned
into the external error response only here.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, replace
from typing import Any, Awaitable, Callable, Dict, Mapping

from jira_mcp.core.context import request_context
from jira_mcp.core.descriptors import ToolDescriptor
from jira_mcp.core.envelope import ListPage, Primary, Single, compose
from jira_mcp.core.errors import ToolError, UpstreamError
from jira_mcp.core.expansion import resolve_expansions, resolve_list_expansions
from jira_mcp.core.normalize import normalize_arguments
from jira_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    sanitize_error_message,
)
from jira_mcp.core.result import Err, Ok, Result
from jira_mcp.core.upstream import Upstream
from jira_mcp.core.validation import ToolRequest, validate_request
from jira_mcp.tools.unified.router import ActionDefinition, ActionRouter

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Result[Primary]]]


class ToolEngine:
    """Runs calls for one tool against one upstream client.

    Raises:
        ValueError: At construction, when the handler table does not cover
            exactly the descriptor's operations
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        handlers: Mapping[str, Handler],
        client: Upstream,
    ):
        declared = set(descriptor.operation_names)
        missing = declared - set(handlers)
        unknown = set(handlers) - declared
        if missing or unknown:
            raise ValueError(
                f"Handler table for {descriptor.tool_name} does not match its "
                f"operations (missing: {sorted(missing)}, unknown: {sorted(unknown)})"
            )
        self.descriptor = descriptor
        self.client = client
        self.router = ActionRouter(
            tool_name=descriptor.tool_name,
            actions=[
                ActionDefinition(
                    name=op.name, handler=handlers[op.name], summary=op.summary
                )
                for op in descriptor.operations
            ],
        )

    async def invoke(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Run one tool call and return the response dict."""
        args = normalize_arguments(raw, self.descriptor.aliases)
        operation = args.get("operation")
        with request_context(
            tool_name=self.descriptor.tool_name,
            operation=operation if isinstance(operation, str) else "",
        ):
            try:
                return await self._run(args)
            except Exception as exc:
                context = f"{self.descriptor.tool_name}.{operation}"
                logger.exception("Unexpected failure in %s", context)
                return asdict(
                    error_response(
                        sanitize_error_message(exc, context=context),
                        error_code=ErrorCode.INTERNAL_ERROR,
                        error_type=ErrorType.INTERNAL,
                        remediation="Check server logs for details.",
                    )
                )

    async def _run(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        validated = validate_request(args, self.descriptor)
        if isinstance(validated, Err):
            logger.info(
                "Rejected %s call: %s",
                self.descriptor.tool_name,
                validated.error.message,
            )
            return validated.error.to_response()

        request = validated.value
        spec = self.descriptor.operation(request.operation)
        entity = self.descriptor.entity_for(spec)

        try:
            guarded = await self._check_state(request)
            if isinstance(guarded, Err):
                logger.info(
                    "Refused %s.%s: %s",
                    self.descriptor.tool_name,
                    request.operation,
                    guarded.error.message,
                )
                return guarded.error.to_response()
            request = guarded.value

            outcome = await self.router.dispatch(
                action=request.operation, client=self.client, request=request
            )
        except UpstreamError as exc:
            logger.warning(
                "Upstream failure in %s.%s: %s",
                self.descriptor.tool_name,
                request.operation,
                exc.reason.value,
            )
            return ToolError.upstream(exc, request.operation).to_response()

        if isinstance(outcome, Err):
            return outcome.error.to_response()
        primary = outcome.value

        resolved = frozenset()
        if request.expand:
            if isinstance(primary, Single):
                primary.entity, resolved = await resolve_expansions(
                    self.client, primary.entity, request.expand, entity
                )
            elif isinstance(primary, ListPage):
                primary.items, resolved = await resolve_list_expansions(
                    self.client, primary.items, request.expand, entity
                )

        return compose(primary, entity, resolved)

    async def _check_state(self, request: ToolRequest) -> Result[ToolRequest]:
        machine = self.descriptor.state_machine
        if machine is None or request.operation not in machine.guarded:
            return Ok(request)
        current = await self.client.fetch(
            machine.entity_type, getattr(request.payload, machine.id_attr)
        )
        checked = machine.check(request.operation, current, request.payload)
        if isinstance(checked, Err):
            return checked
        return Ok(replace(request, current=current))
