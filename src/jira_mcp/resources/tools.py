"""
Tool documentation resources for jira-mcp.

Documentation is rendered from the same descriptors the validator enforces,
so the operations, fields and expansion vocabularies listed here are exactly
the ones a call is checked against.
"""

import json
import logging
from typing import Any, Dict, Iterable

from mcp.server.fastmcp import FastMCP

from jira_mcp.config import ServerConfig
from jira_mcp.core.descriptors import OperationSpec, Param, ToolDescriptor

logger = logging.getLogger(__name__)


# Schema version for resource responses
SCHEMA_VERSION = "1.0.0"


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), default=str)


def _describe_param(p: Param) -> Dict[str, Any]:
    described: Dict[str, Any] = {"name": p.key, "required": p.required}
    if p.check is not None:
        described["type"] = p.check.json_type
        described["expected"] = p.check.expected
        described["example"] = p.check.example
    if p.nullable:
        described["nullable"] = True
    if p.description:
        described["description"] = p.description
    return described


def _describe_operation(
    descriptor: ToolDescriptor, operation: OperationSpec
) -> Dict[str, Any]:
    entity = descriptor.entity_for(operation)
    return {
        "summary": operation.summary,
        "returns": operation.shape,
        "entity": entity.name,
        "mutating": operation.mutating,
        "parameters": [_describe_param(p) for p in operation.params],
        "expand_options": list(entity.vocabulary),
        "example": {"operation": operation.name, **dict(operation.example)},
    }


def tool_documentation(descriptor: ToolDescriptor) -> Dict[str, Any]:
    """Documentation payload for one tool."""
    doc: Dict[str, Any] = {
        "name": descriptor.tool_name,
        "description": descriptor.description,
        "operations": {
            op.name: _describe_operation(descriptor, op) for op in descriptor.operations
        },
        "expansions": {
            e.name: e.description for e in descriptor.entity.expansions
        },
        "aliases": dict(descriptor.aliases),
    }
    machine = descriptor.state_machine
    if machine is not None:
        doc["lifecycle"] = {
            "field": machine.state_field,
            "transitions": {
                state: sorted(targets) for state, targets in machine.transitions.items()
            },
            "read_only_states": sorted(machine.terminal),
            "guarded_operations": sorted(machine.guarded),
        }
    return doc


def register_tool_resources(
    mcp: FastMCP, config: ServerConfig, descriptors: Iterable[ToolDescriptor]
) -> None:
    """
    Register tool documentation resources with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Server configuration
        descriptors: Descriptors of the registered tools
    """
    by_name = {descriptor.tool_name: descriptor for descriptor in descriptors}

    # Resource: jira://tools - Index of tools
    @mcp.resource("jira://tools")
    def resource_tools_index() -> str:
        """
        List the available Jira tools.

        Returns JSON with each tool's operations and documentation URI.
        """
        tools = [
            {
                "name": name,
                "description": descriptor.description,
                "operations": list(descriptor.operation_names),
                "documentation": f"jira://tools/{name}/documentation",
            }
            for name, descriptor in by_name.items()
        ]
        return _dumps(
            {
                "success": True,
                "schema_version": SCHEMA_VERSION,
                "server": config.server_name,
                "tools": tools,
                "count": len(tools),
            }
        )

    # Resource: jira://tools/{tool_name}/documentation - One tool
    @mcp.resource("jira://tools/{tool_name}/documentation")
    def resource_tool_documentation(tool_name: str) -> str:
        """
        Get documentation for one tool.

        Args:
            tool_name: Tool name, e.g. manage_jira_sprint
        """
        descriptor = by_name.get(tool_name)
        if descriptor is None:
            return _dumps(
                {
                    "success": False,
                    "schema_version": SCHEMA_VERSION,
                    "error": f"Unknown tool: {tool_name}. "
                    f"Must be one of: {', '.join(sorted(by_name))}",
                }
            )
        return _dumps(
            {
                "success": True,
                "schema_version": SCHEMA_VERSION,
                "tool": tool_documentation(descriptor),
            }
        )

    logger.debug("Registered tool documentation resources for %d tools", len(by_name))
