"""Operation validation.

:func:`validate_request` checks a normalized argument bag against a tool
descriptor and, on success, builds the operation's typed payload. It is pure:
no upstream calls, no logging, no exceptions. Checks run in a fixed order and
the first failure wins:

1. ``operation`` names one of the tool's operations;
2. required fields are present, and every present field passes its check;
3. cross-field rules hold;
4. every ``expand`` token belongs to the returned entity's vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Generic, Mapping, Optional, Tuple, TypeVar

from jira_mcp.core.descriptors import OperationSpec, ToolDescriptor
from jira_mcp.core.errors import ToolError
from jira_mcp.core.result import Err, Ok, Result

P = TypeVar("P")

RESERVED_KEYS = frozenset({"operation", "expand"})


@dataclass(frozen=True)
class ToolRequest(Generic[P]):
    """A validated invocation.

    Attributes:
        operation: Operation name
        payload: Typed payload dataclass for the operation
        expand: Requested expansions, deduplicated, in request order
        extras: Unrecognized fields, passed through untouched
        current: Entity state read by the state-machine check, if any
        provided: Canonical keys the caller supplied
    """

    operation: str
    payload: P
    expand: Tuple[str, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=dict)
    current: Optional[Mapping[str, Any]] = None
    provided: FrozenSet[str] = frozenset()


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _check_expand(
    raw: Any, spec: OperationSpec, vocabulary: Tuple[str, ...]
) -> Result[Tuple[str, ...]]:
    if raw is None:
        return Ok(())
    if not isinstance(raw, (list, tuple)):
        return Err(
            ToolError.invalid_format(
                "expand", spec.name, "a list of expansion names", list(vocabulary[:1])
            )
        )
    tokens = []
    for token in raw:
        if not isinstance(token, str) or token not in vocabulary:
            return Err(ToolError.invalid_expansion(token, spec.name, vocabulary))
        if token not in tokens:
            tokens.append(token)
    return Ok(tuple(tokens))


def validate_request(
    args: Mapping[str, Any], descriptor: ToolDescriptor
) -> Result[ToolRequest]:
    """Validate canonical arguments and build a :class:`ToolRequest`."""
    operation = args.get("operation")
    spec = descriptor.operation(operation) if isinstance(operation, str) else None
    if spec is None:
        return Err(
            ToolError.invalid_operation(
                operation, descriptor.operation_names, descriptor.tool_name
            )
        )

    values: Dict[str, Any] = {}
    present = set()
    for p in spec.params:
        raw = args.get(p.key)
        if _is_absent(raw):
            if p.nullable and p.key in args:
                values[p.attr] = None
                present.add(p.key)
                continue
            if p.required:
                return Err(ToolError.missing_field(p.key, spec.name, p.example))
            continue
        if p.check is not None:
            accepted, raw = p.check.apply(raw)
            if not accepted:
                return Err(
                    ToolError.invalid_format(
                        p.key, spec.name, p.check.expected, p.check.example
                    )
                )
        values[p.attr] = raw
        present.add(p.key)

    for rule in spec.rules:
        error = rule(frozenset(present), spec.name)
        if error is not None:
            return Err(error)

    expand = _check_expand(
        args.get("expand"), spec, descriptor.entity_for(spec).vocabulary
    )
    if isinstance(expand, Err):
        return expand

    known = RESERVED_KEYS | {p.key for p in spec.params}
    extras = {k: v for k, v in args.items() if k not in known}

    return Ok(
        ToolRequest(
            operation=spec.name,
            payload=spec.payload(**values),
            expand=expand.value,
            extras=extras,
            provided=frozenset(present),
        )
    )
