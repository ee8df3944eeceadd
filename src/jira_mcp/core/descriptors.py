"""Static descriptors for multi-operation tools.

A tool is described once, at import time, by a :class:`ToolDescriptor`:

* its legal operations, each an :class:`OperationSpec` whose ``payload`` is a
  frozen dataclass. Payload fields are declared with :func:`param`, which
  records the wire name, whether the field is required and the
  :class:`Check` its value must pass;
* the entity it returns (:class:`EntitySpec`): the closed expansion vocabulary
  plus the rules the response composer uses (related references, status
  counts, suggested actions);
* an alternate-spelling table for the argument normalizer;
* an optional :class:`StateMachine` guarding mutations.

Everything here is immutable. The validator, dispatcher, expansion resolver,
composer and documentation resources all read the same descriptor.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from jira_mcp.core.errors import ToolError
from jira_mcp.core.result import Err, Ok, Result

if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from jira_mcp.core.upstream import Upstream

PARAM_METADATA_KEY = "jira_mcp.param"

# Sentinel returned by a check that rejects its input
_REJECT = object()


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Check:
    """A field validator.

    ``convert`` returns the canonical value, or a private sentinel to reject
    it, so a check never raises. ``expected`` and ``example`` feed the error
    message.
    """

    expected: str
    example: Any
    convert: Callable[[Any], Any]
    json_type: str = "string"

    def apply(self, value: Any) -> Tuple[bool, Any]:
        converted = self.convert(value)
        if converted is _REJECT:
            return False, None
        return True, converted


def pattern(regex: str, expected: str, example: str) -> Check:
    compiled = re.compile(regex)

    def convert(value: Any) -> Any:
        if isinstance(value, str) and compiled.fullmatch(value):
            return value
        return _REJECT

    return Check(expected=expected, example=example, convert=convert)


def _is_ascii_digits(value: Any) -> bool:
    # str.isdigit accepts superscripts that int() rejects
    return isinstance(value, str) and value.isascii() and value.isdigit()


def numeric_id(example: int) -> Check:
    """Positive integer, or a string of digits coerced to int."""

    def convert(value: Any) -> Any:
        if isinstance(value, bool):
            return _REJECT
        if isinstance(value, int):
            return value if value > 0 else _REJECT
        if _is_ascii_digits(value) and int(value) > 0:
            return int(value)
        return _REJECT

    return Check(
        expected="a positive numeric ID",
        example=example,
        convert=convert,
        json_type="integer",
    )


def text(example: str) -> Check:
    def convert(value: Any) -> Any:
        if isinstance(value, str) and value.strip():
            return value
        return _REJECT

    return Check(expected="a non-empty string", example=example, convert=convert)


def one_of(*choices: str) -> Check:
    def convert(value: Any) -> Any:
        return value if value in choices else _REJECT

    return Check(
        expected=f"one of {', '.join(choices)}",
        example=choices[0],
        convert=convert,
    )


def integer(minimum: int, maximum: Optional[int], example: int) -> Check:
    def convert(value: Any) -> Any:
        if isinstance(value, bool):
            return _REJECT
        if _is_ascii_digits(value):
            value = int(value)
        if not isinstance(value, int) or value < minimum:
            return _REJECT
        if maximum is not None and value > maximum:
            return _REJECT
        return value

    bounds = f"between {minimum} and {maximum}" if maximum is not None else f">= {minimum}"
    return Check(
        expected=f"an integer {bounds}",
        example=example,
        convert=convert,
        json_type="integer",
    )


def boolean() -> Check:
    def convert(value: Any) -> Any:
        return value if isinstance(value, bool) else _REJECT

    return Check(expected="true or false", example=True, convert=convert, json_type="boolean")


def iso_date(example: str = "2025-01-06T09:00:00.000Z") -> Check:
    def convert(value: Any) -> Any:
        if not isinstance(value, str):
            return _REJECT
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _REJECT
        return value

    return Check(expected="an ISO 8601 date", example=example, convert=convert)


def string_list(item: Optional[Check] = None, example: Sequence[str] = ()) -> Check:
    """List of strings; each item must also pass ``item`` when given."""

    def convert(value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return _REJECT
        items = []
        for entry in value:
            if not isinstance(entry, str):
                return _REJECT
            if item is not None:
                ok, entry = item.apply(entry)
                if not ok:
                    return _REJECT
            items.append(entry)
        return tuple(items)

    expected = "a list of strings"
    if item is not None:
        expected = f"a list where each entry is {item.expected}"
    return Check(expected=expected, example=list(example), convert=convert, json_type="array")


def opaque_mapping(example: Mapping[str, Any]) -> Check:
    """String-keyed mapping passed through uninterpreted."""

    def convert(value: Any) -> Any:
        if isinstance(value, Mapping) and all(isinstance(k, str) for k in value):
            return MappingProxyType(dict(value))
        return _REJECT

    return Check(
        expected="an object with string keys",
        example=dict(example),
        convert=convert,
        json_type="object",
    )


def record_list(
    validate_item: Callable[[Mapping[str, Any]], bool],
    expected: str,
    example: Sequence[Mapping[str, Any]],
) -> Check:
    """List of objects, each accepted by ``validate_item``."""

    def convert(value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return _REJECT
        records = []
        for entry in value:
            if not isinstance(entry, Mapping) or not validate_item(entry):
                return _REJECT
            records.append(MappingProxyType(dict(entry)))
        return tuple(records)

    return Check(
        expected=expected,
        example=[dict(e) for e in example],
        convert=convert,
        json_type="array",
    )


ISSUE_KEY = pattern(
    r"[A-Z][A-Z0-9_]+-\d+", "an issue key like PROJ-123", "PROJ-123"
)
PROJECT_KEY = pattern(r"[A-Z][A-Z0-9_]+", "a project key like PROJ", "PROJ")
START_AT = integer(0, None, 0)
MAX_RESULTS = integer(1, 100, 50)


# ---------------------------------------------------------------------------
# Payload fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Param:
    """Wire-level description of one payload field."""

    key: str
    check: Optional[Check] = None
    required: bool = False
    description: str = ""
    attr: str = ""
    nullable: bool = False

    @property
    def example(self) -> Any:
        return self.check.example if self.check is not None else None


def param(
    key: str,
    check: Optional[Check] = None,
    *,
    required: bool = False,
    default: Any = None,
    description: str = "",
    nullable: bool = False,
) -> Any:
    """Declare a payload dataclass field bound to wire name ``key``.

    Required fields carry no default, so they must be declared before the
    optional ones. A ``nullable`` field sent as null or "" counts as provided
    with value None (clear the field) rather than absent.
    """
    metadata = {
        PARAM_METADATA_KEY: Param(
            key=key,
            check=check,
            required=required,
            description=description,
            nullable=nullable,
        )
    }
    if required:
        return field(metadata=metadata)
    return field(default=default, metadata=metadata)


def payload_params(payload: type) -> Tuple[Param, ...]:
    """Params of a payload dataclass, in declaration order."""
    params = []
    for f in dataclasses.fields(payload):
        declared = f.metadata.get(PARAM_METADATA_KEY)
        if declared is None:
            raise TypeError(f"{payload.__name__}.{f.name} is not declared with param()")
        params.append(dataclasses.replace(declared, attr=f.name))
    return tuple(params)


def payload_patch(payload: Any, provided: FrozenSet[str]) -> Dict[str, Any]:
    """Wire-keyed values of the payload fields the caller supplied."""
    return {
        p.key: getattr(payload, p.attr)
        for p in payload_params(type(payload))
        if p.key in provided
    }


# ---------------------------------------------------------------------------
# Cross-field rules
# ---------------------------------------------------------------------------

# A rule receives the set of canonical keys present in the request and the
# operation name; it returns an error or None.
Rule = Callable[[FrozenSet[str], str], Optional[ToolError]]


def at_least_one_of(*keys: str) -> Rule:
    def rule(present: FrozenSet[str], operation: str) -> Optional[ToolError]:
        if present.isdisjoint(keys):
            return ToolError.missing_one_of(keys, operation)
        return None

    return rule


# ---------------------------------------------------------------------------
# Entities and expansions
# ---------------------------------------------------------------------------

ExpansionFetch = Callable[["Upstream", Mapping[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Expansion:
    """A named secondary dataset; ``fetch`` performs one upstream call."""

    name: str
    fetch: ExpansionFetch
    description: str = ""
    key: str = ""

    @property
    def attach_as(self) -> str:
        return self.key or self.name


def _no_related(entity: Mapping[str, Any]) -> Dict[str, Any]:
    return {}


def _no_actions(entity: Mapping[str, Any]) -> List[Dict[str, str]]:
    return []


@dataclass(frozen=True)
class EntitySpec:
    """Composition rules for one entity type.

    Attributes:
        name: Entity type name ("issue", "sprint"...)
        expansions: Closed expansion vocabulary, in display order
        related: Extracts cross-references for ``_metadata.related``
        suggested_actions: Rule table keyed on current entity state
        status_of: Status-like field of a list item, for list status counts
        status_seed: Statuses always reported in list counts, even at zero
        status_source: Key of an attached issue list to count for a single entity
        list_actions: Suggested actions for a whole list page
    """

    name: str
    expansions: Tuple[Expansion, ...] = ()
    related: Callable[[Mapping[str, Any]], Dict[str, Any]] = _no_related
    suggested_actions: Callable[[Mapping[str, Any]], List[Dict[str, str]]] = _no_actions
    status_of: Optional[Callable[[Mapping[str, Any]], Optional[str]]] = None
    status_seed: Tuple[str, ...] = ()
    status_source: Optional[str] = None
    list_actions: Callable[[Mapping[str, Any]], List[Dict[str, str]]] = _no_actions

    def __post_init__(self) -> None:
        names = [e.name for e in self.expansions]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate expansion names for entity {self.name}")

    @property
    def vocabulary(self) -> Tuple[str, ...]:
        return tuple(e.name for e in self.expansions)

    def expansion(self, name: str) -> Optional[Expansion]:
        for candidate in self.expansions:
            if candidate.name == name:
                return candidate
        return None


# ---------------------------------------------------------------------------
# Operations, state machines and tools
# ---------------------------------------------------------------------------

SHAPE_SINGLE = "single"
SHAPE_LIST = "list"
SHAPE_ACK = "ack"


@dataclass(frozen=True)
class OperationSpec:
    """One operation of a tool.

    Attributes:
        name: Operation discriminator
        payload: Frozen dataclass declared with :func:`param` fields
        summary: One-line description for documentation
        shape: ``single``, ``list`` or ``ack`` (no entity returned)
        entity: Entity returned, when different from the tool's entity
        rules: Cross-field rules checked after field checks
        mutating: Whether the operation changes upstream state
        example: Minimal valid arguments (without ``operation``)
    """

    name: str
    payload: type
    summary: str
    shape: str = SHAPE_SINGLE
    entity: Optional[EntitySpec] = None
    rules: Tuple[Rule, ...] = ()
    mutating: bool = False
    example: Mapping[str, Any] = field(default_factory=dict)

    @property
    def params(self) -> Tuple[Param, ...]:
        return payload_params(self.payload)

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(p.key for p in self.params if p.required)

    @property
    def optional(self) -> Tuple[str, ...]:
        return tuple(p.key for p in self.params if not p.required)


@dataclass(frozen=True)
class StateMachine:
    """Lifecycle rules for an entity with a state field.

    Attributes:
        entity_type: Upstream entity type read to learn the current state
        id_attr: Payload attribute holding the entity identifier
        state_field: Entity field holding the state
        guarded: Operations that mutate and must pass the check
        transitions: Legal state changes (same-state is always legal)
        terminal: Read-only states
        target_attr: Payload attribute holding a requested new state
    """

    entity_type: str
    id_attr: str
    state_field: str
    guarded: FrozenSet[str]
    transitions: Mapping[str, FrozenSet[str]]
    terminal: FrozenSet[str]
    target_attr: Optional[str] = None

    def check(
        self, operation: str, current: Mapping[str, Any], payload: Any
    ) -> Result[None]:
        """Decide whether ``operation`` may run against ``current``."""
        state = current.get(self.state_field)
        if state in self.terminal:
            return Err(
                ToolError.illegal_state(
                    f"Cannot run '{operation}' on a {state} {self.entity_type}. "
                    f"{str(state).capitalize()} {self.entity_type}s are read-only.",
                    operation,
                )
            )
        requested = getattr(payload, self.target_attr, None) if self.target_attr else None
        if requested is not None and requested != state:
            allowed = tuple(sorted(self.transitions.get(state, frozenset())))
            if requested not in allowed:
                return Err(
                    ToolError.illegal_state(
                        f"Cannot move {self.entity_type} from '{state}' to "
                        f"'{requested}'",
                        operation,
                        allowed=allowed,
                    )
                )
        return Ok(None)


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of one multi-operation tool."""

    tool_name: str
    entity: EntitySpec
    operations: Tuple[OperationSpec, ...]
    aliases: Mapping[str, str] = field(default_factory=dict)
    state_machine: Optional[StateMachine] = None
    description: str = ""

    def __post_init__(self) -> None:
        names = [op.name for op in self.operations]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate operations declared for {self.tool_name}")
        for op in self.operations:
            # Validates that every payload field is declared with param()
            op.params

    @property
    def operation_names(self) -> Tuple[str, ...]:
        return tuple(op.name for op in self.operations)

    def operation(self, name: Any) -> Optional[OperationSpec]:
        for op in self.operations:
            if op.name == name:
                return op
        return None

    def entity_for(self, operation: OperationSpec) -> EntitySpec:
        return operation.entity or self.entity
