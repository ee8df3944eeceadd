"""Result values used between pipeline stages.

Validation, state checks and operation handlers report failure by returning
``Err(ToolError)`` instead of raising, so a failed call never depends on which
layer happens to catch an exception. Callers branch with ``isinstance``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from jira_mcp.core.errors import ToolError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ToolError


Result = Union[Ok[T], Err]
