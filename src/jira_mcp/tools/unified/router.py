"""Action routing for consolidated tools.

Each multi-operation tool owns one :class:`ActionRouter` mapping operation
names to handlers. Routers are built once at registration time and refuse to
dispatch names they do not know.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple


class ActionRouterError(ValueError):
    """Raised when an action name is not registered on a router."""

    def __init__(self, message: str, *, allowed_actions: Sequence[str]):
        super().__init__(message)
        self.allowed_actions: Tuple[str, ...] = tuple(allowed_actions)


@dataclass(frozen=True)
class ActionDefinition:
    """A single routable action.

    Attributes:
        name: Canonical action name
        handler: Callable invoked with the dispatch keyword arguments
        summary: One-line description used in documentation
        aliases: Alternate names that route to the same handler
    """

    name: str
    handler: Callable[..., Any]
    summary: str = ""
    aliases: Tuple[str, ...] = ()


class ActionRouter:
    """Dispatch table for one tool."""

    def __init__(self, tool_name: str, actions: Iterable[ActionDefinition]):
        self.tool_name = tool_name
        self._actions: Dict[str, ActionDefinition] = {}
        self._lookup: Dict[str, str] = {}
        for action in actions:
            if action.name in self._lookup:
                raise ValueError(f"Duplicate action '{action.name}' for {tool_name}")
            self._actions[action.name] = action
            self._lookup[action.name] = action.name
            for alias in action.aliases:
                if alias in self._lookup:
                    raise ValueError(f"Duplicate action alias '{alias}' for {tool_name}")
                self._lookup[alias] = action.name

    def allowed_actions(self) -> Tuple[str, ...]:
        return tuple(self._actions)

    def describe(self) -> Dict[str, str]:
        return {name: action.summary for name, action in self._actions.items()}

    def resolve(self, action: Optional[str]) -> ActionDefinition:
        name = self._lookup.get(action) if isinstance(action, str) else None
        if name is None:
            raise ActionRouterError(
                f"Unsupported action '{action}' for {self.tool_name}",
                allowed_actions=self.allowed_actions(),
            )
        return self._actions[name]

    def dispatch(self, action: Optional[str] = None, **kwargs: Any) -> Any:
        """Invoke the handler registered for ``action``.

        Async handlers return their coroutine; the caller awaits it.

        Raises:
            ActionRouterError: If ``action`` is not registered
        """
        return self.resolve(action).handler(**kwargs)
