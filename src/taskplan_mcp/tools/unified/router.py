"""Action routing shared by the unified tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

ActionHandler = Callable[..., dict]


class ActionRouterError(ValueError):
    """Raised when a tool is called with an action it does not define."""

    def __init__(self, tool_name: str, action: Optional[str], allowed_actions: Sequence[str]):
        self.tool_name = tool_name
        self.action = action
        self.allowed_actions: Tuple[str, ...] = tuple(allowed_actions)
        super().__init__(
            f"Unsupported action {action!r} for {tool_name}; "
            f"allowed: {', '.join(self.allowed_actions)}"
        )


@dataclass(frozen=True)
class ActionDefinition:
    """One action of a unified tool."""

    name: str
    handler: ActionHandler
    summary: str
    aliases: Tuple[str, ...] = ()


class ActionRouter:
    """Maps action names (and aliases) to handlers for one tool."""

    def __init__(self, tool_name: str, actions: Iterable[ActionDefinition]):
        self.tool_name = tool_name
        self._actions: Dict[str, ActionDefinition] = {}
        self._lookup: Dict[str, ActionDefinition] = {}
        for definition in actions:
            if definition.name in self._actions:
                raise ValueError(f"Duplicate action {definition.name!r} for {tool_name}")
            self._actions[definition.name] = definition
            for key in (definition.name, *definition.aliases):
                self._lookup[key.lower()] = definition

    @property
    def allowed_actions(self) -> Tuple[str, ...]:
        return tuple(self._actions)

    def describe(self) -> Dict[str, str]:
        """Action name -> summary, in registration order."""
        return {name: d.summary for name, d in self._actions.items()}

    def dispatch(self, *, action: Optional[str], **kwargs: Any) -> dict:
        """Run the handler registered for ``action``.

        Raises:
            ActionRouterError: If ``action`` is missing or unknown
        """
        key = action.strip().lower() if isinstance(action, str) else ""
        definition = self._lookup.get(key)
        if definition is None:
            raise ActionRouterError(self.tool_name, action, self.allowed_actions)

        logger.debug("Dispatching %s.%s", self.tool_name, definition.name)
        return definition.handler(**kwargs)
