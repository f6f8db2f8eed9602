"""Action handler registry: action type tag -> handler (+ optional config model).

Handlers have the signature ``handler(config, context) -> output`` and may
be plain functions (run in a worker thread) or coroutines. When a config
model is registered, the handler receives the validated model instead of
the raw dict.
"""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from psa_automation.domain.exceptions import UnknownActionTypeException

ActionHandler = Callable[[Any, dict[str, Any]], Any]


def action_key(action_type: object) -> str:
    """Registry key for an ActionType member or a plain tag."""
    if isinstance(action_type, Enum):
        return str(action_type.value)
    return str(action_type)


@dataclass(frozen=True)
class RegisteredAction:
    action_type: str
    handler: ActionHandler
    config_model: type[BaseModel] | None = None

    def parse_config(self, config: dict[str, Any], *, allow_placeholders: bool = False) -> Any:
        """Validate config against the model (pydantic.ValidationError on failure)."""
        if self.config_model is None:
            return config
        return self.config_model.model_validate(
            config, context={"allow_placeholders": allow_placeholders}
        )

    async def invoke(self, config: Any, context: dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(self.handler):
            return await self.handler(config, context)
        result = await asyncio.to_thread(self.handler, config, context)
        if inspect.isawaitable(result):
            result = await result
        return result


class ActionHandlerRegistry:
    """Open map of action handlers; the orchestrator never switches on type."""

    def __init__(self) -> None:
        self._actions: dict[str, RegisteredAction] = {}

    def register(
        self,
        action_type: str,
        handler: ActionHandler,
        *,
        config_model: type[BaseModel] | None = None,
        replace: bool = False,
    ) -> None:
        """Register a handler. Raises ValueError on duplicates unless replace=True."""
        key = action_key(action_type)
        if key in self._actions and not replace:
            raise ValueError(f"Handler already registered for action type {key}")
        self._actions[key] = RegisteredAction(key, handler, config_model)

    def handler(
        self, action_type: str, *, config_model: type[BaseModel] | None = None
    ) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of register()."""

        def decorator(func: ActionHandler) -> ActionHandler:
            self.register(action_type, func, config_model=config_model)
            return func

        return decorator

    def unregister(self, action_type: str) -> None:
        self._actions.pop(action_key(action_type), None)

    def get(self, action_type: str) -> RegisteredAction:
        """Return the registration or raise UnknownActionTypeException."""
        try:
            return self._actions[action_key(action_type)]
        except KeyError:
            raise UnknownActionTypeException(action_key(action_type)) from None

    def types(self) -> list[str]:
        return sorted(self._actions)

    def __contains__(self, action_type: object) -> bool:
        return action_key(action_type) in self._actions

    def __len__(self) -> int:
        return len(self._actions)
