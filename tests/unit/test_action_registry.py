"""ActionHandlerRegistry: registration, lookup and invocation."""

import pytest
from pydantic import ValidationError

from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.domain.enums import ActionType
from psa_automation.domain.exceptions import UnknownActionTypeException
from psa_automation.schemas.actions import DelayConfig


def test_register_and_get_by_enum_or_tag(registry: ActionHandlerRegistry) -> None:
    registry.register(ActionType.DELAY, lambda config, context: None, config_model=DelayConfig)

    assert "DELAY" in registry
    assert ActionType.DELAY in registry
    assert registry.get("DELAY").config_model is DelayConfig
    assert registry.get(ActionType.DELAY).action_type == "DELAY"
    assert registry.types() == ["DELAY"]


def test_duplicate_registration_requires_replace(registry: ActionHandlerRegistry) -> None:
    registry.register("POST_TO_SLACK", lambda config, context: 1)
    with pytest.raises(ValueError):
        registry.register("POST_TO_SLACK", lambda config, context: 2)

    registry.register("POST_TO_SLACK", lambda config, context: 2, replace=True)
    assert len(registry) == 1


def test_unknown_type_raises(registry: ActionHandlerRegistry) -> None:
    with pytest.raises(UnknownActionTypeException) as exc_info:
        registry.get("NOPE")
    assert exc_info.value.error_code == "UNKNOWN_ACTION_TYPE"
    assert exc_info.value.details == {"action_type": "NOPE"}


def test_unregister(registry: ActionHandlerRegistry) -> None:
    registry.register("X", lambda config, context: None)
    registry.unregister("X")
    registry.unregister("X")
    assert "X" not in registry


def test_decorator_registration(registry: ActionHandlerRegistry) -> None:
    @registry.handler("ECHO")
    async def echo(config, context):
        return {"echo": config["text"]}

    assert registry.get("ECHO").handler is echo


def test_parse_config_validates_with_model(registry: ActionHandlerRegistry) -> None:
    registry.register(ActionType.DELAY, lambda config, context: None, config_model=DelayConfig)
    registered = registry.get("DELAY")

    assert registered.parse_config({"seconds": 5}).seconds == 5
    with pytest.raises(ValidationError):
        registered.parse_config({"seconds": "{{payload.wait}}"})
    assert registered.parse_config(
        {"seconds": "{{payload.wait}}"}, allow_placeholders=True
    ).seconds == "{{payload.wait}}"


def test_parse_config_without_model_passes_dict_through(registry: ActionHandlerRegistry) -> None:
    registry.register("RAW", lambda config, context: None)
    config = {"anything": 1}
    assert registry.get("RAW").parse_config(config) is config


@pytest.mark.asyncio
async def test_invoke_async_handler(registry: ActionHandlerRegistry) -> None:
    async def handler(config, context):
        return {"entity": context["entity_id"], "value": config["value"]}

    registry.register("ASYNC", handler)
    output = await registry.get("ASYNC").invoke({"value": 3}, {"entity_id": "p1"})
    assert output == {"entity": "p1", "value": 3}


@pytest.mark.asyncio
async def test_invoke_sync_handler_runs_in_thread(registry: ActionHandlerRegistry) -> None:
    registry.register("SYNC", lambda config, context: config["value"] * 2)
    assert await registry.get("SYNC").invoke({"value": 21}, {}) == 42


@pytest.mark.asyncio
async def test_invoke_sync_handler_returning_awaitable(registry: ActionHandlerRegistry) -> None:
    async def later():
        return "done"

    registry.register("LAZY", lambda config, context: later())
    assert await registry.get("LAZY").invoke({}, {}) == "done"
