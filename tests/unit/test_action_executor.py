"""ActionExecutor: per-slot results, retry bound, timeouts, halting and dry runs."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from psa_automation.application.services.action_executor import ActionExecutor
from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.domain.entities.execution import ActionResult, derive_execution_status
from psa_automation.domain.entities.workflow import ActionSpec, RetryPolicy
from psa_automation.domain.enums import ActionType
from psa_automation.domain.exceptions import ActionConfigurationException
from psa_automation.schemas.actions import SendEmailConfig
from psa_automation.shared.enums import ActionStatus, ExecutionStatus

NO_RETRY = RetryPolicy(max_retries=0, retry_delay_seconds=5, timeout_seconds=10)


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _context(**payload) -> dict:
    return {"id": "evt_1", "type": "PROJECT_CREATED", "entity_id": "p1", "payload": payload}


@pytest.mark.asyncio
async def test_one_result_per_slot_and_failures_are_isolated(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    failing = AsyncMock(side_effect=RuntimeError("smtp down"))
    succeeding = AsyncMock(return_value={"ok": True})
    registry.register("A", failing)
    registry.register("B", succeeding)

    results = await executor.execute(
        [ActionSpec("A"), ActionSpec("B")], _context(), NO_RETRY
    )

    assert len(results) == 2
    assert [r.status for r in results] == [ActionStatus.FAILURE, ActionStatus.SUCCESS]
    assert [r.action_index for r in results] == [0, 1]
    assert results[0].error == "RuntimeError: smtp down"
    assert results[1].output == {"ok": True}
    assert succeeding.await_count == 1
    assert derive_execution_status(results) == ExecutionStatus.PARTIAL_FAILURE


@pytest.mark.asyncio
async def test_retries_are_bounded_by_max_retries(
    executor: ActionExecutor, registry: ActionHandlerRegistry, no_sleep
) -> None:
    handler = AsyncMock(side_effect=ConnectionError("refused"))
    registry.register("A", handler)
    policy = RetryPolicy(max_retries=2, retry_delay_seconds=7, timeout_seconds=10)

    [result] = await executor.execute([ActionSpec("A")], _context(), policy)

    assert handler.await_count == 3
    assert result.attempts == 3
    assert result.status == ActionStatus.FAILURE
    assert no_sleep.calls == [7, 7]


@pytest.mark.asyncio
async def test_retry_then_success(
    executor: ActionExecutor, registry: ActionHandlerRegistry, no_sleep
) -> None:
    handler = AsyncMock(side_effect=[RuntimeError("flaky"), {"id": "t1"}])
    registry.register("A", handler)
    policy = RetryPolicy(max_retries=3, retry_delay_seconds=1, timeout_seconds=10)

    [result] = await executor.execute([ActionSpec("A")], _context(), policy)

    assert result.status == ActionStatus.SUCCESS
    assert result.attempts == 2
    assert result.output == {"id": "t1"}
    assert no_sleep.calls == [1]


@pytest.mark.asyncio
async def test_configuration_errors_are_not_retried(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    handler = AsyncMock(side_effect=ActionConfigurationException("A", "endpoint rejected payload"))
    registry.register("A", handler)

    [result] = await executor.execute(
        [ActionSpec("A")], _context(), RetryPolicy(max_retries=5, timeout_seconds=10)
    )

    assert handler.await_count == 1
    assert result.status == ActionStatus.FAILURE
    assert result.error == "endpoint rejected payload"


@pytest.mark.asyncio
async def test_attempt_timeout(executor: ActionExecutor, registry: ActionHandlerRegistry) -> None:
    async def slow(config, context):
        await asyncio.sleep(5)

    registry.register("SLOW", slow)

    [result] = await executor.execute(
        [ActionSpec("SLOW", timeout_seconds=0.01)], _context(), NO_RETRY
    )

    assert result.status == ActionStatus.TIMEOUT
    assert result.attempts == 1
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_unknown_action_type_fails_its_slot_only(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    registry.register("B", AsyncMock(return_value=None))

    results = await executor.execute(
        [ActionSpec("POST_TO_SLACK"), ActionSpec("B")], _context(), NO_RETRY
    )

    assert results[0].status == ActionStatus.FAILURE
    assert results[0].attempts == 0
    assert "POST_TO_SLACK" in results[0].error
    assert results[1].status == ActionStatus.SUCCESS


@pytest.mark.asyncio
async def test_invalid_config_after_substitution_fails_without_calling_handler(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    handler = AsyncMock()
    registry.register(ActionType.SEND_EMAIL, handler, config_model=SendEmailConfig)

    [result] = await executor.execute(
        [ActionSpec(ActionType.SEND_EMAIL, {"to": "{{payload.clientEmail}}", "subject": "Hi"})],
        _context(),
        NO_RETRY,
    )

    assert result.status == ActionStatus.FAILURE
    assert result.error.startswith("invalid config: to")
    assert result.attempts == 0
    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_handler_receives_typed_config_with_placeholders_resolved(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    handler = AsyncMock(return_value={"sent": True})
    registry.register(ActionType.SEND_EMAIL, handler, config_model=SendEmailConfig)

    await executor.execute(
        [ActionSpec(ActionType.SEND_EMAIL, {"to": "{{payload.clientEmail}}", "subject": "{{payload.name}}"})],
        _context(clientEmail="client@example.com", name="Website"),
        NO_RETRY,
    )

    config, context = handler.await_args.args
    assert isinstance(config, SendEmailConfig)
    assert config.to == ["client@example.com"]
    assert config.subject == "Website"
    assert context["steps"] == []


@pytest.mark.asyncio
async def test_later_actions_see_prior_results(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    registry.register("CREATE", AsyncMock(return_value={"id": "task_9"}))
    follow_up = AsyncMock(return_value=None)
    registry.register("FOLLOW_UP", follow_up)

    await executor.execute(
        [
            ActionSpec("CREATE"),
            ActionSpec("FOLLOW_UP", {"taskId": "{{steps[0].output.id}}", "prev": "{{steps.0.status}}"}),
        ],
        _context(),
        NO_RETRY,
    )

    config, context = follow_up.await_args.args
    assert config == {"taskId": "task_9", "prev": "success"}
    assert context["steps"][0]["type"] == "CREATE"


@pytest.mark.asyncio
async def test_halt_on_failure_skips_remaining_slots(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    registry.register("FAIL", AsyncMock(side_effect=RuntimeError("no")))
    later = AsyncMock()
    registry.register("LATER", later)

    results = await executor.execute(
        [ActionSpec("FAIL"), ActionSpec("LATER"), ActionSpec("LATER")],
        _context(),
        NO_RETRY,
        continue_on_error=False,
    )

    assert [r.status for r in results] == [
        ActionStatus.FAILURE,
        ActionStatus.SKIPPED,
        ActionStatus.SKIPPED,
    ]
    assert all(r.attempts == 0 for r in results[1:])
    later.assert_not_awaited()


@pytest.mark.asyncio
async def test_action_level_continue_on_error_overrides_definition(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    registry.register("FAIL", AsyncMock(side_effect=RuntimeError("no")))
    registry.register("OK", AsyncMock(return_value=1))

    results = await executor.execute(
        [ActionSpec("FAIL", continue_on_error=True), ActionSpec("OK")],
        _context(),
        NO_RETRY,
        continue_on_error=False,
    )
    assert [r.status for r in results] == [ActionStatus.FAILURE, ActionStatus.SUCCESS]

    results = await executor.execute(
        [ActionSpec("FAIL", continue_on_error=False), ActionSpec("OK")],
        _context(),
        NO_RETRY,
        continue_on_error=True,
    )
    assert [r.status for r in results] == [ActionStatus.FAILURE, ActionStatus.SKIPPED]


@pytest.mark.asyncio
async def test_slots_after_the_deadline_are_cancelled(registry: ActionHandlerRegistry, no_sleep) -> None:
    clock = FakeMonotonic()

    async def long_running(config, context):
        clock.now += 120
        return "done"

    registry.register("LONG", long_running)
    later = AsyncMock()
    registry.register("LATER", later)
    executor = ActionExecutor(registry, sleep=no_sleep, monotonic=clock)

    results = await executor.execute(
        [ActionSpec("LONG"), ActionSpec("LATER"), ActionSpec("LATER")],
        _context(),
        RetryPolicy(max_retries=0, timeout_seconds=300),
        deadline=60,
    )

    assert [r.status for r in results] == [
        ActionStatus.SUCCESS,
        ActionStatus.CANCELLED,
        ActionStatus.CANCELLED,
    ]
    assert results[1].attempts == 0
    later.assert_not_awaited()
    assert derive_execution_status(results) == ExecutionStatus.TIMEOUT


@pytest.mark.asyncio
async def test_no_retry_after_deadline(registry: ActionHandlerRegistry, no_sleep) -> None:
    clock = FakeMonotonic()

    async def failing(config, context):
        clock.now += 50
        raise RuntimeError("still down")

    registry.register("FAIL", failing)
    executor = ActionExecutor(registry, sleep=no_sleep, monotonic=clock)

    [result] = await executor.execute(
        [ActionSpec("FAIL")],
        _context(),
        RetryPolicy(max_retries=10, retry_delay_seconds=1, timeout_seconds=300),
        deadline=100,
    )

    assert result.attempts == 2
    assert result.status == ActionStatus.TIMEOUT
    assert "execution timeout elapsed" in result.error


@pytest.mark.asyncio
async def test_dry_run_renders_without_calling_handlers(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    handler = AsyncMock()
    registry.register(ActionType.SEND_EMAIL, handler, config_model=SendEmailConfig)

    [result] = await executor.execute(
        [ActionSpec(ActionType.SEND_EMAIL, {"to": "{{payload.clientEmail}}", "subject": "Hi"})],
        _context(clientEmail="client@example.com"),
        NO_RETRY,
        dry_run=True,
    )

    handler.assert_not_awaited()
    assert result.status == ActionStatus.SKIPPED
    assert result.output == {
        "dry_run": True,
        "config": {"to": "client@example.com", "subject": "Hi"},
    }


@pytest.mark.asyncio
async def test_sync_handlers_are_supported(
    executor: ActionExecutor, registry: ActionHandlerRegistry
) -> None:
    registry.register("SUM", lambda config, context: sum(config["values"]))

    [result] = await executor.execute(
        [ActionSpec("SUM", {"values": [1, 2, 3]})], _context(), NO_RETRY
    )

    assert result.status == ActionStatus.SUCCESS
    assert result.output == 6


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([ActionStatus.SUCCESS, ActionStatus.SUCCESS], ExecutionStatus.SUCCESS),
        ([ActionStatus.FAILURE, ActionStatus.TIMEOUT], ExecutionStatus.FAILURE),
        ([ActionStatus.SUCCESS, ActionStatus.SKIPPED], ExecutionStatus.PARTIAL_FAILURE),
        ([ActionStatus.SUCCESS, ActionStatus.CANCELLED], ExecutionStatus.TIMEOUT),
    ],
)
def test_execution_status_aggregation(statuses, expected) -> None:
    results = [ActionResult(i, "A", status) for i, status in enumerate(statuses)]
    assert derive_execution_status(results) == expected
