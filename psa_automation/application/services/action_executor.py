"""Action executor: runs an action chain sequentially with retry and timeouts.

Every slot ends with exactly one ActionResult. Unknown types and invalid
configs fail their slot without being retried; handler errors and timed
out attempts are retried with a fixed delay. Once the execution deadline
has passed, slots that have not started are CANCELLED.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from psa_automation.application.services.action_registry import (
    ActionHandlerRegistry,
    RegisteredAction,
)
from psa_automation.application.services.placeholders import substitute_placeholders
from psa_automation.domain.entities.execution import ActionResult
from psa_automation.domain.entities.workflow import ActionSpec, RetryPolicy
from psa_automation.domain.exceptions import (
    ActionConfigurationException,
    UnknownActionTypeException,
)
from psa_automation.shared.enums import ActionStatus
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.telemetry.tracing import TracedOperation, add_span_event
from psa_automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors(include_url=False):
        location = ".".join(str(p) for p in item.get("loc", ())) or "config"
        parts.append(f"{location}: {item.get('msg')}")
    return "invalid config: " + "; ".join(parts)


class ActionExecutor:
    """Runs ActionSpecs through the handler registry."""

    def __init__(
        self,
        registry: ActionHandlerRegistry,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._sleep = sleep
        self._clock = clock
        self._monotonic = monotonic

    @property
    def registry(self) -> ActionHandlerRegistry:
        return self._registry

    async def execute(
        self,
        actions: Sequence[ActionSpec],
        context: dict[str, Any],
        policy: RetryPolicy,
        *,
        continue_on_error: bool = True,
        deadline: float | None = None,
        dry_run: bool = False,
    ) -> list[ActionResult]:
        """Run `actions` in order and return one result per slot.

        Args:
            actions: The chain, in execution order.
            context: Event context; prior results are exposed to later
                placeholders as ``steps[i].output`` / ``steps[i].status``.
            policy: Retry count, delay, and default per-attempt timeout.
            continue_on_error: Definition-level flag (actions may override).
            deadline: Monotonic time after which nothing new starts.
            dry_run: Render and validate configs without calling handlers.
        """
        results: list[ActionResult] = []
        steps: list[dict[str, Any]] = []
        halted_by: int | None = None

        for index, action in enumerate(actions):
            if halted_by is not None:
                result = self._not_started(
                    index,
                    action,
                    ActionStatus.SKIPPED,
                    f"not run: action {halted_by} failed and continue_on_error is false",
                )
            elif self._remaining(deadline) is not None and self._remaining(deadline) <= 0:
                result = self._not_started(
                    index,
                    action,
                    ActionStatus.CANCELLED,
                    "not run: execution timeout elapsed",
                )
            else:
                step_context = {**context, "steps": list(steps)}
                result = await self._run_action(
                    index, action, step_context, policy, deadline, dry_run
                )
                failed = result.status in (ActionStatus.FAILURE, ActionStatus.TIMEOUT)
                keep_going = (
                    action.continue_on_error
                    if action.continue_on_error is not None
                    else continue_on_error
                )
                if failed and not keep_going:
                    halted_by = index
            results.append(result)
            steps.append(
                {
                    "type": result.action_type,
                    "status": result.status.value,
                    "output": result.output,
                    "error": result.error,
                }
            )
        return results

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return deadline - self._monotonic()

    def _not_started(
        self, index: int, action: ActionSpec, status: ActionStatus, reason: str
    ) -> ActionResult:
        return ActionResult(
            action_index=index,
            action_type=action.type,
            status=status,
            error=reason,
            attempts=0,
        )

    async def _run_action(
        self,
        index: int,
        action: ActionSpec,
        context: dict[str, Any],
        policy: RetryPolicy,
        deadline: float | None,
        dry_run: bool,
    ) -> ActionResult:
        started_at = self._clock()
        started = self._monotonic()

        def finish(
            status: ActionStatus,
            *,
            output: Any = None,
            error: str | None = None,
            attempts: int = 0,
        ) -> ActionResult:
            return ActionResult(
                action_index=index,
                action_type=action.type,
                status=status,
                output=output,
                error=error,
                duration_ms=max(0, int((self._monotonic() - started) * 1000)),
                attempts=attempts,
                started_at=started_at,
                finished_at=self._clock(),
            )

        try:
            registered = self._registry.get(action.type)
        except UnknownActionTypeException as e:
            logger.warning("Action %d: %s", index, e.message)
            return finish(ActionStatus.FAILURE, error=e.message)

        config = substitute_placeholders(action.config, context)
        try:
            typed_config = registered.parse_config(config)
        except ValidationError as e:
            message = _format_validation_error(e)
            logger.warning("Action %d (%s) has %s", index, action.type, message)
            return finish(ActionStatus.FAILURE, error=message)

        if dry_run:
            return finish(ActionStatus.SKIPPED, output={"dry_run": True, "config": config})

        async with TracedOperation(
            f"workflow.action.{action.type}",
            {"action.index": index, "action.type": action.type},
        ) as span:
            status, output, error, attempts = await self._attempt(
                index, action, registered, typed_config, context, policy, deadline
            )
            span.set_attribute("action.attempts", attempts)
            span.set_attribute("action.status", status.value)
        return finish(status, output=output, error=error, attempts=attempts)

    async def _attempt(
        self,
        index: int,
        action: ActionSpec,
        registered: RegisteredAction,
        config: Any,
        context: dict[str, Any],
        policy: RetryPolicy,
        deadline: float | None,
    ) -> tuple[ActionStatus, Any, str | None, int]:
        timeout = action.timeout_seconds or policy.timeout_seconds
        attempts = 0
        timed_out = False
        error: str | None = None

        while True:
            attempt_timeout = timeout
            remaining = self._remaining(deadline)
            if remaining is not None:
                if remaining <= 0:
                    timed_out = True
                    error = f"{error}; execution timeout elapsed" if error else "execution timeout elapsed"
                    break
                attempt_timeout = min(timeout, remaining)

            attempts += 1
            try:
                output = await asyncio.wait_for(
                    registered.invoke(config, context), timeout=attempt_timeout
                )
            except TimeoutError:
                timed_out = True
                error = f"timed out after {attempt_timeout:g}s"
            except ActionConfigurationException as e:
                logger.warning(
                    "Action %d (%s) rejected its config: %s", index, action.type, e.message
                )
                return ActionStatus.FAILURE, None, e.message, attempts
            except Exception as e:
                timed_out = False
                error = f"{type(e).__name__}: {e}"
            else:
                return ActionStatus.SUCCESS, output, None, attempts

            logger.warning(
                "Action %d (%s) attempt %d/%d failed: %s",
                index,
                action.type,
                attempts,
                policy.max_retries + 1,
                error,
            )
            add_span_event("action.attempt_failed", {"attempt": attempts, "error": error})
            if attempts > policy.max_retries:
                break
            await self._sleep(policy.retry_delay_seconds)

        status = ActionStatus.TIMEOUT if timed_out else ActionStatus.FAILURE
        return status, None, error, attempts
