"""Workflow engine: dispatch domain events to matching workflow definitions."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from psa_automation.application.dtos.event import DomainEvent
from psa_automation.application.interfaces.repositories import (
    IExecutionRepository,
    IWorkflowDefinitionRepository,
    IWorkflowStatsStore,
)
from psa_automation.application.services.action_executor import ActionExecutor
from psa_automation.application.services.condition_evaluator import (
    ConditionEvaluator,
    ConditionOutcome,
)
from psa_automation.application.services.trigger_matcher import TriggerMatcher
from psa_automation.domain.entities.execution import (
    ExecutionRecord,
    TriggerRef,
    derive_execution_status,
)
from psa_automation.domain.entities.workflow import WorkflowDefinition
from psa_automation.domain.enums import TriggerType
from psa_automation.domain.exceptions import (
    EngineShutdownException,
    ExecutionPersistenceException,
    ResourceNotFoundException,
    ValidationException,
)
from psa_automation.shared.enums import ActionStatus, ExecutionStatus
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.telemetry.tracing import add_span_attributes, traced
from psa_automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class WorkflowTestResult:
    """Outcome of test_workflow: why a definition would (not) run, and what it did."""

    workflow_id: str
    trigger_matched: bool
    conditions: ConditionOutcome
    record: ExecutionRecord | None = None

    @property
    def would_execute(self) -> bool:
        return self.trigger_matched and self.conditions.matched


class WorkflowEngine:
    """Matches events to definitions, runs their action chains, records the outcome.

    Constructed explicitly with its collaborators; there is no module-level
    instance. Chains of different definitions run concurrently; the
    executor runs actions within one chain in order.
    """

    def __init__(
        self,
        definitions: IWorkflowDefinitionRepository,
        executions: IExecutionRepository,
        stats: IWorkflowStatsStore,
        executor: ActionExecutor,
        *,
        matcher: TriggerMatcher | None = None,
        evaluator: ConditionEvaluator | None = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._definitions = definitions
        self._executions = executions
        self._stats = stats
        self._executor = executor
        self._matcher = matcher or TriggerMatcher()
        self._evaluator = evaluator or ConditionEvaluator()
        self._clock = clock
        self._monotonic = monotonic
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closing = False

    @property
    def active_execution_count(self) -> int:
        return self._active

    @property
    def is_closing(self) -> bool:
        return self._closing

    @traced("workflow.dispatch")
    async def dispatch(self, event: DomainEvent) -> list[ExecutionRecord]:
        """Run every enabled definition whose trigger and conditions match `event`.

        Returns one record per executed definition, in priority order.
        Raises ExecutionPersistenceException (after all chains finish) when
        a record could not be stored.
        """
        self._ensure_open()
        add_span_attributes(event_type=event.type, event_id=event.id)

        candidates = self._matcher.match(event, await self._candidates(event))
        if not candidates:
            logger.debug("No workflow matches event %s (%s)", event.id, event.type)
            return []

        context = event.to_context()
        passing: list[WorkflowDefinition] = []
        for definition in candidates:
            outcome = self._evaluator.evaluate_with_diagnostics(
                definition.conditions, context
            )
            if outcome.matched:
                passing.append(definition)
            else:
                logger.info(
                    "Workflow %s skipped for event %s: conditions not met",
                    definition.id,
                    event.id,
                )
        return await self._dispatch_to(passing, event)

    async def trigger_workflow(
        self,
        workflow_id: str,
        payload: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> ExecutionRecord | None:
        """Run one definition on demand, bypassing trigger matching.

        Conditions are still evaluated; returns None when they fail.
        """
        self._ensure_open()
        definition = await self._definitions.get_by_id(workflow_id)
        if definition is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        if not definition.enabled:
            raise ValidationException(
                f"Workflow {workflow_id} is disabled", field="enabled"
            )

        event = DomainEvent(
            type=TriggerType.MANUAL.value,
            entity_id=workflow_id,
            payload=payload or {},
            actor_id=actor_id,
            workflow_id=workflow_id,
        )
        if not self._evaluator.evaluate(definition.conditions, event.to_context()):
            logger.info("Manual run of workflow %s skipped: conditions not met", workflow_id)
            return None
        records = await self._dispatch_to([definition], event)
        return records[0]

    async def test_workflow(
        self, definition: WorkflowDefinition, event: DomainEvent, *, dry_run: bool = True
    ) -> WorkflowTestResult:
        """Check a (possibly unsaved) definition against a sample event.

        Nothing is persisted and stats are untouched. With dry_run, action
        configs are rendered and validated but no handler is called.
        """
        self._ensure_open()
        trigger_matched = self._matcher.definition_matches(definition, event)
        conditions = self._evaluator.evaluate_with_diagnostics(
            definition.conditions, event.to_context()
        )
        record = None
        if trigger_matched and conditions.matched:
            record = await self._tracked(definition, event, dry_run=dry_run, persist=False)
        return WorkflowTestResult(definition.id, trigger_matched, conditions, record)

    async def shutdown(self, timeout: float | None = None) -> bool:
        """Refuse new work and wait for in-flight executions.

        Returns False if executions were still running when `timeout` elapsed.
        """
        self._closing = True
        if self._active:
            logger.info("Waiting for %d in-flight workflow executions", self._active)
        try:
            await asyncio.wait_for(self._idle.wait(), timeout)
        except TimeoutError:
            logger.warning(
                "Engine shutdown timed out with %d executions still running", self._active
            )
            return False
        return True

    def _ensure_open(self) -> None:
        if self._closing:
            raise EngineShutdownException()

    async def _candidates(self, event: DomainEvent) -> list[WorkflowDefinition]:
        if event.workflow_id is None:
            return await self._definitions.list_enabled()
        definition = await self._definitions.get_by_id(event.workflow_id)
        return [definition] if definition is not None else []

    async def _dispatch_to(
        self, definitions: Sequence[WorkflowDefinition], event: DomainEvent
    ) -> list[ExecutionRecord]:
        if not definitions:
            return []
        outcomes = await asyncio.gather(
            *(self._tracked(d, event) for d in definitions),
            return_exceptions=True,
        )
        records: list[ExecutionRecord] = []
        failure: BaseException | None = None
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                failure = failure or outcome
            else:
                records.append(outcome)
        if failure is not None:
            raise failure
        return records

    async def _tracked(
        self,
        definition: WorkflowDefinition,
        event: DomainEvent,
        *,
        dry_run: bool = False,
        persist: bool = True,
    ) -> ExecutionRecord:
        self._active += 1
        self._idle.clear()
        try:
            return await self._execute(definition, event, dry_run=dry_run, persist=persist)
        finally:
            self._active -= 1
            if not self._active:
                self._idle.set()

    async def _execute(
        self,
        definition: WorkflowDefinition,
        event: DomainEvent,
        *,
        dry_run: bool,
        persist: bool,
    ) -> ExecutionRecord:
        policy = definition.retry_policy
        started_at = self._clock()
        deadline = self._monotonic() + policy.timeout_seconds
        context = event.to_context()
        context["workflow"] = {
            "id": definition.id,
            "name": definition.name,
            "version": definition.version,
        }

        results = await self._executor.execute(
            definition.actions,
            context,
            policy,
            continue_on_error=definition.continue_on_error,
            deadline=deadline,
            dry_run=dry_run,
        )
        if dry_run:
            failed = any(r.status == ActionStatus.FAILURE for r in results)
            status = ExecutionStatus.FAILURE if failed else ExecutionStatus.SUCCESS
        else:
            status = derive_execution_status(
                results, deadline_exceeded=self._monotonic() >= deadline
            )

        record = ExecutionRecord(
            workflow_id=definition.id,
            workflow_version=definition.version,
            triggered_by=TriggerRef(event.type, event.id, event.actor_id),
            started_at=started_at,
            finished_at=self._clock(),
            status=status,
            action_results=tuple(results),
            dry_run=dry_run,
        )
        logger.info(
            "Workflow %s (v%d) finished with %s for event %s in %dms%s",
            definition.id,
            definition.version,
            status.value,
            event.id,
            record.duration_ms,
            " [dry run]" if dry_run else "",
        )
        if not persist:
            return record

        try:
            await self._executions.save(record)
        except Exception as e:
            logger.exception("Failed to persist execution %s of workflow %s", record.id, definition.id)
            raise ExecutionPersistenceException(definition.id, record.id, str(e)) from e

        try:
            await self._stats.record_execution(
                definition.id, status, record.duration_ms, record.finished_at
            )
        except Exception:
            logger.exception("Failed to update stats for workflow %s", definition.id)
        return record
