"""Scheduler for SCHEDULE-triggered workflows.

Holds one next-fire-time per scheduled definition and dispatches a
targeted SCHEDULE event when it comes due. Missed slots are not caught
up: after a fire, the next time is computed strictly after the tick's
"now", so a late tick fires once.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import CroniterBadCronError, croniter

from psa_automation.application.dtos.event import DomainEvent
from psa_automation.application.interfaces.repositories import (
    IWorkflowDefinitionRepository,
)
from psa_automation.domain.entities.workflow import WorkflowDefinition
from psa_automation.domain.enums import TriggerType
from psa_automation.domain.exceptions import ScheduleConfigurationException
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import ensure_utc, utc_now

if TYPE_CHECKING:
    from psa_automation.application.services.workflow_engine import WorkflowEngine

logger = get_logger(__name__)

SCHEDULER_ACTOR = "scheduler"


@dataclass
class ScheduledWorkflow:
    workflow_id: str
    expressions: tuple[tuple[str, str], ...]
    next_fire_at: datetime
    next_cron: str


def next_fire_after(expression: str, timezone: str, after: datetime) -> datetime:
    """First cron slot strictly after `after`, evaluated in `timezone`, returned in UTC.

    Raises ValueError for an invalid expression or unknown timezone.
    """
    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"unknown timezone {timezone!r}") from e
    if not croniter.is_valid(expression):
        raise ValueError(f"invalid cron expression {expression!r}")
    local = ensure_utc(after).astimezone(tz)
    try:
        fire_at = croniter(expression, local).get_next(datetime)
    except CroniterBadCronError as e:
        raise ValueError(str(e)) from e
    return ensure_utc(fire_at)


def schedule_expressions(definition: WorkflowDefinition) -> tuple[tuple[str, str], ...]:
    """(cron, timezone) pairs of the definition's enabled SCHEDULE triggers."""
    expressions = []
    for trigger in definition.active_triggers():
        if trigger.type != TriggerType.SCHEDULE.value:
            continue
        config = trigger.config or {}
        cron = config.get("schedule") or config.get("cron")
        timezone = config.get("timezone") or "UTC"
        if isinstance(cron, str) and cron.strip():
            expressions.append((cron.strip(), str(timezone)))
        else:
            logger.warning("Workflow %s has a SCHEDULE trigger without a cron expression", definition.id)
    return tuple(expressions)


class WorkflowScheduler:
    """Fires SCHEDULE workflows through the engine on an external tick."""

    def __init__(
        self,
        engine: WorkflowEngine,
        definitions: IWorkflowDefinitionRepository,
        *,
        clock: Callable[[], datetime] = utc_now,
        tick_seconds: float = 60,
    ) -> None:
        self._engine = engine
        self._definitions = definitions
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._entries: dict[str, ScheduledWorkflow] = {}

    def scheduled(self) -> list[ScheduledWorkflow]:
        return sorted(self._entries.values(), key=lambda e: (e.next_fire_at, e.workflow_id))

    def next_fire_time(self, workflow_id: str) -> datetime | None:
        entry = self._entries.get(workflow_id)
        return entry.next_fire_at if entry else None

    async def refresh(self, now: datetime | None = None) -> None:
        """Sync entries with the enabled definitions.

        Entries whose expressions are unchanged keep their next-fire-time.
        """
        now = ensure_utc(now or self._clock())
        seen: set[str] = set()
        for definition in await self._definitions.list_enabled():
            expressions = schedule_expressions(definition)
            if not definition.enabled or not expressions:
                continue
            seen.add(definition.id)
            current = self._entries.get(definition.id)
            if current is not None and current.expressions == expressions:
                continue
            entry = self._plan(definition.id, expressions, now)
            if entry is None:
                self._entries.pop(definition.id, None)
                seen.discard(definition.id)
                continue
            self._entries[definition.id] = entry
            logger.info(
                "Scheduled workflow %s, next fire at %s", definition.id, entry.next_fire_at.isoformat()
            )
        for workflow_id in set(self._entries) - seen:
            logger.info("Unscheduled workflow %s", workflow_id)
            del self._entries[workflow_id]

    async def tick(self, now: datetime | None = None) -> list[str]:
        """Fire every due entry once. Returns the ids of dispatched workflows."""
        now = ensure_utc(now or self._clock())
        await self.refresh(now)

        due: list[tuple[str, datetime, str]] = []
        for entry in list(self._entries.values()):
            if entry.next_fire_at > now:
                continue
            scheduled_for, cron = entry.next_fire_at, entry.next_cron
            updated = self._plan(entry.workflow_id, entry.expressions, now)
            if updated is None:
                del self._entries[entry.workflow_id]
            else:
                self._entries[entry.workflow_id] = updated
            due.append((entry.workflow_id, scheduled_for, cron))

        if not due:
            return []
        outcomes = await asyncio.gather(
            *(self._fire(workflow_id, scheduled_for, cron, now) for workflow_id, scheduled_for, cron in due),
            return_exceptions=True,
        )
        for (workflow_id, _, _), outcome in zip(due, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Scheduled run of workflow %s failed: %s", workflow_id, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
        return [workflow_id for workflow_id, _, _ in due]

    async def run(
        self,
        interval_seconds: float | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Tick every `interval_seconds` until `stop_event` is set."""
        interval = interval_seconds or self._tick_seconds
        stop = stop_event or asyncio.Event()
        logger.info("Scheduler started (tick every %ss)", interval)
        while not stop.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Scheduler tick failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                pass
        logger.info("Scheduler stopped")

    def _plan(
        self, workflow_id: str, expressions: tuple[tuple[str, str], ...], after: datetime
    ) -> ScheduledWorkflow | None:
        best: tuple[datetime, str] | None = None
        for cron, timezone in expressions:
            try:
                fire_at = next_fire_after(cron, timezone, after)
            except ValueError as e:
                error = ScheduleConfigurationException(workflow_id, cron, str(e))
                logger.warning(error.message)
                continue
            if best is None or fire_at < best[0]:
                best = (fire_at, cron)
        if best is None:
            return None
        return ScheduledWorkflow(workflow_id, expressions, best[0], best[1])

    async def _fire(
        self, workflow_id: str, scheduled_for: datetime, cron: str, now: datetime
    ) -> None:
        event = DomainEvent(
            type=TriggerType.SCHEDULE.value,
            entity_id=workflow_id,
            payload={
                "scheduled_for": scheduled_for.isoformat(),
                "fired_at": now.isoformat(),
                "cron": cron,
            },
            actor_id=SCHEDULER_ACTOR,
            occurred_at=now,
            workflow_id=workflow_id,
        )
        records = await self._engine.dispatch(event)
        logger.info(
            "Scheduled fire of workflow %s (slot %s) produced %d execution(s)",
            workflow_id,
            scheduled_for.isoformat(),
            len(records),
        )
