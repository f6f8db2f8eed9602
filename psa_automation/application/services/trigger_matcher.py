"""Trigger matcher: candidate definitions for an event.

Type equality plus trigger-level config compatibility. Content conditions
are the evaluator's job. Malformed trigger config never raises; the
trigger simply does not match.
"""

from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError

from psa_automation.application.dtos.event import DomainEvent
from psa_automation.application.services.condition_evaluator import to_number
from psa_automation.domain.entities.workflow import Trigger, WorkflowDefinition
from psa_automation.schemas.triggers import (
    BudgetThresholdTrigger,
    DeadlineApproachingTrigger,
    InvoiceOverdueTrigger,
    MilestoneReachedTrigger,
    PaymentReceivedTrigger,
    PriorityChangedTrigger,
    StatusChangedTrigger,
    TaskAssignedTrigger,
    WebhookTrigger,
    normalize_routing_path,
    parse_trigger,
)
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import ensure_utc

logger = get_logger(__name__)


def _payload_value(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _at_least(value: Any, threshold: float | None) -> bool:
    if threshold is None:
        return True
    number = to_number(value)
    return number is not None and number >= threshold


def _status_matches(trigger: StatusChangedTrigger, event: DomainEvent) -> bool:
    statuses = trigger.config.statuses
    return not statuses or event.payload.get("status") in statuses


def _priority_matches(trigger: PriorityChangedTrigger, event: DomainEvent) -> bool:
    priorities = trigger.config.priorities
    return not priorities or event.payload.get("priority") in priorities


def _assignee_matches(trigger: TaskAssignedTrigger, event: DomainEvent) -> bool:
    expected = trigger.config.assignee_id
    return expected is None or _payload_value(
        event.payload, "assigneeId", "assignee_id"
    ) == expected


def _milestone_matches(trigger: MilestoneReachedTrigger, event: DomainEvent) -> bool:
    expected = trigger.config.milestone_id
    return expected is None or _payload_value(
        event.payload, "milestoneId", "milestone_id"
    ) == expected


def _deadline_matches(trigger: DeadlineApproachingTrigger, event: DomainEvent) -> bool:
    days_before = trigger.config.days_before
    if days_before is None:
        return True
    remaining = to_number(
        _payload_value(event.payload, "daysUntilDeadline", "days_until_deadline")
    )
    return remaining is not None and remaining <= days_before


def _budget_matches(trigger: BudgetThresholdTrigger, event: DomainEvent) -> bool:
    percent = to_number(
        _payload_value(event.payload, "budgetPercentage", "budget_percentage")
    )
    if percent is None:
        used = to_number(_payload_value(event.payload, "budgetUsed", "budget_used"))
        total = to_number(_payload_value(event.payload, "budgetTotal", "budget_total"))
        if used is None or not total:
            return False
        percent = used / total * 100
    return percent >= trigger.config.threshold_percent


def _overdue_matches(trigger: InvoiceOverdueTrigger, event: DomainEvent) -> bool:
    return _at_least(
        _payload_value(event.payload, "daysOverdue", "days_overdue"),
        trigger.config.overdue_days,
    )


def _payment_matches(trigger: PaymentReceivedTrigger, event: DomainEvent) -> bool:
    return _at_least(event.payload.get("amount"), trigger.config.amount_threshold)


def _webhook_matches(trigger: WebhookTrigger, event: DomainEvent) -> bool:
    if not event.routing_path:
        return False
    return normalize_routing_path(event.routing_path) == trigger.config.path


_CONFIG_CHECKS: dict[type, Callable[[Any, DomainEvent], bool]] = {
    StatusChangedTrigger: _status_matches,
    PriorityChangedTrigger: _priority_matches,
    TaskAssignedTrigger: _assignee_matches,
    MilestoneReachedTrigger: _milestone_matches,
    DeadlineApproachingTrigger: _deadline_matches,
    BudgetThresholdTrigger: _budget_matches,
    InvoiceOverdueTrigger: _overdue_matches,
    PaymentReceivedTrigger: _payment_matches,
    WebhookTrigger: _webhook_matches,
}


class TriggerMatcher:
    """Selects and orders the definitions an event can start."""

    def match(
        self, event: DomainEvent, definitions: Iterable[WorkflowDefinition]
    ) -> list[WorkflowDefinition]:
        """Enabled definitions with at least one matching trigger.

        Targeted events (workflow_id set) only consider that definition.
        Ordered by priority descending, then created_at ascending, then id.
        """
        candidates = [
            d
            for d in definitions
            if d.enabled
            and (event.workflow_id is None or d.id == event.workflow_id)
            and self.definition_matches(d, event)
        ]
        return sorted(
            candidates, key=lambda d: (-d.priority, ensure_utc(d.created_at), d.id)
        )

    def definition_matches(self, definition: WorkflowDefinition, event: DomainEvent) -> bool:
        """Any enabled trigger matches (does not look at definition.enabled)."""
        return any(
            self.trigger_matches(trigger, event, workflow_id=definition.id)
            for trigger in definition.active_triggers()
        )

    def trigger_matches(
        self, trigger: Trigger, event: DomainEvent, *, workflow_id: str | None = None
    ) -> bool:
        if not trigger.enabled or trigger.type != event.type:
            return False
        try:
            parsed = parse_trigger(trigger.type, trigger.config, trigger.enabled)
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed %s trigger on workflow %s: %s",
                trigger.type,
                workflow_id,
                e.errors(include_url=False),
            )
            return False
        check = _CONFIG_CHECKS.get(type(parsed))
        if check is None:
            return True
        try:
            return check(parsed, event)
        except (TypeError, ValueError, ArithmeticError) as e:
            logger.warning(
                "Trigger %s on workflow %s could not be checked against event %s: %s",
                trigger.type,
                workflow_id,
                event.id,
                e,
            )
            return False
