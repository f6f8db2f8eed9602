"""Typed trigger configs: one variant per trigger type, discriminated on `type`.

Config keys accept both snake_case and the camelCase names used by the
definition editor (e.g. budgetThreshold). Unknown config keys are ignored.
"""

from typing import Annotated, Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class TriggerConfigModel(BaseModel):
    """Base for trigger configs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class EmptyTriggerConfig(TriggerConfigModel):
    """Triggers that match on type alone."""


class StatusTriggerConfig(TriggerConfigModel):
    statuses: list[str] = Field(default_factory=list, alias="status")

    @field_validator("statuses", mode="before")
    @classmethod
    def _listify(cls, v: Any) -> Any:
        return [v] if isinstance(v, str) else v


class PriorityTriggerConfig(TriggerConfigModel):
    priorities: list[str] = Field(default_factory=list, alias="priority")

    @field_validator("priorities", mode="before")
    @classmethod
    def _listify(cls, v: Any) -> Any:
        return [v] if isinstance(v, str) else v


class TaskAssignedTriggerConfig(TriggerConfigModel):
    assignee_id: str | None = Field(default=None, alias="assigneeId")


class MilestoneTriggerConfig(TriggerConfigModel):
    milestone_id: str | None = Field(default=None, alias="milestoneId")


class DeadlineTriggerConfig(TriggerConfigModel):
    days_before: int | None = Field(default=None, ge=0, alias="deadlineDays")


class BudgetThresholdTriggerConfig(TriggerConfigModel):
    threshold_percent: float = Field(..., gt=0, alias="budgetThreshold")


class InvoiceOverdueTriggerConfig(TriggerConfigModel):
    overdue_days: int | None = Field(default=None, ge=0, alias="overdueDays")


class PaymentReceivedTriggerConfig(TriggerConfigModel):
    amount_threshold: float | None = Field(default=None, ge=0, alias="amountThreshold")


class WebhookTriggerConfig(TriggerConfigModel):
    path: str = Field(..., min_length=1, max_length=512)

    @field_validator("path")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_routing_path(v)


class ScheduleTriggerConfig(TriggerConfigModel):
    """Cron expression evaluated in an IANA timezone (default UTC)."""

    cron: str = Field(..., min_length=1, alias="schedule")
    timezone: str = "UTC"

    @field_validator("cron")
    @classmethod
    def _check_cron(cls, v: str) -> str:
        v = v.strip()
        if not croniter.is_valid(v):
            raise ValueError(f"invalid cron expression: {v!r}")
        return v

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v!r}") from e
        return v


def normalize_routing_path(path: str) -> str:
    """Single leading slash, no trailing slash (hooks/x/ -> /hooks/x)."""
    return "/" + path.strip().strip("/")


class _TriggerSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True


class StatusChangedTrigger(_TriggerSchema):
    type: Literal["PROJECT_STATUS_CHANGED", "TASK_STATUS_CHANGED"]
    config: StatusTriggerConfig = Field(default_factory=StatusTriggerConfig)


class PriorityChangedTrigger(_TriggerSchema):
    type: Literal["TASK_PRIORITY_CHANGED"]
    config: PriorityTriggerConfig = Field(default_factory=PriorityTriggerConfig)


class TaskAssignedTrigger(_TriggerSchema):
    type: Literal["TASK_ASSIGNED"]
    config: TaskAssignedTriggerConfig = Field(default_factory=TaskAssignedTriggerConfig)


class MilestoneReachedTrigger(_TriggerSchema):
    type: Literal["PROJECT_MILESTONE_REACHED"]
    config: MilestoneTriggerConfig = Field(default_factory=MilestoneTriggerConfig)


class DeadlineApproachingTrigger(_TriggerSchema):
    type: Literal["PROJECT_DEADLINE_APPROACHING"]
    config: DeadlineTriggerConfig = Field(default_factory=DeadlineTriggerConfig)


class BudgetThresholdTrigger(_TriggerSchema):
    type: Literal["BUDGET_THRESHOLD"]
    config: BudgetThresholdTriggerConfig


class InvoiceOverdueTrigger(_TriggerSchema):
    type: Literal["INVOICE_OVERDUE"]
    config: InvoiceOverdueTriggerConfig = Field(default_factory=InvoiceOverdueTriggerConfig)


class PaymentReceivedTrigger(_TriggerSchema):
    type: Literal["PAYMENT_RECEIVED"]
    config: PaymentReceivedTriggerConfig = Field(default_factory=PaymentReceivedTriggerConfig)


class WebhookTrigger(_TriggerSchema):
    type: Literal["WEBHOOK"]
    config: WebhookTriggerConfig


class ScheduleTrigger(_TriggerSchema):
    type: Literal["SCHEDULE"]
    config: ScheduleTriggerConfig


class PlainTrigger(_TriggerSchema):
    type: Literal[
        "PROJECT_CREATED",
        "TASK_CREATED",
        "TASK_COMPLETED",
        "TASK_OVERDUE",
        "INVOICE_CREATED",
        "INVOICE_SENT",
        "INVOICE_PAID",
        "CLIENT_CREATED",
        "CLIENT_UPDATED",
        "TEAM_MEMBER_ADDED",
        "TEAM_MEMBER_REMOVED",
        "MANUAL",
    ]
    config: EmptyTriggerConfig = Field(default_factory=EmptyTriggerConfig)


TriggerSchema = Annotated[
    StatusChangedTrigger
    | PriorityChangedTrigger
    | TaskAssignedTrigger
    | MilestoneReachedTrigger
    | DeadlineApproachingTrigger
    | BudgetThresholdTrigger
    | InvoiceOverdueTrigger
    | PaymentReceivedTrigger
    | WebhookTrigger
    | ScheduleTrigger
    | PlainTrigger,
    Field(discriminator="type"),
]

trigger_adapter: TypeAdapter[Any] = TypeAdapter(TriggerSchema)


def parse_trigger(trigger_type: str, config: dict[str, Any] | None, enabled: bool = True) -> Any:
    """Validate one trigger into its typed variant. Raises pydantic.ValidationError."""
    return trigger_adapter.validate_python(
        {"type": trigger_type, "config": config or {}, "enabled": enabled}
    )
