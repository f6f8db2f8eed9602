"""Workflow definition domain entity.

A definition is a set of triggers (any of which starts it), an optional
condition tree, and an ordered action chain with retry policy. The engine
only reads definitions; it writes nothing but the rolling stats.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from psa_automation.domain.entities.condition import ConditionNode
from psa_automation.shared.enums import ExecutionStatus
from psa_automation.shared.utils.datetime import utc_now


@dataclass
class Trigger:
    """Event kind (TriggerType value) plus type-specific config."""

    type: str
    config: dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.type, Enum):
            self.type = self.type.value


@dataclass
class ActionSpec:
    """One slot of the action chain.

    continue_on_error and timeout_seconds override the definition-level
    flag and the retry policy timeout when set.
    """

    type: str
    config: dict[str, Any] = field(default_factory=dict)
    continue_on_error: bool | None = None
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if isinstance(self.type, Enum):
            self.type = self.type.value


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry and per-attempt/overall timeout."""

    max_retries: int = 3
    retry_delay_seconds: float = 60
    timeout_seconds: float = 300


@dataclass
class WorkflowStats:
    """Rolling execution counters for one definition."""

    execution_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_execution_at: datetime | None = None
    avg_execution_ms: float = 0.0

    def record(
        self, status: ExecutionStatus, duration_ms: int, finished_at: datetime
    ) -> None:
        """Fold one finished execution into the counters (incremental mean)."""
        self.execution_count += 1
        if status == ExecutionStatus.SUCCESS:
            self.success_count += 1
        elif status in (ExecutionStatus.FAILURE, ExecutionStatus.TIMEOUT):
            self.failure_count += 1
        self.avg_execution_ms += (duration_ms - self.avg_execution_ms) / self.execution_count
        self.last_execution_at = finished_at

    @property
    def success_rate(self) -> float:
        if not self.execution_count:
            return 0.0
        return self.success_count / self.execution_count


@dataclass
class WorkflowDefinition:
    """Domain entity for a workflow definition."""

    id: str
    name: str
    triggers: list[Trigger]
    actions: list[ActionSpec]
    description: str | None = None
    enabled: bool = True
    version: int = 1
    priority: int = 0
    conditions: ConditionNode | None = None
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    continue_on_error: bool = True
    stats: WorkflowStats = field(default_factory=WorkflowStats)
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    created_by: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def active_triggers(self) -> list[Trigger]:
        """Triggers that can start this definition (enabled ones)."""
        return [t for t in self.triggers if t.enabled]

    def has_trigger_type(self, trigger_type: str) -> bool:
        return any(t.type == trigger_type for t in self.active_triggers())
