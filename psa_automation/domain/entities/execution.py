"""Execution record and per-action results (immutable audit entries)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from psa_automation.shared.enums import ActionStatus, ExecutionStatus
from psa_automation.shared.utils.datetime import elapsed_ms, parse_datetime
from psa_automation.shared.utils.generators import generate_cuid


@dataclass(frozen=True)
class ActionResult:
    """Terminal outcome of one action slot. Exactly one per slot."""

    action_index: int
    action_type: str
    status: ActionStatus
    output: Any = None
    error: str | None = None
    duration_ms: int = 0
    attempts: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == ActionStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_index": self.action_index,
            "action_type": self.action_type,
            "status": self.status.value,
            "output": self.output,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "attempts": self.attempts,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionResult":
        return cls(
            action_index=int(data["action_index"]),
            action_type=data["action_type"],
            status=ActionStatus(data["status"]),
            output=data.get("output"),
            error=data.get("error"),
            duration_ms=int(data.get("duration_ms") or 0),
            attempts=int(data.get("attempts") or 0),
            started_at=parse_datetime(data.get("started_at")),
            finished_at=parse_datetime(data.get("finished_at")),
        )


@dataclass(frozen=True)
class TriggerRef:
    """What started an execution: event type and id, plus the acting user."""

    event_type: str
    event_id: str
    actor_id: str | None = None


@dataclass(frozen=True)
class ExecutionRecord:
    """Outcome of one definition run for one event. Never mutated."""

    workflow_id: str
    workflow_version: int
    triggered_by: TriggerRef
    started_at: datetime
    finished_at: datetime
    status: ExecutionStatus
    action_results: tuple[ActionResult, ...]
    dry_run: bool = False
    id: str = field(default_factory=generate_cuid)

    @property
    def duration_ms(self) -> int:
        return elapsed_ms(self.started_at, self.finished_at)

    @property
    def failed_actions(self) -> list[ActionResult]:
        return [
            r
            for r in self.action_results
            if r.status in (ActionStatus.FAILURE, ActionStatus.TIMEOUT)
        ]


def derive_execution_status(
    results: list[ActionResult] | tuple[ActionResult, ...],
    *,
    deadline_exceeded: bool = False,
) -> ExecutionStatus:
    """Aggregate slot statuses into the execution status.

    Any CANCELLED slot, or an elapsed deadline with anything short of full
    success, means TIMEOUT.
    Otherwise all SUCCESS is SUCCESS, no SUCCESS is FAILURE, anything in
    between is PARTIAL_FAILURE.
    """
    succeeded = sum(1 for r in results if r.succeeded)
    if any(r.status == ActionStatus.CANCELLED for r in results):
        return ExecutionStatus.TIMEOUT
    if deadline_exceeded and succeeded < len(results):
        return ExecutionStatus.TIMEOUT
    if results and succeeded == len(results):
        return ExecutionStatus.SUCCESS
    if succeeded == 0:
        return ExecutionStatus.FAILURE
    return ExecutionStatus.PARTIAL_FAILURE
