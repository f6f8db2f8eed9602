"""Repository interfaces (ports) for definitions, stats and execution history.

Protocols define contracts that infrastructure implements (DIP). The
engine reads definitions, appends execution records and folds stats; it
never edits anything else.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from psa_automation.shared.enums import ExecutionStatus

if TYPE_CHECKING:
    from psa_automation.domain.entities.execution import ExecutionRecord
    from psa_automation.domain.entities.workflow import WorkflowDefinition


class IWorkflowDefinitionRepository(Protocol):
    """Read side of the definition store."""

    async def list_enabled(self) -> list[WorkflowDefinition]:
        """Return every enabled definition."""

    async def get_by_id(self, workflow_id: str) -> WorkflowDefinition | None:
        """Return one definition (enabled or not) or None."""


class IWorkflowStatsStore(Protocol):
    """Per-definition rolling counters. Implementations must be atomic per definition."""

    async def record_execution(
        self,
        workflow_id: str,
        status: ExecutionStatus,
        duration_ms: int,
        finished_at: datetime,
    ) -> None:
        """Fold one finished execution into the definition's stats."""


class IExecutionRepository(Protocol):
    """Execution history sink."""

    async def save(self, record: ExecutionRecord) -> None:
        """Persist a finalized record. Raises on storage failure."""

    async def get_by_id(self, execution_id: str) -> ExecutionRecord | None:
        """Return one record or None."""

    async def list_by_workflow(
        self, workflow_id: str, skip: int = 0, limit: int = 50
    ) -> list[ExecutionRecord]:
        """Return a definition's records, newest first."""
