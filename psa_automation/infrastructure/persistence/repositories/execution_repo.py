"""Execution history repository (SQL)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from psa_automation.domain.entities.execution import (
    ActionResult,
    ExecutionRecord,
    TriggerRef,
)
from psa_automation.infrastructure.persistence.models.workflow import WorkflowExecution
from psa_automation.shared.enums import ExecutionStatus


def _to_record(row: WorkflowExecution) -> ExecutionRecord:
    return ExecutionRecord(
        id=row.id,
        workflow_id=row.workflow_id,
        workflow_version=row.workflow_version,
        triggered_by=TriggerRef(row.trigger_event_type, row.trigger_event_id, row.actor_id),
        started_at=row.started_at,
        finished_at=row.finished_at,
        status=ExecutionStatus(row.status),
        action_results=tuple(ActionResult.from_dict(r) for r in row.action_results or []),
        dry_run=row.dry_run,
    )


class SqlExecutionRepository:
    """IExecutionRepository over the workflow_execution table (insert-only)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, record: ExecutionRecord) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    WorkflowExecution(
                        id=record.id,
                        workflow_id=record.workflow_id,
                        workflow_version=record.workflow_version,
                        trigger_event_type=record.triggered_by.event_type,
                        trigger_event_id=record.triggered_by.event_id,
                        actor_id=record.triggered_by.actor_id,
                        status=record.status.value,
                        started_at=record.started_at,
                        finished_at=record.finished_at,
                        duration_ms=record.duration_ms,
                        dry_run=record.dry_run,
                        action_results=[r.to_dict() for r in record.action_results],
                    )
                )

    async def get_by_id(self, execution_id: str) -> ExecutionRecord | None:
        async with self._session_factory() as session:
            row = await session.get(WorkflowExecution, execution_id)
            return _to_record(row) if row is not None else None

    async def list_by_workflow(
        self, workflow_id: str, skip: int = 0, limit: int = 50
    ) -> list[ExecutionRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WorkflowExecution)
                .where(WorkflowExecution.workflow_id == workflow_id)
                .order_by(WorkflowExecution.started_at.desc())
                .offset(skip)
                .limit(limit)
            )
            return [_to_record(row) for row in result.scalars().all()]
