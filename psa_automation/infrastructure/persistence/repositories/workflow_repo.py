"""Workflow definition repository (SQL) with the atomic stats update."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from psa_automation.domain.entities.condition import condition_from_dict, condition_to_dict
from psa_automation.domain.entities.workflow import (
    ActionSpec,
    RetryPolicy,
    Trigger,
    WorkflowDefinition,
    WorkflowStats,
)
from psa_automation.domain.exceptions import ResourceNotFoundException
from psa_automation.infrastructure.persistence.models.workflow import Workflow
from psa_automation.shared.enums import ExecutionStatus
from psa_automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def _to_entity(row: Workflow) -> WorkflowDefinition:
    return WorkflowDefinition(
        id=row.id,
        name=row.name,
        description=row.description,
        enabled=row.enabled,
        version=row.version,
        priority=row.priority,
        triggers=[
            Trigger(
                type=t["type"],
                config=t.get("config") or {},
                enabled=t.get("enabled", True),
            )
            for t in row.triggers or []
        ],
        conditions=condition_from_dict(row.conditions),
        actions=[
            ActionSpec(
                type=a["type"],
                config=a.get("config") or {},
                continue_on_error=a.get("continue_on_error"),
                timeout_seconds=a.get("timeout_seconds"),
            )
            for a in row.actions or []
        ],
        retry_policy=RetryPolicy(
            max_retries=row.max_retries,
            retry_delay_seconds=row.retry_delay_seconds,
            timeout_seconds=row.timeout_seconds,
        ),
        continue_on_error=row.continue_on_error,
        stats=WorkflowStats(
            execution_count=row.execution_count,
            success_count=row.success_count,
            failure_count=row.failure_count,
            last_execution_at=row.last_execution_at,
            avg_execution_ms=row.avg_execution_ms,
        ),
        category=row.category,
        tags=list(row.tags or []),
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# Stored JSON that no longer converts (hand edits, older writers)
_MALFORMED_ROW_ERRORS = (ValueError, KeyError, TypeError, AttributeError)


def _to_entities(rows: list[Workflow]) -> list[WorkflowDefinition]:
    """Convert rows, skipping (and logging) any whose stored JSON is malformed."""
    definitions = []
    for row in rows:
        try:
            definitions.append(_to_entity(row))
        except _MALFORMED_ROW_ERRORS as e:
            logger.warning("Skipping malformed workflow %s: %s", row.id, e)
    return definitions


def _definition_columns(definition: WorkflowDefinition) -> dict[str, Any]:
    """Editable columns (everything except id and the rolling stats)."""
    policy = definition.retry_policy
    return {
        "name": definition.name,
        "description": definition.description,
        "enabled": definition.enabled,
        "version": definition.version,
        "priority": definition.priority,
        "triggers": [
            {"type": t.type, "config": t.config, "enabled": t.enabled}
            for t in definition.triggers
        ],
        "conditions": condition_to_dict(definition.conditions),
        "actions": [
            {
                "type": a.type,
                "config": a.config,
                "continue_on_error": a.continue_on_error,
                "timeout_seconds": a.timeout_seconds,
            }
            for a in definition.actions
        ],
        "max_retries": policy.max_retries,
        "retry_delay_seconds": policy.retry_delay_seconds,
        "timeout_seconds": policy.timeout_seconds,
        "continue_on_error": definition.continue_on_error,
        "category": definition.category,
        "tags": list(definition.tags),
        "created_by": definition.created_by,
        "updated_at": definition.updated_at,
    }


class SqlWorkflowRepository:
    """IWorkflowDefinitionRepository and IWorkflowStatsStore over the workflow table.

    Each call runs in its own session and transaction from the factory.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        async with self._session_factory() as session:
            async with session.begin():
                row = Workflow(
                    id=definition.id,
                    created_at=definition.created_at,
                    **_definition_columns(definition),
                )
                session.add(row)
        return definition

    async def update(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """Write the editable columns; stats columns are left untouched."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Workflow)
                    .where(Workflow.id == definition.id)
                    .values(**_definition_columns(definition))
                )
                if result.rowcount == 0:
                    raise ResourceNotFoundException("workflow", definition.id)
        return definition

    async def delete(self, workflow_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Workflow).where(Workflow.id == workflow_id)
                )
        return result.rowcount > 0

    async def get_by_id(self, workflow_id: str) -> WorkflowDefinition | None:
        """The definition, or None when missing or stored malformed."""
        async with self._session_factory() as session:
            row = await session.get(Workflow, workflow_id)
            if row is None:
                return None
            found = _to_entities([row])
            return found[0] if found else None

    async def list_enabled(self) -> list[WorkflowDefinition]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Workflow)
                .where(Workflow.enabled.is_(True))
                .order_by(Workflow.priority.desc(), Workflow.created_at.asc())
            )
            return _to_entities(list(result.scalars().all()))

    async def list_all(self, skip: int = 0, limit: int = 100) -> list[WorkflowDefinition]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Workflow)
                .order_by(Workflow.created_at.asc(), Workflow.id.asc())
                .offset(skip)
                .limit(limit)
            )
            return _to_entities(list(result.scalars().all()))

    async def record_execution(
        self,
        workflow_id: str,
        status: ExecutionStatus,
        duration_ms: int,
        finished_at: datetime,
    ) -> None:
        """Fold one execution into the stats with a single UPDATE.

        Right-hand sides read the pre-update row, and the row lock held by
        the UPDATE serializes concurrent writers of the same definition.
        """
        succeeded = 1 if status == ExecutionStatus.SUCCESS else 0
        failed = 1 if status in (ExecutionStatus.FAILURE, ExecutionStatus.TIMEOUT) else 0
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Workflow)
                    .where(Workflow.id == workflow_id)
                    .values(
                        execution_count=Workflow.execution_count + 1,
                        success_count=Workflow.success_count + succeeded,
                        failure_count=Workflow.failure_count + failed,
                        avg_execution_ms=Workflow.avg_execution_ms
                        + (duration_ms - Workflow.avg_execution_ms)
                        / (Workflow.execution_count + 1),
                        last_execution_at=finished_at,
                    )
                    .execution_options(synchronize_session=False)
                )
        if result.rowcount == 0:
            logger.warning("Stats update for unknown workflow %s ignored", workflow_id)
