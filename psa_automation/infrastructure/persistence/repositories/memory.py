"""In-process repositories (storage_backend = "memory").

Definitions are held as entities; stats updates take a lock scoped to the
definition, so concurrent dispatches of one workflow never lose increments
while different workflows never contend.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime

from psa_automation.domain.entities.execution import ExecutionRecord
from psa_automation.domain.entities.workflow import WorkflowDefinition, WorkflowStats
from psa_automation.domain.exceptions import ResourceNotFoundException
from psa_automation.shared.enums import ExecutionStatus
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import ensure_utc

logger = get_logger(__name__)


class InMemoryWorkflowRepository:
    """Definition store and stats store backed by a dict."""

    def __init__(self, definitions: list[WorkflowDefinition] | None = None) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        for definition in definitions or []:
            self._definitions[definition.id] = definition

    def _lock_for(self, workflow_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(workflow_id)
            if lock is None:
                lock = self._locks[workflow_id] = threading.Lock()
            return lock

    async def add(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        if definition.id in self._definitions:
            raise ValueError(f"Workflow {definition.id} already exists")
        self._definitions[definition.id] = definition
        return definition

    async def update(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """Replace the stored definition; stats stay with the stored copy."""
        with self._lock_for(definition.id):
            current = self._definitions.get(definition.id)
            if current is None:
                raise ResourceNotFoundException("workflow", definition.id)
            updated = replace(definition, stats=current.stats)
            self._definitions[definition.id] = updated
        return updated

    async def delete(self, workflow_id: str) -> bool:
        with self._registry_lock:
            self._locks.pop(workflow_id, None)
        return self._definitions.pop(workflow_id, None) is not None

    async def get_by_id(self, workflow_id: str) -> WorkflowDefinition | None:
        return self._definitions.get(workflow_id)

    async def list_enabled(self) -> list[WorkflowDefinition]:
        return [d for d in self._definitions.values() if d.enabled]

    async def list_all(self, skip: int = 0, limit: int = 100) -> list[WorkflowDefinition]:
        ordered = sorted(self._definitions.values(), key=lambda d: (ensure_utc(d.created_at), d.id))
        return ordered[skip : skip + limit]

    async def get_stats(self, workflow_id: str) -> WorkflowStats | None:
        definition = self._definitions.get(workflow_id)
        if definition is None:
            return None
        with self._lock_for(workflow_id):
            return replace(definition.stats)

    async def record_execution(
        self,
        workflow_id: str,
        status: ExecutionStatus,
        duration_ms: int,
        finished_at: datetime,
    ) -> None:
        definition = self._definitions.get(workflow_id)
        if definition is None:
            logger.warning("Stats update for unknown workflow %s ignored", workflow_id)
            return
        with self._lock_for(workflow_id):
            definition.stats.record(status, duration_ms, finished_at)


class InMemoryExecutionRepository:
    """Append-only execution history."""

    def __init__(self) -> None:
        self._records: dict[str, ExecutionRecord] = {}
        self._lock = threading.Lock()

    async def save(self, record: ExecutionRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Execution {record.id} already recorded")
            self._records[record.id] = record

    async def get_by_id(self, execution_id: str) -> ExecutionRecord | None:
        return self._records.get(execution_id)

    async def list_by_workflow(
        self, workflow_id: str, skip: int = 0, limit: int = 50
    ) -> list[ExecutionRecord]:
        records = [r for r in self._records.values() if r.workflow_id == workflow_id]
        records.sort(key=lambda r: ensure_utc(r.started_at), reverse=True)
        return records[skip : skip + limit]

    async def count(self, workflow_id: str | None = None) -> int:
        if workflow_id is None:
            return len(self._records)
        return sum(1 for r in self._records.values() if r.workflow_id == workflow_id)
