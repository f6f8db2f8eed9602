"""In-memory definition, stats and execution repositories."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from psa_automation.domain.entities.execution import ExecutionRecord, TriggerRef
from psa_automation.domain.entities.workflow import ActionSpec, Trigger, WorkflowDefinition
from psa_automation.domain.exceptions import ResourceNotFoundException
from psa_automation.infrastructure.persistence.repositories import (
    InMemoryExecutionRepository,
    InMemoryWorkflowRepository,
)
from psa_automation.shared.enums import ExecutionStatus

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _definition(workflow_id: str, *, enabled: bool = True, offset: int = 0) -> WorkflowDefinition:
    return WorkflowDefinition(
        id=workflow_id,
        name=workflow_id,
        triggers=[Trigger("TASK_CREATED")],
        actions=[ActionSpec("DELAY", {"seconds": 1})],
        enabled=enabled,
        created_at=T0 + timedelta(minutes=offset),
    )


def _record(workflow_id: str, minutes: int) -> ExecutionRecord:
    started = T0 + timedelta(minutes=minutes)
    return ExecutionRecord(
        workflow_id=workflow_id,
        workflow_version=1,
        triggered_by=TriggerRef("TASK_CREATED", f"evt_{minutes}"),
        started_at=started,
        finished_at=started + timedelta(seconds=1),
        status=ExecutionStatus.SUCCESS,
        action_results=(),
    )


@pytest.mark.asyncio
async def test_add_get_list(workflow_repo: InMemoryWorkflowRepository) -> None:
    await workflow_repo.add(_definition("b", offset=2))
    await workflow_repo.add(_definition("a", offset=1))
    await workflow_repo.add(_definition("off", enabled=False))

    assert (await workflow_repo.get_by_id("a")).id == "a"
    assert await workflow_repo.get_by_id("missing") is None
    assert {d.id for d in await workflow_repo.list_enabled()} == {"a", "b"}
    assert [d.id for d in await workflow_repo.list_all()] == ["off", "a", "b"]
    assert [d.id for d in await workflow_repo.list_all(skip=1, limit=1)] == ["a"]


@pytest.mark.asyncio
async def test_duplicate_add_is_rejected(workflow_repo: InMemoryWorkflowRepository) -> None:
    await workflow_repo.add(_definition("a"))
    with pytest.raises(ValueError):
        await workflow_repo.add(_definition("a"))


@pytest.mark.asyncio
async def test_update_keeps_stats_and_requires_existing(
    workflow_repo: InMemoryWorkflowRepository,
) -> None:
    await workflow_repo.add(_definition("a"))
    await workflow_repo.record_execution("a", ExecutionStatus.SUCCESS, 40, T0)

    changed = _definition("a")
    changed.priority = 7
    updated = await workflow_repo.update(changed)

    assert updated.priority == 7
    assert updated.stats.execution_count == 1
    with pytest.raises(ResourceNotFoundException):
        await workflow_repo.update(_definition("ghost"))


@pytest.mark.asyncio
async def test_delete(workflow_repo: InMemoryWorkflowRepository) -> None:
    await workflow_repo.add(_definition("a"))
    assert await workflow_repo.delete("a") is True
    assert await workflow_repo.delete("a") is False


@pytest.mark.asyncio
async def test_stats_snapshot_is_a_copy(workflow_repo: InMemoryWorkflowRepository) -> None:
    await workflow_repo.add(_definition("a"))
    await workflow_repo.record_execution("a", ExecutionStatus.FAILURE, 10, T0)

    snapshot = await workflow_repo.get_stats("a")
    snapshot.execution_count = 99

    stats = await workflow_repo.get_stats("a")
    assert stats.execution_count == 1
    assert stats.failure_count == 1
    assert await workflow_repo.get_stats("missing") is None


@pytest.mark.asyncio
async def test_concurrent_stats_updates_are_not_lost(
    workflow_repo: InMemoryWorkflowRepository,
) -> None:
    await workflow_repo.add(_definition("a"))

    async def record(i: int) -> None:
        await asyncio.to_thread(
            asyncio.run,
            workflow_repo.record_execution("a", ExecutionStatus.SUCCESS, i, T0),
        )

    await asyncio.gather(*(record(i) for i in range(50)))

    stats = await workflow_repo.get_stats("a")
    assert stats.execution_count == 50
    assert stats.success_count == 50


@pytest.mark.asyncio
async def test_stats_for_unknown_workflow_are_ignored(
    workflow_repo: InMemoryWorkflowRepository,
) -> None:
    await workflow_repo.record_execution("ghost", ExecutionStatus.SUCCESS, 1, T0)
    assert await workflow_repo.get_stats("ghost") is None


@pytest.mark.asyncio
async def test_execution_history(execution_repo: InMemoryExecutionRepository) -> None:
    older, newer, other = _record("a", 1), _record("a", 5), _record("b", 3)
    for record in (older, newer, other):
        await execution_repo.save(record)

    assert await execution_repo.get_by_id(newer.id) is newer
    assert await execution_repo.list_by_workflow("a") == [newer, older]
    assert await execution_repo.list_by_workflow("a", skip=1) == [older]
    assert await execution_repo.count() == 3
    assert await execution_repo.count("b") == 1
    with pytest.raises(ValueError):
        await execution_repo.save(older)
