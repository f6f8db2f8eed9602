"""Pytest configuration and fixtures for psa_automation.

Unit tests run against the in-memory repositories with mocked or
instant handlers. DB-dependent fixtures use
psa_automation.infrastructure.persistence.database and skip when
Postgres is not configured.
"""

import asyncio

import pytest

from psa_automation.application.services.action_executor import ActionExecutor
from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.application.services.workflow_engine import WorkflowEngine
from psa_automation.core.config import get_settings
from psa_automation.infrastructure.persistence import database
from psa_automation.infrastructure.persistence.repositories.memory import (
    InMemoryExecutionRepository,
    InMemoryWorkflowRepository,
)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and yields control once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    """Retry delays without waiting."""
    return RecordingSleep()


@pytest.fixture
def registry() -> ActionHandlerRegistry:
    """Empty registry; tests register the handlers they need."""
    return ActionHandlerRegistry()


@pytest.fixture
def executor(registry: ActionHandlerRegistry, no_sleep: RecordingSleep) -> ActionExecutor:
    return ActionExecutor(registry, sleep=no_sleep)


@pytest.fixture
def workflow_repo() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def execution_repo() -> InMemoryExecutionRepository:
    return InMemoryExecutionRepository()


@pytest.fixture
def engine(
    workflow_repo: InMemoryWorkflowRepository,
    execution_repo: InMemoryExecutionRepository,
    executor: ActionExecutor,
) -> WorkflowEngine:
    """Engine over in-memory storage (the workflow repo is also the stats store)."""
    return WorkflowEngine(workflow_repo, execution_repo, workflow_repo, executor)


@pytest.fixture
async def db_session_factory():
    """Session factory for repository/integration tests; tables are created on demand.

    Requires STORAGE_BACKEND=postgres and DATABASE_URL. Skips (pytest.skip)
    when Postgres is not configured. Use @pytest.mark.requires_db to mark
    tests that need this fixture; run without DB via: pytest -m 'not requires_db'.
    """
    get_settings.cache_clear()
    if get_settings().storage_backend != "postgres":
        pytest.skip(
            "Postgres not configured: set STORAGE_BACKEND=postgres and DATABASE_URL"
        )
    await database.create_schema()
    yield database.get_session_factory()
    await database.dispose_engine()
