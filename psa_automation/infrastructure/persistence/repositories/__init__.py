"""Repository implementations: in-memory and SQLAlchemy."""

from psa_automation.infrastructure.persistence.repositories.memory import (
    InMemoryExecutionRepository,
    InMemoryWorkflowRepository,
)

__all__ = ["InMemoryExecutionRepository", "InMemoryWorkflowRepository"]
