"""ORM models (imported here so Base.metadata knows every table)."""

from psa_automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowExecution,
)

__all__ = ["Workflow", "WorkflowExecution"]
