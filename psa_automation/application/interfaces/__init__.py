"""Application interfaces (protocols) for repositories and collaborator services."""

from psa_automation.application.interfaces.repositories import (
    IExecutionRepository,
    IWorkflowDefinitionRepository,
    IWorkflowStatsStore,
)
from psa_automation.application.interfaces.services import (
    INotificationService,
    IRecordGateway,
)

__all__ = [
    "IExecutionRepository",
    "INotificationService",
    "IRecordGateway",
    "IWorkflowDefinitionRepository",
    "IWorkflowStatsStore",
]
