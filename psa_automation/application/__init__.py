"""Application layer: event DTO, ports, and the automation services.

Depends only on domain, schemas and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories, mail, records).
"""

from psa_automation.application.dtos import DomainEvent
from psa_automation.application.interfaces import (
    IExecutionRepository,
    INotificationService,
    IRecordGateway,
    IWorkflowDefinitionRepository,
    IWorkflowStatsStore,
)
from psa_automation.application.services import (
    ActionExecutor,
    ActionHandlerRegistry,
    ConditionEvaluator,
    TriggerMatcher,
    WorkflowDefinitionValidator,
    WorkflowEngine,
    WorkflowScheduler,
)

__all__ = [
    "ActionExecutor",
    "ActionHandlerRegistry",
    "ConditionEvaluator",
    "DomainEvent",
    "IExecutionRepository",
    "INotificationService",
    "IRecordGateway",
    "IWorkflowDefinitionRepository",
    "IWorkflowStatsStore",
    "TriggerMatcher",
    "WorkflowDefinitionValidator",
    "WorkflowEngine",
    "WorkflowScheduler",
]
