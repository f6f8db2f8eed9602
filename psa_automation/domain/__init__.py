"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from psa_automation.domain.enums import (
    ActionType,
    ConditionOperator,
    LogicalOperator,
    TriggerType,
)
from psa_automation.domain.exceptions import (
    ActionConfigurationException,
    AutomationException,
    EngineShutdownException,
    ExecutionPersistenceException,
    ResourceNotFoundException,
    ScheduleConfigurationException,
    StorageNotConfiguredException,
    UnknownActionTypeException,
    ValidationException,
)

__all__ = [
    "ActionType",
    "ConditionOperator",
    "LogicalOperator",
    "TriggerType",
    "AutomationException",
    "ActionConfigurationException",
    "EngineShutdownException",
    "ExecutionPersistenceException",
    "ResourceNotFoundException",
    "ScheduleConfigurationException",
    "StorageNotConfiguredException",
    "UnknownActionTypeException",
    "ValidationException",
]
