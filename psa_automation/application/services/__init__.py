"""Application services: evaluation, matching, execution, orchestration, scheduling."""

from psa_automation.application.services.action_executor import ActionExecutor
from psa_automation.application.services.action_registry import (
    ActionHandlerRegistry,
    RegisteredAction,
)
from psa_automation.application.services.condition_evaluator import (
    ConditionEvaluator,
    ConditionOutcome,
)
from psa_automation.application.services.scheduler import WorkflowScheduler
from psa_automation.application.services.trigger_matcher import TriggerMatcher
from psa_automation.application.services.workflow_definition_validator import (
    WorkflowDefinitionValidator,
)
from psa_automation.application.services.workflow_engine import (
    WorkflowEngine,
    WorkflowTestResult,
)

__all__ = [
    "ActionExecutor",
    "ActionHandlerRegistry",
    "ConditionEvaluator",
    "ConditionOutcome",
    "RegisteredAction",
    "TriggerMatcher",
    "WorkflowDefinitionValidator",
    "WorkflowEngine",
    "WorkflowScheduler",
    "WorkflowTestResult",
]
