"""Domain entities: workflow definitions, condition trees, execution records."""

from psa_automation.domain.entities.condition import (
    ConditionGroup,
    ConditionLeaf,
    ConditionNode,
    condition_from_dict,
    condition_to_dict,
)
from psa_automation.domain.entities.execution import (
    ActionResult,
    ExecutionRecord,
    TriggerRef,
    derive_execution_status,
)
from psa_automation.domain.entities.workflow import (
    ActionSpec,
    RetryPolicy,
    Trigger,
    WorkflowDefinition,
    WorkflowStats,
)

__all__ = [
    "ActionResult",
    "ActionSpec",
    "ConditionGroup",
    "ConditionLeaf",
    "ConditionNode",
    "ExecutionRecord",
    "RetryPolicy",
    "Trigger",
    "TriggerRef",
    "WorkflowDefinition",
    "WorkflowStats",
    "condition_from_dict",
    "condition_to_dict",
    "derive_execution_status",
]
