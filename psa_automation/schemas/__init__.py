"""Pydantic schemas: definition shape, typed trigger and action configs."""

from psa_automation.schemas.actions import ACTION_CONFIG_MODELS, ActionConfigModel
from psa_automation.schemas.conditions import (
    ConditionGroupSchema,
    ConditionLeafSchema,
    ConditionSchema,
)
from psa_automation.schemas.triggers import TriggerSchema, parse_trigger
from psa_automation.schemas.workflow import (
    ActionSchema,
    WorkflowDefinitionSchema,
)

__all__ = [
    "ACTION_CONFIG_MODELS",
    "ActionConfigModel",
    "ActionSchema",
    "ConditionGroupSchema",
    "ConditionLeafSchema",
    "ConditionSchema",
    "TriggerSchema",
    "WorkflowDefinitionSchema",
    "parse_trigger",
]
