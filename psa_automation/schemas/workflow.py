"""Workflow definition schemas (save-time shape of a definition)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from psa_automation.schemas.conditions import ConditionSchema
from psa_automation.schemas.triggers import TriggerSchema


class ActionSchema(BaseModel):
    """One action slot. `config` is checked against the type's config model separately."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(..., min_length=1, max_length=128)
    config: dict[str, Any] = Field(default_factory=dict)
    order: int | None = None
    continue_on_error: bool | None = Field(default=None, alias="continueOnError")
    timeout_seconds: float | None = Field(default=None, gt=0, alias="timeout")

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class WorkflowDefinitionSchema(BaseModel):
    """Request body for creating or replacing a workflow definition."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., min_length=3, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    enabled: bool = True
    priority: int = Field(default=0, ge=-1000, le=1000)
    triggers: list[TriggerSchema] = Field(..., min_length=1)
    conditions: ConditionSchema | list[ConditionSchema] | None = None
    actions: list[ActionSchema] = Field(..., min_length=1)
    max_retries: int | None = Field(default=None, ge=0, le=10, alias="maxRetries")
    retry_delay_seconds: float | None = Field(default=None, ge=0, alias="retryDelay")
    timeout_seconds: float | None = Field(default=None, gt=0, alias="timeout")
    continue_on_error: bool = Field(default=True, alias="continueOnError")
    category: str | None = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list)
    created_by: str | None = Field(default=None, alias="createdBy")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if len(stripped) < 3:
            raise ValueError("name must be at least 3 characters")
        return stripped

