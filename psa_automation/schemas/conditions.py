"""Condition tree schemas (save-time validation of definitions)."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from psa_automation.domain.enums import ConditionOperator, LogicalOperator


def _upper(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


class ConditionLeafSchema(BaseModel):
    """Leaf comparison: value at `field` (dot path) versus `value`."""

    model_config = ConfigDict(extra="forbid")

    field: str = Field(..., min_length=1, max_length=255)
    operator: ConditionOperator
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, v: Any) -> Any:
        return _upper(v)

    @model_validator(mode="after")
    def _check_value_shape(self) -> ConditionLeafSchema:
        op = self.operator
        if op in (ConditionOperator.IN, ConditionOperator.NOT_IN):
            if not isinstance(self.value, list):
                raise ValueError(f"{op.value} requires a list value")
        elif op == ConditionOperator.BETWEEN:
            if not isinstance(self.value, list) or len(self.value) != 2:
                raise ValueError("BETWEEN requires a [low, high] list value")
        elif op == ConditionOperator.MATCHES_REGEX:
            if not isinstance(self.value, str):
                raise ValueError("MATCHES_REGEX requires a string pattern")
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"invalid regular expression: {e}") from e
        return self


class ConditionGroupSchema(BaseModel):
    """AND / OR / NOT over a non-empty list of children."""

    model_config = ConfigDict(extra="forbid")

    operator: LogicalOperator
    conditions: list[ConditionLeafSchema | ConditionGroupSchema] = Field(..., min_length=1)

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, v: Any) -> Any:
        return _upper(v)


ConditionSchema = ConditionLeafSchema | ConditionGroupSchema

ConditionGroupSchema.model_rebuild()
