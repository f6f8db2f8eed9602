"""Save-time validation of workflow definitions.

Turns a raw definition payload into a WorkflowDefinition, checking the
typed trigger configs, the condition tree and every action config
against its registered model (placeholders tolerated).
"""

from dataclasses import replace
from typing import Any

from pydantic import ValidationError

from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.domain.entities.condition import condition_from_dict, condition_to_dict
from psa_automation.domain.entities.workflow import (
    ActionSpec,
    RetryPolicy,
    Trigger,
    WorkflowDefinition,
)
from psa_automation.domain.enums import ActionType
from psa_automation.domain.exceptions import ValidationException
from psa_automation.schemas.actions import ACTION_CONFIG_MODELS
from psa_automation.schemas.workflow import ActionSchema, WorkflowDefinitionSchema
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import utc_now
from psa_automation.shared.utils.generators import generate_cuid

logger = get_logger(__name__)


def _error_list(error: ValidationError, prefix: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
    return [
        {
            "loc": ".".join(str(p) for p in (*prefix, *item.get("loc", ()))),
            "msg": item.get("msg"),
            "type": item.get("type"),
        }
        for item in error.errors(include_url=False)
    ]


def definition_to_dict(definition: WorkflowDefinition) -> dict[str, Any]:
    """Editable fields of a definition in the shape validate() accepts."""
    policy = definition.retry_policy
    return {
        "name": definition.name,
        "description": definition.description,
        "enabled": definition.enabled,
        "priority": definition.priority,
        "triggers": [
            {"type": t.type, "config": dict(t.config), "enabled": t.enabled}
            for t in definition.triggers
        ],
        "conditions": condition_to_dict(definition.conditions),
        "actions": [
            {
                "type": a.type,
                "config": dict(a.config),
                "continueOnError": a.continue_on_error,
                "timeout": a.timeout_seconds,
            }
            for a in definition.actions
        ],
        "maxRetries": policy.max_retries,
        "retryDelay": policy.retry_delay_seconds,
        "timeout": policy.timeout_seconds,
        "continueOnError": definition.continue_on_error,
        "category": definition.category,
        "tags": list(definition.tags),
        "createdBy": definition.created_by,
    }


def _aliased(changes: dict[str, Any]) -> dict[str, Any]:
    """Rename snake_case keys of aliased schema fields to their alias."""
    out = dict(changes)
    for name, info in WorkflowDefinitionSchema.model_fields.items():
        if info.alias and name in out:
            out[info.alias] = out.pop(name)
    return out


class WorkflowDefinitionValidator:
    """Validates definitions before they are stored.

    With a registry, action types and config models come from it (custom
    handlers included); without one, only the built-in ActionType models
    are known.
    """

    def __init__(
        self,
        registry: ActionHandlerRegistry | None = None,
        *,
        default_policy: RetryPolicy | None = None,
    ) -> None:
        self._registry = registry
        self._default_policy = default_policy or RetryPolicy()

    def validate(
        self,
        data: dict[str, Any],
        *,
        workflow_id: str | None = None,
    ) -> WorkflowDefinition:
        """Validate `data` and build a new definition (version 1).

        Raises:
            ValidationException: with the per-field error list in details["errors"].
        """
        try:
            schema = WorkflowDefinitionSchema.model_validate(data)
        except ValidationError as e:
            raise ValidationException(
                "Invalid workflow definition", errors=_error_list(e)
            ) from e

        errors: list[dict[str, Any]] = []
        actions = self._build_actions(schema.actions, errors)
        if errors:
            raise ValidationException("Invalid workflow actions", field="actions", errors=errors)

        conditions_data: Any = None
        if schema.conditions is not None:
            if isinstance(schema.conditions, list):
                conditions_data = [c.model_dump(mode="json") for c in schema.conditions]
            else:
                conditions_data = schema.conditions.model_dump(mode="json")
        try:
            conditions = condition_from_dict(conditions_data)
        except ValueError as e:
            raise ValidationException(str(e), field="conditions") from e

        default = self._default_policy
        policy = RetryPolicy(
            max_retries=default.max_retries if schema.max_retries is None else schema.max_retries,
            retry_delay_seconds=(
                default.retry_delay_seconds
                if schema.retry_delay_seconds is None
                else schema.retry_delay_seconds
            ),
            timeout_seconds=default.timeout_seconds
            if schema.timeout_seconds is None
            else schema.timeout_seconds,
        )
        now = utc_now()
        return WorkflowDefinition(
            id=workflow_id or generate_cuid(),
            name=schema.name,
            description=schema.description,
            enabled=schema.enabled,
            priority=schema.priority,
            triggers=[
                Trigger(
                    type=t.type,
                    config=t.config.model_dump(by_alias=True, exclude_none=True),
                    enabled=t.enabled,
                )
                for t in schema.triggers
            ],
            conditions=conditions,
            actions=actions,
            retry_policy=policy,
            continue_on_error=schema.continue_on_error,
            category=schema.category,
            tags=list(schema.tags),
            created_by=schema.created_by,
            created_at=now,
            updated_at=now,
        )

    def apply_update(
        self, existing: WorkflowDefinition, changes: dict[str, Any]
    ) -> WorkflowDefinition:
        """Validated edit: merge `changes`, bump the version, keep id/stats/created_at."""
        merged = {**definition_to_dict(existing), **_aliased(changes)}
        updated = self.validate(merged, workflow_id=existing.id)
        logger.debug("Workflow %s updated to version %d", existing.id, existing.version + 1)
        return replace(
            updated,
            version=existing.version + 1,
            stats=existing.stats,
            created_at=existing.created_at,
            updated_at=utc_now(),
        )

    def _build_actions(
        self, actions: list[ActionSchema], errors: list[dict[str, Any]]
    ) -> list[ActionSpec]:
        ordered = sorted(
            enumerate(actions),
            key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]),
        )
        specs: list[ActionSpec] = []
        for index, action in ordered:
            found, model = self._config_model(action.type)
            if not found:
                errors.append(
                    {
                        "loc": f"actions.{index}.type",
                        "msg": f"unknown action type {action.type}",
                        "type": "unknown_action_type",
                    }
                )
                continue
            if model is not None:
                try:
                    model.model_validate(action.config, context={"allow_placeholders": True})
                except ValidationError as e:
                    errors.extend(_error_list(e, ("actions", index, "config")))
                    continue
            specs.append(
                ActionSpec(
                    type=action.type,
                    config=dict(action.config),
                    continue_on_error=action.continue_on_error,
                    timeout_seconds=action.timeout_seconds,
                )
            )
        return specs

    def _config_model(self, action_type: str) -> tuple[bool, Any]:
        if self._registry is not None:
            if action_type not in self._registry:
                return False, None
            return True, self._registry.get(action_type).config_model
        if action_type not in ActionType.values():
            return False, None
        return True, ACTION_CONFIG_MODELS.get(action_type)
