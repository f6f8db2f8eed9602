"""WorkflowDefinitionValidator: save-time checks, defaults and versioned updates."""

from datetime import UTC, datetime

import pytest

from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.application.services.workflow_definition_validator import (
    WorkflowDefinitionValidator,
    definition_to_dict,
)
from psa_automation.domain.entities.condition import ConditionGroup, ConditionLeaf
from psa_automation.domain.entities.workflow import RetryPolicy, WorkflowStats
from psa_automation.domain.exceptions import ValidationException
from psa_automation.shared.enums import ExecutionStatus


def _payload(**overrides) -> dict:
    data = {
        "name": "Invoice paid thank-you",
        "triggers": [{"type": "INVOICE_PAID"}],
        "actions": [
            {
                "type": "SEND_EMAIL",
                "config": {"to": "{{payload.clientEmail}}", "subject": "Thanks!"},
            }
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture
def validator() -> WorkflowDefinitionValidator:
    return WorkflowDefinitionValidator(
        default_policy=RetryPolicy(max_retries=2, retry_delay_seconds=30, timeout_seconds=120)
    )


def test_valid_definition_with_placeholders(validator: WorkflowDefinitionValidator) -> None:
    definition = validator.validate(_payload(priority=4, tags=["billing"]))

    assert definition.id
    assert definition.version == 1
    assert definition.priority == 4
    assert definition.triggers[0].type == "INVOICE_PAID"
    assert definition.actions[0].config["to"] == "{{payload.clientEmail}}"
    assert definition.conditions is None
    assert definition.tags == ["billing"]
    assert definition.created_at == definition.updated_at


def test_default_retry_policy_fills_gaps(validator: WorkflowDefinitionValidator) -> None:
    defaults = validator.validate(_payload()).retry_policy
    explicit = validator.validate(_payload(maxRetries=0, retryDelay=5, timeout=10)).retry_policy

    assert defaults == RetryPolicy(max_retries=2, retry_delay_seconds=30, timeout_seconds=120)
    assert explicit == RetryPolicy(max_retries=0, retry_delay_seconds=5, timeout_seconds=10)


def test_conditions_become_a_tree(validator: WorkflowDefinitionValidator) -> None:
    definition = validator.validate(
        _payload(
            conditions={
                "operator": "and",
                "conditions": [
                    {"field": "payload.amount", "operator": "greater_than", "value": 100},
                    {"field": "payload.currency", "operator": "IN", "value": ["USD", "EUR"]},
                ],
            }
        )
    )

    assert definition.conditions == ConditionGroup(
        "AND",
        (
            ConditionLeaf("payload.amount", "GREATER_THAN", 100),
            ConditionLeaf("payload.currency", "IN", ["USD", "EUR"]),
        ),
    )


def test_actions_follow_explicit_order(validator: WorkflowDefinitionValidator) -> None:
    definition = validator.validate(
        _payload(
            actions=[
                {"type": "DELAY", "config": {"seconds": 5}, "order": 2},
                {"type": "create_task", "config": {"title": "Follow up"}, "order": 1},
                {"type": "CREATE_NOTIFICATION", "config": {"userId": "u1", "title": "t", "message": "m"}},
            ]
        )
    )

    assert [a.type for a in definition.actions] == ["CREATE_TASK", "DELAY", "CREATE_NOTIFICATION"]


def test_trigger_config_is_normalized(validator: WorkflowDefinitionValidator) -> None:
    definition = validator.validate(
        _payload(
            triggers=[
                {"type": "BUDGET_THRESHOLD", "config": {"budgetThreshold": 75}},
                {"type": "WEBHOOK", "config": {"path": "hooks/billing/"}},
            ]
        )
    )

    assert definition.triggers[0].config == {"budgetThreshold": 75.0}
    assert definition.triggers[1].config == {"path": "/hooks/billing"}


@pytest.mark.parametrize(
    ("overrides", "location"),
    [
        ({"name": "x"}, "name"),
        ({"triggers": []}, "triggers"),
        ({"actions": []}, "actions"),
        ({"triggers": [{"type": "SCHEDULE", "config": {"schedule": "never"}}]}, "triggers.0"),
        ({"triggers": [{"type": "NOT_A_TRIGGER"}]}, "triggers.0"),
        ({"conditions": {"field": "payload.x", "operator": "IN", "value": "a"}}, "conditions"),
        ({"conditions": {"operator": "AND", "conditions": []}}, "conditions"),
        ({"maxRetries": 11}, "maxRetries"),
    ],
)
def test_invalid_definitions_report_errors(
    validator: WorkflowDefinitionValidator, overrides: dict, location: str
) -> None:
    with pytest.raises(ValidationException) as exc_info:
        validator.validate(_payload(**overrides))

    errors = exc_info.value.details["errors"]
    assert any(e["loc"].startswith(location) for e in errors)


def test_unknown_action_type_and_bad_config(validator: WorkflowDefinitionValidator) -> None:
    with pytest.raises(ValidationException) as exc_info:
        validator.validate(
            _payload(
                actions=[
                    {"type": "POST_TO_SLACK"},
                    {"type": "CALL_WEBHOOK", "config": {"url": "ftp://nope"}},
                ]
            )
        )

    details = exc_info.value.details
    assert details["field"] == "actions"
    locations = [e["loc"] for e in details["errors"]]
    assert "actions.0.type" in locations
    assert any(loc.startswith("actions.1.config") for loc in locations)


def test_registry_allows_custom_action_types() -> None:
    registry = ActionHandlerRegistry()
    registry.register("POST_TO_SLACK", lambda config, context: None)
    validator = WorkflowDefinitionValidator(registry)

    definition = validator.validate(_payload(actions=[{"type": "post_to_slack", "config": {"channel": "#ops"}}]))

    assert definition.actions[0].type == "POST_TO_SLACK"
    with pytest.raises(ValidationException):
        validator.validate(_payload())


def test_apply_update_bumps_version_and_keeps_identity(
    validator: WorkflowDefinitionValidator,
) -> None:
    created = datetime(2024, 1, 1, tzinfo=UTC)
    existing = validator.validate(_payload(priority=1), workflow_id="wf_1")
    existing.created_at = created
    existing.stats = WorkflowStats()
    existing.stats.record(ExecutionStatus.SUCCESS, 120, created)

    updated = validator.apply_update(existing, {"priority": 9, "continue_on_error": False})

    assert updated.id == "wf_1"
    assert updated.version == 2
    assert updated.priority == 9
    assert updated.continue_on_error is False
    assert updated.actions == existing.actions
    assert updated.stats.execution_count == 1
    assert updated.created_at == created
    assert updated.updated_at > created


def test_apply_update_validates_the_merged_definition(
    validator: WorkflowDefinitionValidator,
) -> None:
    existing = validator.validate(_payload(), workflow_id="wf_1")

    with pytest.raises(ValidationException):
        validator.apply_update(existing, {"actions": [{"type": "SEND_EMAIL", "config": {"to": "bad"}}]})


def test_definition_to_dict_round_trips(validator: WorkflowDefinitionValidator) -> None:
    original = validator.validate(
        _payload(
            conditions={"field": "payload.amount", "operator": "GREATER_THAN", "value": 1},
            continueOnError=False,
            category="billing",
        ),
        workflow_id="wf_1",
    )

    again = validator.validate(definition_to_dict(original), workflow_id="wf_1")

    assert again.conditions == original.conditions
    assert again.actions == original.actions
    assert again.triggers == original.triggers
    assert again.retry_policy == original.retry_policy
    assert again.continue_on_error is False
    assert again.category == "billing"
