"""automation_runtime wiring over the in-memory backend."""

import pytest

from psa_automation.application.dtos.event import DomainEvent
from psa_automation.core.config import Settings
from psa_automation.core.lifespan import _messaging_credentials, automation_runtime
from psa_automation.domain.enums import ActionType
from psa_automation.infrastructure.services import (
    LogOnlyNotificationService,
    LogOnlyRecordGateway,
)
from psa_automation.shared.enums import ExecutionStatus


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, storage_backend="memory", **overrides)


@pytest.mark.asyncio
async def test_runtime_dispatches_saved_definition() -> None:
    notifier = LogOnlyNotificationService()
    gateway = LogOnlyRecordGateway()

    async with automation_runtime(_settings(), notifier=notifier, gateway=gateway) as runtime:
        assert set(runtime.registry.types()) == set(ActionType.values())
        definition = runtime.validator.validate(
            {
                "name": "Follow up on completed projects",
                "triggers": [{"type": "PROJECT_STATUS_CHANGED", "config": {"status": "COMPLETED"}}],
                "actions": [
                    {
                        "type": "CREATE_TASK",
                        "config": {"title": "Send survey for {{payload.name}}", "projectId": "{{entity_id}}"},
                    },
                    {
                        "type": "SEND_EMAIL",
                        "config": {
                            "to": "{{payload.clientEmail}}",
                            "subject": "Task {{steps[0].output.id}} created",
                        },
                    },
                ],
            }
        )
        await runtime.definitions.add(definition)

        [record] = await runtime.engine.dispatch(
            DomainEvent(
                type="PROJECT_STATUS_CHANGED",
                entity_id="proj_7",
                payload={"status": "COMPLETED", "name": "Intranet", "clientEmail": "c@acme.com"},
            )
        )

        assert record.status == ExecutionStatus.SUCCESS
        operation, task = gateway.writes[0]
        assert operation == "create_task"
        assert task["title"] == "Send survey for Intranet"
        assert task["project_id"] == "proj_7"
        assert notifier.sent[0]["subject"] == f"Task {task['id']} created"
        assert (await runtime.definitions.get_stats(definition.id)).success_count == 1

    assert runtime.engine.is_closing


@pytest.mark.asyncio
async def test_runtime_applies_default_retry_policy() -> None:
    settings = _settings(default_max_retries=1, default_retry_delay_seconds=2, default_timeout_seconds=45)

    async with automation_runtime(settings) as runtime:
        definition = runtime.validator.validate(
            {
                "name": "Nudge",
                "triggers": [{"type": "MANUAL"}],
                "actions": [{"type": "DELAY", "config": {"seconds": 1}}],
            }
        )

    assert definition.retry_policy.max_retries == 1
    assert definition.retry_policy.retry_delay_seconds == 2
    assert definition.retry_policy.timeout_seconds == 45
    assert runtime.http_client.is_closed


def test_messaging_credentials_are_unwrapped_from_settings() -> None:
    settings = _settings(
        slack_bot_token="xoxb-1",
        twilio_account_sid="AC1",
        twilio_auth_token="tok",
        twilio_from_number="+15550100000",
    )

    credentials = _messaging_credentials(settings)

    assert "xoxb-1" not in repr(settings)
    assert credentials.slack_bot_token == "xoxb-1"
    assert credentials.twilio_auth_token == "tok"
    assert credentials.twilio_account_sid == "AC1"
    assert _messaging_credentials(_settings()).slack_bot_token is None
