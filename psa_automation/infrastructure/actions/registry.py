"""Wiring of the built-in action handlers into a registry."""

from __future__ import annotations

import httpx

from psa_automation.application.interfaces.services import (
    INotificationService,
    IRecordGateway,
)
from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.domain.enums import ActionType
from psa_automation.infrastructure.actions.delay import DelayAction
from psa_automation.infrastructure.actions.email import SendEmailAction
from psa_automation.infrastructure.actions.messaging import (
    MessagingCredentials,
    SendSlackAction,
    SendSmsAction,
    SendTeamsAction,
)
from psa_automation.infrastructure.actions.records import RecordActions
from psa_automation.infrastructure.actions.webhook import CallWebhookAction
from psa_automation.infrastructure.services.notification_service import (
    LogOnlyNotificationService,
)
from psa_automation.infrastructure.services.record_gateway import LogOnlyRecordGateway
from psa_automation.infrastructure.services.template_renderer import WorkflowTemplateRenderer
from psa_automation.schemas.actions import ACTION_CONFIG_MODELS


def build_default_registry(
    *,
    notifier: INotificationService | None = None,
    gateway: IRecordGateway | None = None,
    http_client: httpx.AsyncClient | None = None,
    renderer: WorkflowTemplateRenderer | None = None,
    credentials: MessagingCredentials | None = None,
    webhook_timeout_seconds: float = 30,
) -> ActionHandlerRegistry:
    """Registry with a handler for every ActionType.

    Collaborators default to the log-only implementations. Slack through
    the bot API and SMS fail with a configuration error until credentials
    are given. Custom handlers can be added (or built-ins replaced with
    replace=True) afterwards.
    """
    registry = ActionHandlerRegistry()
    email = SendEmailAction(
        notifier or LogOnlyNotificationService(), renderer or WorkflowTemplateRenderer()
    )
    webhook = CallWebhookAction(http_client, default_timeout_seconds=webhook_timeout_seconds)
    records = RecordActions(gateway or LogOnlyRecordGateway())
    credentials = credentials or MessagingCredentials()

    handlers = {
        ActionType.SEND_EMAIL: email.handle,
        ActionType.SEND_SLACK: SendSlackAction(
            http_client, credentials, timeout_seconds=webhook_timeout_seconds
        ).handle,
        ActionType.SEND_TEAMS: SendTeamsAction(
            http_client, timeout_seconds=webhook_timeout_seconds
        ).handle,
        ActionType.SEND_SMS: SendSmsAction(
            http_client, credentials, timeout_seconds=webhook_timeout_seconds
        ).handle,
        ActionType.CALL_WEBHOOK: webhook.handle,
        ActionType.CREATE_TASK: records.create_task,
        ActionType.UPDATE_ENTITY: records.update_entity,
        ActionType.ASSIGN_USER: records.assign_user,
        ActionType.CREATE_INVOICE: records.create_invoice,
        ActionType.CREATE_NOTIFICATION: records.create_notification,
        ActionType.ADD_TASK_COMMENT: records.add_task_comment,
        ActionType.DELAY: DelayAction().handle,
    }
    for action_type, handler in handlers.items():
        registry.register(
            action_type, handler, config_model=ACTION_CONFIG_MODELS[action_type.value]
        )
    return registry
