"""SEND_EMAIL handler."""

from __future__ import annotations

from typing import Any

from jinja2 import TemplateError

from psa_automation.application.interfaces.services import INotificationService
from psa_automation.domain.enums import ActionType
from psa_automation.domain.exceptions import ActionConfigurationException
from psa_automation.infrastructure.services.template_renderer import WorkflowTemplateRenderer
from psa_automation.schemas.actions import SendEmailConfig
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class SendEmailAction:
    """Sends one message through the mail service, optionally from a named template."""

    def __init__(
        self,
        notifier: INotificationService,
        renderer: WorkflowTemplateRenderer | None = None,
    ) -> None:
        self._notifier = notifier
        self._renderer = renderer

    def _render(self, config: SendEmailConfig, context: dict[str, Any]) -> tuple[str, str]:
        if not config.template:
            return config.subject, config.body
        if self._renderer is None:
            raise ActionConfigurationException(
                ActionType.SEND_EMAIL.value, "email templates are not available"
            )
        try:
            subject, body = self._renderer.render(
                config.template, context, context.get("payload") or {}, config.template_data
            )
        except KeyError as e:
            raise ActionConfigurationException(
                ActionType.SEND_EMAIL.value,
                f"unknown email template {config.template!r}",
                template=config.template,
            ) from e
        except TemplateError as e:
            raise ActionConfigurationException(
                ActionType.SEND_EMAIL.value,
                f"email template {config.template!r} failed to render: {e}",
                template=config.template,
            ) from e
        # explicit subject/body in the config win over the template
        return config.subject or subject, config.body or body

    async def handle(self, config: SendEmailConfig, context: dict[str, Any]) -> dict[str, Any]:
        subject, body = self._render(config, context)
        await self._notifier.send(
            list(config.to),
            subject,
            body,
            cc=list(config.cc) or None,
            bcc=list(config.bcc) or None,
        )
        logger.debug("SEND_EMAIL delivered to %d recipients", len(config.to))
        return {
            "to": list(config.to),
            "cc": list(config.cc),
            "subject": subject,
            "sent_at": utc_now().isoformat(),
        }
