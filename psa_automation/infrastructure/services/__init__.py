"""Default collaborator implementations used by the built-in action handlers."""

from psa_automation.infrastructure.services.notification_service import (
    LogOnlyNotificationService,
)
from psa_automation.infrastructure.services.record_gateway import LogOnlyRecordGateway
from psa_automation.infrastructure.services.template_renderer import (
    WorkflowTemplateRenderer,
)

__all__ = [
    "LogOnlyNotificationService",
    "LogOnlyRecordGateway",
    "WorkflowTemplateRenderer",
]
