"""Typed action configs, keyed by action type.

Configs are validated twice: when a definition is saved (placeholders
such as "{{payload.clientEmail}}" are still unresolved, so validation runs
with context {"allow_placeholders": True}) and again right before the
handler runs, after substitution, where typed fields (addresses, URLs,
numbers) must hold real values.
"""

import re
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
)

from psa_automation.domain.enums import ActionType

_PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_E164_RE = re.compile(r"^\+[1-9]\d{7,14}$")

PlaceholderStr = Annotated[str, StringConstraints(pattern=r"^\s*\{\{[^}]+\}\}\s*$")]


def placeholders_allowed(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("allow_placeholders"))


def has_placeholder(value: Any) -> bool:
    return isinstance(value, str) and bool(_PLACEHOLDER_RE.search(value))


def _reject_unresolved(value: Any, info: ValidationInfo) -> Any:
    if isinstance(value, str) and not placeholders_allowed(info):
        raise ValueError(f"unresolved placeholder {value!r}")
    return value


def _http_url(value: str, info: ValidationInfo) -> str:
    if has_placeholder(value) and placeholders_allowed(info):
        return value
    if not value.startswith(("http://", "https://")):
        raise ValueError("url must start with http:// or https://")
    return value


def format_phone_number(value: str) -> str:
    """Normalize to E.164; bare 10-digit numbers are taken as North American."""
    digits = re.sub(r"\D", "", value)
    if value.strip().startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def _listify(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


TemplatedFloat = Annotated[float | PlaceholderStr, AfterValidator(_reject_unresolved)]
TemplatedInt = Annotated[int | PlaceholderStr, AfterValidator(_reject_unresolved)]


class ActionConfigModel(BaseModel):
    """Base for action configs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class SendEmailConfig(ActionConfigModel):
    """Recipients plus either subject/body or a named template."""

    to: list[str] = Field(..., min_length=1)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    subject: str = ""
    body: str = ""
    template: str | None = None
    template_data: dict[str, Any] = Field(default_factory=dict, alias="templateData")

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def _split(cls, v: Any) -> Any:
        return _listify(v)

    @field_validator("to", "cc", "bcc")
    @classmethod
    def _check_addresses(cls, v: list[str], info: ValidationInfo) -> list[str]:
        for address in v:
            if has_placeholder(address) and placeholders_allowed(info):
                continue
            if not _EMAIL_RE.match(address):
                raise ValueError(f"invalid email address {address!r}")
        return v


class CreateTaskConfig(ActionConfigModel):
    title: str = Field(..., min_length=1, max_length=500)
    project_id: str | None = Field(default=None, alias="projectId")
    description: str | None = None
    assignee_id: str | None = Field(default=None, alias="assigneeId")
    priority: str | None = None
    due_date: str | None = Field(default=None, alias="dueDate")
    status: str | None = None
    tags: list[str] = Field(default_factory=list)


class UpdateEntityConfig(ActionConfigModel):
    entity_type: str = Field(..., min_length=1, alias="entityType")
    entity_id: str = Field(..., min_length=1, alias="entityId")
    updates: dict[str, Any] = Field(..., min_length=1)


class CallWebhookConfig(ActionConfigModel):
    url: str = Field(..., min_length=1)
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"] = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    timeout_seconds: float | None = Field(default=None, gt=0, alias="timeout")

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str, info: ValidationInfo) -> str:
        return _http_url(v, info)


class AssignUserConfig(ActionConfigModel):
    entity_type: str = Field(..., min_length=1, alias="entityType")
    entity_id: str = Field(..., min_length=1, alias="entityId")
    user_id: str = Field(..., min_length=1, alias="userId")


class InvoiceItem(ActionConfigModel):
    description: str = Field(..., min_length=1)
    quantity: TemplatedFloat = 1
    unit_price: TemplatedFloat = Field(..., alias="unitPrice")


class CreateInvoiceConfig(ActionConfigModel):
    client_id: str = Field(..., min_length=1, alias="clientId")
    project_id: str | None = Field(default=None, alias="projectId")
    items: list[InvoiceItem] = Field(default_factory=list)
    due_days: TemplatedInt = Field(default=30, alias="dueDays")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    notes: str | None = None


class CreateNotificationConfig(ActionConfigModel):
    user_ids: list[str] = Field(..., min_length=1, alias="userId")
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: Literal["INFO", "SUCCESS", "WARNING", "ERROR"] = "INFO"
    link: str | None = None

    @field_validator("user_ids", mode="before")
    @classmethod
    def _split(cls, v: Any) -> Any:
        return _listify(v)


class SendSlackConfig(ActionConfigModel):
    """Channel id or "#name"; posts through webhookUrl when given, else the Slack Web API."""

    channel: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    webhook_url: str | None = Field(default=None, alias="webhookUrl")

    @field_validator("webhook_url")
    @classmethod
    def _check_url(cls, v: str | None, info: ValidationInfo) -> str | None:
        return v if v is None else _http_url(v, info)


class SendTeamsConfig(ActionConfigModel):
    webhook_url: str = Field(..., min_length=1, alias="webhookUrl")
    title: str = "Notification"
    message: str = Field(..., min_length=1)
    color: str | None = None

    @field_validator("webhook_url")
    @classmethod
    def _check_url(cls, v: str, info: ValidationInfo) -> str:
        return _http_url(v, info)


class SendSmsConfig(ActionConfigModel):
    to: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1, max_length=1600)

    @field_validator("to")
    @classmethod
    def _check_phone(cls, v: str, info: ValidationInfo) -> str:
        if has_placeholder(v) and placeholders_allowed(info):
            return v
        number = format_phone_number(v)
        if not _E164_RE.match(number):
            raise ValueError(f"invalid phone number {v!r}")
        return number


class AddTaskCommentConfig(ActionConfigModel):
    task_id: str = Field(..., min_length=1, alias="taskId")
    comment: str = Field(..., min_length=1)
    user_id: str | None = Field(default=None, alias="userId")


class DelayConfig(ActionConfigModel):
    seconds: TemplatedFloat

    @field_validator("seconds")
    @classmethod
    def _at_least_one_second(cls, v: Any) -> Any:
        if not isinstance(v, str) and v < 1:
            raise ValueError("delay must be at least 1 second")
        return v


ACTION_CONFIG_MODELS: dict[str, type[ActionConfigModel]] = {
    ActionType.SEND_EMAIL.value: SendEmailConfig,
    ActionType.CREATE_TASK.value: CreateTaskConfig,
    ActionType.UPDATE_ENTITY.value: UpdateEntityConfig,
    ActionType.CALL_WEBHOOK.value: CallWebhookConfig,
    ActionType.ASSIGN_USER.value: AssignUserConfig,
    ActionType.CREATE_INVOICE.value: CreateInvoiceConfig,
    ActionType.CREATE_NOTIFICATION.value: CreateNotificationConfig,
    ActionType.DELAY.value: DelayConfig,
    ActionType.SEND_SLACK.value: SendSlackConfig,
    ActionType.SEND_TEAMS.value: SendTeamsConfig,
    ActionType.SEND_SMS.value: SendSmsConfig,
    ActionType.ADD_TASK_COMMENT.value: AddTaskCommentConfig,
}
