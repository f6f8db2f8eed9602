"""Pre-built workflow definitions users can instantiate and customize."""

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from psa_automation.application.services.workflow_definition_validator import (
    WorkflowDefinitionValidator,
)
from psa_automation.domain.entities.workflow import WorkflowDefinition
from psa_automation.domain.exceptions import ResourceNotFoundException


@dataclass(frozen=True)
class WorkflowTemplate:
    id: str
    name: str
    description: str
    category: str
    definition: dict[str, Any]
    tags: tuple[str, ...] = ()
    difficulty: str = "beginner"
    customization_points: tuple[str, ...] = field(default_factory=tuple)


_TEMPLATES: tuple[WorkflowTemplate, ...] = (
    WorkflowTemplate(
        id="project-created-notification",
        name="New Project Notification",
        description="Email the team when a new project is created.",
        category="project_management",
        tags=("notification", "project", "email"),
        customization_points=("recipient", "email body"),
        definition={
            "triggers": [{"type": "PROJECT_CREATED"}],
            "actions": [
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "team@company.com",
                        "subject": "New Project Created: {{payload.name}}",
                        "body": (
                            "A new project has been created.\n\n"
                            "Project: {{payload.name}}\nClient: {{payload.clientName}}"
                        ),
                    },
                }
            ],
            "priority": 5,
            "maxRetries": 3,
            "retryDelay": 60,
            "timeout": 300,
        },
    ),
    WorkflowTemplate(
        id="project-status-change-alert",
        name="Project Status Change Alert",
        description="Notify the project manager when a project starts, completes or is put on hold.",
        category="project_management",
        tags=("notification", "project", "status"),
        customization_points=("watched statuses",),
        definition={
            "triggers": [{"type": "PROJECT_STATUS_CHANGED"}],
            "conditions": {
                "operator": "OR",
                "conditions": [
                    {"field": "payload.status", "operator": "EQUALS", "value": "IN_PROGRESS"},
                    {"field": "payload.status", "operator": "EQUALS", "value": "COMPLETED"},
                    {"field": "payload.status", "operator": "EQUALS", "value": "ON_HOLD"},
                ],
            },
            "actions": [
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "{{payload.projectManagerEmail}}",
                        "subject": "Project Status Changed: {{payload.name}}",
                        "body": (
                            "Project {{payload.name}} moved from "
                            "{{payload.previousStatus}} to {{payload.status}}."
                        ),
                    },
                },
                {
                    "type": "CREATE_NOTIFICATION",
                    "config": {
                        "userId": "{{payload.projectManagerId}}",
                        "title": "Project Status Updated",
                        "message": "{{payload.name}} is now {{payload.status}}",
                        "type": "INFO",
                    },
                },
            ],
            "priority": 7,
            "maxRetries": 3,
            "retryDelay": 60,
            "timeout": 300,
        },
    ),
    WorkflowTemplate(
        id="task-assignment-notification",
        name="Task Assignment Notification",
        description="Tell users when a task is assigned to them.",
        category="task_management",
        tags=("notification", "task"),
        definition={
            "triggers": [{"type": "TASK_ASSIGNED"}],
            "actions": [
                {
                    "type": "CREATE_NOTIFICATION",
                    "config": {
                        "userId": "{{payload.assigneeId}}",
                        "title": "New Task Assigned",
                        "message": "You have been assigned: {{payload.title}}",
                    },
                },
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "{{payload.assigneeEmail}}",
                        "subject": "New Task Assignment: {{payload.title}}",
                        "body": "Due: {{payload.dueDate}}\nPriority: {{payload.priority}}",
                    },
                },
            ],
            "priority": 6,
        },
    ),
    WorkflowTemplate(
        id="invoice-payment-received",
        name="Payment Received Confirmation",
        description="Thank the client and inform accounting when an invoice is paid.",
        category="invoice_payment",
        tags=("invoice", "payment", "email"),
        definition={
            "triggers": [{"type": "INVOICE_PAID"}],
            "actions": [
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "{{payload.clientEmail}}",
                        "subject": "Payment Received - Invoice #{{payload.invoiceNumber}}",
                        "body": "Thank you, we received {{payload.amount}} {{payload.currency}}.",
                    },
                },
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "accounting@company.com",
                        "subject": "Payment Received: Invoice #{{payload.invoiceNumber}}",
                    },
                },
            ],
            "priority": 6,
        },
    ),
    WorkflowTemplate(
        id="invoice-overdue-reminder",
        name="Overdue Invoice Reminder",
        description="Remind the client about an invoice that is past due.",
        category="invoice_payment",
        tags=("invoice", "reminder"),
        difficulty="intermediate",
        customization_points=("days overdue", "reminder wording"),
        definition={
            "triggers": [{"type": "INVOICE_OVERDUE", "config": {"overdueDays": 1}}],
            "conditions": {"field": "payload.status", "operator": "EQUALS", "value": "SENT"},
            "actions": [
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "{{payload.clientEmail}}",
                        "subject": "Payment Reminder - Invoice #{{payload.invoiceNumber}}",
                        "body": (
                            "Invoice #{{payload.invoiceNumber}} was due on "
                            "{{payload.dueDate}} and is {{payload.daysOverdue}} days overdue."
                        ),
                    },
                }
            ],
            "priority": 7,
            "maxRetries": 2,
            "retryDelay": 120,
        },
    ),
    WorkflowTemplate(
        id="budget-threshold-alert",
        name="Budget Threshold Alert",
        description="Warn the project manager when a project uses 80% of its budget.",
        category="project_management",
        tags=("budget", "alert"),
        difficulty="intermediate",
        customization_points=("threshold percent",),
        definition={
            "triggers": [{"type": "BUDGET_THRESHOLD", "config": {"budgetThreshold": 80}}],
            "actions": [
                {
                    "type": "CREATE_NOTIFICATION",
                    "config": {
                        "userId": "{{payload.projectManagerId}}",
                        "title": "Budget Alert",
                        "message": "{{payload.name}} has used {{payload.budgetPercentage}}% of its budget",
                        "type": "WARNING",
                    },
                }
            ],
            "priority": 8,
        },
    ),
    WorkflowTemplate(
        id="daily-standup-reminder",
        name="Daily Standup Reminder",
        description="Remind the team about the standup every weekday morning.",
        category="team_collaboration",
        tags=("schedule", "team"),
        customization_points=("time", "timezone", "recipients"),
        definition={
            "triggers": [
                {"type": "SCHEDULE", "config": {"schedule": "0 9 * * 1-5", "timezone": "UTC"}}
            ],
            "actions": [
                {
                    "type": "SEND_EMAIL",
                    "config": {
                        "to": "team@company.com",
                        "subject": "Daily Standup in 15 minutes",
                        "body": "Standup starts soon ({{payload.scheduled_for}}).",
                    },
                }
            ],
            "priority": 3,
        },
    ),
)


def list_templates(category: str | None = None) -> list[WorkflowTemplate]:
    if category is None:
        return list(_TEMPLATES)
    return [t for t in _TEMPLATES if t.category == category]


def template_categories() -> list[str]:
    return sorted({t.category for t in _TEMPLATES})


def search_templates(query: str) -> list[WorkflowTemplate]:
    """Case-insensitive match on name, description and tags."""
    needle = query.strip().lower()
    return [
        t
        for t in _TEMPLATES
        if needle in t.name.lower()
        or needle in t.description.lower()
        or any(needle in tag for tag in t.tags)
    ]


def get_template(template_id: str) -> WorkflowTemplate:
    for template in _TEMPLATES:
        if template.id == template_id:
            return template
    raise ResourceNotFoundException("workflow_template", template_id)


def instantiate_template(
    template_id: str,
    *,
    created_by: str | None = None,
    overrides: dict[str, Any] | None = None,
    validator: WorkflowDefinitionValidator | None = None,
) -> WorkflowDefinition:
    """Build a validated definition from a template.

    `overrides` replaces top-level definition fields (name, actions, ...).
    Raises ResourceNotFoundException for unknown ids and ValidationException
    if the overrides make the definition invalid.
    """
    template = get_template(template_id)
    data: dict[str, Any] = {
        "name": template.name,
        "description": template.description,
        "category": template.category,
        "tags": list(template.tags),
        **deepcopy(template.definition),
    }
    if created_by is not None:
        data["createdBy"] = created_by
    data.update(overrides or {})
    return (validator or WorkflowDefinitionValidator()).validate(data)
