"""Email templates for SEND_EMAIL actions: template key -> subject/body (Jinja)."""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined, Template

# In-repo template definitions: key -> (subject_template, body_template)
# Context: event (evaluation context), payload (event payload), data (action templateData)
_DEFAULT_TEMPLATES: dict[str, tuple[str, str]] = {
    "project_status_changed": (
        "Project {{ payload.get('name', '') }} is now {{ payload.get('status', 'N/A') }}",
        "The project status changed from {{ payload.get('previousStatus', 'N/A') }} "
        "to {{ payload.get('status', 'N/A') }}.\n"
        "{% if data.get('note') %}\n{{ data.note }}\n{% endif %}",
    ),
    "invoice_overdue": (
        "Payment reminder: invoice {{ payload.get('invoiceNumber', '') }}",
        "Invoice {{ payload.get('invoiceNumber', '') }} for {{ payload.get('amount', 'N/A') }} "
        "{{ payload.get('currency', '') }} was due on {{ payload.get('dueDate', 'N/A') }}.",
    ),
    "task_assigned": (
        "New task assigned: {{ payload.get('title', '') }}",
        "You have been assigned {{ payload.get('title', 'a task') }}"
        "{% if payload.get('dueDate') %} (due {{ payload.dueDate }}){% endif %}.",
    ),
    "workflow_notification": (
        "Workflow: {{ data.get('title') or payload.get('title', 'Notification') }}",
        "Event type: {{ event.get('type', 'N/A') }}\nPayload: {{ payload }}",
    ),
}


class WorkflowTemplateRenderer:
    """Renders subject and body for the SEND_EMAIL action from a template key."""

    def __init__(
        self,
        templates: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        """Initialize with optional template dict; falls back to _DEFAULT_TEMPLATES."""
        self._templates = templates or _DEFAULT_TEMPLATES
        self._env = Environment(autoescape=False, undefined=StrictUndefined)
        self._compiled: dict[str, tuple[Template, Template]] = {}
        for key, (sub_str, body_str) in self._templates.items():
            self._compiled[key] = (
                self._env.from_string(sub_str),
                self._env.from_string(body_str),
            )

    def keys(self) -> list[str]:
        return sorted(self._compiled)

    def render(
        self,
        template_key: str,
        event: dict[str, Any],
        payload: dict[str, Any],
        data: dict[str, Any] | None = None,
    ) -> tuple[str, str]:
        """Render subject and body for the template key.

        Raises KeyError if the key is unknown and jinja2 TemplateError if
        rendering fails (e.g. an undefined variable).
        """
        if template_key not in self._compiled:
            raise KeyError(f"Unknown workflow template: {template_key}")
        ctx = {
            "event": event,
            "payload": payload,
            "data": data or {},
        }
        subject_tpl, body_tpl = self._compiled[template_key]
        subject = subject_tpl.render(**ctx)
        body = body_tpl.render(**ctx)
        return subject, body

