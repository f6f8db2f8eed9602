"""Service interfaces (ports) used by the built-in action handlers.

Mail delivery and record writes are owned by the surrounding PSA system;
handlers only depend on these contracts.
"""

from __future__ import annotations

from typing import Any, Protocol


class INotificationService(Protocol):
    """Mail delivery (SMTP, queue, provider API)."""

    async def send(
        self,
        to_emails: list[str],
        subject: str,
        body: str,
        *,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
    ) -> None:
        """Send one message to the given recipients."""


class IRecordGateway(Protocol):
    """Writes into PSA records (tasks, comments, invoices, assignments, notifications).

    Each method returns a dict describing what was written (at least an
    "id"); the dict becomes the action's output for later placeholders.
    """

    async def create_task(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a task."""

    async def update_entity(
        self, entity_type: str, entity_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply field updates to a record."""

    async def assign_user(
        self, entity_type: str, entity_id: str, user_id: str
    ) -> dict[str, Any]:
        """Assign a user to a record."""

    async def create_invoice(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a draft invoice."""

    async def create_notification(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create in-app notifications."""

    async def add_task_comment(
        self, task_id: str, comment: str, user_id: str | None
    ) -> dict[str, Any]:
        """Add a comment to a task."""
