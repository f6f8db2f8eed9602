"""Record-writing handlers: tasks, comments, entity updates, assignments, invoices, notifications."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from psa_automation.application.interfaces.services import IRecordGateway
from psa_automation.schemas.actions import (
    AddTaskCommentConfig,
    AssignUserConfig,
    CreateInvoiceConfig,
    CreateNotificationConfig,
    CreateTaskConfig,
    UpdateEntityConfig,
)
from psa_automation.shared.utils.datetime import utc_now


class RecordActions:
    """Translates typed configs into IRecordGateway calls; the gateway's result is the output."""

    def __init__(self, gateway: IRecordGateway) -> None:
        self._gateway = gateway

    async def create_task(self, config: CreateTaskConfig, context: dict[str, Any]) -> dict[str, Any]:
        data = config.model_dump(exclude_none=True)
        data.setdefault("source_event_id", context.get("id"))
        return await self._gateway.create_task(data)

    async def update_entity(
        self, config: UpdateEntityConfig, context: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._gateway.update_entity(
            config.entity_type, config.entity_id, dict(config.updates)
        )

    async def assign_user(self, config: AssignUserConfig, context: dict[str, Any]) -> dict[str, Any]:
        return await self._gateway.assign_user(
            config.entity_type, config.entity_id, config.user_id
        )

    async def create_invoice(
        self, config: CreateInvoiceConfig, context: dict[str, Any]
    ) -> dict[str, Any]:
        items = [
            {
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "amount": round(float(item.quantity) * float(item.unit_price), 2),
            }
            for item in config.items
        ]
        data = {
            "client_id": config.client_id,
            "project_id": config.project_id,
            "items": items,
            "total": round(sum(i["amount"] for i in items), 2),
            "currency": config.currency.upper(),
            "due_date": (utc_now() + timedelta(days=int(config.due_days))).date().isoformat(),
            "notes": config.notes,
            "status": "DRAFT",
        }
        return await self._gateway.create_invoice(data)

    async def create_notification(
        self, config: CreateNotificationConfig, context: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._gateway.create_notification(config.model_dump(exclude_none=True))

    async def add_task_comment(
        self, config: AddTaskCommentConfig, context: dict[str, Any]
    ) -> dict[str, Any]:
        user_id = config.user_id or context.get("actor_id")
        return await self._gateway.add_task_comment(config.task_id, config.comment, user_id)
