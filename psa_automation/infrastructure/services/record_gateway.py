"""Record gateway that only logs writes (for deployments without a PSA data layer)."""

from __future__ import annotations

from typing import Any

from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import utc_now
from psa_automation.shared.utils.generators import generate_cuid

logger = get_logger(__name__)


class LogOnlyRecordGateway:
    """IRecordGateway implementation that logs each write and returns a synthetic id.

    Writes are kept in `writes` as (operation, data) tuples.
    """

    def __init__(self) -> None:
        self.writes: list[tuple[str, dict[str, Any]]] = []

    def _record(self, operation: str, data: dict[str, Any]) -> dict[str, Any]:
        result = {"id": generate_cuid(), **data, "recorded_at": utc_now().isoformat()}
        self.writes.append((operation, result))
        logger.info("Record gateway: %s (id=%s)", operation, result["id"])
        logger.debug("Record gateway %s data: %s", operation, data)
        return result

    async def create_task(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._record("create_task", data)

    async def update_entity(
        self, entity_type: str, entity_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        result = self._record(
            "update_entity",
            {"entity_type": entity_type, "entity_id": entity_id, "updates": updates},
        )
        result["id"] = entity_id
        return result

    async def assign_user(
        self, entity_type: str, entity_id: str, user_id: str
    ) -> dict[str, Any]:
        result = self._record(
            "assign_user",
            {"entity_type": entity_type, "entity_id": entity_id, "user_id": user_id},
        )
        result["id"] = entity_id
        return result

    async def create_invoice(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._record("create_invoice", data)

    async def create_notification(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._record("create_notification", data)

    async def add_task_comment(
        self, task_id: str, comment: str, user_id: str | None
    ) -> dict[str, Any]:
        return self._record(
            "add_task_comment", {"task_id": task_id, "comment": comment, "user_id": user_id}
        )
