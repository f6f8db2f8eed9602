"""Inbound domain event contract (no dependency on ORM or schemas)."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from psa_automation.shared.utils.datetime import utc_now
from psa_automation.shared.utils.generators import generate_cuid


@dataclass(frozen=True)
class DomainEvent:
    """A state change emitted by the PSA data layer (project, task, invoice...).

    routing_path is set for WEBHOOK events (matched against the trigger's
    path). workflow_id targets one definition only; the scheduler and
    manual runs use it.
    """

    type: str
    entity_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    actor_id: str | None = None
    occurred_at: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=generate_cuid)
    routing_path: str | None = None
    workflow_id: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.type, Enum):
            object.__setattr__(self, "type", self.type.value)

    def to_context(self) -> dict[str, Any]:
        """Evaluation context for conditions and placeholders.

        Paths such as "payload.status" address it; "entity" is an alias of
        the payload for templates written against the entity.
        """
        return {
            "id": self.id,
            "type": self.type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self.payload,
            "entity": self.payload,
        }
