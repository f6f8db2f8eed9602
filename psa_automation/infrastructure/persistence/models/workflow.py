"""Workflow definition and execution ORM models."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from psa_automation.infrastructure.persistence.database import Base
from psa_automation.infrastructure.persistence.models.mixins import (
    CuidMixin,
    TimestampMixin,
)
from psa_automation.shared.enums import ExecutionStatus


class Workflow(CuidMixin, TimestampMixin, Base):
    """Workflow definition. Table: workflow. Triggers, conditions and actions as JSON."""

    __tablename__ = "workflow"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true"), index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    triggers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    conditions: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    actions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    retry_delay_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=60)
    timeout_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=300)
    continue_on_error: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    # Rolling stats; only ever changed through an atomic UPDATE
    execution_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    success_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    failure_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    last_execution_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    avg_execution_ms: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=sa.text("0")
    )

    __table_args__ = (
        CheckConstraint("version >= 1", name="workflow_version_check"),
        CheckConstraint("max_retries >= 0", name="workflow_max_retries_check"),
    )


class WorkflowExecution(CuidMixin, TimestampMixin, Base):
    """Execution history. Table: workflow_execution. Rows are never updated."""

    __tablename__ = "workflow_execution"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workflow_version: Mapped[int] = mapped_column(Integer, nullable=False)
    trigger_event_type: Mapped[str] = mapped_column(String, nullable=False)
    trigger_event_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    action_results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        Index(
            "ix_workflow_execution_workflow_started",
            "workflow_id",
            "started_at",
        ),
        CheckConstraint(
            "status IN ({})".format(
                ", ".join(
                    "'{}'".format(v.replace("'", "''"))
                    for v in ExecutionStatus.values()
                )
            ),
            name="workflow_execution_status_check",
        ),
    )
