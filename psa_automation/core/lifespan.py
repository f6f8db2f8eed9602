"""Runtime lifespan: startup and shutdown of the automation engine.

Single place for wiring (SRP): repositories for the configured storage
backend, the shared HTTP client, the action registry, the engine and the
scheduler. No business logic here. Callers own the returned runtime and
inject runtime.engine wherever events are produced.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx

from psa_automation.application.interfaces.services import (
    INotificationService,
    IRecordGateway,
)
from psa_automation.application.services.action_executor import ActionExecutor
from psa_automation.application.services.action_registry import ActionHandlerRegistry
from psa_automation.application.services.scheduler import WorkflowScheduler
from psa_automation.application.services.workflow_definition_validator import (
    WorkflowDefinitionValidator,
)
from psa_automation.application.services.workflow_engine import WorkflowEngine
from psa_automation.core.config import Settings, get_settings
from psa_automation.domain.entities.workflow import RetryPolicy
from psa_automation.infrastructure.actions.messaging import MessagingCredentials
from psa_automation.infrastructure.actions.registry import build_default_registry
from psa_automation.infrastructure.services.notification_service import (
    LogOnlyNotificationService,
)

logger = logging.getLogger(__name__)


@dataclass
class AutomationRuntime:
    """Everything a host process needs; built by automation_runtime()."""

    settings: Settings
    definitions: Any
    executions: Any
    registry: ActionHandlerRegistry
    engine: WorkflowEngine
    scheduler: WorkflowScheduler
    validator: WorkflowDefinitionValidator
    http_client: httpx.AsyncClient


def _build_repositories(settings: Settings) -> tuple[Any, Any]:
    if settings.storage_backend == "postgres":
        from psa_automation.infrastructure.persistence.database import get_session_factory
        from psa_automation.infrastructure.persistence.repositories.execution_repo import (
            SqlExecutionRepository,
        )
        from psa_automation.infrastructure.persistence.repositories.workflow_repo import (
            SqlWorkflowRepository,
        )

        factory = get_session_factory()
        return SqlWorkflowRepository(factory), SqlExecutionRepository(factory)

    from psa_automation.infrastructure.persistence.repositories.memory import (
        InMemoryExecutionRepository,
        InMemoryWorkflowRepository,
    )

    return InMemoryWorkflowRepository(), InMemoryExecutionRepository()


def _messaging_credentials(settings: Settings) -> MessagingCredentials:
    slack_token = settings.slack_bot_token
    twilio_token = settings.twilio_auth_token
    return MessagingCredentials(
        slack_bot_token=slack_token.get_secret_value() if slack_token else None,
        slack_api_url=settings.slack_api_url,
        twilio_account_sid=settings.twilio_account_sid,
        twilio_auth_token=twilio_token.get_secret_value() if twilio_token else None,
        twilio_from_number=settings.twilio_from_number,
        twilio_api_url=settings.twilio_api_url,
    )


@asynccontextmanager
async def automation_runtime(
    settings: Settings | None = None,
    *,
    notifier: INotificationService | None = None,
    gateway: IRecordGateway | None = None,
) -> AsyncIterator[AutomationRuntime]:
    """Build the runtime, yield it, then shut it down.

    Startup order: telemetry (if enabled), repositories, shared HTTP
    client, registry, engine, scheduler. Shutdown order: engine drain,
    HTTP client close, telemetry shutdown, SQL engine dispose.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    telemetry = None
    if settings.telemetry_enabled:
        from psa_automation.shared.telemetry.telemetry import TelemetryConfig

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        telemetry.instrument_logging()
        logger.info("Telemetry initialized")

    definitions, executions = _build_repositories(settings)
    if telemetry is not None and settings.storage_backend == "postgres":
        from psa_automation.infrastructure.persistence import database

        telemetry.instrument_sqlalchemy(database.engine)

    # Shared HTTP client for webhook, chat and SMS actions (connection reuse).
    http_client = httpx.AsyncClient(timeout=settings.webhook_timeout_seconds)
    registry = build_default_registry(
        notifier=notifier or LogOnlyNotificationService(settings.mail_from_address),
        gateway=gateway,
        http_client=http_client,
        credentials=_messaging_credentials(settings),
        webhook_timeout_seconds=settings.webhook_timeout_seconds,
    )
    default_policy = RetryPolicy(
        max_retries=settings.default_max_retries,
        retry_delay_seconds=settings.default_retry_delay_seconds,
        timeout_seconds=settings.default_timeout_seconds,
    )
    engine = WorkflowEngine(definitions, executions, definitions, ActionExecutor(registry))
    runtime = AutomationRuntime(
        settings=settings,
        definitions=definitions,
        executions=executions,
        registry=registry,
        engine=engine,
        scheduler=WorkflowScheduler(
            engine, definitions, tick_seconds=settings.scheduler_tick_seconds
        ),
        validator=WorkflowDefinitionValidator(registry, default_policy=default_policy),
        http_client=http_client,
    )
    logger.info(
        "Automation runtime started (storage=%s, %d action types)",
        settings.storage_backend,
        len(registry),
    )

    try:
        yield runtime
    finally:
        # ---- Shutdown ----
        await engine.shutdown(timeout=settings.default_timeout_seconds)
        await http_client.aclose()
        logger.info("Shared HTTP client closed")

        if telemetry is not None:
            telemetry.shutdown()
            logger.info("Telemetry shutdown complete")

        if settings.storage_backend == "postgres":
            from psa_automation.infrastructure.persistence import database

            await database.dispose_engine()
            logger.info("Database engine disposed")
