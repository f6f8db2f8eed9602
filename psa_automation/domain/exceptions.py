"""Domain exceptions for the automation engine.

Configuration problems inside a single condition or action are converted
to False/FAILURE results by the services and never escape dispatch; the
exceptions here are for definition validation, handler signalling and
fatal engine errors surfaced to callers.
"""

from typing import Any


class AutomationException(Exception):
    """Base exception for all automation engine errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. workflow_id, field errors).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for execution records and API error bodies."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(AutomationException):
    """Raised when a workflow definition (or one of its parts) is invalid."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize with message, optional field name and error list.

        Args:
            message: Description of the validation failure.
            field: Optional field that failed validation.
            errors: Optional list of per-field errors (location, message).
        """
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(AutomationException):
    """Raised when a requested definition or execution is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ActionConfigurationException(AutomationException):
    """Raised when an action's config is unusable. Never retried."""

    def __init__(self, action_type: str, message: str, **details_extra: Any) -> None:
        super().__init__(
            message,
            "ACTION_CONFIGURATION_ERROR",
            {"action_type": action_type, **details_extra},
        )


class UnknownActionTypeException(AutomationException):
    """Raised when no handler is registered for an action type."""

    def __init__(self, action_type: str) -> None:
        super().__init__(
            f"No handler registered for action type: {action_type}",
            "UNKNOWN_ACTION_TYPE",
            {"action_type": action_type},
        )


class ExecutionPersistenceException(AutomationException):
    """Raised from dispatch when an execution record could not be persisted."""

    def __init__(self, workflow_id: str, execution_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to persist execution {execution_id} of workflow {workflow_id}",
            "EXECUTION_PERSISTENCE_ERROR",
            {"workflow_id": workflow_id, "execution_id": execution_id, "reason": reason},
        )


class ScheduleConfigurationException(AutomationException):
    """Raised when a SCHEDULE trigger carries an invalid cron expression or timezone."""

    def __init__(self, workflow_id: str, expression: str, reason: str) -> None:
        super().__init__(
            f"Invalid schedule for workflow {workflow_id}: {reason}",
            "SCHEDULE_CONFIGURATION_ERROR",
            {"workflow_id": workflow_id, "expression": expression, "reason": reason},
        )


class EngineShutdownException(AutomationException):
    """Raised when dispatch is called after the engine started shutting down."""

    def __init__(self) -> None:
        super().__init__("Workflow engine is shutting down", "ENGINE_SHUTDOWN")


class StorageNotConfiguredException(AutomationException):
    """Raised when SQL storage is used but storage_backend is not 'postgres'."""

    def __init__(self) -> None:
        super().__init__(
            "SQL storage is not configured (set STORAGE_BACKEND=postgres and DATABASE_URL)",
            "STORAGE_NOT_CONFIGURED",
        )
