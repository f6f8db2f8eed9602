"""Shared enumerations for the automation engine.

Execution outcome enums used by application and infrastructure (records,
persistence check constraints). Definition-level enums (trigger, action,
operator kinds) live in psa_automation.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ExecutionStatus(_ValuesMixin, str, Enum):
    """Terminal status of one workflow execution."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class ActionStatus(_ValuesMixin, str, Enum):
    """Terminal status of one action slot in an execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class StorageBackend(_ValuesMixin, str, Enum):
    """Where definitions and execution history are kept."""

    MEMORY = "memory"
    POSTGRES = "postgres"
