"""Shared utilities: enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from psa_automation.shared.enums import ActionStatus, ExecutionStatus, StorageBackend

__all__ = [
    "ActionStatus",
    "ExecutionStatus",
    "StorageBackend",
]
