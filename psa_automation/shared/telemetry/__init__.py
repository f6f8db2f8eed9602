"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from psa_automation.shared.telemetry.logging import get_logger, setup_logging
from psa_automation.shared.telemetry.telemetry import TelemetryConfig
from psa_automation.shared.telemetry.tracing import (
    TracedOperation,
    add_span_attributes,
    add_span_event,
    traced,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "TelemetryConfig",
    "traced",
    "add_span_attributes",
    "add_span_event",
    "TracedOperation",
]
