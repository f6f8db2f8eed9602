"""Built-in action handlers."""

from psa_automation.infrastructure.actions.registry import build_default_registry

__all__ = ["build_default_registry"]
