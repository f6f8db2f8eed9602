"""Core: settings and runtime composition (no business logic)."""

from psa_automation.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
