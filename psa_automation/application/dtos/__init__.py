"""Application DTOs (plain dataclasses crossing layer boundaries)."""

from psa_automation.application.dtos.event import DomainEvent

__all__ = ["DomainEvent"]
