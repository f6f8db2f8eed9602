"""Shared utilities: datetime and id generators."""

from psa_automation.shared.utils.datetime import (
    elapsed_ms,
    ensure_utc,
    parse_datetime,
    utc_now,
)
from psa_automation.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "parse_datetime",
    "elapsed_ms",
]
