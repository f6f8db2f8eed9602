"""Mail delivery: log-only sender used when no mail transport is configured."""

from __future__ import annotations

import logging

from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class LogOnlyNotificationService:
    """INotificationService implementation that logs instead of sending email.

    Use when no SMTP is configured. Production can swap in an SMTP or queue-based implementation.
    Sent messages are kept in `sent` so callers (and tests) can inspect them.
    """

    def __init__(self, from_address: str | None = None) -> None:
        self.from_address = from_address
        self.sent: list[dict[str, object]] = []

    async def send(
        self,
        to_emails: list[str],
        subject: str,
        body: str,
        *,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
    ) -> None:
        """Log the notification; no actual email sent."""
        recipients = list(to_emails or [])
        subject_preview = (subject or "")[:80]
        if not recipients:
            logger.info(
                "Workflow email: no recipients, skipping send (subject=%r)",
                subject_preview,
            )
            return
        self.sent.append(
            {
                "from": self.from_address,
                "to": recipients,
                "cc": list(cc or []),
                "bcc": list(bcc or []),
                "subject": subject,
                "body": body,
            }
        )
        logger.info(
            "Workflow email: would send to %d recipients (+%d cc, +%d bcc, subject=%r)",
            len(recipients),
            len(cc or []),
            len(bcc or []),
            subject_preview,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Workflow email recipients: %s (at %s)",
                recipients,
                utc_now().isoformat(),
            )
        logger.debug("Workflow email body (first 500 chars): %s", (body or "")[:500])
