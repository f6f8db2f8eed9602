"""Chat and SMS handlers: SEND_SLACK, SEND_TEAMS, SEND_SMS (httpx)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from psa_automation.domain.enums import ActionType
from psa_automation.domain.exceptions import ActionConfigurationException
from psa_automation.infrastructure.actions.webhook import check_response, send_request
from psa_automation.schemas.actions import SendSlackConfig, SendSmsConfig, SendTeamsConfig
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)

# Slack Web API errors that a retry can fix; anything else is configuration
_SLACK_RETRYABLE_ERRORS = frozenset({"ratelimited", "internal_error", "fatal_error", "service_unavailable"})


@dataclass(frozen=True)
class MessagingCredentials:
    """Provider credentials for the chat and SMS handlers. Missing ones disable that channel."""

    slack_bot_token: str | None = None
    slack_api_url: str = "https://slack.com/api"
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None
    twilio_api_url: str = "https://api.twilio.com"


class SendSlackAction:
    """Posts a message to a Slack channel.

    With a webhookUrl in the config the message goes to that incoming
    webhook; otherwise chat.postMessage is called with the bot token.
    Channel names ("#general") are accepted by the API as they are.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        credentials: MessagingCredentials | None = None,
        *,
        timeout_seconds: float = 30,
    ) -> None:
        self._client = client
        self._credentials = credentials or MessagingCredentials()
        self._timeout = timeout_seconds

    async def handle(self, config: SendSlackConfig, context: dict[str, Any]) -> dict[str, Any]:
        if config.webhook_url:
            response = await send_request(
                self._client,
                "POST",
                config.webhook_url,
                json={"channel": config.channel, "text": config.message},
                timeout=self._timeout,
            )
            check_response(response, ActionType.SEND_SLACK.value, "Slack webhook")
            logger.info("Slack message sent to %s via webhook", config.channel)
            return {"sent": True, "channel": config.channel, "timestamp": utc_now().isoformat()}

        token = self._credentials.slack_bot_token
        if not token:
            raise ActionConfigurationException(
                ActionType.SEND_SLACK.value, "no Slack bot token configured and no webhookUrl given"
            )
        response = await send_request(
            self._client,
            "POST",
            f"{self._credentials.slack_api_url.rstrip('/')}/chat.postMessage",
            json={"channel": config.channel, "text": config.message},
            headers={"Authorization": f"Bearer {token}"},
            timeout=self._timeout,
        )
        check_response(response, ActionType.SEND_SLACK.value, "Slack chat.postMessage")
        body = response.json()
        if not body.get("ok"):
            error = body.get("error") or "unknown_error"
            if error in _SLACK_RETRYABLE_ERRORS:
                raise RuntimeError(f"Slack API error: {error}")
            raise ActionConfigurationException(
                ActionType.SEND_SLACK.value, f"Slack API error: {error}", slack_error=error
            )
        logger.info("Slack message sent to %s", body.get("channel") or config.channel)
        return {
            "sent": True,
            "channel": body.get("channel") or config.channel,
            "message_id": body.get("ts"),
            "timestamp": body.get("ts"),
        }


def teams_card(title: str, message: str, color: str | None = None) -> dict[str, Any]:
    """Legacy MessageCard payload accepted by Teams incoming webhooks."""
    card: dict[str, Any] = {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "summary": title,
        "title": title,
        "text": message,
    }
    if color:
        card["themeColor"] = color.lstrip("#")
    return card


class SendTeamsAction:
    """Posts a simple card to a Microsoft Teams incoming webhook."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout_seconds: float = 30) -> None:
        self._client = client
        self._timeout = timeout_seconds

    async def handle(self, config: SendTeamsConfig, context: dict[str, Any]) -> dict[str, Any]:
        response = await send_request(
            self._client,
            "POST",
            config.webhook_url,
            json=teams_card(config.title, config.message, config.color),
            timeout=self._timeout,
        )
        check_response(response, ActionType.SEND_TEAMS.value, "Teams webhook")
        logger.info("Teams card %r posted", config.title)
        return {"sent": True, "timestamp": utc_now().isoformat()}


class SendSmsAction:
    """Sends one SMS through the Twilio Messages API."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        credentials: MessagingCredentials | None = None,
        *,
        timeout_seconds: float = 30,
    ) -> None:
        self._client = client
        self._credentials = credentials or MessagingCredentials()
        self._timeout = timeout_seconds

    async def handle(self, config: SendSmsConfig, context: dict[str, Any]) -> dict[str, Any]:
        creds = self._credentials
        if not (creds.twilio_account_sid and creds.twilio_auth_token and creds.twilio_from_number):
            raise ActionConfigurationException(
                ActionType.SEND_SMS.value, "Twilio credentials are not configured"
            )
        url = (
            f"{creds.twilio_api_url.rstrip('/')}/2010-04-01/Accounts/"
            f"{creds.twilio_account_sid}/Messages.json"
        )
        response = await send_request(
            self._client,
            "POST",
            url,
            data={"To": config.to, "From": creds.twilio_from_number, "Body": config.body},
            auth=(creds.twilio_account_sid, creds.twilio_auth_token),
            timeout=self._timeout,
        )
        check_response(response, ActionType.SEND_SMS.value, "Twilio Messages API")
        body = response.json()
        logger.info("SMS %s sent to %s", body.get("sid"), config.to)
        return {
            "sent": True,
            "to": body.get("to") or config.to,
            "message_id": body.get("sid"),
            "timestamp": utc_now().isoformat(),
        }
