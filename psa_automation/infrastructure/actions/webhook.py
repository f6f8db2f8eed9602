"""CALL_WEBHOOK handler (httpx)."""

from __future__ import annotations

from typing import Any

import httpx

from psa_automation.domain.enums import ActionType
from psa_automation.domain.exceptions import ActionConfigurationException
from psa_automation.schemas.actions import CallWebhookConfig
from psa_automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

# 4xx responses that are worth retrying
_RETRYABLE_CLIENT_ERRORS = frozenset({408, 425, 429})
_MAX_BODY_CHARS = 10_000


async def send_request(
    client: httpx.AsyncClient | None, method: str, url: str, **kwargs: Any
) -> httpx.Response:
    """Request through the shared client, or a short-lived one when none is wired."""
    if client is not None:
        return await client.request(method, url, **kwargs)
    async with httpx.AsyncClient() as owned:
        return await owned.request(method, url, **kwargs)


def check_response(response: httpx.Response, action_type: str, target: str) -> None:
    """Raise for failed responses.

    Non-retryable 4xx become ActionConfigurationException; 5xx and the
    retryable 4xx raise httpx.HTTPStatusError so the executor retries.
    """
    status = response.status_code
    if 400 <= status < 500 and status not in _RETRYABLE_CLIENT_ERRORS:
        raise ActionConfigurationException(
            action_type, f"{target} returned {status}", status_code=status
        )
    response.raise_for_status()


class CallWebhookAction:
    """Performs the HTTP request described by the action config.

    5xx responses, retryable 4xx and transport errors raise (the executor
    retries them); other 4xx raise ActionConfigurationException, which is
    not retried.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        default_timeout_seconds: float = 30,
    ) -> None:
        self._client = client
        self._default_timeout = default_timeout_seconds

    async def handle(self, config: CallWebhookConfig, context: dict[str, Any]) -> dict[str, Any]:
        request: dict[str, Any] = {
            "headers": dict(config.headers),
            "timeout": config.timeout_seconds or self._default_timeout,
        }
        if config.body is not None and config.method != "GET":
            if isinstance(config.body, (str, bytes)):
                request["content"] = config.body
            else:
                request["json"] = config.body

        response = await send_request(self._client, config.method, config.url, **request)
        check_response(
            response, ActionType.CALL_WEBHOOK.value, f"webhook {config.method} {config.url}"
        )
        logger.info(
            "Webhook %s %s returned %d", config.method, config.url, response.status_code
        )
        return {"status_code": response.status_code, "body": _response_body(response)}


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text[:_MAX_BODY_CHARS]
