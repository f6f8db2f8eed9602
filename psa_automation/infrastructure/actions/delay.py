"""DELAY handler."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from psa_automation.schemas.actions import DelayConfig


class DelayAction:
    """Pauses the chain; counts against the action timeout like any other handler."""

    def __init__(self, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> None:
        self._sleep = sleep

    async def handle(self, config: DelayConfig, context: dict[str, Any]) -> dict[str, Any]:
        seconds = float(config.seconds)
        await self._sleep(seconds)
        return {"delayed_seconds": seconds}
