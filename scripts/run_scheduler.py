"""Run the workflow scheduler until interrupted.

Usage:
    uv run python -m scripts.run_scheduler [tick_seconds]
Fires SCHEDULE-triggered workflows from the configured storage backend.
With STORAGE_BACKEND=memory nothing is scheduled unless definitions are
loaded by the host process, so this is mainly useful with Postgres.
"""

import asyncio
import signal
import sys

from psa_automation.core.config import get_settings
from psa_automation.core.lifespan import automation_runtime
from psa_automation.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger("scripts.run_scheduler")


async def main() -> None:
    """Start the runtime and tick the scheduler until SIGINT/SIGTERM."""
    settings = get_settings()
    setup_logging()
    interval = float(sys.argv[1]) if len(sys.argv) > 1 else settings.scheduler_tick_seconds
    if interval <= 0:
        print("tick_seconds must be > 0", file=sys.stderr)
        sys.exit(1)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    async with automation_runtime(settings) as runtime:
        await runtime.scheduler.refresh()
        for entry in runtime.scheduler.scheduled():
            print(f"{entry.workflow_id}: next fire at {entry.next_fire_at.isoformat()}")
        await runtime.scheduler.run(interval_seconds=interval, stop_event=stop)

    print("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
