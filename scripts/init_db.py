"""Create the automation tables in the configured Postgres database.

Usage:
    uv run python -m scripts.init_db
Requires STORAGE_BACKEND=postgres and DATABASE_URL.
"""

import asyncio
import sys

from psa_automation.core.config import get_settings
from psa_automation.infrastructure.persistence import database


async def main() -> None:
    """Create tables (idempotent) and dispose the engine."""
    if get_settings().storage_backend != "postgres":
        print("Set STORAGE_BACKEND=postgres and DATABASE_URL first", file=sys.stderr)
        sys.exit(1)
    try:
        await database.create_schema()
    finally:
        await database.dispose_engine()
    print("Done. Tables workflow and workflow_execution are in place.")


if __name__ == "__main__":
    asyncio.run(main())
