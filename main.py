"""
SelfPatch -- Maintenance Entry Point.

Opens the local database, ensures the schema exists and runs one
maintenance pass (lifecycle checks, then diagnostics when due).

Usage:
    python main.py
    SELFPATCH_DATABASE_URL=sqlite+aiosqlite:///data/selfpatch.db python main.py
"""

from __future__ import annotations

import asyncio
import os

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from selfpatch.lib.logging import setup_logging
from selfpatch.repositories.sql import create_schema
from selfpatch.runner import run_maintenance


async def main() -> None:
    url = os.getenv("SELFPATCH_DATABASE_URL", "sqlite+aiosqlite:///selfpatch.db")
    engine = create_async_engine(url)
    try:
        await create_schema(engine)
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            await run_maintenance(session)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
