#!/usr/bin/env python
"""Create the statutory payroll tables.

Usage:
    python scripts/create_tables.py
    python scripts/create_tables.py --database-url postgresql+asyncpg://...
    python scripts/create_tables.py --drop
"""

import argparse
import asyncio

from statutory_payroll.database import get_engine
from statutory_payroll.models import Base


async def create_tables(database_url: str | None, drop: bool) -> None:
    engine = get_engine(database_url)
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
            print("Dropped existing tables")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print(f"Created {len(Base.metadata.tables)} tables")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create statutory payroll tables")
    parser.add_argument("--database-url", help="Async database URL (defaults to DATABASE_URL)")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()
    asyncio.run(create_tables(args.database_url, args.drop))


if __name__ == "__main__":
    main()
