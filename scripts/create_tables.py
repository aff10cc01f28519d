"""Script to create the rfds table in the configured database."""

import asyncio
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from rfd_store
sys.path.insert(0, str(Path(__file__).parent.parent))

from rfd_store.config.settings import settings
from rfd_store.db.db import Database


async def create_tables():
    """Connect, create missing tables, and report the database health."""
    database = Database(settings)
    await database.start()
    try:
        is_ok, message = await database.ping()
        print(f"Database: {message}")
        if not is_ok:
            raise SystemExit(1)
    finally:
        await database.close()


async def main():
    """Main entry point."""
    print("Creating tables...")
    await create_tables()
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
