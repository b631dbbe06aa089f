"""Database initialization script.

Creates the connection_formats table. With --reset, drops every table first
(this deletes all saved definitions).

Usage:
    python -m scripts.init_db
    python -m scripts.init_db --reset
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.config import get_settings
from app.db.session import close_db, drop_all_tables, init_db


async def main(reset: bool = False) -> None:
    settings = get_settings()
    try:
        if reset:
            print("Dropping all database tables...")
            await drop_all_tables(settings)
        await init_db(settings)
        print("Database initialized successfully!")
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--reset", action="store_true", help="drop all tables before creating them")
    args = parser.parse_args()
    asyncio.run(main(reset=args.reset))
