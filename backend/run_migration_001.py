#!/usr/bin/env python3
"""
Create the push_subscriptions table (one row per device + match) from the ORM metadata.
No psql required. From repo root: python3 backend/run_migration_001.py
Requires LS_DATABASE_URL (or DATABASE_URL) in the environment, or .env in backend/.
Safe to re-run: existing tables and indexes are left alone.
"""
import asyncio
import os
import sys

# Backend dir on path so "shared" resolves (run from repo root or backend/)
_backend_dir = os.path.dirname(os.path.abspath(__file__))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)
os.chdir(_backend_dir)

from sqlalchemy.exc import SQLAlchemyError

from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.logging import setup_logging


async def main() -> None:
    setup_logging("migration")
    db = DatabaseManager(get_settings())
    await db.connect()
    try:
        tables = await db.create_schema()
        print(f"Migration 001 applied: {', '.join(tables)} ready.")
    except SQLAlchemyError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
