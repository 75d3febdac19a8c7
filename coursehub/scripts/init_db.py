"""
Database Initializer

Creates every table and index that does not exist yet. Safe to run repeatedly.
Usage: python -m coursehub.scripts.init_db [--database-url URL]
"""
import argparse
import asyncio
import sys

from coursehub import database
from coursehub.config import get_settings
from coursehub.exceptions import ConfigurationError


async def init_db(database_url: str):
    """
    Create the schema on the given database.

    Args:
        database_url: SQLAlchemy URL of the target database
    """
    database.init_engine(database_url)
    try:
        await database.create_all()
    finally:
        await database.dispose_engine()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the CourseHub database schema")
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (defaults to DATABASE_URL)",
    )
    args = parser.parse_args(argv)

    database_url = args.database_url
    if not database_url:
        try:
            database_url = get_settings().database_url
        except ConfigurationError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    print(f"Creating schema on {database_url}...")
    asyncio.run(init_db(database_url))
    print("✓ Schema ready")
    return 0


if __name__ == "__main__":
    sys.exit(main())
