#!/usr/bin/env python3
"""
Initialize the brief-aggregation database.

Runs the Alembic migrations, or creates the tables directly with --no-migrations.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from brief_aggregation.storage.database import init_db


def main() -> None:
    """Initialize the database."""
    import argparse

    parser = argparse.ArgumentParser(description="Initialize brief-aggregation database")
    parser.add_argument(
        "--drop", action="store_true", help="Drop existing tables before creating new ones"
    )
    parser.add_argument(
        "--no-migrations", action="store_true", help="Create tables directly instead of migrating"
    )
    args = parser.parse_args()

    print("Initializing database...")
    init_db(drop_all=args.drop, use_migrations=not args.no_migrations)
    print("Database initialized successfully!")


if __name__ == "__main__":
    main()
