"""Packing database management CLI.

Provides commands to create and drop the database schema of the packing
domain's providers (PostgreSQL / SQLite only; memory providers need none).

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    """Create database schema for the packing domain."""
    from packing.domain import packing
    from packing.utils.db import setup_db

    print("Initializing packing domain...")
    packing.init()
    print("Creating packing database schema...")
    setup_db(packing)
    print("Done.")


def drop_databases():
    """Drop database schema for the packing domain."""
    from packing.domain import packing
    from packing.utils.db import drop_db

    print("Initializing packing domain...")
    packing.init()
    print("Dropping packing database schema...")
    drop_db(packing)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Packing database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
