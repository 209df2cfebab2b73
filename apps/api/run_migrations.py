#!/usr/bin/env python3
"""
Container entrypoint step: wait for PostgreSQL, then ``alembic upgrade head``.

Exits non-zero if the database never comes up or a migration fails, so the
API never starts against an unknown schema.
"""
import os
import sys
import time
from dotenv import load_dotenv

load_dotenv()

DB_WAIT_ATTEMPTS = 30
DB_WAIT_INTERVAL_SEC = 1

ALEMBIC_INI = os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini")


def _get_alembic_config():
    from alembic.config import Config

    return Config(ALEMBIC_INI)


def alembic_upgrade_head() -> None:
    from alembic import command

    command.upgrade(_get_alembic_config(), "head")


def wait_for_database(attempts: int = DB_WAIT_ATTEMPTS) -> bool:
    from core.database import check_db_connection

    for attempt in range(1, attempts + 1):
        if check_db_connection():
            return True
        print(f"Database unavailable ({attempt}/{attempts}), retrying in {DB_WAIT_INTERVAL_SEC}s")
        time.sleep(DB_WAIT_INTERVAL_SEC)
    return False


def main():
    if not wait_for_database():
        print("ERROR: database did not become available")
        sys.exit(1)

    try:
        alembic_upgrade_head()
    except Exception as e:
        print(f"ERROR: migration failed: {e}")
        sys.exit(1)

    print("Schema is at head")


if __name__ == "__main__":
    main()
