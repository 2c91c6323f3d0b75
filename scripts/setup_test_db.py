#!/usr/bin/env python3
"""
Create (or drop) the PostgreSQL database used by the test suite.

The server and credentials come from DATABASE_URL; the test database name
is the configured one prefixed with ``test_``. Point the tests at it with
TEST_DATABASE_URL, which this script prints on success.
"""

import asyncio
import os
import sys

import asyncpg
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import app.models  # noqa: E402,F401  registers all tables on Base.metadata
from app.core.config import settings  # noqa: E402
from app.core.database import Base  # noqa: E402

MASTER_URL = make_url(settings.DATABASE_URL)
TEST_DB_NAME = f"test_{MASTER_URL.database}"
TEST_DB_URL = MASTER_URL.set(database=TEST_DB_NAME)


async def _connect_master() -> asyncpg.Connection:
    return await asyncpg.connect(
        host=MASTER_URL.host or "localhost",
        port=MASTER_URL.port or 5432,
        user=MASTER_URL.username,
        password=MASTER_URL.password,
        database=MASTER_URL.database,
    )


async def setup_test_database() -> bool:
    """Recreate the test database and its tables."""
    print(f"Setting up test database: {TEST_DB_NAME}")

    try:
        master_conn = await _connect_master()
        try:
            await master_conn.execute(f'DROP DATABASE IF EXISTS "{TEST_DB_NAME}"')
            await master_conn.execute(f'CREATE DATABASE "{TEST_DB_NAME}"')
        finally:
            await master_conn.close()

        engine = create_async_engine(TEST_DB_URL, echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    except (OSError, asyncpg.PostgresError) as e:
        print(f"Error setting up test database: {e}")
        print(
            f"Make sure PostgreSQL is reachable at "
            f"{MASTER_URL.host}:{MASTER_URL.port or 5432} "
            f"as {MASTER_URL.username} (database {MASTER_URL.database})"
        )
        return False

    print("Test database ready. Run the tests with:")
    print(
        f"  TEST_DATABASE_URL={TEST_DB_URL.render_as_string(hide_password=False)} pytest"
    )
    return True


async def cleanup_test_database() -> bool:
    """Drop the test database."""
    print(f"Dropping test database: {TEST_DB_NAME}")

    try:
        master_conn = await _connect_master()
        try:
            await master_conn.execute(f'DROP DATABASE IF EXISTS "{TEST_DB_NAME}"')
        finally:
            await master_conn.close()
    except (OSError, asyncpg.PostgresError) as e:
        print(f"Error dropping test database: {e}")
        return False

    return True


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "cleanup":
        ok = asyncio.run(cleanup_test_database())
    else:
        ok = asyncio.run(setup_test_database())
    sys.exit(0 if ok else 1)
