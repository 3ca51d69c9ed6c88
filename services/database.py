"""PostgreSQL connection pool and schema setup."""
import logging
import ssl
from typing import Union

import asyncpg

logger = logging.getLogger(__name__)

CREATE_EXPENSES_TABLE = """
    CREATE TABLE IF NOT EXISTS expenses (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        amount NUMERIC(12,2) NOT NULL,
        currency TEXT NOT NULL,
        country TEXT NOT NULL,
        category TEXT,
        note TEXT,
        occurred_at DATE NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
"""

CREATE_CREATED_AT_INDEX = "CREATE INDEX IF NOT EXISTS idx_expenses_created_at ON expenses (created_at DESC);"


def ssl_for_dsn(dsn: str) -> Union[bool, ssl.SSLContext]:
    """Local databases connect in plain text; remote ones over TLS without certificate checks."""
    if "localhost" in dsn:
        return False
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    logger.warning("Connecting to a remote database with TLS certificate verification disabled.")
    return context


async def create_pool(dsn: str, max_size: int = 10) -> asyncpg.Pool:
    """
    Builds the shared connection pool.
    min_size=0 means no connection is opened here, so the app starts even
    when the database is down; failures surface on the first request.
    """
    logger.info(f"Creating PostgreSQL pool (max_size={max_size})...")
    return await asyncpg.create_pool(dsn=dsn, min_size=0, max_size=max_size, ssl=ssl_for_dsn(dsn))


class SchemaInitializer:
    """Makes sure the expenses table and its index exist before any query touches them."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool
        self.initialized = False

    async def ensure(self) -> None:
        if self.initialized:
            return
        # Concurrent first calls may both run this; IF NOT EXISTS keeps it harmless.
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(CREATE_EXPENSES_TABLE)
                await conn.execute(CREATE_CREATED_AT_INDEX)
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise ConnectionError(f"Database unavailable: {e}") from e
        self.initialized = True
        logger.info("Expenses schema is ready.")
