# eventrec/db/helpers.py
"""
Query helpers over the shared pool. psycopg errors surface as DatabaseError.
"""

from typing import Any

import psycopg

from eventrec.db.pool import DatabasePoolManager, db_pool
from eventrec.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Raised when a history store operation fails."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_all(
    query: str, params: tuple = (), *, pool: DatabasePoolManager | None = None
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as dicts.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        pool: Pool to borrow from, defaults to the global pool
    """
    pool = pool or db_pool
    try:
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def execute_query(
    query: str, params: tuple = (), *, pool: DatabasePoolManager | None = None
) -> int:
    """Execute a statement and return the number of affected rows."""
    pool = pool or db_pool
    try:
        async with pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e


async def execute_many(
    query: str, params_seq: list[tuple], *, pool: DatabasePoolManager | None = None
) -> int:
    """
    Execute one statement for every parameter tuple inside a single transaction.

    Returns the number of parameter tuples written. Either all rows are
    written or none are.
    """
    if not params_seq:
        return 0

    pool = pool or db_pool
    try:
        async with pool.transaction() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(query, params_seq)

        logger.debug("Batch write committed", row_count=len(params_seq))
        return len(params_seq)

    except psycopg.Error as e:
        logger.error("Batch write failed", row_count=len(params_seq), error=str(e))
        raise DatabaseError(f"Transaction failed: {e}", operation="execute_many") from e
