# booking_reminders/db/helpers.py
"""
Query helpers for the repository layer.

Rows come back as dicts (the pool configures dict_row). Any psycopg error
is logged and re-raised as DatabaseError.
"""

from typing import Any

import psycopg

from booking_reminders.db.pool import get_db_connection
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def _execute(
    query: str, params: tuple, connection: psycopg.AsyncConnection | None, fetch_many: bool
):
    if connection is None:
        async with await get_db_connection() as conn:
            return await _execute(query, params, conn, fetch_many)

    async with connection.cursor() as cur:
        await cur.execute(query, params)
        if fetch_many:
            return await cur.fetchall()
        return await cur.fetchone()


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Dict with row data or None if no results
    """
    try:
        return await _execute(query, params, connection, fetch_many=False)
    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """Execute query and return all rows as list of dicts."""
    try:
        return await _execute(query, params, connection, fetch_many=True)
    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e
