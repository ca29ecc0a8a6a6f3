# booking_reminders/db/pool.py
"""
PostgreSQL connection pool for the reminder service.

One pool per process. The web app opens it in its lifespan, the standalone
worker around the job; repositories borrow connections through
get_db_connection().
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from booking_reminders.config import settings
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT = 30.0  # seconds
SLOW_ACQUIRE_MS = 50


class DatabasePoolManager:
    """Owns the AsyncConnectionPool lifecycle and hands out dict_row connections."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        """Open the pool and verify a connection; safe to call twice."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        pool_config = settings.get_db_pool_config()
        logger.info(
            "Opening database pool",
            environment=settings.environment,
            min_size=pool_config["min_size"],
            max_size=pool_config["max_size"],
        )

        self.pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **pool_config,
        )

        try:
            await self.pool.open(wait=True)
            self._initialized = True
            await self._ping()
        except Exception as e:
            logger.error("Failed to open database pool", error=str(e), error_type=type(e).__name__)
            self._initialized = False
            await self.pool.close()
            self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready")

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        conn.row_factory = dict_row

        # Autocommit keeps pooled connections out of INTRANS state
        await conn.set_autocommit(True)

        app_name = f"booking-reminders-{settings.environment}"
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET statement_timeout = '60s'")

    async def _ping(self) -> float:
        """Run SELECT 1 and return the round trip in milliseconds."""
        start_time = time.time()
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                row = await cur.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError(f"Unexpected ping result: {row}")
        return (time.time() - start_time) * 1000

    async def close(self) -> None:
        """Close the pool; later initialize() calls are rejected."""
        if not self._initialized or self._closed:
            return

        logger.info("Closing database pool")
        self._initialized = False
        self._closed = True

        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT)
        except TimeoutError:
            logger.warning("Database pool close timed out")
            return

        logger.info("Database pool closed")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
        """
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """
        Health check for the database pool.

        Returns:
            dict: healthy flag, ping latency and pool stats
        """
        if not self._initialized:
            error = "Pool is closed" if self._closed else "Pool not initialized"
            return {"healthy": False, "error": error, "service": "database_pool"}

        try:
            latency_ms = await self._ping()
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        health_data = {
            "healthy": True,
            "service": "database_pool",
            "connection_time_ms": round(latency_ms, 2),
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }
        if latency_ms > SLOW_ACQUIRE_MS:
            health_data["warnings"] = [f"Slow connection acquisition: {latency_ms:.1f}ms"]

        return health_data


# Global pool instance
db_pool = DatabasePoolManager()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    """Get database pool health status."""
    return await db_pool.health_check()
