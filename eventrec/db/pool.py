# eventrec/db/pool.py
"""
PostgreSQL connection pool for the recommendation history store.
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

from eventrec.config import settings
from eventrec.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

APPLICATION_NAME = "event-recommendations"


class DatabasePoolManager:
    """
    Owns the async connection pool used by the history repository.

    Opened and closed by the application lifespan. Nothing on the
    recommendation request path waits on it.
    """

    def __init__(self, conninfo: str | None = None):
        self.conninfo = conninfo or settings.DATABASE_URL
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def is_ready(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        pool_config = self._get_pool_config()
        try:
            logger.info("Initializing database connection pool")

            self.pool = AsyncConnectionPool(conninfo=self.conninfo, open=False, **pool_config)
            await self.pool.open()
            await self.pool.wait()

            self._initialized = True

            logger.info(
                "Database pool initialized",
                min_size=pool_config["min_size"],
                max_size=pool_config["max_size"],
                timeout=pool_config["timeout"],
            )

        except Exception as e:
            logger.error("Failed to initialize database pool", error=str(e))
            self._initialized = False
            if self.pool:
                try:
                    await self.pool.close()
                except Exception as close_error:
                    logger.debug("Ignoring pool close error", error=str(close_error))
                self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

    def _get_pool_config(self) -> dict[str, Any]:
        config = settings.get_db_pool_config()
        config.update(
            {
                "check": AsyncConnectionPool.check_connection,
                "configure": self._configure_connection,
            }
        )
        return config

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        try:
            conn.row_factory = dict_row
            await conn.set_autocommit(True)

            app_name = f"{APPLICATION_NAME}-{settings.environment}"
            await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
            await conn.execute("SET timezone = 'UTC'")
        except Exception:
            logger.exception("Failed to configure database connection")

    async def close(self) -> None:
        if not self._initialized or self._closed:
            return

        try:
            logger.info("Closing database connection pool")
            if self.pool:
                await asyncio.wait_for(self.pool.close(), timeout=30.0)
            logger.info("Database pool closed")
        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                await conn.execute("SELECT 1")
        """
        if not self.is_ready:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Connection inside a transaction: commit on success, rollback on exception."""
        async with self.connection() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> dict[str, Any]:
        if not self.is_ready:
            return {"healthy": False, "service": "database_pool", "error": "Pool not initialized"}

        start = time.perf_counter()
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1 AS ok")
                    row = await cur.fetchone()
            if not row or row.get("ok") != 1:
                raise RuntimeError(f"Unexpected test result: {row}")
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {"healthy": False, "service": "database_pool", "error": str(e)}

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "service": "database_pool",
            "connection_time_ms": round((time.perf_counter() - start) * 1000, 2),
            "pool_size": stats.get("pool_size", 0),
            "pool_available": stats.get("pool_available", 0),
            "requests_waiting": stats.get("requests_waiting", 0),
        }


# Global pool instance
db_pool = DatabasePoolManager()
