#!/usr/bin/env python3
"""Database Utilities for the charter data sync.

This module provides the PostgreSQL plumbing behind the document store:
    - Connection pool creation and graceful shutdown
    - One lazily-created, process-wide shared pool
    - Connection context manager with acquire timeout
    - Conversion of driver errors into PersistenceError subtypes

The synchronizers never open transactions spanning several records; each
upsert is a single statement and is atomic on its own.

Example:
    pool = await get_shared_pool()
    async with database_connection(pool) as conn:
        await conn.fetchval("SELECT count(*) FROM documents")
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from .exceptions import (
    ConfigurationError,
    ConnectionPoolError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

_shared_pool = None
_shared_pool_lock = asyncio.Lock()


# ============================================
# Connection Context Manager
# ============================================

@asynccontextmanager
async def database_connection(pool, acquire_timeout: float = 30.0) -> AsyncIterator[Any]:
    """Context manager for a pooled connection without transaction.

    Args:
        pool: asyncpg connection pool
        acquire_timeout: Seconds to wait for a free connection

    Yields:
        Database connection

    Raises:
        ConnectionPoolError: If the pool is missing or exhausted
    """
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")

    conn = None
    try:
        try:
            conn = await asyncio.wait_for(pool.acquire(), timeout=acquire_timeout)
        except asyncio.TimeoutError:
            raise ConnectionPoolError(
                "Timeout acquiring database connection",
                details={"timeout_seconds": acquire_timeout},
            )
        yield conn
    finally:
        if conn:
            await pool.release(conn)


# ============================================
# Error Conversion
# ============================================

def convert_db_exception(
    e: Exception,
    collection: Optional[str] = None,
    key: Optional[dict[str, Any]] = None,
) -> PersistenceError:
    """Convert a driver exception to a PersistenceError subtype."""
    if isinstance(e, PersistenceError):
        return e

    error_str = str(e).lower()

    if "timeout" in error_str or "timed out" in error_str:
        return PersistenceError(
            f"Database operation timed out: {e}",
            collection=collection,
            key=key,
            code="DATABASE_TIMEOUT",
            cause=e,
        )

    if "connection" in error_str and ("closed" in error_str or "refused" in error_str):
        return ConnectionPoolError(
            f"Database connection lost: {e}",
            collection=collection,
            key=key,
            cause=e,
        )

    return PersistenceError(
        f"Database operation failed: {e}",
        collection=collection,
        key=key,
        code="DATABASE_ERROR",
        cause=e,
    )


# ============================================
# Connection Pool Helpers
# ============================================

async def create_pool(
    database_url: str,
    min_size: int = 1,
    max_size: int = 5,
    command_timeout: float = 60.0,
    **kwargs,
):
    """Open an asyncpg pool for the document store.

    The sync writes one statement per record, so a small pool is enough.
    Extra keyword arguments go to ``asyncpg.create_pool`` unchanged.

    Raises:
        ConnectionPoolError: The server is unreachable or rejected the login
    """
    import asyncpg

    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            **kwargs,
        )
    except Exception as e:
        raise ConnectionPoolError(
            f"Could not open the document store pool: {e}",
            cause=e,
        )

    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def get_shared_pool(database_url: Optional[str] = None):
    """Return the process-wide pool, creating it on first use.

    Args:
        database_url: Connection string. Defaults to DATABASE_URL.

    Raises:
        ConfigurationError: If no database URL is available
        ConnectionPoolError: If the pool cannot be created
    """
    global _shared_pool

    if _shared_pool is not None:
        return _shared_pool

    async with _shared_pool_lock:
        if _shared_pool is None:
            url = database_url or os.getenv("DATABASE_URL")
            if not url:
                raise ConfigurationError(
                    "DATABASE_URL is not set",
                    missing_keys=["DATABASE_URL"],
                )
            _shared_pool = await create_pool(url)

    return _shared_pool


async def close_pool(pool, timeout: float = 10.0):
    """Close ``pool``, terminating it if connections are still busy after ``timeout`` seconds."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
        logger.info("Database pool closed")
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()


async def close_shared_pool():
    """Close and forget the shared pool, if one was created."""
    global _shared_pool

    pool, _shared_pool = _shared_pool, None
    await close_pool(pool)


# ============================================
# Health Check
# ============================================

async def check_database_health(pool) -> dict[str, Any]:
    """Run ``SELECT 1`` on ``pool`` and report its usage.

    Returns:
        ``{"healthy": bool, ...}`` with pool size figures, or an ``error``
        entry when the check failed
    """
    if pool is None:
        return {
            "healthy": False,
            "error": "Pool not initialized",
        }

    try:
        async with database_connection(pool) as conn:
            result = await conn.fetchval("SELECT 1")
            pool_size = pool.get_size()
            pool_free = pool.get_idle_size()

            return {
                "healthy": result == 1,
                "pool_size": pool_size,
                "pool_free": pool_free,
                "pool_used": pool_size - pool_free,
            }

    except Exception as e:
        return {
            "healthy": False,
            "error": str(e),
        }


__all__ = [
    "database_connection",
    "convert_db_exception",
    "create_pool",
    "get_shared_pool",
    "close_pool",
    "close_shared_pool",
    "check_database_health",
]
