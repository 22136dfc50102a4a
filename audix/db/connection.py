from __future__ import annotations

import atexit
import logging
import threading
from contextlib import contextmanager

import psycopg
from psycopg_pool import ConnectionPool

from audix import config

logger = logging.getLogger(__name__)

# Global pool instance (lazy initialized)
_pool: ConnectionPool | None = None
_pool_lock = threading.Lock()


def _create_pool() -> ConnectionPool:
    """Create and return a new connection pool."""
    url = config.database_url()

    pool = ConnectionPool(
        conninfo=url,
        min_size=config.DB_POOL_MIN_SIZE,
        max_size=config.DB_POOL_MAX_SIZE,
        timeout=config.DB_POOL_TIMEOUT,
        max_idle=config.DB_POOL_MAX_IDLE,
        open=True,
        check=ConnectionPool.check_connection,
    )

    logger.info(
        "Database connection pool initialized (min=%d, max=%d)",
        config.DB_POOL_MIN_SIZE,
        config.DB_POOL_MAX_SIZE,
    )
    return pool


def _get_pool() -> ConnectionPool:
    """Get or create the global connection pool."""
    global _pool
    if _pool is not None:
        return _pool

    with _pool_lock:
        if _pool is not None:
            return _pool
        _pool = _create_pool()
        return _pool


def close_pool() -> None:
    """Close the connection pool. Called at shutdown."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            try:
                _pool.close()
                logger.info("Database connection pool closed")
            except psycopg.Error as e:
                logger.warning("Error closing connection pool: %s", e)
            _pool = None


# Register cleanup on exit
atexit.register(close_pool)


@contextmanager
def get_connection():
    """Get a connection from the pool.

    Connections are automatically returned to the pool when the context exits.
    The pool handles connection health checks and reconnection.
    """
    pool = _get_pool()
    with pool.connection() as conn:
        yield conn


def get_pool_stats() -> dict:
    """Get connection pool statistics for monitoring."""
    pool = _get_pool()
    stats = pool.get_stats()
    return {
        "pool_size": stats.get("pool_size", 0),
        "pool_available": stats.get("pool_available", 0),
        "requests_waiting": stats.get("requests_waiting", 0),
        "pool_min": pool.min_size,
        "pool_max": pool.max_size,
    }
