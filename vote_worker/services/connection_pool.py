"""
Database connection pooling for the vote store.

Reuses Postgres connections across cycles and backs off after repeated
connection failures instead of hammering the database on every pair.
"""

import threading
import time
from typing import Optional

import psycopg2
from psycopg2 import pool

from vote_worker.config.database_config import get_connection_string, get_database_config
from vote_worker.utils.logger import logger

class DatabaseConnectionPool:
    """Thread-safe database connection pool with failure handling."""

    def __init__(self, min_connections: int = 1, max_connections: int = 5):
        self._pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None
        self._lock = threading.Lock()
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._last_failure_time = 0.0
        self._failure_count = 0
        self._max_failure_count = 3
        self._backoff_seconds = 30

    def _create_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        config = get_database_config()
        logger.info("DatabaseConnectionPool: Creating pool for %s (min=%d, max=%d)",
                    get_connection_string(), self._min_connections, self._max_connections)
        return psycopg2.pool.ThreadedConnectionPool(
            self._min_connections,
            self._max_connections,
            **config.get_connection_params()
        )

    def _should_retry(self) -> bool:
        if self._failure_count < self._max_failure_count:
            return True
        return time.time() - self._last_failure_time > self._backoff_seconds

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.time()

    def get_connection(self):
        """Get a connection from the pool."""
        with self._lock:
            if not self._should_retry():
                raise RuntimeError(
                    f"Database connection pool in backoff mode. "
                    f"Too many failures ({self._failure_count}). "
                    f"Please wait {self._backoff_seconds} seconds before retrying."
                )

            if self._pool is None:
                try:
                    self._pool = self._create_pool()
                    self._failure_count = 0
                except psycopg2.Error as e:
                    self._record_failure()
                    logger.error("DatabaseConnectionPool: Failed to create pool: %s", e)
                    raise RuntimeError(f"Failed to create database connection pool: {e}") from e

            try:
                conn = self._pool.getconn()
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                return conn
            except (psycopg2.Error, pool.PoolError) as e:
                self._record_failure()
                logger.error("DatabaseConnectionPool: Failed to get connection: %s", e)

                # Recreate the pool on persistent failures
                if self._failure_count >= 2:
                    logger.warning("DatabaseConnectionPool: Recreating pool due to persistent failures")
                    self._close_pool()

                raise RuntimeError(f"Failed to get database connection: {e}") from e

    def return_connection(self, conn, close_connection: bool = False):
        """Return a connection to the pool."""
        if self._pool is None:
            return
        try:
            self._pool.putconn(conn, close=close_connection)
        except pool.PoolError as e:
            logger.error("DatabaseConnectionPool: Error returning connection: %s", e)

    def _close_pool(self):
        if self._pool is not None:
            try:
                self._pool.closeall()
                logger.info("DatabaseConnectionPool: Closed connection pool")
            except pool.PoolError as e:
                logger.error("DatabaseConnectionPool: Error closing pool: %s", e)
            finally:
                self._pool = None

    def close(self):
        with self._lock:
            self._close_pool()

_connection_pool: Optional[DatabaseConnectionPool] = None
_pool_lock = threading.Lock()

def get_connection_pool() -> DatabaseConnectionPool:
    """Get the global connection pool instance."""
    global _connection_pool

    with _pool_lock:
        if _connection_pool is None:
            _connection_pool = DatabaseConnectionPool()
        return _connection_pool

