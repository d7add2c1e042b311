"""PostgreSQL database client for local deployments.

This module provides a connection pool and helper functions for talking to a
PostgreSQL database directly instead of going through Supabase. Mutations that
must be atomic run inside :meth:`PostgresClient.transaction`; every helper
called while a transaction is open joins it instead of checking out its own
connection.
"""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2 import pool
from psycopg2.extensions import ISOLATION_LEVEL_SERIALIZABLE
from psycopg2.extras import RealDictCursor

from src.domain.errors import ConcurrentModification
from src.infrastructure.config import Settings, get_settings

# Cursor of the transaction open in the current context, if any
_TX_CURSOR: ContextVar[Any | None] = ContextVar("nfccards_tx_cursor", default=None)


class PostgresClient:
    """PostgreSQL database client with connection pooling."""

    def __init__(self, settings: Settings) -> None:
        """Initialize PostgreSQL connection pool."""
        self.enabled = settings.use_local_db
        self._pool: Any = None

        if self.enabled:
            try:
                self._pool = pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=10,
                    host=settings.postgres_host,
                    port=settings.postgres_port,
                    database=settings.postgres_db,
                    user=settings.postgres_user,
                    password=settings.postgres_password,
                )
            except psycopg2.Error as exc:  # pragma: no cover
                raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc

    @contextmanager
    def get_connection(self, *, serializable: bool = False) -> Generator[Any, None, None]:
        """Get a database connection from the pool.

        Args:
            serializable: Run the connection's transaction at SERIALIZABLE isolation.

        Yields:
            Database connection with automatic commit/rollback and return to pool on exit.

        Raises:
            RuntimeError: If local database is not enabled.
        """
        if not self.enabled or self._pool is None:
            raise RuntimeError("Local PostgreSQL database is not enabled")

        conn = None
        try:
            conn = self._pool.getconn()
            if serializable:
                conn.set_isolation_level(ISOLATION_LEVEL_SERIALIZABLE)
            yield conn
            conn.commit()
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                if serializable:
                    conn.reset()
                self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Generator[Any, None, None]:
        """Open a SERIALIZABLE transaction shared by all helpers in this context.

        Nested calls reuse the outer transaction. A serialization conflict with a
        concurrent writer is raised as :class:`ConcurrentModification`; the
        transaction is not retried.
        """
        current = _TX_CURSOR.get()
        if current is not None:
            yield current
            return

        try:
            with self.get_connection(serializable=True) as conn:
                cursor = conn.cursor(cursor_factory=RealDictCursor)
                token = _TX_CURSOR.set(cursor)
                try:
                    yield cursor
                finally:
                    _TX_CURSOR.reset(token)
                    cursor.close()
        except pg_errors.SerializationFailure as exc:
            raise ConcurrentModification("The record was changed concurrently, try again") from exc

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        """Get a database cursor, joining the open transaction if there is one.

        Args:
            dict_cursor: If True, returns results as dictionaries (default: True).

        Yields:
            Database cursor.
        """
        current = _TX_CURSOR.get()
        if current is not None:
            yield current
            return

        with self.get_connection() as conn:
            cursor_factory = RealDictCursor if dict_cursor else None
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a query and return a single result.

        Returns:
            Single row as dictionary or None if no results.
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            return dict(result) if result else None

    def execute_many(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a query and return all results as dictionaries."""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            results = cursor.fetchall()
            return [dict(row) for row in results]

    def execute_insert(self, query: str, params: tuple = ()) -> dict[str, Any]:
        """Execute an INSERT (or UPDATE) with a RETURNING clause and return the row."""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            if not result:
                raise RuntimeError("Insert query did not return a row")
            return dict(result)

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an UPDATE or DELETE query.

        Returns:
            Number of rows affected.
        """
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()


# Singleton instance
_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client() -> PostgresClient | None:
    """Get PostgreSQL client singleton.

    Returns:
        PostgresClient instance if enabled, None otherwise.
    """
    global _POSTGRES_CLIENT
    settings = get_settings()
    if not settings.use_local_db:
        return None
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient(settings)
    return _POSTGRES_CLIENT
