"""
PostgreSQL client with connection pooling and explicit transactions.

Uses psycopg2 with ThreadedConnectionPool. Two ways to run SQL:

- execute*/execute_returning: one statement on a pooled connection,
  committed immediately. Good for single reads and single writes.
- transaction(): yields a Transaction handle bound to one connection.
  Nothing is committed until Transaction.commit() is called; leaving the
  block without committing (exception, early return, cancellation) rolls
  everything back.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None


def _convert_params(params: Params) -> Params:
    """Convert UUID objects to strings."""
    if params is None:
        return None

    def convert(value: Any) -> Any:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, list):
            return [convert(v) for v in value]
        if isinstance(value, tuple):
            return tuple(convert(v) for v in value)
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return convert(params)


class Transaction:
    """
    Handle for one database transaction, passed through a workflow's steps.

    Obtained from PostgresClient.transaction(); never constructed by callers.
    """

    def __init__(self, connection):
        self._conn = connection
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute query inside the transaction, return list of row dicts."""
        if self._committed:
            raise RuntimeError("Transaction already committed")
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, _convert_params(params))
            if cur.description:
                return [dict(row) for row in cur.fetchall()]
            return []

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """Execute query inside the transaction, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def commit(self) -> None:
        """Commit. After this the handle is spent."""
        self._conn.commit()
        self._committed = True


class PostgresClient:
    """
    PostgreSQL client backed by a shared ThreadedConnectionPool.

    Usage:
        db = PostgresClient(database_url)

        row = db.execute_single("SELECT username FROM users WHERE user_id = %s", (uid,))

        with db.transaction() as tx:
            tx.execute("INSERT ...", (...))
            tx.execute("INSERT ...", (...))
            tx.commit()
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection; any open transaction is rolled back on return."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")
            yield conn
        finally:
            if conn:
                if not conn.closed:
                    conn.rollback()
                pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Open a transaction scoped to the with-block.

        The caller must call tx.commit() before leaving the block; otherwise
        every statement issued through tx is rolled back.
        """
        with self.get_connection() as conn:
            tx = Transaction(conn)
            try:
                yield tx
            finally:
                if not tx.committed:
                    conn.rollback()
                    logger.debug("Transaction rolled back")

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        params = _convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
                conn.commit()
                return rows

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        params = _convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()]
                conn.commit()
                return rows

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]
