"""
Database handle for Feedback Desk.

`Database` wraps a psycopg `ConnectionPool` with an explicit lifecycle: it is
constructed once at process start (FastAPI lifespan or a CLI command), passed
to whatever needs it, and closed at shutdown. There is no module-level pool.

Each `transaction()` borrows one connection for its whole lifetime and gives it
back unconditionally. Driver errors are logged and re-raised as
`PersistenceError`; domain errors raised inside the block roll the transaction
back and propagate unchanged.

Only startup is retried (tenacity, for a database that is still coming up);
request transactions never are.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from feedback_desk.config import Settings, build_dsn, get_settings
from feedback_desk.errors import PersistenceError
from feedback_desk.utils.logging import get_logger

log = get_logger(__name__)


class Database:
    """
    Injected connection-pool handle.

    Example
    -------
        database = Database.from_settings(get_settings()).open()
        try:
            with database.transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        finally:
            database.close()
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        timeout: float = 10.0,
    ) -> None:
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: Optional[ConnectionPool] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return cls(
            build_dsn(settings),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            timeout=settings.db_pool_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> "Database":
        """
        Create the pool and wait until `min_size` connections are ready.

        Raises
        ------
        PersistenceError
            If the database stays unreachable after the startup retries.
        """
        if self._pool is not None:
            return self
        try:
            pool = self._start_pool()
        except (PoolTimeout, psycopg.OperationalError) as exc:
            log.error("database pool failed to start", exc_info=True)
            raise PersistenceError("database unavailable", diagnostic=str(exc)) from exc
        self._pool = pool
        log.info(
            "database pool opened",
            extra={"pool_min_size": self.min_size, "pool_max_size": self.max_size},
        )
        return self

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((PoolTimeout, psycopg.OperationalError)),
        reraise=True,
    )
    def _start_pool(self) -> ConnectionPool:
        # A pool whose wait() timed out is closed, so every attempt starts a new one.
        pool = ConnectionPool(
            conninfo=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        pool.open(wait=False)
        try:
            pool.wait(timeout=self.timeout)
        except BaseException:
            pool.close()
            raise
        return pool

    def close(self) -> None:
        """Close the pool. Safe to call more than once."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        pool.close()
        log.info("database pool closed")

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_pool(self) -> ConnectionPool:
        if self._pool is None:
            raise PersistenceError("database handle is not open")
        return self._pool

    @contextmanager
    def connection(self) -> Generator[Connection, None, None]:
        """
        Borrow a connection for read-only work (autocommitted on return).
        """
        pool = self._require_pool()
        try:
            with pool.connection() as conn:
                yield conn
        except psycopg.Error as exc:
            log.error("database read failed", exc_info=True)
            raise PersistenceError("database read failed", diagnostic=str(exc)) from exc

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Run the block inside one transaction on one pooled connection.

        Commits when the block exits normally; rolls back on any exception.
        """
        pool = self._require_pool()
        try:
            with pool.connection() as conn:
                with conn.transaction():
                    yield conn
        except psycopg.Error as exc:
            log.error("transaction rolled back after database error", exc_info=True)
            raise PersistenceError("database transaction failed", diagnostic=str(exc)) from exc


__all__ = ["Database"]
