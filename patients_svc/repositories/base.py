"""
Bounded connection pool and schema initialization.

This module handles database connection management and schema initialization.
Optimized for SQLite concurrency with WAL mode and busy_timeout.

IMPORTANT: The pool is created once per process in the application lifespan
(core.dependencies.init_pool) and closed on shutdown. Repositories receive
it through dependency injection; nothing here is a module-level singleton.
"""
import logging
import sqlite3
import threading
import time
from collections import deque
from contextlib import contextmanager
from pathlib import Path
from typing import Deque, Dict, Iterator, Optional

from core.datetime_utils import SQL_UTC_NOW
from core.exceptions import DatabaseError, PoolExhaustedError
from core.pagination import FOLD_FUNCTION, fold_case

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS patients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        email TEXT NOT NULL,
        phone TEXT NOT NULL,
        birth_date TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT ({SQL_UTC_NOW}),
        updated_at TEXT NOT NULL DEFAULT ({SQL_UTC_NOW})
    )
    """,
    # Uniqueness is case-insensitive, like the pre-insert check
    f"CREATE UNIQUE INDEX IF NOT EXISTS ux_patients_email ON patients ({FOLD_FUNCTION}(email))",
    "CREATE INDEX IF NOT EXISTS ix_patients_created_at ON patients (created_at)",
)


class ConnectionPool:
    """
    Bounded pool of SQLite connections.

    Features:
    - Opens ``pool_min`` connections up front
    - Grows by ``pool_increment`` (never past ``pool_max``) when every idle
      connection is leased
    - Blocks up to ``timeout`` seconds for a release when at capacity, then
      raises PoolExhaustedError
    - WAL mode and busy timeout for concurrent readers and writers
    - Registers the Unicode case-fold function used by the email index and
      name search

    Usage:
        pool = ConnectionPool(db_path="/tmp/patients.db", pool_min=1, pool_max=4)
        pool.init_schema()
        with pool.connection() as conn:
            conn.execute("SELECT 1")
        pool.close()
    """

    def __init__(
        self,
        db_path: str,
        pool_min: int = 2,
        pool_max: int = 10,
        pool_increment: int = 2,
        timeout: float = 60.0,
        busy_timeout: int = 5000,
    ):
        """
        Initialize the pool and open the minimum number of connections.

        Args:
            db_path: Path to SQLite database file.
            pool_min: Connections opened at start-up.
            pool_max: Upper bound on open connections.
            pool_increment: Connections opened each time the pool grows.
            timeout: Seconds to wait for a free connection at capacity.
            busy_timeout: SQLite busy timeout in milliseconds.
        """
        if pool_max < 1 or pool_min < 0 or pool_min > pool_max:
            raise ValueError(f"Invalid pool bounds: min={pool_min}, max={pool_max}")
        if pool_increment < 1:
            raise ValueError("pool_increment must be at least 1")

        self.db_path = db_path
        self.pool_min = pool_min
        self.pool_max = pool_max
        self.pool_increment = pool_increment
        self.timeout = timeout
        self.busy_timeout = busy_timeout

        self._idle: Deque[sqlite3.Connection] = deque()
        self._size = 0
        self._closed = False
        self._cond = threading.Condition()

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        with self._cond:
            self._grow(self.pool_min)

        logger.info(
            f"Connection pool created: {self.db_path} "
            f"(min={pool_min}, max={pool_max}, increment={pool_increment})"
        )

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        """Apply per-connection settings."""
        conn.row_factory = sqlite3.Row
        # SQLite's UPPER() only folds ASCII; the schema and queries use this instead
        conn.create_function(FOLD_FUNCTION, 1, fold_case, deterministic=True)
        # Wait for locks instead of failing immediately
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout)}")
        conn.execute("PRAGMA foreign_keys = ON")

    def _open_connection(self) -> sqlite3.Connection:
        try:
            # Connections move between worker threads, one lease at a time
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._configure_connection(conn)
        except sqlite3.Error as e:
            logger.exception("Failed to open database connection")
            raise DatabaseError(operation="connect", code=type(e).__name__) from e
        return conn

    def _grow(self, count: int) -> None:
        """Open up to ``count`` new idle connections. Caller holds the lock."""
        count = min(count, self.pool_max - self._size)
        for _ in range(count):
            self._idle.append(self._open_connection())
            self._size += 1

    def acquire(self) -> sqlite3.Connection:
        """
        Lease a connection from the pool.

        Returns:
            sqlite3.Connection: A connection owned by the caller until release().

        Raises:
            PoolExhaustedError: If no connection became free before the timeout.
            DatabaseError: If the pool is closed or a connection cannot be opened.
        """
        deadline = time.monotonic() + self.timeout
        with self._cond:
            while True:
                if self._closed:
                    raise DatabaseError(message="Connection pool is closed", operation="acquire")
                if self._idle:
                    return self._idle.popleft()
                if self._size < self.pool_max:
                    self._grow(self.pool_increment)
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.error(
                        "Connection pool exhausted",
                        extra={"pool_max": self.pool_max, "timeout": self.timeout}
                    )
                    raise PoolExhaustedError(operation="acquire")
                self._cond.wait(remaining)

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a leased connection. Any transaction left open is rolled back."""
        if conn.in_transaction:
            try:
                conn.rollback()
            except sqlite3.Error:
                logger.exception("Rollback on release failed, discarding connection")
                self._discard(conn)
                return

        with self._cond:
            if self._closed:
                self._size -= 1
                conn.close()
            else:
                self._idle.append(conn)
            self._cond.notify()

    def _discard(self, conn: sqlite3.Connection) -> None:
        try:
            conn.close()
        except sqlite3.Error:
            logger.exception("Failed to close discarded connection")
        with self._cond:
            self._size -= 1
            self._cond.notify()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Lease a connection for the duration of a ``with`` block; released on every exit path."""
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """
        Close the pool.

        Idle connections are closed now; leased connections are closed as
        they are released. Further acquire() calls fail.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            while self._idle:
                conn = self._idle.popleft()
                self._size -= 1
                try:
                    conn.close()
                except sqlite3.Error:
                    logger.exception("Failed to close pooled connection")
            self._cond.notify_all()
        logger.info(f"Connection pool closed: {self.db_path}")

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, int]:
        """Current pool occupancy."""
        with self._cond:
            idle = len(self._idle)
            return {
                "size": self._size,
                "idle": idle,
                "in_use": self._size - idle,
                "min": self.pool_min,
                "max": self.pool_max,
            }

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def init_schema(self) -> None:
        """Enable WAL mode and create tables and indexes if they don't exist."""
        with self.connection() as conn:
            try:
                # WAL mode persists in the database file
                mode = conn.execute("PRAGMA journal_mode = WAL").fetchone()
                if mode and str(mode[0]).lower() == "wal":
                    logger.info(f"SQLite WAL mode enabled for {self.db_path}")
                else:
                    logger.warning(f"Failed to enable WAL mode, current mode: {mode[0] if mode else None}")

                for statement in SCHEMA_STATEMENTS:
                    conn.execute(statement)
                conn.commit()
            except sqlite3.Error as e:
                logger.exception("Schema initialization failed")
                raise DatabaseError(operation="init_schema", code=type(e).__name__) from e

        logger.info(f"Database initialized: {self.db_path} (busy_timeout={self.busy_timeout}ms)")


def open_pool(
    db_path: str,
    pool_min: int = 2,
    pool_max: int = 10,
    pool_increment: int = 2,
    timeout: float = 60.0,
    busy_timeout: int = 5000,
) -> ConnectionPool:
    """Create a pool and make sure the schema exists."""
    pool = ConnectionPool(
        db_path=db_path,
        pool_min=pool_min,
        pool_max=pool_max,
        pool_increment=pool_increment,
        timeout=timeout,
        busy_timeout=busy_timeout,
    )
    try:
        pool.init_schema()
    except DatabaseError:
        pool.close()
        raise
    return pool
