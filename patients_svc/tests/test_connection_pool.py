"""
Tests for the bounded SQLite connection pool.
"""
import threading
import time

import pytest

from core.exceptions import DatabaseError, PoolExhaustedError
from repositories import ConnectionPool, open_pool


@pytest.fixture
def small_pool(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=1, pool_max=2, pool_increment=1, timeout=0.2)
    yield pool
    pool.close()


def test_opens_minimum_connections(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=2, pool_max=5)
    try:
        stats = pool.stats()
        assert stats["size"] == 2
        assert stats["idle"] == 2
        assert stats["in_use"] == 0
    finally:
        pool.close()


def test_grows_by_increment_up_to_max(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=1, pool_max=3, pool_increment=5, timeout=0.2)
    try:
        first = pool.acquire()
        second = pool.acquire()
        # Growth is capped at pool_max
        assert pool.stats()["size"] == 3
        pool.release(first)
        pool.release(second)
        assert pool.stats()["in_use"] == 0
    finally:
        pool.close()


def test_exhausted_pool_times_out(small_pool):
    """At capacity, acquire waits for the timeout then raises PoolExhaustedError."""
    a = small_pool.acquire()
    b = small_pool.acquire()
    start = time.monotonic()
    with pytest.raises(PoolExhaustedError) as exc_info:
        small_pool.acquire()
    assert time.monotonic() - start >= 0.15
    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "POOL_EXHAUSTED"
    small_pool.release(a)
    small_pool.release(b)


def test_waiter_gets_released_connection(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=1, pool_max=1, timeout=5.0)
    held = pool.acquire()
    acquired = []

    def worker():
        with pool.connection() as conn:
            acquired.append(conn)

    thread = threading.Thread(target=worker)
    thread.start()
    time.sleep(0.1)
    assert acquired == []
    pool.release(held)
    thread.join(timeout=5)

    assert acquired == [held]
    pool.close()


def test_never_more_than_max_connections_in_use(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=0, pool_max=3, pool_increment=1, timeout=5.0)
    peak = []
    lock = threading.Lock()

    def worker():
        with pool.connection() as conn:
            conn.execute("SELECT 1")
            with lock:
                peak.append(pool.stats()["in_use"])
            time.sleep(0.02)

    threads = [threading.Thread(target=worker) for _ in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(peak) == 12
    assert max(peak) <= 3
    assert pool.stats()["in_use"] == 0
    pool.close()


def test_connection_released_on_exception(small_pool):
    with pytest.raises(RuntimeError):
        with small_pool.connection():
            raise RuntimeError("boom")
    assert small_pool.stats()["in_use"] == 0


def test_release_rolls_back_open_transaction(pool):
    with pool.connection() as conn:
        conn.execute(
            "INSERT INTO patients (first_name, last_name, email, phone, birth_date) "
            "VALUES ('A', 'B', 'a@b.co', '0999999999', '1990-01-01')"
        )
        assert conn.in_transaction

    with pool.connection() as conn:
        assert conn.execute("SELECT COUNT(*) FROM patients").fetchone()[0] == 0


def test_closed_pool_rejects_acquire(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=1, pool_max=2)
    pool.close()
    assert pool.closed
    assert pool.stats()["size"] == 0
    with pytest.raises(DatabaseError) as exc_info:
        pool.acquire()
    assert exc_info.value.message == "Connection pool is closed"


def test_release_after_close_closes_connection(db_path):
    pool = ConnectionPool(db_path=db_path, pool_min=1, pool_max=2)
    conn = pool.acquire()
    pool.close()
    assert pool.stats()["size"] == 1
    pool.release(conn)
    assert pool.stats()["size"] == 0


@pytest.mark.parametrize("kwargs", [
    {"pool_min": 3, "pool_max": 2},
    {"pool_max": 0},
    {"pool_increment": 0},
])
def test_invalid_bounds(db_path, kwargs):
    with pytest.raises(ValueError):
        ConnectionPool(db_path=db_path, **kwargs)


def test_open_pool_creates_schema(db_path):
    pool = open_pool(db_path=db_path, pool_min=1, pool_max=2)
    try:
        with pool.connection() as conn:
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
            indexes = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
            }
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert "patients" in tables
        assert "ux_patients_email" in indexes
        assert mode.lower() == "wal"
    finally:
        pool.close()


def test_creates_missing_database_directory(tmp_path):
    db_file = tmp_path / "nested" / "dir" / "patients.db"
    pool = ConnectionPool(db_path=str(db_file), pool_min=1, pool_max=1)
    try:
        assert db_file.parent.is_dir()
    finally:
        pool.close()


def test_connections_fold_unicode_case(pool):
    with pool.connection() as conn:
        assert conn.execute("SELECT UNI_UPPER('pérez') AS v").fetchone()["v"] == "PÉREZ"
        assert conn.execute("SELECT UNI_UPPER(NULL) AS v").fetchone()["v"] is None
