"""
Pytest configuration for Feedback Desk.

Provides fixtures for:
- Settings override and DSN for integration tests
- Database connection management and schema/sample data setup
- In-memory stand-ins for the pool handle and the SQL repository, used by the
  unit tests of the mutator, the API and the client lock
"""

from __future__ import annotations

import copy
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Iterator, List, Mapping, Optional, Tuple

import psycopg
import pytest

from feedback_desk.config import Settings, build_dsn
from feedback_desk.domain.models import RecordKind
from feedback_desk.infrastructure.repository import writable_columns

FIXED_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


class InMemoryRecordStore:
    """
    Dict-backed RecordStore. Rows are keyed by kind and id; `calls` records the
    order of statements so tests can assert lock-before-update.
    """

    def __init__(self) -> None:
        self.tables: Dict[RecordKind, Dict[int, Dict[str, Any]]] = {kind: {} for kind in RecordKind}
        self.staff: Dict[int, Tuple[str, str]] = {}
        self.calls: List[Tuple[str, RecordKind, int]] = []
        self.fail_on_update: Optional[Exception] = None

    def add_staff(self, staff_id: int, first_name: str, last_name: str) -> None:
        self.staff[staff_id] = (first_name, last_name)

    def add_record(self, kind: RecordKind, record_id: int, **columns: Any) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "id": record_id,
            "status": None,
            "handler_id": None,
            "completed_at": None,
            "name": "Jane Doe",
            "email": "jane@example.org",
            "subject": f"Feedback {record_id}",
            "created_at": FIXED_NOW,
        }
        for column in writable_columns(kind):
            row.setdefault(column, None)
        row.update(columns)
        self.tables[kind][record_id] = row
        return row

    def row(self, kind: RecordKind, record_id: int) -> Dict[str, Any]:
        return self.tables[kind][record_id]

    def lock(self, conn: Any, kind: RecordKind, record_id: int) -> Optional[Dict[str, Any]]:
        self.calls.append(("lock", kind, record_id))
        row = self.tables[kind].get(record_id)
        if row is None:
            return None
        keys = ["id", "status", "handler_id"]
        if kind.has_internal_details:
            keys.append("clarification_type")
        return {key: row.get(key) for key in keys}

    def update(
        self, conn: Any, kind: RecordKind, record_id: int, writes: Mapping[str, Any]
    ) -> int:
        self.calls.append(("update", kind, record_id))
        if self.fail_on_update is not None:
            raise self.fail_on_update
        unknown = set(writes) - writable_columns(kind)
        if unknown:
            raise ValueError(f"refusing to write columns {sorted(unknown)}")
        row = self.tables[kind].get(record_id)
        if row is None:
            return 0
        row.update(writes)
        return 1

    def fetch(self, conn: Any, kind: RecordKind, record_id: int) -> Optional[Dict[str, Any]]:
        self.calls.append(("fetch", kind, record_id))
        row = self.tables[kind].get(record_id)
        if row is None:
            return None
        result = dict(row)
        names = self.staff.get(row.get("handler_id"))
        result["handler_name"] = f"{names[0]} {names[1]}" if names else None
        return result


class FakeDatabase:
    """
    Stand-in for `Database`: one global lock serializes transactions (the way
    a row lock serializes requests for one id) and an exception inside the
    block restores the store's snapshot.
    """

    def __init__(self, store: InMemoryRecordStore) -> None:
        self.store = store
        self.commits = 0
        self.rollbacks = 0
        self.reads = 0
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[object]:
        with self._lock:
            snapshot = copy.deepcopy(self.store.tables)
            try:
                yield object()
            except BaseException:
                self.store.tables = snapshot
                self.rollbacks += 1
                raise
            self.commits += 1

    @contextmanager
    def connection(self) -> Iterator[object]:
        self.reads += 1
        yield object()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    store.add_staff(7, "Anna", "Becker")
    store.add_staff(9, "Ben", "Wolf")
    return store


@pytest.fixture
def fake_database(record_store: InMemoryRecordStore) -> FakeDatabase:
    return FakeDatabase(record_store)


@pytest.fixture
def unit_settings() -> Settings:
    return Settings(
        jwt_secret="unit-test-secret",
        require_clarification_to_close=True,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "feedback_desk"),
        db_pool_max_size=4,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection, test_dsn: str) -> bool:
    """
    Ensure the staff and feedback tables exist.
    """
    from scripts.seed_data import apply_schema

    apply_schema(test_dsn)
    return True


@pytest.fixture(scope="function")
def seeded_db(
    db_connection: psycopg.Connection,
    db_schema_initialized: bool,
    test_dsn: str,
) -> Dict[str, int]:
    """
    Replace all rows with a small deterministic sample before each test.

    Returns the number of rows seeded per table.
    """
    from scripts.seed_data import seed_database

    return seed_database(test_dsn, staff=4, records_per_kind=10, seed=42)
