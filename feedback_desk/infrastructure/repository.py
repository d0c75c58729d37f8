"""
SQL statements for feedback records.

The repository never opens or commits transactions itself; every method runs on
a connection handed in by the caller, so the lock taken by `lock()` lasts until
the caller's transaction ends. Table and column names are composed with
`psycopg.sql` identifiers, values always travel as parameters.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from psycopg import Connection, sql

from feedback_desk.domain.models import INTERNAL_DETAIL_COLUMNS, RecordKind

LIFECYCLE_COLUMNS = ("status", "handler_id", "completed_at")

HANDLER_NAME_SQL = sql.SQL("s.first_name || ' ' || s.last_name")


def writable_columns(kind: RecordKind) -> frozenset:
    """Columns this package may write on the given table."""
    columns = set(LIFECYCLE_COLUMNS)
    if kind.has_internal_details:
        columns.update(INTERNAL_DETAIL_COLUMNS.values())
    return frozenset(columns)


@runtime_checkable
class RecordStore(Protocol):
    """
    Row access the record mutator relies on.

    All methods run inside the caller's transaction.
    """

    def lock(self, conn: Any, kind: RecordKind, record_id: int) -> Optional[Dict[str, Any]]:
        """SELECT ... FOR UPDATE the lifecycle columns; None when the row is absent."""
        ...

    def update(
        self, conn: Any, kind: RecordKind, record_id: int, writes: Mapping[str, Any]
    ) -> int:
        """Apply `writes` in one UPDATE and return the affected row count."""
        ...

    def fetch(self, conn: Any, kind: RecordKind, record_id: int) -> Optional[Dict[str, Any]]:
        """Read the full row joined with the handler's display name."""
        ...


class RecordRepository:
    """
    psycopg implementation of RecordStore.

    Expects connections created with `row_factory=dict_row`, which is how
    `Database` configures its pool.
    """

    def lock(self, conn: Connection, kind: RecordKind, record_id: int) -> Optional[Dict[str, Any]]:
        columns = ["id", "status", "handler_id"]
        if kind.has_internal_details:
            columns.append("clarification_type")
        query = sql.SQL("SELECT {columns} FROM {table} WHERE id = %s FOR UPDATE").format(
            columns=sql.SQL(", ").join(sql.Identifier(column) for column in columns),
            table=sql.Identifier(kind.table),
        )
        with conn.cursor() as cur:
            cur.execute(query, (record_id,))
            return cur.fetchone()

    def update(
        self, conn: Connection, kind: RecordKind, record_id: int, writes: Mapping[str, Any]
    ) -> int:
        if not writes:
            return 0
        unknown = set(writes) - writable_columns(kind)
        if unknown:
            raise ValueError(f"refusing to write columns {sorted(unknown)} on {kind.table}")
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in writes
        )
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s").format(
            table=sql.Identifier(kind.table),
            assignments=assignments,
        )
        with conn.cursor() as cur:
            cur.execute(query, (*writes.values(), record_id))
            return cur.rowcount

    def fetch(self, conn: Connection, kind: RecordKind, record_id: int) -> Optional[Dict[str, Any]]:
        query = sql.SQL(
            "SELECT r.*, {handler_name} AS handler_name "
            "FROM {table} AS r LEFT JOIN staff AS s ON r.handler_id = s.id "
            "WHERE r.id = %s"
        ).format(handler_name=HANDLER_NAME_SQL, table=sql.Identifier(kind.table))
        with conn.cursor() as cur:
            cur.execute(query, (record_id,))
            return cur.fetchone()


__all__ = ["RecordStore", "RecordRepository", "writable_columns", "LIFECYCLE_COLUMNS"]
