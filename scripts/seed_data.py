"""
Sample data loader for Feedback Desk.

Applies `db/init.sql` and fills the staff table and the three feedback tables
with deterministic pseudo-random rows, loaded with COPY. Meant for local
development and the integration tests; production rows come from the intake
form.
"""

from __future__ import annotations

import random
import sys
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import psycopg
import typer

from feedback_desk.config import build_dsn

app = typer.Typer(help="Create the schema and load sample staff and feedback rows.")

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "db" / "init.sql"

STAFF_COLUMNS = ("username", "first_name", "last_name", "is_admin")
INTAKE_COLUMNS = ("name", "email", "phone", "subject", "description", "created_at")
COMPLAINT_COLUMNS = INTAKE_COLUMNS + ("reason", "stop", "line")

_FIRST_NAMES = ["Anna", "Ben", "Clara", "David", "Elif", "Farid", "Greta", "Hannes"]
_LAST_NAMES = ["Becker", "Wolf", "Schulz", "Yilmaz", "Keller", "Brandt", "Vogel"]
_STOPS = ["Central Station", "Market Square", "University", "Harbour", "Old Town"]
_REASONS = ["delay", "driver conduct", "cleanliness", "missed stop", "ticketing"]


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def apply_schema(dsn: str, schema_path: Path = SCHEMA_PATH) -> None:
    with psycopg.connect(dsn) as conn:
        conn.execute(schema_path.read_text(encoding="utf-8"))


def _generate_staff(count: int, rng: random.Random) -> List[Tuple]:
    rows = []
    for i in range(count):
        first = rng.choice(_FIRST_NAMES)
        last = rng.choice(_LAST_NAMES)
        rows.append((f"{first.lower()}.{last.lower()}{i}", first, last, i == 0))
    return rows


def _generate_feedback(
    count: int, rng: random.Random, with_complaint_fields: bool
) -> List[Tuple]:
    now = datetime.now(UTC)
    rows = []
    for i in range(count):
        first = rng.choice(_FIRST_NAMES)
        last = rng.choice(_LAST_NAMES)
        row: Tuple = (
            f"{first} {last}",
            f"{first.lower()}.{last.lower()}@example.org",
            f"+49 30 {rng.randint(1_000_000, 9_999_999)}",
            f"Feedback #{i + 1}",
            "Sample text submitted through the feedback form.",
            now - timedelta(hours=rng.randint(1, 24 * 60)),
        )
        if with_complaint_fields:
            row += (rng.choice(_REASONS), rng.choice(_STOPS), str(rng.randint(1, 40)))
        rows.append(row)
    return rows


def _copy_rows(
    cur: psycopg.Cursor, table: str, columns: Sequence[str], rows: Sequence[Tuple]
) -> None:
    with cur.copy(f"COPY public.{table} ({', '.join(columns)}) FROM STDIN") as copy:
        for row in rows:
            copy.write_row(row)


def seed_database(
    dsn: str,
    staff: int = 4,
    records_per_kind: int = 20,
    seed: int = 42,
    truncate: bool = True,
) -> Dict[str, int]:
    """
    Load sample rows and return the number of rows written per table.
    """
    rng = random.Random(seed)
    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            if truncate:
                cur.execute(
                    "TRUNCATE TABLE public.complaints, public.compliments, "
                    "public.suggestions, public.staff RESTART IDENTITY CASCADE;"
                )
            _copy_rows(cur, "staff", STAFF_COLUMNS, _generate_staff(staff, rng))
            _copy_rows(
                cur,
                "complaints",
                COMPLAINT_COLUMNS,
                _generate_feedback(records_per_kind, rng, with_complaint_fields=True),
            )
            for table in ("compliments", "suggestions"):
                _copy_rows(
                    cur,
                    table,
                    INTAKE_COLUMNS,
                    _generate_feedback(records_per_kind, rng, with_complaint_fields=False),
                )
    return {
        "staff": staff,
        "complaints": records_per_kind,
        "compliments": records_per_kind,
        "suggestions": records_per_kind,
    }


@app.command()
def main(
    staff: int = typer.Option(4, "--staff", help="Number of staff members."),
    records: int = typer.Option(
        20,
        "--records",
        "-r",
        help="Rows per feedback table.",
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
    no_schema: bool = typer.Option(
        False,
        "--no-schema",
        help="Skip applying db/init.sql.",
    ),
) -> None:
    """
    Create the schema (unless skipped) and replace all rows with sample data.
    """
    start = time.perf_counter()
    conn_dsn = _build_dsn(dsn)
    if not no_schema:
        typer.echo(f"Applying schema from {SCHEMA_PATH}")
        apply_schema(conn_dsn)
    counts = seed_database(conn_dsn, staff=staff, records_per_kind=records, seed=seed)
    duration = time.perf_counter() - start
    summary = ", ".join(f"{table}={count}" for table, count in counts.items())
    typer.echo(f"Seeded {summary} in {duration:.2f}s")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
