from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from feedback_desk.config import get_settings
from feedback_desk.domain.models import RecordKind, StaffIdentity, parse_mutation_request
from feedback_desk.errors import FeedbackDeskError
from feedback_desk.infrastructure.db_factory import Database
from feedback_desk.mutator import RecordMutator
from feedback_desk.utils.logging import configure_logging

app = typer.Typer(help="Feedback Desk CLI.")


def _kind(value: str) -> RecordKind:
    try:
        return RecordKind.from_path(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _fail(exc: FeedbackDeskError) -> None:
    typer.echo(json.dumps(exc.to_payload()), err=True)
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"api={settings.api_host}:{settings.api_port} "
        f"require_clarification={settings.require_clarification_to_close}"
    )


@app.command("init-db")
def init_db(
    schema: Path = typer.Option(
        Path("db/init.sql"),
        "--schema",
        help="SQL file creating the staff and feedback tables.",
    ),
) -> None:
    """
    Create the tables if they do not exist yet.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        with Database.from_settings(settings) as database:
            with database.transaction() as conn:
                conn.execute(schema.read_text(encoding="utf-8"))
    except FeedbackDeskError as exc:
        _fail(exc)
    typer.echo(f"Schema applied from {schema}.")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from settings)."),
) -> None:
    """
    Run the HTTP API with uvicorn.
    """
    import uvicorn

    from feedback_desk.api.app import create_app

    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    uvicorn.run(
        create_app(settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )


@app.command()
def show(
    kind: str = typer.Argument(..., help="complaints, compliments or suggestions."),
    record_id: int = typer.Argument(..., help="Record id."),
) -> None:
    """
    Print the current state of one record as JSON.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        with Database.from_settings(settings) as database:
            record = RecordMutator(database, settings=settings).get(_kind(kind), record_id)
    except FeedbackDeskError as exc:
        _fail(exc)
    typer.echo(json.dumps(record.to_wire(), indent=2))


@app.command()
def mutate(
    kind: str = typer.Argument(..., help="complaints, compliments or suggestions."),
    payload: str = typer.Argument(..., help='Mutation request as JSON, e.g. \'{"id": 42, "assignSelf": true}\'.'),
    staff_id: int = typer.Option(..., "--staff-id", "-u", help="Staff member acting on the record."),
) -> None:
    """
    Apply one mutation request on behalf of a staff member and print the result.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    record_kind = _kind(kind)
    try:
        body = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"payload is not valid JSON: {exc}") from exc

    try:
        request = parse_mutation_request(body)
        with Database.from_settings(settings) as database:
            result = RecordMutator(database, settings=settings).mutate(
                record_kind, request, StaffIdentity(staff_id=staff_id, username="cli")
            )
    except FeedbackDeskError as exc:
        _fail(exc)
    typer.echo(json.dumps(result.to_wire(), indent=2))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
