"""
HTTP surface for the record lifecycle.

Routes
------
PATCH /api/{kind}        apply a mutation request (status / claim / internal details)
GET   /api/{kind}/{id}   current record, for polling clients
GET   /health            liveness

`kind` is one of complaints, compliments, suggestions. The database handle is
opened in the lifespan and closed on shutdown unless a mutator was injected.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from feedback_desk.api.security import get_current_staff
from feedback_desk.config import Settings, get_settings
from feedback_desk.domain.models import RecordKind, StaffIdentity, parse_mutation_request
from feedback_desk.errors import (
    AuthenticationError,
    FeedbackDeskError,
    NotFoundError,
    PersistenceError,
)
from feedback_desk.infrastructure.db_factory import Database
from feedback_desk.mutator import RecordMutator
from feedback_desk.utils.logging import get_logger

log = get_logger(__name__)


def get_mutator(request: Request) -> RecordMutator:
    return request.app.state.mutator


def _resolve_kind(kind: str) -> RecordKind:
    try:
        return RecordKind.from_path(kind)
    except ValueError:
        raise NotFoundError(f"unknown record kind {kind!r}") from None


async def _feedback_error_handler(request: Request, exc: FeedbackDeskError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        # Diagnostics were logged at the transaction boundary.
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.kind, "detail": "the request could not be completed"},
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload(), headers=headers)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "detail": details or "malformed request"},
    )


def create_app(
    settings: Optional[Settings] = None,
    mutator: Optional[RecordMutator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to the cached environment settings.
    mutator : RecordMutator, optional
        Pre-built mutator (tests, embedding). When omitted the lifespan opens a
        Database from settings and closes it on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        database: Optional[Database] = None
        if app.state.mutator is None:
            database = Database.from_settings(settings).open()
            app.state.mutator = RecordMutator(database, settings=settings)
        try:
            yield
        finally:
            if database is not None:
                database.close()
                app.state.mutator = None

    app = FastAPI(title="Feedback Desk", lifespan=lifespan)
    app.state.settings = settings
    app.state.mutator = mutator

    app.add_exception_handler(FeedbackDeskError, _feedback_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.patch("/api/{kind}")
    def mutate_record(
        kind: str,
        payload: Any = Body(...),
        staff: StaffIdentity = Depends(get_current_staff),
        records: RecordMutator = Depends(get_mutator),
    ) -> dict:
        record_kind = _resolve_kind(kind)
        request = parse_mutation_request(payload)
        log.debug(
            "mutation requested",
            extra={"kind": record_kind.value, "record_id": request.id, "staff_id": staff.staff_id},
        )
        return records.mutate(record_kind, request, staff).to_wire()

    @app.get("/api/{kind}/{record_id}", dependencies=[Depends(get_current_staff)])
    def read_record(
        kind: str,
        record_id: int,
        records: RecordMutator = Depends(get_mutator),
    ) -> dict:
        return records.get(_resolve_kind(kind), record_id).to_wire()

    return app


__all__ = ["create_app", "get_mutator"]
