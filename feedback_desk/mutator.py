"""
Record mutator: the transactional update protocol for feedback records.

One call to `RecordMutator.mutate` is one all-or-nothing transaction:

1. open a transaction on a pooled connection;
2. lock the target row with SELECT ... FOR UPDATE (absent -> NotFoundError);
3. run the assignment guard on the freshly locked row if a claim was asked for;
4. check the clarification rule and run the status policy if a status was asked for;
5. merge every derived write into a single UPDATE;
6. re-read the row joined with the handler name and commit.

Any exception before the commit rolls the whole transaction back. Concurrent
requests for the same id serialize on the row lock; the second one observes
the first one's committed state. Nothing is retried here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from feedback_desk.config import Settings, get_settings
from feedback_desk.domain.models import (
    RELOCK_UI,
    FeedbackRecord,
    MutationRequest,
    RecordKind,
    StaffIdentity,
)
from feedback_desk.errors import (
    AlreadyAssignedError,
    ClarificationMissingError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from feedback_desk.infrastructure.db_factory import Database
from feedback_desk.infrastructure.repository import RecordRepository, RecordStore
from feedback_desk.lifecycle.assignment import ensure_assignable
from feedback_desk.lifecycle.internal_details import detail_writes
from feedback_desk.lifecycle.status_policy import decide_status, require_clarification
from feedback_desk.utils.logging import get_logger

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MutationResult:
    """
    Updated record plus the transient client instruction, if any.
    """

    record: FeedbackRecord
    action_required: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.record.to_wire()


class RecordMutator:
    """
    Applies validated mutations to feedback records.

    Parameters
    ----------
    database : Database
        Opened pool handle; one transaction per call.
    repository : RecordStore, optional
        SQL statements; defaults to RecordRepository.
    settings : Settings, optional
        Used for the clarification rule toggle.
    clock : callable, optional
        Source of `completed_at` timestamps; defaults to UTC now.
    """

    def __init__(
        self,
        database: Database,
        repository: Optional[RecordStore] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.database = database
        self.repository = repository or RecordRepository()
        self.settings = settings or get_settings()
        self._clock = clock or _utcnow

    def _validate(self, kind: RecordKind, request: MutationRequest) -> None:
        if not request.has_changes:
            raise ValidationError(
                "request must contain a status, assignSelf or internalDetails",
                record_id=request.id,
            )
        if request.internal_details is not None and not kind.has_internal_details:
            raise ValidationError(
                f"{kind.value} records have no internal details", record_id=request.id
            )

    @staticmethod
    def _clarification_after(row: Mapping[str, Any], request: MutationRequest) -> Any:
        """Clarification type as it will stand once this request is applied."""
        details = request.internal_details
        if details is not None and "clarification_type" in details.model_fields_set:
            return details.clarification_type
        return row.get("clarification_type")

    def mutate(
        self, kind: RecordKind, request: MutationRequest, staff: StaffIdentity
    ) -> MutationResult:
        """
        Execute one logical update request.

        Raises
        ------
        ValidationError
            Empty request or internal details on a non-complaint; no transaction opened.
        NotFoundError
            No row with this id.
        AlreadyAssignedError
            The claim found another (or the same) handler already set.
        ClarificationMissingError
            A complaint would close without a clarification type.
        PersistenceError
            Any database failure.
        """
        self._validate(kind, request)
        context = {"kind": kind.value, "record_id": request.id, "staff_id": staff.staff_id}
        now = self._clock()
        relock = False

        try:
            with self.database.transaction() as conn:
                row = self.repository.lock(conn, kind, request.id)
                if row is None:
                    raise NotFoundError(
                        f"{kind.value} {request.id} does not exist", record_id=request.id
                    )

                writes: Dict[str, Any] = {}
                if request.assign_self:
                    ensure_assignable(row.get("handler_id"), staff.staff_id, record_id=request.id)
                    writes["handler_id"] = staff.staff_id

                writes.update(detail_writes(request.internal_details))

                if request.status is not None:
                    if self.settings.require_clarification_to_close:
                        require_clarification(
                            kind, request.status, self._clarification_after(row, request)
                        )
                    decision = decide_status(
                        row.get("status"), row.get("handler_id"), request.status, now
                    )
                    writes.update(decision.writes)
                    relock = decision.relock

                if writes and self.repository.update(conn, kind, request.id, writes) != 1:
                    raise PersistenceError(
                        f"update of {kind.value} {request.id} touched no row",
                        record_id=request.id,
                    )

                fetched = self.repository.fetch(conn, kind, request.id)
                if fetched is None:
                    raise PersistenceError(
                        f"{kind.value} {request.id} vanished inside its own transaction",
                        record_id=request.id,
                    )
        except (NotFoundError, AlreadyAssignedError, ClarificationMissingError) as exc:
            log.warning("mutation rejected: %s", exc.message, extra={**context, "error": exc.kind})
            raise

        record = FeedbackRecord.from_row(fetched, kind)
        action_required = RELOCK_UI if relock else None
        if action_required:
            record = record.model_copy(update={"action_required": action_required})

        log.info(
            "mutation applied",
            extra={
                **context,
                "status": record.status.value,
                "handler_id": record.handler_id,
                "columns": sorted(writes),
                "action_required": action_required,
            },
        )
        return MutationResult(record=record, action_required=action_required)

    def get(self, kind: RecordKind, record_id: int) -> FeedbackRecord:
        """Read the current state of a record (used by polling clients)."""
        with self.database.connection() as conn:
            row = self.repository.fetch(conn, kind, record_id)
        if row is None:
            raise NotFoundError(f"{kind.value} {record_id} does not exist", record_id=record_id)
        return FeedbackRecord.from_row(row, kind)

    def claimer(self, kind: RecordKind, staff: StaffIdentity) -> Callable[[int], FeedbackRecord]:
        """
        Claim callable for ClientLock, bound to one record kind and caller.
        """

        def claim(record_id: int) -> FeedbackRecord:
            request = MutationRequest(id=record_id, assign_self=True)
            return self.mutate(kind, request, staff).record

        return claim


__all__ = ["MutationResult", "RecordMutator"]
