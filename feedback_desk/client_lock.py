"""
Client-side edit lock for a record card.

A staff member's UI keeps a boolean "locked" flag per record, kept in step
with `handler_id` and with the relock signal from the server. The flag is a UX
guard only; the mutator enforces the rules that matter.

The server call is injected as `claim(record_id) -> FeedbackRecord`, which
raises a FeedbackDeskError when the claim fails. `RecordMutator.claimer()`
builds one for in-process use; an HTTP client can supply its own.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from feedback_desk.domain.models import RELOCK_UI, FeedbackRecord
from feedback_desk.errors import FeedbackDeskError
from feedback_desk.utils.logging import get_logger

log = get_logger(__name__)

ClaimFn = Callable[[int], FeedbackRecord]


class ToggleOutcome(str, Enum):
    CLAIMED = "claimed"
    UNLOCKED = "unlocked"
    LOCKED = "locked"
    REJECTED = "rejected"
    CLAIM_FAILED = "claim_failed"


class ClientLock:
    """
    Lock state machine for one record as seen by one staff member.

    Attributes
    ----------
    record : FeedbackRecord
        Local copy, replaced by every server response.
    locked : bool
        Whether editing controls are disabled.
    shake : bool
        Negative-feedback flag, set when an unlock attempt fails; the UI
        clears it with `acknowledge_shake()` once the animation ran.
    last_error : FeedbackDeskError | None
        Error from the most recent failed claim.
    """

    def __init__(self, record: FeedbackRecord, staff_id: int, claim: ClaimFn) -> None:
        self.record = record
        self.staff_id = staff_id
        self._claim = claim
        self.locked = record.handler_id != staff_id
        self.shake = False
        self.assigning = False
        self.last_error: FeedbackDeskError | None = None

    @property
    def can_edit(self) -> bool:
        return not self.locked

    @property
    def held_by_me(self) -> bool:
        return self.record.handler_id == self.staff_id

    def acknowledge_shake(self) -> None:
        self.shake = False

    def toggle(self) -> ToggleOutcome:
        """
        Flip the lock the way a click on the padlock does.
        """
        if self.assigning:
            return ToggleOutcome.REJECTED
        self.shake = False

        if not self.locked:
            self.locked = True
            return ToggleOutcome.LOCKED

        handler_id = self.record.handler_id
        if handler_id == self.staff_id:
            self.locked = False
            return ToggleOutcome.UNLOCKED
        if handler_id is not None:
            log.debug(
                "unlock refused, record held by another staff member",
                extra={"record_id": self.record.id, "handler_id": handler_id},
            )
            self.shake = True
            return ToggleOutcome.REJECTED

        # Optimistic unlock while the claim is in flight.
        self.locked = False
        self.assigning = True
        try:
            updated = self._claim(self.record.id)
        except FeedbackDeskError as exc:
            self.locked = True
            self.shake = True
            self.last_error = exc
            log.info(
                "claim failed: %s",
                exc.message,
                extra={"record_id": self.record.id, "error": exc.kind},
            )
            return ToggleOutcome.CLAIM_FAILED
        finally:
            self.assigning = False

        self.last_error = None
        self.reconcile(updated)
        return ToggleOutcome.CLAIMED if self.can_edit else ToggleOutcome.CLAIM_FAILED

    def reconcile(self, record: FeedbackRecord) -> None:
        """
        Adopt a record from a mutation response or a poll.

        The relock signal forces the lock on; so does a handler other than
        this staff member (including none at all). A record held by this staff
        member, claimed here or in another session, is unlocked.
        """
        self.record = record
        self.locked = record.action_required == RELOCK_UI or record.handler_id != self.staff_id


__all__ = ["ClientLock", "ToggleOutcome", "ClaimFn"]
