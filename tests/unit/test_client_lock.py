from __future__ import annotations

from typing import List, Optional

import pytest

from feedback_desk.client_lock import ClientLock, ToggleOutcome
from feedback_desk.domain.models import (
    FeedbackRecord,
    RecordKind,
    RecordStatus,
    StaffIdentity,
)
from feedback_desk.errors import AlreadyAssignedError
from feedback_desk.mutator import RecordMutator

RECORD_ID = 42
ME = 7
OTHER = 9


def _record(handler_id: Optional[int] = None, **fields) -> FeedbackRecord:
    return FeedbackRecord(
        id=RECORD_ID,
        kind=RecordKind.COMPLAINT,
        status=fields.pop("status", RecordStatus.OPEN),
        handler_id=handler_id,
        **fields,
    )


class _ScriptedClaim:
    """Claim callable returning or raising the queued responses in order."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: List[int] = []
        self.lock: Optional[ClientLock] = None
        self.seen_while_in_flight: List[bool] = []

    def __call__(self, record_id: int) -> FeedbackRecord:
        self.calls.append(record_id)
        if self.lock is not None:
            self.seen_while_in_flight.append(self.lock.locked)
            assert self.lock.toggle() is ToggleOutcome.REJECTED
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_initial_lock_follows_handler() -> None:
    claim = _ScriptedClaim()

    assert ClientLock(_record(ME), ME, claim).locked is False
    assert ClientLock(_record(OTHER), ME, claim).locked is True
    assert ClientLock(_record(None), ME, claim).locked is True


def test_unlock_own_record_without_server_call() -> None:
    claim = _ScriptedClaim()
    lock = ClientLock(_record(ME), ME, claim)
    lock.locked = True

    assert lock.toggle() is ToggleOutcome.UNLOCKED
    assert lock.can_edit
    assert claim.calls == []


def test_locking_is_always_local() -> None:
    claim = _ScriptedClaim()
    lock = ClientLock(_record(ME), ME, claim)

    assert lock.toggle() is ToggleOutcome.LOCKED
    assert lock.locked is True
    assert claim.calls == []


def test_foreign_record_shakes_and_stays_locked() -> None:
    claim = _ScriptedClaim()
    lock = ClientLock(_record(OTHER), ME, claim)

    assert lock.toggle() is ToggleOutcome.REJECTED
    assert lock.locked is True
    assert lock.shake is True
    assert claim.calls == []

    lock.acknowledge_shake()
    assert lock.shake is False


def test_claiming_unassigned_record() -> None:
    claim = _ScriptedClaim(_record(ME, status=RecordStatus.IN_PROGRESS))
    lock = ClientLock(_record(None), ME, claim)
    claim.lock = lock

    assert lock.toggle() is ToggleOutcome.CLAIMED

    assert claim.calls == [RECORD_ID]
    assert claim.seen_while_in_flight == [False]
    assert lock.locked is False
    assert lock.held_by_me
    assert lock.assigning is False
    assert lock.last_error is None


def test_failed_claim_relocks_and_keeps_error() -> None:
    error = AlreadyAssignedError("already taken", record_id=RECORD_ID, handler_id=OTHER)
    claim = _ScriptedClaim(error)
    lock = ClientLock(_record(None), ME, claim)

    assert lock.toggle() is ToggleOutcome.CLAIM_FAILED

    assert lock.locked is True
    assert lock.shake is True
    assert lock.assigning is False
    assert lock.last_error is error


def test_claim_response_for_someone_else_stays_locked() -> None:
    claim = _ScriptedClaim(_record(OTHER))
    lock = ClientLock(_record(None), ME, claim)

    assert lock.toggle() is ToggleOutcome.CLAIM_FAILED
    assert lock.locked is True


@pytest.mark.parametrize("handler_id", [ME, None])
def test_relock_signal_forces_lock(handler_id) -> None:
    lock = ClientLock(_record(ME), ME, _ScriptedClaim())
    assert lock.can_edit

    lock.reconcile(_record(handler_id, action_required="relock_ui"))

    assert lock.locked is True


def test_poll_showing_handler_cleared_relocks() -> None:
    lock = ClientLock(_record(ME), ME, _ScriptedClaim())

    lock.reconcile(_record(None))

    assert lock.locked is True
    assert not lock.held_by_me


def test_poll_showing_own_claim_unlocks() -> None:
    lock = ClientLock(_record(None), ME, _ScriptedClaim())
    assert lock.locked is True

    lock.reconcile(_record(ME, status=RecordStatus.IN_PROGRESS))

    assert lock.locked is False
    assert lock.record.status is RecordStatus.IN_PROGRESS


def test_two_cards_race_for_one_record(fake_database, record_store, unit_settings) -> None:
    record_store.add_record(RecordKind.COMPLAINT, RECORD_ID, status="Open")
    mutator = RecordMutator(fake_database, repository=record_store, settings=unit_settings)
    snapshot = mutator.get(RecordKind.COMPLAINT, RECORD_ID)

    mine = ClientLock(
        snapshot, ME, mutator.claimer(RecordKind.COMPLAINT, StaffIdentity(staff_id=ME, username="anna"))
    )
    theirs = ClientLock(
        snapshot,
        OTHER,
        mutator.claimer(RecordKind.COMPLAINT, StaffIdentity(staff_id=OTHER, username="ben")),
    )

    assert mine.toggle() is ToggleOutcome.CLAIMED
    assert theirs.toggle() is ToggleOutcome.CLAIM_FAILED
    assert isinstance(theirs.last_error, AlreadyAssignedError)
    assert record_store.row(RecordKind.COMPLAINT, RECORD_ID)["handler_id"] == ME
