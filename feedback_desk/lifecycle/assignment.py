"""
Single-handler assignment guard.

A record may be claimed only while nobody holds it. Reassignment goes through
the reopen-from-terminal path of the status policy (or an admin action outside
this package). The caller must run the check against a row it has locked and
write `handler_id` in the same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from feedback_desk.errors import AlreadyAssignedError


@dataclass(frozen=True)
class AssignmentDecision:
    allow: bool
    reason: str


def try_assign(current_handler_id: Optional[int], requesting_staff_id: int) -> AssignmentDecision:
    """Decide whether `requesting_staff_id` may claim a record."""
    if current_handler_id is None:
        return AssignmentDecision(allow=True, reason="unassigned")
    if current_handler_id == requesting_staff_id:
        return AssignmentDecision(allow=False, reason="already assigned to requester")
    return AssignmentDecision(allow=False, reason=f"already assigned to staff {current_handler_id}")


def ensure_assignable(
    current_handler_id: Optional[int],
    requesting_staff_id: int,
    record_id: Optional[int] = None,
) -> None:
    """
    Raise AlreadyAssignedError unless the claim is allowed.
    """
    decision = try_assign(current_handler_id, requesting_staff_id)
    if not decision.allow:
        raise AlreadyAssignedError(
            f"record {record_id} is {decision.reason}",
            record_id=record_id,
            handler_id=current_handler_id,
        )


__all__ = ["AssignmentDecision", "try_assign", "ensure_assignable"]
