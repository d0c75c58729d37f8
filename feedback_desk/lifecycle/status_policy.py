"""
Status transition policy for feedback records.

Pure decision functions: given the row values read under lock and the requested
status, derive the column writes and whether the client must re-lock its
editing UI. Nothing here touches the database, so `now` is always passed in.

Rules, evaluated in order:

1. The requested status must be one of Open, InProgress, Resolved, Rejected.
2. Resolved/Rejected stamp `completed_at = now`.
3. Open clears `completed_at`; reopening a Resolved/Rejected record also clears
   `handler_id` and raises the relock signal.
4. InProgress writes nothing beyond the status itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from feedback_desk.domain.models import ClarificationType, RecordKind, RecordStatus
from feedback_desk.errors import ClarificationMissingError, InvalidStatusError


@dataclass(frozen=True)
class StatusDecision:
    """
    Outcome of applying the policy.

    Attributes
    ----------
    writes : dict
        Column -> value to merge into the UPDATE. Always contains `status`.
    relock : bool
        Whether the response must carry `actionRequired = relock_ui`.
    """

    writes: Dict[str, Any] = field(default_factory=dict)
    relock: bool = False


def coerce_status(value: Union[RecordStatus, str, None]) -> RecordStatus:
    """
    Validate a requested status value.

    Raises
    ------
    InvalidStatusError
        If the value is not one of the four statuses.
    """
    if isinstance(value, RecordStatus):
        return value
    try:
        return RecordStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in RecordStatus)
        raise InvalidStatusError(
            f"status {value!r} is not allowed; expected one of: {allowed}"
        ) from None


def decide_status(
    current_status: Union[RecordStatus, str, None],
    current_handler_id: Optional[int],
    requested_status: Union[RecordStatus, str, None],
    now: datetime,
) -> StatusDecision:
    """
    Derive the field writes for a status change.

    Parameters
    ----------
    current_status : RecordStatus | str | None
        Stored status; NULL or unknown values count as Open.
    current_handler_id : int | None
        Stored handler. Not consulted by the rules today but part of the
        decision input so callers always pass the locked row state.
    requested_status : RecordStatus | str
        Status asked for by the client.
    now : datetime
        Timestamp used for `completed_at`.

    Returns
    -------
    StatusDecision
    """
    requested = coerce_status(requested_status)
    current = RecordStatus.from_storage(current_status)
    del current_handler_id

    writes: Dict[str, Any] = {"status": requested.value}
    relock = False

    if requested.is_terminal:
        writes["completed_at"] = now
    elif requested is RecordStatus.OPEN:
        writes["completed_at"] = None
        if current.is_terminal:
            writes["handler_id"] = None
            relock = True

    return StatusDecision(writes=writes, relock=relock)


def require_clarification(
    kind: RecordKind,
    requested_status: Union[RecordStatus, str],
    clarification_type: Union[ClarificationType, str, None],
) -> None:
    """
    Block closing a complaint that has no clarification method recorded.

    Compliments and suggestions carry no internal details and are never blocked.
    """
    if not kind.has_internal_details:
        return
    if coerce_status(requested_status).is_terminal and not clarification_type:
        raise ClarificationMissingError(
            "a clarification type (written or phone) must be saved before "
            "a complaint can be resolved or rejected"
        )


__all__ = ["StatusDecision", "coerce_status", "decide_status", "require_clarification"]
