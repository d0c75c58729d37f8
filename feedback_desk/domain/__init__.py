"""
Domain package for Feedback Desk.

Exports the record kinds and statuses, the mutation request and the record
shape returned to clients. Keep this package focused on data definitions and
validation concerns.
"""

from feedback_desk.domain.models import (
    RELOCK_UI,
    TERMINAL_STATUSES,
    ClarificationType,
    FeedbackRecord,
    InternalDetails,
    InternalDetailsUpdate,
    MutationRequest,
    RecordKind,
    RecordStatus,
    StaffIdentity,
    parse_mutation_request,
)

__all__ = [
    "RELOCK_UI",
    "TERMINAL_STATUSES",
    "ClarificationType",
    "FeedbackRecord",
    "InternalDetails",
    "InternalDetailsUpdate",
    "MutationRequest",
    "RecordKind",
    "RecordStatus",
    "StaffIdentity",
    "parse_mutation_request",
]
