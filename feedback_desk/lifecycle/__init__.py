"""
Lifecycle package for Feedback Desk.

Pure decision logic for record mutations: status transitions, the single-handler
assignment guard, and internal-detail normalisation. No I/O lives here.
"""

from feedback_desk.lifecycle.assignment import AssignmentDecision, ensure_assignable, try_assign
from feedback_desk.lifecycle.internal_details import detail_writes, parse_refund_amount
from feedback_desk.lifecycle.status_policy import (
    StatusDecision,
    coerce_status,
    decide_status,
    require_clarification,
)

__all__ = [
    "AssignmentDecision",
    "ensure_assignable",
    "try_assign",
    "detail_writes",
    "parse_refund_amount",
    "StatusDecision",
    "coerce_status",
    "decide_status",
    "require_clarification",
]
