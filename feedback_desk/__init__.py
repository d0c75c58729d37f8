"""
Feedback Desk - complaint lifecycle and claim-locking service for a transit operator.

Staff triage complaints, compliments and suggestions stored in PostgreSQL. This
package implements the part with real rules:

- Status transitions with derived completion timestamps and handler clearing
- A single-handler assignment guard evaluated under a row lock
- A transactional record mutator (SELECT ... FOR UPDATE, one UPDATE, re-read)
- The client-side edit lock and its relock signal
- A FastAPI surface and a Typer CLI over the same mutator
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from feedback_desk.client_lock import ClientLock, ToggleOutcome
from feedback_desk.config import Settings, build_dsn, get_settings
from feedback_desk.domain.models import (
    FeedbackRecord,
    MutationRequest,
    RecordKind,
    RecordStatus,
    StaffIdentity,
    parse_mutation_request,
)
from feedback_desk.errors import (
    AlreadyAssignedError,
    AuthenticationError,
    ClarificationMissingError,
    FeedbackDeskError,
    InvalidStatusError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from feedback_desk.infrastructure.db_factory import Database
from feedback_desk.mutator import MutationResult, RecordMutator
from feedback_desk.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "build_dsn",
    "get_settings",
    # Domain
    "FeedbackRecord",
    "MutationRequest",
    "RecordKind",
    "RecordStatus",
    "StaffIdentity",
    "parse_mutation_request",
    # Errors
    "FeedbackDeskError",
    "ValidationError",
    "InvalidStatusError",
    "NotFoundError",
    "AlreadyAssignedError",
    "AuthenticationError",
    "ClarificationMissingError",
    "PersistenceError",
    # Mutation protocol
    "Database",
    "RecordMutator",
    "MutationResult",
    "ClientLock",
    "ToggleOutcome",
    # Logging
    "configure_logging",
    "get_logger",
]
