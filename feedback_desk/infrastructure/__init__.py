"""
Infrastructure package for Feedback Desk.

Centralizes database concerns: the injected pool handle and the SQL statements
for feedback records. Keep this layer focused on I/O and resource management,
decoupled from the lifecycle rules.
"""

from feedback_desk.infrastructure.db_factory import Database
from feedback_desk.infrastructure.repository import RecordRepository, RecordStore

__all__ = [
    "Database",
    "RecordRepository",
    "RecordStore",
]
