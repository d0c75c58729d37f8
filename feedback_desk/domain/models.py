"""
Domain models for Feedback Desk.

Defines the record kinds and statuses, the wire request for a mutation, the
record shape returned to clients, and the caller identity supplied by the
session layer. Wire names are camelCase; Python attributes are snake_case.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from feedback_desk.errors import InvalidStatusError, ValidationError

RELOCK_UI = "relock_ui"


class RecordStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def from_storage(cls, value: Any) -> "RecordStatus":
        """Stored NULL (or anything unrecognised) reads as Open."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OPEN


TERMINAL_STATUSES = frozenset({RecordStatus.RESOLVED, RecordStatus.REJECTED})


class ClarificationType(str, Enum):
    WRITTEN = "written"
    PHONE = "phone"


class RecordKind(str, Enum):
    """
    The three feedback tables. Only complaints carry internal details.
    """

    COMPLAINT = "complaint"
    COMPLIMENT = "compliment"
    SUGGESTION = "suggestion"

    @property
    def table(self) -> str:
        return f"{self.value}s"

    @property
    def path(self) -> str:
        return f"{self.value}s"

    @property
    def has_internal_details(self) -> bool:
        return self is RecordKind.COMPLAINT

    @classmethod
    def from_path(cls, path: str) -> "RecordKind":
        for kind in cls:
            if kind.path == path or kind.value == path:
                return kind
        raise ValueError(f"unknown record kind: {path!r}")


# Wire field name (snake_case attribute) -> column on the complaints table.
INTERNAL_DETAIL_COLUMNS: Dict[str, str] = {
    "general_notes": "internal_notes",
    "clarification_type": "clarification_type",
    "team_lead_informed": "team_lead_informed",
    "department_head_informed": "department_head_informed",
    "forwarded_to_subcontractor": "forwarded_to_subcontractor",
    "forwarded_to_insurance": "forwarded_to_insurance",
    "money_refunded": "money_refunded",
    "refund_amount": "refund_amount",
}


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class StaffIdentity(BaseModel):
    """
    Authenticated caller, as supplied by the identity collaborator.
    """

    staff_id: int = Field(..., description="Primary key in the staff table.")
    username: str = Field("", description="Login name, for logging only.")
    is_admin: bool = Field(False, description="Administrator flag.")

    model_config = {"frozen": True}


class InternalDetailsUpdate(WireModel):
    """
    Partial update of a complaint's internal details.

    Only fields present in the payload are written; `model_fields_set` tells
    an explicit null apart from an omitted field.
    """

    general_notes: Optional[str] = None
    clarification_type: Optional[ClarificationType] = None
    team_lead_informed: Optional[bool] = None
    department_head_informed: Optional[bool] = None
    forwarded_to_subcontractor: Optional[bool] = None
    forwarded_to_insurance: Optional[bool] = None
    money_refunded: Optional[bool] = None
    refund_amount: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("refund_amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value: Any) -> Any:
        # Forms send text; API clients may send a JSON number.
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value

    def present_fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class MutationRequest(WireModel):
    """
    One logical update: any combination of a status change, a self-assignment
    claim and internal-detail edits.
    """

    id: int = Field(..., gt=0, strict=True)
    status: Optional[RecordStatus] = None
    assign_self: bool = False
    internal_details: Optional[InternalDetailsUpdate] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def has_changes(self) -> bool:
        return (
            self.status is not None
            or self.assign_self
            or bool(self.internal_details and self.internal_details.model_fields_set)
        )


class InternalDetails(WireModel):
    general_notes: str = ""
    clarification_type: Optional[ClarificationType] = None
    team_lead_informed: bool = False
    department_head_informed: bool = False
    forwarded_to_subcontractor: bool = False
    forwarded_to_insurance: bool = False
    money_refunded: bool = False
    refund_amount: Optional[Decimal] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Optional["InternalDetails"]:
        """Build from the complaint columns; None when none of them is set."""
        values = {field: row.get(column) for field, column in INTERNAL_DETAIL_COLUMNS.items()}
        if all(value is None for value in values.values()):
            return None
        return cls(
            general_notes=values["general_notes"] or "",
            clarification_type=values["clarification_type"],
            team_lead_informed=bool(values["team_lead_informed"]),
            department_head_informed=bool(values["department_head_informed"]),
            forwarded_to_subcontractor=bool(values["forwarded_to_subcontractor"]),
            forwarded_to_insurance=bool(values["forwarded_to_insurance"]),
            money_refunded=bool(values["money_refunded"]),
            refund_amount=values["refund_amount"],
        )


class FeedbackRecord(WireModel):
    """
    A complaint, compliment or suggestion as returned to clients.
    """

    id: int
    kind: RecordKind = RecordKind.COMPLAINT
    status: RecordStatus = RecordStatus.OPEN
    handler_id: Optional[int] = None
    handler_name: Optional[str] = None
    completed_at: Optional[datetime] = None
    internal_details: Optional[InternalDetails] = None
    action_required: Optional[Literal["relock_ui"]] = None

    # Intake fields, read-only here.
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    reason: Optional[str] = None
    stop: Optional[str] = None
    line: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> RecordStatus:
        return RecordStatus.from_storage(value)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], kind: RecordKind) -> "FeedbackRecord":
        data = {
            name: row.get(name)
            for name in cls.model_fields
            if name not in {"kind", "internal_details", "action_required"}
        }
        data["kind"] = kind
        if kind.has_internal_details:
            data["internal_details"] = InternalDetails.from_row(row)
        return cls(**data)

    def to_wire(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        for key in ("actionRequired", "internalDetails"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


def parse_mutation_request(payload: Any) -> MutationRequest:
    """
    Validate a raw request body into a MutationRequest.

    Raises
    ------
    InvalidStatusError
        If the only problem is a status value outside the allowed set.
    ValidationError
        For any other malformed shape.
    """
    try:
        return MutationRequest.model_validate(payload)
    except PydanticValidationError as exc:
        errors = exc.errors()
        if errors and all(tuple(err["loc"][:1]) == ("status",) for err in errors):
            allowed = ", ".join(status.value for status in RecordStatus)
            raise InvalidStatusError(
                f"status {errors[0].get('input')!r} is not allowed; expected one of: {allowed}"
            ) from exc
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in errors
        )
        raise ValidationError(f"invalid request: {details}") from exc


__all__ = [
    "RELOCK_UI",
    "RecordStatus",
    "TERMINAL_STATUSES",
    "ClarificationType",
    "RecordKind",
    "INTERNAL_DETAIL_COLUMNS",
    "StaffIdentity",
    "InternalDetailsUpdate",
    "MutationRequest",
    "InternalDetails",
    "FeedbackRecord",
    "parse_mutation_request",
]
