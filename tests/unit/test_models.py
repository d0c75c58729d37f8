from __future__ import annotations

from decimal import Decimal

import pytest

from feedback_desk.domain.models import (
    ClarificationType,
    FeedbackRecord,
    RecordKind,
    RecordStatus,
    parse_mutation_request,
)
from feedback_desk.errors import InvalidStatusError, ValidationError

RECORD_ID = 42


def test_parse_full_request_from_camel_case() -> None:
    request = parse_mutation_request(
        {
            "id": RECORD_ID,
            "status": "Resolved",
            "assignSelf": True,
            "internalDetails": {"clarificationType": "written", "teamLeadInformed": True},
        }
    )

    assert request.id == RECORD_ID
    assert request.status is RecordStatus.RESOLVED
    assert request.assign_self is True
    assert request.internal_details.clarification_type is ClarificationType.WRITTEN
    assert request.internal_details.model_fields_set == {"clarification_type", "team_lead_informed"}
    assert request.has_changes


def test_bad_status_raises_invalid_status() -> None:
    with pytest.raises(InvalidStatusError, match="Closed"):
        parse_mutation_request({"id": RECORD_ID, "status": "Closed"})


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"status": "Open"},
        {"id": "forty-two"},
        {"id": 0, "status": "Open"},
        {"id": True, "assignSelf": True},
        {"id": "42", "assignSelf": True},
        {"id": RECORD_ID, "unexpected": 1},
        {"id": RECORD_ID, "internalDetails": {"clarificationType": "email"}},
        [RECORD_ID],
    ],
)
def test_malformed_requests_raise_validation_error(payload) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_mutation_request(payload)

    assert not isinstance(excinfo.value, InvalidStatusError)


def test_request_without_changes_is_detected() -> None:
    assert parse_mutation_request({"id": RECORD_ID}).has_changes is False
    assert parse_mutation_request({"id": RECORD_ID, "internalDetails": {}}).has_changes is False


def test_numeric_refund_amount_is_kept_as_text() -> None:
    request = parse_mutation_request({"id": RECORD_ID, "internalDetails": {"refundAmount": 10.5}})

    assert request.internal_details.refund_amount == "10.5"


def test_record_with_null_status_reads_as_open() -> None:
    record = FeedbackRecord.from_row({"id": RECORD_ID, "status": None}, RecordKind.SUGGESTION)

    assert record.status is RecordStatus.OPEN
    assert record.internal_details is None


def test_complaint_without_internal_columns_has_no_details() -> None:
    record = FeedbackRecord.from_row(
        {"id": RECORD_ID, "status": "InProgress", "handler_id": 7}, RecordKind.COMPLAINT
    )

    wire = record.to_wire()

    assert "internalDetails" not in wire
    assert "actionRequired" not in wire
    assert wire["handlerId"] == 7
    assert wire["completedAt"] is None


def test_complaint_internal_details_are_mapped() -> None:
    record = FeedbackRecord.from_row(
        {
            "id": RECORD_ID,
            "status": "Resolved",
            "internal_notes": None,
            "clarification_type": "phone",
            "money_refunded": True,
            "refund_amount": Decimal("10.50"),
        },
        RecordKind.COMPLAINT,
    )

    details = record.to_wire()["internalDetails"]

    assert details["generalNotes"] == ""
    assert details["clarificationType"] == "phone"
    assert details["moneyRefunded"] is True
    assert details["teamLeadInformed"] is False
    assert Decimal(details["refundAmount"]) == Decimal("10.50")


@pytest.mark.parametrize(
    ("path", "kind"),
    [
        ("complaints", RecordKind.COMPLAINT),
        ("compliments", RecordKind.COMPLIMENT),
        ("suggestion", RecordKind.SUGGESTION),
    ],
)
def test_kind_from_path(path: str, kind: RecordKind) -> None:
    assert RecordKind.from_path(path) is kind


def test_unknown_kind_path() -> None:
    with pytest.raises(ValueError):
        RecordKind.from_path("likes")
