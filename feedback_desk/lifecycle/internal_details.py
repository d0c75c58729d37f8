"""
Column writes for a partial internal-details update on a complaint.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from feedback_desk.domain.models import INTERNAL_DETAIL_COLUMNS, InternalDetailsUpdate

# refund_amount is NUMERIC(10, 2)
MAX_REFUND_AMOUNT = Decimal("99999999.99")
CENT = Decimal("0.01")


def parse_refund_amount(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """
    Leniently parse a refund amount typed into a form.

    A decimal comma is accepted ("10,50" -> Decimal("10.50")) and the result
    is rounded to cents. Empty, non-numeric, non-finite, negative or
    out-of-range input yields None instead of an error.
    """
    if value is None:
        return None
    text = str(value).strip().replace(",", ".")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0 or amount > MAX_REFUND_AMOUNT:
        return None
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def detail_writes(update: Optional[InternalDetailsUpdate]) -> Dict[str, Any]:
    """
    Map the fields present in `update` onto complaint columns.

    Omitted fields are left alone. The refund amount is cleared whenever the
    same update marks the money as not refunded.
    """
    if update is None:
        return {}

    present = update.present_fields()
    writes: Dict[str, Any] = {}
    for name, value in present.items():
        if name == "refund_amount":
            continue
        if name == "clarification_type" and value is not None:
            value = value.value
        writes[INTERNAL_DETAIL_COLUMNS[name]] = value

    refunded = present.get("money_refunded")
    if "refund_amount" in present:
        amount = parse_refund_amount(present["refund_amount"])
        writes["refund_amount"] = None if refunded is False else amount
    elif refunded is False:
        writes["refund_amount"] = None

    return writes


__all__ = ["parse_refund_amount", "detail_writes"]
