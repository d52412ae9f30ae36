"""Business rule orchestration - validate a fine record, apply rules once, re-serialize flags"""

from datetime import date
from typing import Any, Dict, Mapping, Optional

from fine_service.domain.exceptions import InvalidInput
from fine_service.domain.flags import normalize_flags, serialize_flags
from fine_service.domain.models import Fine, FineStatus
from fine_service.domain.ports import OffenderLookup
from fine_service.domain.rules import (
    apply_early_payment_discount,
    apply_frequent_offender_surcharge,
    apply_overdue_penalty,
)
from fine_service.utils.date_utils import parse_iso_date
from fine_service.utils.money import parse_amount, round_currency


def _optional_int(record: Mapping[str, Any], key: str) -> Optional[int]:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"Invalid {key}")
    return value


def _optional_date(record: Mapping[str, Any], key: str) -> Optional[date]:
    value = record.get(key)
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(value)
    except ValueError as e:
        raise InvalidInput(f"Invalid date format for {key}") from e


def validate_fine_data(record: Mapping[str, Any]) -> Fine:
    """
    Build the typed working copy of a raw fine record.

    Raises:
        InvalidInput: Missing/non-numeric/negative/oversized fine_amount,
            unknown status, missing or malformed dates, date_paid before
            date_issued, non-integer id or offender_id
    """
    if record.get("fine_amount") is None:
        raise InvalidInput("Invalid fine_amount")
    try:
        amount = parse_amount(record["fine_amount"])
    except ValueError as e:
        raise InvalidInput("Invalid fine_amount") from e
    if amount < 0:
        raise InvalidInput("fine_amount must be non-negative")

    raw_status = record.get("status")
    if not isinstance(raw_status, str):
        raise InvalidInput("Invalid status value")
    try:
        status = FineStatus(raw_status)
    except ValueError as e:
        raise InvalidInput(f"Invalid status value: {raw_status}") from e

    date_issued = _optional_date(record, "date_issued")
    if date_issued is None:
        raise InvalidInput("date_issued is required")

    date_paid = _optional_date(record, "date_paid")
    if date_paid is not None and date_paid < date_issued:
        raise InvalidInput("date_paid cannot be before date_issued")

    return Fine(
        id=_optional_int(record, "id"),
        offender_id=_optional_int(record, "offender_id"),
        fine_amount=round_currency(amount),
        status=status,
        date_issued=date_issued,
        date_paid=date_paid,
    )


class FineBusinessService:
    """
    Applies the fine business rules exactly once per fine.

    Rules, in evaluation order:
    1. Overdue penalty: +20% when unpaid for more than 30 days
    2. Frequent offender surcharge: +$50 when the offender has 3+ other unpaid fines
    3. Early payment discount: -10% when paid within 14 days

    Which rules already ran is tracked in business_flags, so feeding the
    output back in yields the same amount, status and flags.
    """

    def __init__(self, offender_lookup: OffenderLookup):
        self.offender_lookup = offender_lookup

    def apply_business_rules(self, record: Mapping[str, Any], today: date | None = None) -> Dict[str, Any]:
        """
        Main entry point: evaluate all rules against a raw fine record.

        Returns a new mapping with the input's keys, fine_amount (Decimal),
        status and business_flags (canonical JSON) replaced. The input is
        left untouched, so a failing lookup leaves nothing half-applied.

        Raises:
            InvalidInput: Record fields are invalid (checked first)
            InvalidFlags: business_flags is malformed
            LookupFailure: Propagated from the offender lookup
        """
        fine = validate_fine_data(record)
        flags = normalize_flags(record.get("business_flags"))

        if today is None:
            today = date.today()

        fine, flags = apply_overdue_penalty(fine, flags, today)
        fine, flags = apply_frequent_offender_surcharge(fine, flags, self.offender_lookup)
        fine, flags = apply_early_payment_discount(fine, flags)

        result = dict(record)
        result["fine_amount"] = fine.fine_amount
        result["status"] = fine.status.value
        result["business_flags"] = serialize_flags(flags)
        return result
