"""Unit tests for business rule orchestration"""

import copy
import json
import pytest
from datetime import date, timedelta
from decimal import Decimal
from fine_service.domain.business_rules import FineBusinessService, validate_fine_data
from fine_service.domain.exceptions import InvalidFlags, InvalidInput, LookupFailure
from fine_service.domain.models import FineStatus

TODAY = date(2025, 10, 1)


def days_ago(days: int) -> str:
    return (TODAY - timedelta(days=days)).isoformat()


def flags_of(record: dict) -> dict:
    return json.loads(record["business_flags"])


def test_apply_business_rules_initialises_flags(lookup_factory):
    """A fresh fine gets all three flags, all False"""
    service = FineBusinessService(lookup_factory(count=0))
    result = service.apply_business_rules(
        {"fine_amount": 100, "status": "unpaid", "date_issued": days_ago(5)},
        today=TODAY,
    )

    assert flags_of(result) == {
        "overdue_penalty_applied": False,
        "frequent_offender_surcharge_applied": False,
        "early_payment_discount_applied": False,
    }
    assert result["fine_amount"] == Decimal("100.00")
    assert result["status"] == "unpaid"


def test_overdue_penalty_applied_after_30_days(lookup_factory):
    service = FineBusinessService(lookup_factory(count=0))
    result = service.apply_business_rules(
        {"fine_amount": 100.00, "status": "unpaid", "date_issued": days_ago(45)},
        today=TODAY,
    )

    assert result["fine_amount"] == Decimal("120.00")
    assert result["status"] == "overdue"
    assert flags_of(result)["overdue_penalty_applied"] is True


def test_overdue_boundary_30_days(lookup_factory):
    service = FineBusinessService(lookup_factory(count=0))
    result = service.apply_business_rules(
        {"fine_amount": 100.00, "status": "unpaid", "date_issued": days_ago(30)},
        today=TODAY,
    )

    assert result["fine_amount"] == Decimal("100.00")
    assert result["status"] == "unpaid"
    assert flags_of(result)["overdue_penalty_applied"] is False


def test_frequent_offender_surcharge_added(lookup_factory):
    service = FineBusinessService(lookup_factory(count=3))
    result = service.apply_business_rules(
        {"id": 9, "offender_id": 5, "fine_amount": 200.00, "status": "unpaid", "date_issued": days_ago(2)},
        today=TODAY,
    )

    assert result["fine_amount"] == Decimal("250.00")
    assert flags_of(result)["frequent_offender_surcharge_applied"] is True
    assert service.offender_lookup.calls == [(5, 9)]


def test_frequent_offender_below_threshold(lookup_factory):
    service = FineBusinessService(lookup_factory(count=2))
    result = service.apply_business_rules(
        {"offender_id": 5, "fine_amount": 200.00, "status": "unpaid", "date_issued": days_ago(2)},
        today=TODAY,
    )

    assert result["fine_amount"] == Decimal("200.00")
    assert flags_of(result)["frequent_offender_surcharge_applied"] is False


def test_early_payment_discount_within_14_days(lookup_factory):
    service = FineBusinessService(lookup_factory(count=0))
    result = service.apply_business_rules(
        {
            "fine_amount": 300.00,
            "status": "paid",
            "date_issued": "2025-09-25",
            "date_paid": "2025-09-30",
        },
        today=TODAY,
    )

    assert result["fine_amount"] == Decimal("270.00")
    assert flags_of(result)["early_payment_discount_applied"] is True


def test_combined_rules_applied_in_order(lookup_factory):
    """Overdue first (240.00), then the flat surcharge (+50.00)"""
    service = FineBusinessService(lookup_factory(count=3))
    result = service.apply_business_rules(
        {"offender_id": 5, "fine_amount": 200.00, "status": "unpaid", "date_issued": days_ago(45)},
        today=TODAY,
    )

    assert result["fine_amount"] == Decimal("290.00")
    assert result["status"] == "overdue"
    flags = flags_of(result)
    assert flags["overdue_penalty_applied"] is True
    assert flags["frequent_offender_surcharge_applied"] is True
    assert flags["early_payment_discount_applied"] is False


@pytest.mark.parametrize(
    "record",
    [
        {"offender_id": 5, "fine_amount": 200.00, "status": "unpaid", "date_issued": days_ago(45)},
        {"offender_id": 5, "fine_amount": "300.00", "status": "paid", "date_issued": days_ago(10), "date_paid": days_ago(3)},
        {"offender_id": 5, "fine_amount": 99.99, "status": "overdue", "date_issued": days_ago(90)},
        {"fine_amount": 0, "status": "unpaid", "date_issued": days_ago(31)},
    ],
)
def test_rules_not_duplicated_when_applied_twice(lookup_factory, record):
    """apply(apply(R)) == apply(R) for amount, status and flags"""
    service = FineBusinessService(lookup_factory(count=3))

    first = service.apply_business_rules(record, today=TODAY)
    second = service.apply_business_rules(first, today=TODAY)

    assert second["fine_amount"] == first["fine_amount"]
    assert str(second["fine_amount"]) == str(first["fine_amount"])
    assert second["status"] == first["status"]
    assert second["business_flags"] == first["business_flags"]


def test_flags_never_reset(lookup_factory):
    """Flags already set stay set even when no rule condition holds"""
    service = FineBusinessService(lookup_factory(count=0))
    all_set = {
        "overdue_penalty_applied": True,
        "frequent_offender_surcharge_applied": True,
        "early_payment_discount_applied": True,
    }
    result = service.apply_business_rules(
        {"fine_amount": 10, "status": "unpaid", "date_issued": days_ago(1), "business_flags": all_set},
        today=TODAY,
    )

    assert flags_of(result) == all_set
    assert result["fine_amount"] == Decimal("10.00")
    assert service.offender_lookup.calls == []


def test_unrecognized_flag_keys_dropped(lookup_factory):
    service = FineBusinessService(lookup_factory(count=0))
    result = service.apply_business_rules(
        {
            "fine_amount": 10,
            "status": "unpaid",
            "date_issued": days_ago(1),
            "business_flags": '{"foo": true, "overdue_penalty_applied": false}',
        },
        today=TODAY,
    )

    assert set(flags_of(result)) == {
        "overdue_penalty_applied",
        "frequent_offender_surcharge_applied",
        "early_payment_discount_applied",
    }


@pytest.mark.parametrize("status", ["unpaid", "paid", "overdue"])
def test_invalid_json_raises_invalid_flags(lookup_factory, status):
    service = FineBusinessService(lookup_factory(count=0))
    with pytest.raises(InvalidFlags):
        service.apply_business_rules(
            {"fine_amount": 10, "status": status, "date_issued": days_ago(1), "business_flags": "{invalid-json}"},
            today=TODAY,
        )


def test_input_validated_before_flags(lookup_factory):
    service = FineBusinessService(lookup_factory(count=0))
    with pytest.raises(InvalidInput):
        service.apply_business_rules(
            {"fine_amount": "lots", "status": "unpaid", "date_issued": days_ago(1), "business_flags": "{invalid-json}"},
            today=TODAY,
        )


def test_output_keeps_input_keys_and_leaves_input_untouched(lookup_factory):
    service = FineBusinessService(lookup_factory(count=3))
    record = {
        "id": 3,
        "offender_id": 5,
        "offender_name": "Jane Doe",
        "offence_type": "Speeding",
        "fine_amount": 200.00,
        "status": "unpaid",
        "date_issued": days_ago(45),
        "date_paid": None,
    }
    snapshot = copy.deepcopy(record)

    result = service.apply_business_rules(record, today=TODAY)

    assert record == snapshot
    assert set(result) == set(record) | {"business_flags"}
    assert result["offence_type"] == "Speeding"
    assert result["offender_name"] == "Jane Doe"


def test_lookup_failure_propagates_without_partial_state(lookup_factory):
    """Overdue penalty runs before the lookup; the caller's record must still be untouched"""
    service = FineBusinessService(lookup_factory(error=LookupFailure("database unavailable")))
    record = {"offender_id": 5, "fine_amount": 200.00, "status": "unpaid", "date_issued": days_ago(45)}
    snapshot = copy.deepcopy(record)

    with pytest.raises(LookupFailure):
        service.apply_business_rules(record, today=TODAY)

    assert record == snapshot


def test_today_defaults_to_current_date(lookup_factory):
    service = FineBusinessService(lookup_factory(count=0))
    issued = (date.today() - timedelta(days=45)).isoformat()
    result = service.apply_business_rules({"fine_amount": 100, "status": "unpaid", "date_issued": issued})
    assert result["status"] == "overdue"


@pytest.mark.parametrize(
    "record",
    [
        {"status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": None, "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": "abc", "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": True, "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": -5, "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": "1e30", "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": 1e30, "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": "123456789012345678901234567.5", "status": "unpaid", "date_issued": "2025-09-01"},
        {"fine_amount": 10, "date_issued": "2025-09-01"},
        {"fine_amount": 10, "status": "cancelled", "date_issued": "2025-09-01"},
        {"fine_amount": 10, "status": "PAID", "date_issued": "2025-09-01"},
        {"fine_amount": 10, "status": "unpaid"},
        {"fine_amount": 10, "status": "unpaid", "date_issued": "2025-13-01"},
        {"fine_amount": 10, "status": "paid", "date_issued": "2025-09-01", "date_paid": "01/09/2025"},
        {"fine_amount": 10, "status": "paid", "date_issued": "2025-09-10", "date_paid": "2025-09-09"},
        {"fine_amount": 10, "status": "unpaid", "date_issued": "2025-09-01", "offender_id": "5"},
        {"fine_amount": 10, "status": "unpaid", "date_issued": "2025-09-01", "offender_id": 5.0},
        {"fine_amount": 10, "status": "unpaid", "date_issued": "2025-09-01", "id": "x"},
    ],
)
def test_invalid_input_rejected(record):
    with pytest.raises(InvalidInput):
        validate_fine_data(record)


def test_validate_fine_data_builds_typed_fine():
    fine = validate_fine_data({
        "id": 1,
        "offender_id": 7,
        "fine_amount": "12.345",
        "status": "paid",
        "date_issued": "2025-09-01",
        "date_paid": "2025-09-03",
    })

    assert fine.fine_amount == Decimal("12.35")
    assert fine.status is FineStatus.PAID
    assert fine.date_issued == date(2025, 9, 1)
    assert fine.date_paid == date(2025, 9, 3)
    assert fine.offender_id == 7


def test_oversized_amount_raises_invalid_input_before_rules(lookup_factory):
    lookup = lookup_factory(count=3)
    service = FineBusinessService(lookup)

    with pytest.raises(InvalidInput):
        service.apply_business_rules(
            {"offender_id": 5, "fine_amount": "1e30", "status": "unpaid", "date_issued": "2025-09-01"},
            today=TODAY,
        )
    assert lookup.calls == []


def test_largest_rule_output_is_accepted_again(lookup_factory):
    """An overdue, surcharged fine at the API's input ceiling re-evaluates cleanly"""
    service = FineBusinessService(lookup_factory(count=3))
    first = service.apply_business_rules(
        {"offender_id": 5, "fine_amount": "99999999.99", "status": "unpaid", "date_issued": days_ago(45)},
        today=TODAY,
    )
    second = service.apply_business_rules(first, today=TODAY)

    assert first["fine_amount"] == Decimal("120000049.99")
    assert second["fine_amount"] == first["fine_amount"]


def test_paid_same_day_as_issued_is_valid():
    fine = validate_fine_data({
        "fine_amount": 10,
        "status": "paid",
        "date_issued": "2025-09-10",
        "date_paid": "2025-09-10",
    })

    assert fine.date_paid == fine.date_issued
