"""Monetary business rules - each rule is a pure (fine, flags) -> (fine, flags) step"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Tuple

from fine_service.domain.models import BusinessFlags, Fine, FineStatus
from fine_service.domain.ports import OffenderLookup
from fine_service.utils.date_utils import days_between
from fine_service.utils.money import round_currency

GRACE_PERIOD_DAYS = 30
OVERDUE_PENALTY_MULTIPLIER = Decimal("1.20")

FREQUENT_OFFENDER_THRESHOLD = 3
FREQUENT_OFFENDER_SURCHARGE = Decimal("50.00")

EARLY_PAYMENT_DAYS = 14
EARLY_PAYMENT_MULTIPLIER = Decimal("0.90")

RuleResult = Tuple[Fine, BusinessFlags]


def apply_overdue_penalty(fine: Fine, flags: BusinessFlags, today: date) -> RuleResult:
    """
    Add a 20% penalty to unpaid fines left past the grace period.

    Requirements:
    - Only unpaid fines, only once (overdue_penalty_applied)
    - Strictly more than 30 days since issue; day 30 is still in grace
    - Status moves to overdue together with the penalty
    """
    if flags.overdue_penalty_applied or fine.status is not FineStatus.UNPAID:
        return fine, flags

    days_unpaid = days_between(fine.date_issued, today)
    if days_unpaid <= GRACE_PERIOD_DAYS:
        return fine, flags

    amount = max(Decimal("0.00"), round_currency(fine.fine_amount * OVERDUE_PENALTY_MULTIPLIER))
    return (
        replace(fine, status=FineStatus.OVERDUE, fine_amount=amount),
        replace(flags, overdue_penalty_applied=True),
    )


def apply_frequent_offender_surcharge(
    fine: Fine,
    flags: BusinessFlags,
    lookup: OffenderLookup,
) -> RuleResult:
    """
    Add a flat $50 surcharge when the offender has 3+ other outstanding fines.

    The lookup is only queried when the rule can still fire, so an already
    surcharged fine costs no I/O.
    """
    if flags.frequent_offender_surcharge_applied:
        return fine, flags
    if fine.offender_id is None or fine.offender_id <= 0:
        return fine, flags

    unpaid_count = lookup.count_unpaid_fines(fine.offender_id, exclude_fine_id=fine.id)
    if unpaid_count < FREQUENT_OFFENDER_THRESHOLD:
        return fine, flags

    amount = round_currency(fine.fine_amount + FREQUENT_OFFENDER_SURCHARGE)
    return (
        replace(fine, fine_amount=amount),
        replace(flags, frequent_offender_surcharge_applied=True),
    )


def apply_early_payment_discount(fine: Fine, flags: BusinessFlags) -> RuleResult:
    """Take 10% off fines paid within 14 days of issue"""
    if flags.early_payment_discount_applied:
        return fine, flags
    if fine.status is not FineStatus.PAID or fine.date_paid is None:
        return fine, flags

    days_to_pay = days_between(fine.date_issued, fine.date_paid)
    if days_to_pay > EARLY_PAYMENT_DAYS:
        return fine, flags

    amount = max(Decimal("0.00"), round_currency(fine.fine_amount * EARLY_PAYMENT_MULTIPLIER))
    return (
        replace(fine, fine_amount=amount),
        replace(flags, early_payment_discount_applied=True),
    )
