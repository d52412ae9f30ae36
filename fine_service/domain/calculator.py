"""Stateless fine quote - amount due today without touching stored flags"""

from datetime import date
from decimal import Decimal

from fine_service.domain.exceptions import InvalidInput
from fine_service.domain.models import FineStatus
from fine_service.domain.rules import GRACE_PERIOD_DAYS, OVERDUE_PENALTY_MULTIPLIER
from fine_service.utils.date_utils import days_between, parse_iso_date
from fine_service.utils.money import parse_amount, round_currency


def calculate_fine(
    amount: Decimal | float | int | str,
    date_issued: date | str,
    status: FineStatus,
    today: date | None = None,
) -> Decimal:
    """
    Quote the amount owed for a fine.

    Paid fines are quoted as-is. Unpaid and overdue fines carry the 20%
    late fee once the 30-day grace period has passed.

    Example:
        100.00 issued 45 days ago, unpaid → 120.00
    """
    try:
        value = parse_amount(amount)
    except ValueError as e:
        raise InvalidInput("Amount must be a number") from e
    if value < 0:
        raise InvalidInput("Amount must be a positive number")

    try:
        issued = parse_iso_date(date_issued)
    except ValueError as e:
        raise InvalidInput(f"Invalid date format: {e}") from e

    if status is FineStatus.PAID:
        return round_currency(value)

    if today is None:
        today = date.today()

    if days_between(issued, today) > GRACE_PERIOD_DAYS:
        return round_currency(value * OVERDUE_PENALTY_MULTIPLIER)
    return round_currency(value)
