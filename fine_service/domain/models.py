"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional


class FineStatus(str, Enum):
    """Lifecycle state of a fine"""

    PAID = "paid"
    UNPAID = "unpaid"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class BusinessFlags:
    """Which monetary rules have already been applied to a fine"""

    overdue_penalty_applied: bool = False
    frequent_offender_surcharge_applied: bool = False
    early_payment_discount_applied: bool = False


@dataclass(frozen=True)
class Fine:
    """Validated working copy of a fine record used during rule evaluation"""

    fine_amount: Decimal
    status: FineStatus
    date_issued: date
    id: Optional[int] = None
    offender_id: Optional[int] = None
    date_paid: Optional[date] = None
