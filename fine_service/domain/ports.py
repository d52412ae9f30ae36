"""Capabilities the business rules need from the outside world"""

from typing import Optional, Protocol


class OffenderLookup(Protocol):
    """Read access to an offender's outstanding fines"""

    def count_unpaid_fines(self, offender_id: int, exclude_fine_id: Optional[int] = None) -> int:
        """
        Count the offender's fines whose status is not "paid".

        exclude_fine_id keeps the fine under evaluation out of its own count.
        Implementations raise LookupFailure when the count cannot be read.
        """
        ...
