"""Date parsing and arithmetic utilities"""

from datetime import date, datetime


def parse_iso_date(value: date | str) -> date:
    """
    Parse a calendar date in strict YYYY-MM-DD form.

    Accepts an existing date (as read back from the database) unchanged.
    Datetimes are rejected since fines carry no time component.

    Raises:
        ValueError: If the value is not a valid YYYY-MM-DD date
    """
    if isinstance(value, datetime):
        raise ValueError("expected a date without time component")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected YYYY-MM-DD string, got {type(value).__name__}")

    parsed = datetime.strptime(value, "%Y-%m-%d").date()
    # strptime accepts "2025-9-5"; require the canonical form
    if parsed.isoformat() != value:
        raise ValueError(f"expected YYYY-MM-DD, got {value!r}")
    return parsed


def days_between(start: date, end: date) -> int:
    """Signed number of whole days from start to end"""
    return (end - start).days
