"""Currency helpers - all amounts are Decimal, rounded to cents"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# Largest amount the fines.fine_amount column (Numeric(12, 2)) holds
MAX_AMOUNT = Decimal("9999999999.99")


def round_currency(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero"""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: object) -> Decimal:
    """
    Convert a numeric input into a Decimal amount.

    Floats go through str() so 99.99 stays 99.99 rather than its binary
    expansion.

    Raises:
        ValueError: On booleans, non-numeric strings, NaN/infinity, amounts
            beyond MAX_AMOUNT or other types
    """
    if isinstance(value, bool):
        raise ValueError("amount must be numeric, got bool")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"amount must be numeric, got {value!r}") from e
    else:
        raise ValueError(f"amount must be numeric, got {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError("amount must be finite")
    if amount.copy_abs() > MAX_AMOUNT:
        raise ValueError(f"amount exceeds {MAX_AMOUNT}")
    return amount
