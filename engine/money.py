"""
Money helpers shared by the calculators and the output builder.

All monetary values are Decimal internally and rounded to the cent with
ROUND_HALF_UP. Floats only appear in API output.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places (half away from zero)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return round(float(value), 2)


def to_decimal(value, field_name: str) -> Decimal:
    """Parse a numeric input, raising ValueError for anything unparseable or non-finite."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"{field_name} must be numeric, got: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"{field_name} must be a finite number, got: {value!r}")
    return amount


def to_optional_decimal(value, field_name: str) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value, field_name)
