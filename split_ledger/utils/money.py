"""
Decimal helpers shared by the balance and settlement code.

Every amount is accumulated as a Decimal and only quantized to cents at the
output boundary.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from split_ledger.utils.exceptions import InvalidInputError

TOLERANCE = Decimal('0.01')
CENTS = Decimal('0.01')
ZERO = Decimal('0')


def to_decimal(value: Any) -> Decimal:
    """
    Convert a number (int, float, str or Decimal) to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal('0.1')`` and
    not its binary expansion.

    Raises:
        InvalidInputError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise InvalidInputError(f"Not a valid amount: {value!r}") from e
    if not result.is_finite():
        raise InvalidInputError(f"Not a valid amount: {value!r}")
    return result


def round_decimal(value: Decimal, precision: Decimal = CENTS) -> Decimal:
    """
    Round a Decimal value to the specified precision.

    Example:
        >>> round_decimal(Decimal("43.333333"))
        Decimal('43.33')
    """
    return value.quantize(precision)


def is_zero(value: Decimal, tolerance: Decimal = TOLERANCE) -> bool:
    """True when the amount is within the settlement tolerance of zero."""
    return abs(value) < tolerance


def sum_decimals(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)
