"""Utilities for working with monetary values in the class budget."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from .exceptions import InvalidAmountError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
CURRENCY_SYMBOL = "₪"
# Largest amount that still fits the integer cents columns with room to sum.
MAX_AMOUNT = Decimal("9999999999.99")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Convert ``value`` to a :class:`~decimal.Decimal` with two decimal places.

    Non-numeric and non-finite inputs (``NaN``, ``inf``) raise
    :class:`~classbudget.exceptions.InvalidAmountError`.
    """

    if isinstance(value, bool):
        raise InvalidAmountError(f"Unsupported amount type: {type(value)!r}")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, (int, float)):
            result = Decimal(str(value))
        elif isinstance(value, str):
            result = Decimal(value.strip())
        else:
            raise InvalidAmountError(f"Unsupported amount type: {type(value)!r}")
        if not result.is_finite():
            raise InvalidAmountError(f"Amount must be finite, got {value!r}.")
        if abs(result) > MAX_AMOUNT:
            raise InvalidAmountError(f"Amount is too large: {value!r}.")
        result = result.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidAmountError(f"Not a valid amount: {value!r}") from exc

    # "-0.001" rounds to -0.00; keep zero unsigned.
    return result.copy_abs() if result == 0 else result


def require_positive(amount: Decimal, *, allow_zero: bool = False) -> Decimal:
    """Ensure ``amount`` is positive (or non-negative when ``allow_zero`` is true)."""

    if allow_zero:
        if amount < ZERO:
            raise InvalidAmountError("Amount must be zero or greater.")
    else:
        if amount <= ZERO:
            raise InvalidAmountError("Amount must be greater than zero.")
    return amount


def to_amount(value: AmountLike, *, allow_zero: bool = True) -> Decimal:
    """Parse and validate a money amount in one step."""

    return require_positive(to_decimal(value), allow_zero=allow_zero)


def to_count(value: int, *, label: str = "count") -> int:
    """Validate a headcount: a non-negative integer."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"{label} must be a whole number, got {value!r}.")
    if value < 0:
        raise InvalidAmountError(f"{label} must be zero or greater.")
    return value


def to_cents(amount: Decimal) -> int:
    """Return ``amount`` as integer minor units for storage."""

    return int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / Decimal(100)).quantize(CENT)


def format_currency(amount: Decimal, *, symbol: str = CURRENCY_SYMBOL) -> str:
    """Return ``amount`` as a currency formatted string (e.g. ``₪1,250.00``).

    Negative amounts keep the sign in front of the symbol (``-₪200.00``).
    """

    value = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if value < ZERO:
        return f"-{symbol}{-value:,.2f}"
    return f"{symbol}{value:,.2f}"
