"""Utilities for working with hour and credit quantities."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from .exceptions import InvalidInputError

HUNDREDTH = Decimal("0.01")
ZERO = Decimal("0")

HoursLike = Union[Decimal, int, float, str]


def to_decimal(value: HoursLike) -> Decimal:
    """Convert ``value`` to an unrounded :class:`~decimal.Decimal`.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather than
    its binary expansion.
    """

    if isinstance(value, bool):
        raise InvalidInputError(f"Unsupported numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise InvalidInputError(f"Not a number: {value!r}") from exc
    else:
        raise InvalidInputError(f"Unsupported numeric type: {type(value)!r}")

    if not result.is_finite():
        raise InvalidInputError(f"Not a finite number: {value!r}")
    return result


def round2(value: Decimal) -> Decimal:
    """Round ``value`` to two decimal places (half up)."""

    return value.quantize(HUNDREDTH, rounding=ROUND_HALF_UP)


def clamp_non_negative(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def require_positive(amount: Decimal, *, allow_zero: bool = False) -> Decimal:
    """Ensure ``amount`` is positive (or non-negative when ``allow_zero`` is true)."""

    if allow_zero:
        if amount < ZERO:
            raise InvalidInputError("Value must be zero or greater.")
    else:
        if amount <= ZERO:
            raise InvalidInputError("Value must be greater than zero.")
    return amount


def as_float(value: Decimal) -> float:
    """Return ``value`` rounded to two places as a JSON friendly float."""

    return float(round2(value))
