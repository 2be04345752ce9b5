"""Decimal helpers shared by the reconciliation services.

All balances are kept at two decimal places with ``ROUND_HALF_UP``.  SQLite
hands aggregate sums back as ``int`` or ``float``; they go through ``str`` first
so binary floating point noise is rounded away rather than carried forward.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from ..exceptions import InvalidAmount

MONEY_QUANTIZER = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Normalise a stored numeric value to a two-place :class:`Decimal`."""

    if isinstance(value, Decimal):
        decimal_value = value
    elif isinstance(value, bool):
        raise TypeError("Boolean is not a monetary value")
    else:
        decimal_value = Decimal(str(value))
    return decimal_value.quantize(MONEY_QUANTIZER, rounding=ROUND_HALF_UP)


def parse_amount(value: Any, *, allow_negative: bool = False) -> Decimal:
    """Validate user supplied ``value`` as a monetary amount.

    Positive amounts are required unless ``allow_negative`` is set, in which
    case any non-zero amount is accepted.  Raises :class:`InvalidAmount`.
    """

    if value in (None, "") or isinstance(value, bool):
        raise InvalidAmount("Amount is required.")
    try:
        amount = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Amount {value!r} is not a valid number.")
    if not amount.is_finite():
        raise InvalidAmount(f"Amount {value!r} is not a valid number.")
    if allow_negative:
        if amount == 0:
            raise InvalidAmount("Amount must not be zero.")
    elif amount <= 0:
        raise InvalidAmount("Amount must be greater than zero.")
    return amount
