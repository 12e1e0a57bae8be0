"""
Amount scaling between user-facing decimals and the ledger's smallest unit.

Every amount that reaches the gateway is an ``int`` in the asset's smallest
denomination (tinybars for HBAR). Scaling refuses to round.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Optional, Union

AmountLike = Union[Decimal, str, int]


class AmountError(ValueError):
    """Amount cannot be represented exactly in the smallest unit."""


def _as_decimal(amount: AmountLike) -> Decimal:
    if isinstance(amount, bool):
        raise AmountError(f"Not an amount: {amount!r}")
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # repr() keeps the shortest round-tripping form, e.g. 0.1 -> "0.1"
        amount = repr(amount)
    try:
        return Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise AmountError(f"Not a number: {amount!r}") from None


def to_smallest_unit(amount: AmountLike, decimals: int) -> int:
    """
    Scale a decimal amount to an integer in the smallest unit.

    >>> to_smallest_unit("50", 8)
    5000000000
    >>> to_smallest_unit("0.00000001", 8)
    1
    """
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")

    value = _as_decimal(amount)
    if not value.is_finite():
        raise AmountError(f"Amount must be finite, got {amount!r}")
    if value < 0:
        raise AmountError(f"Amount must not be negative, got {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 80
        scaled = value.scaleb(decimals)
        integral = scaled.to_integral_value(rounding=ROUND_DOWN)
        if integral != scaled:
            raise AmountError(f"{value} has more than {decimals} decimal places")
    return int(integral)


def from_smallest_unit(value: int, decimals: int) -> Decimal:
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(int(value)).scaleb(-decimals)


def format_amount(value: int, decimals: int, symbol: Optional[str] = None) -> str:
    """Render a smallest-unit amount without trailing zeros, e.g. ``50 HBAR``."""
    text = f"{from_smallest_unit(value, decimals):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {symbol}" if symbol else text
