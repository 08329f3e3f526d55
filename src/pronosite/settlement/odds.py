"""Odds calculator - total odds of a pick and money rounding."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from operator import mul

from pronosite.errors import ValidationError

# Money and odds are both stored as DECIMAL(18, 2).
MONEY_PLACES = Decimal("0.01")
MAX_MONEY = Decimal("9999999999999999.99")
# Decimal odds: a winning pick returns at least its stake
MIN_ODDS = Decimal("1.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize to money precision (half-up, like the displayed toFixed(2))."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def total_odds(odds: Iterable[Decimal | int | float | str]) -> Decimal:
    """Product of leg odds. Rejects empty input and any odds <= 0."""
    factors = [o if isinstance(o, Decimal) else Decimal(str(o)) for o in odds]
    if not factors:
        raise ValidationError("a pick needs at least one leg")
    for o in factors:
        if not o.is_finite() or o <= 0:
            raise ValidationError(f"odds must be positive, got {o}")
    product = reduce(mul, factors, Decimal(1))
    if product > MAX_MONEY:
        raise ValidationError(f"total odds {product:.2f} out of range")
    if len(factors) == 1:
        return to_money(factors[0])
    return to_money(product)


def potential_payout(stake: Decimal, odds: Decimal) -> Decimal:
    """Gross return of a winning pick (stake included)."""
    return to_money(stake * odds)
