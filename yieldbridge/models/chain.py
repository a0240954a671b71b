"""Chain identifiers and on-chain unit conversion."""

from __future__ import annotations
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Union

from ..domain.exceptions import ValidationError


AmountLike = Union[Decimal, int, float, str]

# Stablecoins travel as integer micro-units, bitcoin as satoshis
STABLECOIN_PLACES = 6
BTC_PLACES = 8
MICRO_UNITS = Decimal(10) ** STABLECOIN_PLACES
SATOSHIS_PER_BTC = Decimal(10) ** BTC_PLACES


class Chain(Enum):
    """Ledgers the system spans."""
    CUSTODY = "custody"  # Bitcoin balances and yield-to-bitcoin conversion
    FINANCE = "finance"  # Stablecoin deposits and APY accrual

    @property
    def other(self) -> "Chain":
        """The opposite ledger (bridge destination)."""
        return Chain.FINANCE if self is Chain.CUSTODY else Chain.CUSTODY


def to_amount(value: AmountLike, field: str = "amount") -> Decimal:
    """
    Normalize a user-supplied amount to a finite Decimal.

    Floats go through ``str()`` so ``45.67`` stays ``Decimal("45.67")``.

    Raises:
        ValidationError: For bools, non-numeric strings, NaN or infinities.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number, got bool", field=field)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} is not a number: {value!r}", field=field)
    else:
        raise ValidationError(
            f"{field} must be a number, got {type(value).__name__}", field=field
        )

    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite, got {value!r}", field=field)
    return amount


def require_positive(value: AmountLike, field: str = "amount") -> Decimal:
    """Normalize an amount and require it to be strictly positive."""
    amount = to_amount(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0, got {amount}", field=field)
    return amount


def require_places(amount: Decimal, places: int, field: str = "amount") -> Decimal:
    """Reject amounts finer than the smallest on-chain unit."""
    scaled = amount.scaleb(places)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"{field} {amount} has more than {places} decimal places", field=field
        )
    return amount


def to_micro_units(amount: Decimal) -> int:
    """Convert a stablecoin amount to integer micro-units (1e-6)."""
    return int(require_places(amount, STABLECOIN_PLACES) * MICRO_UNITS)


def from_micro_units(units: Union[int, str]) -> Decimal:
    """Convert integer micro-units to a stablecoin amount."""
    return Decimal(int(units)) / MICRO_UNITS


def to_satoshis(amount: Decimal) -> int:
    """Convert a BTC amount to integer satoshis."""
    return int(require_places(amount, BTC_PLACES) * SATOSHIS_PER_BTC)


def from_satoshis(sats: Union[int, str]) -> Decimal:
    """Convert integer satoshis to a BTC amount."""
    return Decimal(int(sats)) / SATOSHIS_PER_BTC
