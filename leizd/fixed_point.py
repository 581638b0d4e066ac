"""Fixed-point constants and share/amount conversions.

All rates, prices and health factors share one PRECISION. Conversions that
pay out or credit the caller round down; conversions that take from the
caller round up, so rounding always favors the pool.
"""
from __future__ import annotations

from .exceptions import InvalidAmount, ZeroAmount

PRECISION = 10**9


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer division rounded toward positive infinity."""
    return -(-numerator // denominator)


def to_share(amount: int, total_amount: int, total_share: int) -> int:
    """Shares worth ``amount``, rounded down."""
    if total_share == 0 or total_amount == 0:
        return amount
    return amount * total_share // total_amount


def to_share_roundup(amount: int, total_amount: int, total_share: int) -> int:
    """Shares worth ``amount``, rounded up."""
    if total_share == 0 or total_amount == 0:
        return amount
    return ceil_div(amount * total_share, total_amount)


def to_amount(share: int, total_amount: int, total_share: int) -> int:
    """Amount represented by ``share``, rounded down."""
    if total_share == 0:
        return share
    return share * total_amount // total_share


def to_amount_roundup(share: int, total_amount: int, total_share: int) -> int:
    """Amount represented by ``share``, rounded up."""
    if total_share == 0:
        return share
    return ceil_div(share * total_amount, total_share)


def fee_of(value: int, rate: int) -> int:
    """Fee charged on ``value`` at ``rate``; always the exact ceiling."""
    return ceil_div(value * rate, PRECISION)


def check_rate(rate: int) -> None:
    """Reject a fixed-point rate outside ``[0, PRECISION]``."""
    if rate < 0 or rate > PRECISION:
        raise InvalidAmount(f"Rate {rate} is outside [0, {PRECISION}]")


def check_amount(amount: int) -> None:
    """Reject a requested amount that is not strictly positive."""
    if amount == 0:
        raise ZeroAmount("Amount must be positive")
    if amount < 0:
        raise InvalidAmount(f"Amount {amount} is negative")
