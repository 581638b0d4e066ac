"""Per-market asset or shadow pool.

Each market has one asset pool and one shadow pool built on the same
exchange-rate pattern as the central liquidity pool, except that share
balances live in the position ledger and every mutator returns the share
delta instead of minting a token. Collateral-only deposits sit in the liquid
balance but are never lent out.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..exceptions import ExceedsDeposited, ExceedsLiquidity, InvalidAmount
from ..fixed_point import (
    check_rate,
    fee_of,
    to_amount,
    to_amount_roundup,
    to_share,
    to_share_roundup,
)
from .central_liquidity_pool import CentralLiquidityPool
from .treasury import Treasury

logger = logging.getLogger(__name__)


@dataclass
class Balance:
    """Pool-wide amount and the shares issued against it."""

    amount: int = 0
    share: int = 0


class MarketPool:
    """Exchange-rate pool of one asset for one market."""

    def __init__(
        self,
        market: str,
        asset: str,
        treasury: Treasury,
        protocol_fee_rate: int = 0,
        backstop: CentralLiquidityPool | None = None,
    ) -> None:
        check_rate(protocol_fee_rate)
        self.market = market
        self.asset = asset
        self.protocol_fee_rate = protocol_fee_rate
        self._treasury = treasury
        self._backstop = backstop

        self.liquid_balance = 0
        self.normal = Balance()
        self.collateral_only = Balance()
        self.borrowed = Balance()
        self.uncollected_protocol_fee = 0
        self.backstop_debt = 0

    def __repr__(self) -> str:
        return f"MarketPool({self.market!r}, asset={self.asset!r})"

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def lendable_liquidity(self) -> int:
        return self.liquid_balance - self.collateral_only.amount

    def _deposits(self, collateral_only: bool) -> Balance:
        return self.collateral_only if collateral_only else self.normal

    def normal_amount(self, share: int) -> int:
        return to_amount(share, self.normal.amount, self.normal.share)

    def collateral_only_amount(self, share: int) -> int:
        return to_amount(share, self.collateral_only.amount, self.collateral_only.share)

    def borrowed_amount(self, share: int) -> int:
        return to_amount_roundup(share, self.borrowed.amount, self.borrowed.share)

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    def deposit(self, amount: int, collateral_only: bool = False) -> int:
        """Deposit ``amount``; returns the shares issued (rounded down)."""
        if amount <= 0:
            raise InvalidAmount("Deposit amount must be positive")
        balance = self._deposits(collateral_only)
        share = to_share(amount, balance.amount, balance.share)
        balance.amount += amount
        balance.share += share
        self.liquid_balance += amount
        return share

    def withdraw(self, amount: int, collateral_only: bool = False) -> int:
        """Withdraw ``amount``; returns the shares burned (rounded up)."""
        if amount <= 0:
            raise InvalidAmount("Withdraw amount must be positive")
        balance = self._deposits(collateral_only)
        if amount > balance.amount:
            raise ExceedsDeposited(
                f"{self!r} holds {balance.amount} deposited, requested {amount}"
            )
        self._check_withdrawable(amount, collateral_only)

        share = to_share_roundup(amount, balance.amount, balance.share)
        balance.amount -= amount
        balance.share -= share
        self.liquid_balance -= amount
        return share

    def withdraw_by_share(self, share: int, collateral_only: bool = False) -> int:
        """Burn ``share``; returns the amount paid out (rounded down)."""
        if share <= 0:
            raise InvalidAmount("Withdraw share must be positive")
        balance = self._deposits(collateral_only)
        if share > balance.share:
            raise ExceedsDeposited(
                f"{self!r} issued {balance.share} shares, requested {share}"
            )
        amount = to_amount(share, balance.amount, balance.share)
        self._check_withdrawable(amount, collateral_only)

        balance.amount -= amount
        balance.share -= share
        self.liquid_balance -= amount
        return amount

    def _check_withdrawable(self, amount: int, collateral_only: bool) -> None:
        available = self.liquid_balance if collateral_only else self.lendable_liquidity
        if amount > available:
            raise ExceedsLiquidity(f"{self!r} holds {available} liquid, requested {amount}")

    # ------------------------------------------------------------------
    # Debt
    # ------------------------------------------------------------------

    def borrow(self, amount: int) -> int:
        """Lend ``amount``; returns the debt shares issued (rounded up)."""
        if amount <= 0:
            raise InvalidAmount("Borrow amount must be positive")
        if amount > self.lendable_liquidity:
            self._draw_from_backstop(amount - self.lendable_liquidity)

        share = to_share_roundup(amount, self.borrowed.amount, self.borrowed.share)
        self.borrowed.amount += amount
        self.borrowed.share += share
        self.liquid_balance -= amount
        return share

    def _draw_from_backstop(self, shortfall: int) -> None:
        backstop = self._backstop
        if backstop is None or not backstop.is_supported(self.market):
            raise ExceedsLiquidity(
                f"{self!r} holds {self.lendable_liquidity} lendable, short by {shortfall}"
            )
        _, fee = backstop.borrow(self.market, shortfall)
        self.liquid_balance += shortfall
        self.backstop_debt += shortfall + fee
        # the support fee is carried by every borrower of the pool
        self.borrowed.amount += fee
        logger.info(
            "%r drew %d from central liquidity pool (support fee %d)", self, shortfall, fee
        )

    def repay(self, amount: int) -> int:
        """Repay ``amount``; returns the debt shares cancelled (rounded down)."""
        if amount <= 0:
            raise InvalidAmount("Repay amount must be positive")
        if amount > self.borrowed.amount:
            raise InvalidAmount(
                f"Repay {amount} exceeds {self!r} debt of {self.borrowed.amount}"
            )
        share = to_share(amount, self.borrowed.amount, self.borrowed.share)
        self._settle(amount, share)
        return share

    def repay_by_share(self, share: int) -> int:
        """Cancel ``share`` debt shares; returns the amount charged (rounded up)."""
        if share <= 0:
            raise InvalidAmount("Repay share must be positive")
        if share > self.borrowed.share:
            raise InvalidAmount(
                f"Repay share {share} exceeds {self!r} debt shares {self.borrowed.share}"
            )
        if share == self.borrowed.share:
            amount = self.borrowed.amount
        else:
            amount = min(
                to_amount_roundup(share, self.borrowed.amount, self.borrowed.share),
                self.borrowed.amount,
            )
        self._settle(amount, share)
        return amount

    def _settle(self, amount: int, share: int) -> None:
        self.borrowed.amount -= amount
        self.borrowed.share -= share
        self.liquid_balance += amount
        if self.backstop_debt and self._backstop is not None:
            returned = min(amount, self.backstop_debt)
            self._backstop.repay(self.market, returned)
            self.backstop_debt -= returned
            self.liquid_balance -= returned

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def accrue_interest(self, interest: int) -> int:
        """Book ``interest`` on borrowers; returns the protocol fee taken.

        The part earned on backstop-funded debt is owed to the central pool,
        pro rata to ``backstop_debt``. With no normal depositors left, the
        pool's own part is held as protocol fee, not credited to deposits.
        """
        if interest < 0:
            raise InvalidAmount(f"Interest {interest} is negative")
        if interest == 0:
            return 0

        forwarded = self._backstop_interest(interest)
        if forwarded:
            self._backstop.accrue_interest(self.market, forwarded)
            self.backstop_debt += forwarded
        own = interest - forwarded
        if self.normal.share == 0:
            protocol_fee = own
        else:
            protocol_fee = fee_of(own, self.protocol_fee_rate)

        self.borrowed.amount += interest
        self.normal.amount += own - protocol_fee
        self.uncollected_protocol_fee += protocol_fee
        return protocol_fee

    def _backstop_interest(self, interest: int) -> int:
        if self.backstop_debt == 0 or self._backstop is None:
            return 0
        if self.normal.share == 0:
            return interest
        return interest * self.backstop_debt // self.borrowed.amount

    def harvest_protocol_fees(self) -> int:
        harvested = min(self.uncollected_protocol_fee, self.lendable_liquidity)
        if harvested <= 0:
            return 0
        self.uncollected_protocol_fee -= harvested
        self.liquid_balance -= harvested
        self._treasury.collect(self.asset, harvested)
        logger.info("Harvested %d %s protocol fees from %r", harvested, self.asset, self)
        return harvested

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def take_snapshot(self) -> dict[str, Any]:
        return {
            "liquid_balance": self.liquid_balance,
            "normal": (self.normal.amount, self.normal.share),
            "collateral_only": (self.collateral_only.amount, self.collateral_only.share),
            "borrowed": (self.borrowed.amount, self.borrowed.share),
            "uncollected_protocol_fee": self.uncollected_protocol_fee,
            "backstop_debt": self.backstop_debt,
        }

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self.liquid_balance = snapshot["liquid_balance"]
        self.normal = Balance(*snapshot["normal"])
        self.collateral_only = Balance(*snapshot["collateral_only"])
        self.borrowed = Balance(*snapshot["borrowed"])
        self.uncollected_protocol_fee = snapshot["uncollected_protocol_fee"]
        self.backstop_debt = snapshot["backstop_debt"]
