"""Central liquidity pool: single-asset backstop for the shadow pools.

Depositors receive shares from a :class:`ShareToken`; the value of a share is
``total_deposited / supply`` and rises as support fees and interest accrue.
Shadow pools borrow from it per market when their own liquidity runs out.
"""
from __future__ import annotations

import logging
from typing import Any

from ..exceptions import (
    DuplicateMarket,
    ExceedsDeposited,
    ExceedsLiquidity,
    InvalidAmount,
    PermissionDenied,
    UnsupportedMarket,
)
from ..fixed_point import (
    check_rate,
    fee_of,
    to_amount,
    to_share,
    to_share_roundup,
)
from .share_token import ShareToken
from .treasury import Treasury

logger = logging.getLogger(__name__)


class CentralLiquidityPool:
    """Exchange-rate pool of one asset with per-market borrow sub-ledgers."""

    def __init__(
        self,
        owner: str,
        treasury: Treasury,
        asset: str = "USDZ",
        protocol_fee_rate: int = 0,
        support_fee_rate: int = 0,
    ) -> None:
        check_rate(protocol_fee_rate)
        check_rate(support_fee_rate)
        self.owner = owner
        self.asset = asset
        self.share_token = ShareToken(f"stb{asset}")
        self._treasury = treasury

        self.protocol_fee_rate = protocol_fee_rate
        self.support_fee_rate = support_fee_rate
        self.liquid_balance = 0
        self.total_deposited = 0
        self.total_borrowed = 0
        self.total_uncollected_fee = 0
        self._borrowed: dict[str, int] = {}
        self._supported_markets: list[str] = []

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise PermissionDenied(f"{caller} is not the pool owner")

    def add_supported_market(self, caller: str, market: str) -> None:
        self._only_owner(caller)
        if market in self._supported_markets:
            raise DuplicateMarket(f"Market '{market}' is already supported")
        self._supported_markets.append(market)
        self._borrowed[market] = 0
        logger.info("Central liquidity pool now supports %s", market)

    def update_protocol_fee_rate(self, caller: str, rate: int) -> None:
        self._only_owner(caller)
        check_rate(rate)
        self.protocol_fee_rate = rate

    def update_support_fee_rate(self, caller: str, rate: int) -> None:
        self._only_owner(caller)
        check_rate(rate)
        self.support_fee_rate = rate

    @property
    def supported_markets(self) -> tuple[str, ...]:
        return tuple(self._supported_markets)

    def is_supported(self, market: str) -> bool:
        return market in self._supported_markets

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def borrowed(self, market: str) -> int:
        return self._borrowed.get(market, 0)

    def share_of(self, account: str) -> int:
        return self.share_token.balance_of(account)

    def deposited_of(self, account: str) -> int:
        """Amount the account could withdraw at the current exchange rate."""
        return to_amount(
            self.share_of(account), self.total_deposited, self.share_token.supply
        )

    def calculate_support_fee(self, amount: int) -> int:
        return fee_of(amount, self.support_fee_rate)

    def calculate_protocol_fee(self, interest: int) -> int:
        return fee_of(interest, self.protocol_fee_rate)

    # ------------------------------------------------------------------
    # Depositors
    # ------------------------------------------------------------------

    def deposit(self, account: str, amount: int) -> int:
        """Deposit ``amount`` and mint shares to ``account``."""
        if amount <= 0:
            raise InvalidAmount("Deposit amount must be positive")

        share = to_share(amount, self.total_deposited, self.share_token.supply)
        self.total_deposited += amount
        self.liquid_balance += amount
        self.share_token.mint(account, share)
        logger.debug("%s deposited %d into central pool (%d shares)", account, amount, share)
        return share

    def withdraw(self, account: str, amount: int) -> tuple[int, int]:
        """Withdraw ``amount``; returns ``(amount, burned_share)``."""
        if amount <= 0:
            raise InvalidAmount("Withdraw amount must be positive")
        withdrawable = self.deposited_of(account)
        if amount > withdrawable:
            raise ExceedsDeposited(
                f"{account} can withdraw {withdrawable}, requested {amount}"
            )
        if self.liquid_balance < amount:
            raise ExceedsLiquidity(
                f"Central pool holds {self.liquid_balance}, requested {amount}"
            )

        share = to_share_roundup(amount, self.total_deposited, self.share_token.supply)
        self._pay_out(account, amount, share)
        return amount, share

    def withdraw_all(self, account: str) -> tuple[int, int]:
        """Burn every share of ``account``; returns ``(amount, burned_share)``."""
        share = self.share_of(account)
        if share == 0:
            raise InvalidAmount(f"{account} holds no central pool shares")
        amount = to_amount(share, self.total_deposited, self.share_token.supply)
        if self.liquid_balance < amount:
            raise ExceedsLiquidity(
                f"Central pool holds {self.liquid_balance}, requested {amount}"
            )
        self._pay_out(account, amount, share)
        return amount, share

    def _pay_out(self, account: str, amount: int, share: int) -> None:
        self.share_token.burn(account, share)
        self.total_deposited -= amount
        self.liquid_balance -= amount
        logger.debug("%s withdrew %d from central pool (%d shares)", account, amount, share)

    # ------------------------------------------------------------------
    # Borrowers (shadow pools)
    # ------------------------------------------------------------------

    def borrow(self, market: str, amount: int) -> tuple[int, int]:
        """Lend ``amount`` to the shadow pool of ``market``; returns ``(amount, fee)``."""
        if amount <= 0:
            raise InvalidAmount("Borrow amount must be positive")
        if not self.is_supported(market):
            raise UnsupportedMarket(f"Central pool does not support '{market}'")
        if self.liquid_balance < amount:
            raise ExceedsLiquidity(
                f"Central pool holds {self.liquid_balance}, requested {amount}"
            )

        fee = self.calculate_support_fee(amount)
        self._borrowed[market] += amount + fee
        self.total_borrowed += amount + fee
        self.total_deposited += fee
        self.liquid_balance -= amount
        logger.debug("Central pool lent %d (+%d fee) to %s", amount, fee, market)
        return amount, fee

    def repay(self, market: str, amount: int) -> int:
        if amount <= 0:
            raise InvalidAmount("Repay amount must be positive")
        if not self.is_supported(market):
            raise UnsupportedMarket(f"Central pool does not support '{market}'")
        if amount > self._borrowed[market]:
            raise InvalidAmount(
                f"Repay {amount} exceeds {market} debt of {self._borrowed[market]}"
            )

        self._borrowed[market] -= amount
        self.total_borrowed -= amount
        self.liquid_balance += amount
        return amount

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def accrue_interest(self, market: str, interest: int) -> int:
        """Book ``interest`` owed by ``market``; returns the protocol fee taken."""
        if not self.is_supported(market):
            raise UnsupportedMarket(f"Central pool does not support '{market}'")
        if interest < 0:
            raise InvalidAmount(f"Interest {interest} is negative")
        if interest == 0:
            return 0

        protocol_fee = self.calculate_protocol_fee(interest)
        self.total_deposited += interest - protocol_fee
        self._borrowed[market] += interest
        self.total_borrowed += interest
        self.total_uncollected_fee += protocol_fee
        return protocol_fee

    def harvest_protocol_fees(self) -> int:
        """Pay uncollected protocol fees to the treasury, bounded by liquidity."""
        harvested = min(self.total_uncollected_fee, self.liquid_balance)
        if harvested == 0:
            return 0
        self.total_uncollected_fee -= harvested
        self.liquid_balance -= harvested
        self._treasury.collect(self.asset, harvested)
        logger.info("Harvested %d %s protocol fees from central pool", harvested, self.asset)
        return harvested

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def take_snapshot(self) -> dict[str, Any]:
        return {
            "share_token": self.share_token.take_snapshot(),
            "protocol_fee_rate": self.protocol_fee_rate,
            "support_fee_rate": self.support_fee_rate,
            "liquid_balance": self.liquid_balance,
            "total_deposited": self.total_deposited,
            "total_borrowed": self.total_borrowed,
            "total_uncollected_fee": self.total_uncollected_fee,
            "borrowed": dict(self._borrowed),
            "supported_markets": list(self._supported_markets),
        }

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self.share_token.restore_snapshot(snapshot["share_token"])
        self.protocol_fee_rate = snapshot["protocol_fee_rate"]
        self.support_fee_rate = snapshot["support_fee_rate"]
        self.liquid_balance = snapshot["liquid_balance"]
        self.total_deposited = snapshot["total_deposited"]
        self.total_borrowed = snapshot["total_borrowed"]
        self.total_uncollected_fee = snapshot["total_uncollected_fee"]
        self._borrowed = dict(snapshot["borrowed"])
        self._supported_markets = list(snapshot["supported_markets"])
