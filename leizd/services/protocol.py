"""Account-facing entry points of the lending protocol."""
from __future__ import annotations

import logging

from ..config import AppConfig
from ..exceptions import InsufficientCollateral, InvalidMarket
from ..fixed_point import check_amount
from ..models import Domain, PositionSummary, RebalancePlan, ScheduledOp
from ..oracles import PriceTable
from .rebalancer import RebalancingOptimizer
from .store import ProtocolStore

logger = logging.getLogger(__name__)


class LendingProtocol:
    """Checked deposit, withdraw, borrow and repay over a :class:`ProtocolStore`.

    Every call is one atomic state transition: a failing call leaves pools,
    positions and fees exactly as they were.
    """

    def __init__(self, store: ProtocolStore) -> None:
        self.store = store
        self.optimizer = RebalancingOptimizer(store)

    @classmethod
    def from_config(cls, config: AppConfig, prices: PriceTable | None = None) -> LendingProtocol:
        return cls(ProtocolStore.from_config(config, prices))

    def _check(self, market: str, amount: int | None = None) -> None:
        if amount is not None:
            check_amount(amount)
        if not self.store.risk.is_registered(market):
            raise InvalidMarket(f"Market '{market}' is not registered")

    def _require_within_limit(self, domain: Domain, market: str, account: str) -> None:
        if not self.store.is_within_limit(domain, market, account):
            raise InsufficientCollateral(
                f"{account}'s {domain.value} {market} position would exceed its LTV"
            )

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    def deposit(
        self,
        account: str,
        market: str,
        amount: int,
        domain: Domain = Domain.ASSET_TO_SHADOW,
        collateral_only: bool = False,
    ) -> int:
        """Deposit collateral; returns the shares minted."""
        self._check(market, amount)
        with self.store.atomic():
            share = self.store.deposit(domain, market, account, amount, collateral_only)
        logger.info("%s deposited %d into %s %s", account, amount, domain.value, market)
        return share

    def withdraw(
        self, account: str, market: str, amount: int, domain: Domain = Domain.ASSET_TO_SHADOW
    ) -> int:
        """Withdraw collateral if the position stays within its LTV; returns shares burned."""
        self._check(market, amount)
        with self.store.atomic():
            share = self.store.withdraw(domain, market, account, amount)
            self._require_within_limit(domain, market, account)
        logger.info("%s withdrew %d from %s %s", account, amount, domain.value, market)
        return share

    def withdraw_all(
        self, account: str, market: str, domain: Domain = Domain.ASSET_TO_SHADOW
    ) -> int:
        """Withdraw the whole deposit; returns the amount paid out."""
        self._check(market)
        with self.store.atomic():
            amount = self.store.withdraw_all(domain, market, account)
            self._require_within_limit(domain, market, account)
        logger.info("%s withdrew all (%d) from %s %s", account, amount, domain.value, market)
        return amount

    # ------------------------------------------------------------------
    # Debt
    # ------------------------------------------------------------------

    def borrow(
        self, account: str, market: str, amount: int, domain: Domain = Domain.ASSET_TO_SHADOW
    ) -> int:
        """Borrow against the position's own collateral; returns shares issued."""
        self._check(market, amount)
        with self.store.atomic():
            share = self.store.borrow(domain, market, account, amount)
            self._require_within_limit(domain, market, account)
        logger.info("%s borrowed %d from %s %s", account, amount, domain.value, market)
        return share

    def repay(
        self, account: str, market: str, amount: int, domain: Domain = Domain.ASSET_TO_SHADOW
    ) -> int:
        """Repay up to the outstanding debt; returns the amount repaid."""
        self._check(market, amount)
        with self.store.atomic():
            repaid = self.store.repay(domain, market, account, amount)
        logger.info("%s repaid %d to %s %s", account, repaid, domain.value, market)
        return repaid

    def borrow_asset_with_rebalance(self, account: str, market: str, amount: int) -> RebalancePlan:
        return self.optimizer.borrow_asset_with_rebalance(account, market, amount)

    def repay_shadow_evenly(self, account: str, amount: int) -> list[ScheduledOp]:
        return self.optimizer.repay_shadow_evenly(account, amount)

    # ------------------------------------------------------------------
    # Rebalance protection
    # ------------------------------------------------------------------

    def enable_protection(self, account: str, market: str) -> None:
        """Exclude ``market`` from automatic rebalancing for ``account``."""
        self._check(market)
        self.store.ledger.enable_protection(account, market)

    def disable_protection(self, account: str, market: str) -> None:
        self._check(market)
        self.store.ledger.disable_protection(account, market)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def position_summaries(self, account: str) -> list[PositionSummary]:
        """Every open position of ``account``, AssetToShadow first."""
        summaries = []
        for domain in (Domain.ASSET_TO_SHADOW, Domain.SHADOW_TO_ASSET):
            for market in self.store.ledger.markets_of(domain, account):
                summaries.append(self.store.summary(domain, market, account))
        return summaries
