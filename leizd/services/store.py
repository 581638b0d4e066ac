"""Protocol store: pools, positions and risk limits of one protocol instance.

The store is the only object that knows which pool backs which side of a
position. ShadowToAsset positions deposit into the market's shadow pool and
borrow from its asset pool; AssetToShadow positions do the opposite. The
mutators here apply a pool operation and its share delta to the ledger
without any health check; callers decide what is allowed.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ..config import AppConfig
from ..exceptions import ExceedsDeposited, InvalidMarket
from ..interfaces import Ledger, Pool, RiskModel, ValueNormalizer
from ..models import Domain, Market, PositionSummary
from ..oracles import PriceTable
from ..pools import CentralLiquidityPool, MarketPool, Treasury
from ..positions import PositionLedger
from ..risk import RiskParameters, health_factor, is_liquidatable, is_within_limit

logger = logging.getLogger(__name__)


class ProtocolStore:
    """Arena of pool and position records keyed by market and account."""

    def __init__(
        self,
        risk: RiskModel,
        prices: ValueNormalizer,
        central_pool: CentralLiquidityPool,
        treasury: Treasury,
        shadow_symbol: str = "USDZ",
        ledger: Ledger | None = None,
    ) -> None:
        self.risk = risk
        self.prices = prices
        self.central_pool = central_pool
        self.treasury = treasury
        self.shadow_symbol = shadow_symbol
        self.ledger: Ledger = ledger if ledger is not None else PositionLedger()
        self.asset_pools: dict[str, Pool] = {}
        self.shadow_pools: dict[str, Pool] = {}

    @classmethod
    def from_config(cls, config: AppConfig, prices: PriceTable | None = None) -> ProtocolStore:
        """Build a store with every configured market listed."""
        treasury = Treasury(config.treasury or config.owner)
        central_pool = CentralLiquidityPool(
            owner=config.owner,
            treasury=treasury,
            asset=config.shadow.symbol,
            protocol_fee_rate=config.central_pool.protocol_fee_rate,
            support_fee_rate=config.central_pool.support_fee_rate,
        )
        store = cls(
            risk=RiskParameters(config.owner, config.shadow.ltv, config.shadow.lt),
            prices=prices if prices is not None else PriceTable(config.prices),
            central_pool=central_pool,
            treasury=treasury,
            shadow_symbol=config.shadow.symbol,
        )
        for market in config.markets:
            store.list_market(
                config.owner,
                Market(name=market.name, ltv=market.ltv, lt=market.lt),
                asset_protocol_fee_rate=market.asset_protocol_fee_rate,
                shadow_protocol_fee_rate=market.shadow_protocol_fee_rate,
            )
        for name in config.central_pool.supported_markets:
            central_pool.add_supported_market(config.owner, name)
        return store

    def list_market(
        self,
        caller: str,
        market: Market,
        asset_protocol_fee_rate: int = 0,
        shadow_protocol_fee_rate: int = 0,
    ) -> None:
        """Register risk limits and create the market's asset and shadow pools."""
        self.risk.register_market(caller, market)
        self.asset_pools[market.name] = MarketPool(
            market.name, market.name, self.treasury, asset_protocol_fee_rate
        )
        self.shadow_pools[market.name] = MarketPool(
            market.name,
            self.shadow_symbol,
            self.treasury,
            shadow_protocol_fee_rate,
            backstop=self.central_pool,
        )

    # ------------------------------------------------------------------
    # Pool routing
    # ------------------------------------------------------------------

    def asset_pool(self, market: str) -> Pool:
        try:
            return self.asset_pools[market]
        except KeyError:
            raise InvalidMarket(f"No asset pool for '{market}'") from None

    def shadow_pool(self, market: str) -> Pool:
        try:
            return self.shadow_pools[market]
        except KeyError:
            raise InvalidMarket(f"No shadow pool for '{market}'") from None

    def deposit_pool(self, domain: Domain, market: str) -> Pool:
        if domain.collateral_is_shadow:
            return self.shadow_pool(market)
        return self.asset_pool(market)

    def borrow_pool(self, domain: Domain, market: str) -> Pool:
        if domain.collateral_is_shadow:
            return self.asset_pool(market)
        return self.shadow_pool(market)

    def collateral_key(self, domain: Domain, market: str) -> str:
        return self.shadow_symbol if domain.collateral_is_shadow else market

    def debt_key(self, domain: Domain, market: str) -> str:
        return market if domain.collateral_is_shadow else self.shadow_symbol

    def collateral_ltv(self, domain: Domain, market: str) -> int:
        return self.risk.ltv_shadow() if domain.collateral_is_shadow else self.risk.ltv(market)

    def collateral_lt(self, domain: Domain, market: str) -> int:
        return self.risk.lt_shadow() if domain.collateral_is_shadow else self.risk.lt(market)

    # ------------------------------------------------------------------
    # Position views
    # ------------------------------------------------------------------

    def deposited_amount(self, domain: Domain, market: str, account: str) -> int:
        position = self.ledger.position(domain, market, account)
        pool = self.deposit_pool(domain, market)
        return pool.normal_amount(position.normal_deposit_share) + pool.collateral_only_amount(
            position.collateral_only_deposit_share
        )

    def borrowed_amount(self, domain: Domain, market: str, account: str) -> int:
        share = self.ledger.borrowed_share(domain, market, account)
        return self.borrow_pool(domain, market).borrowed_amount(share)

    def deposited_value(self, domain: Domain, market: str, account: str) -> int:
        return self.prices.to_volume(
            self.collateral_key(domain, market),
            self.deposited_amount(domain, market, account),
        )

    def borrowed_value(self, domain: Domain, market: str, account: str) -> int:
        return self.prices.to_volume(
            self.debt_key(domain, market),
            self.borrowed_amount(domain, market, account),
        )

    def is_within_limit(self, domain: Domain, market: str, account: str) -> bool:
        return is_within_limit(
            self.deposited_value(domain, market, account),
            self.borrowed_value(domain, market, account),
            self.collateral_ltv(domain, market),
        )

    def is_liquidatable(self, domain: Domain, market: str, account: str) -> bool:
        return is_liquidatable(
            self.deposited_value(domain, market, account),
            self.borrowed_value(domain, market, account),
            self.collateral_lt(domain, market),
        )

    def health_factor(self, domain: Domain, market: str, account: str) -> int:
        return health_factor(
            self.deposited_value(domain, market, account),
            self.borrowed_value(domain, market, account),
            self.collateral_lt(domain, market),
        )

    def summary(self, domain: Domain, market: str, account: str) -> PositionSummary:
        return PositionSummary(
            account=account,
            domain=domain,
            market=market,
            deposited=self.deposited_amount(domain, market, account),
            borrowed=self.borrowed_amount(domain, market, account),
            collateral_only=self.ledger.is_collateral_only(domain, market, account),
            protected=self.ledger.is_protected(market, account),
            health_factor=self.health_factor(domain, market, account),
        )

    # ------------------------------------------------------------------
    # Unchecked mutators
    # ------------------------------------------------------------------

    def deposit(
        self,
        domain: Domain,
        market: str,
        account: str,
        amount: int,
        collateral_only: bool | None = None,
    ) -> int:
        """Deposit into the position, keeping its existing mode by default."""
        if collateral_only is None:
            collateral_only = self.ledger.is_collateral_only(domain, market, account)
        share = self.deposit_pool(domain, market).deposit(amount, collateral_only)
        self.ledger.apply_deposit(domain, market, account, share, collateral_only)
        return share

    def withdraw(self, domain: Domain, market: str, account: str, amount: int) -> int:
        deposited = self.deposited_amount(domain, market, account)
        if amount > deposited:
            raise ExceedsDeposited(
                f"{account} has {deposited} deposited in {market}, requested {amount}"
            )
        collateral_only = self.ledger.is_collateral_only(domain, market, account)
        share = self.deposit_pool(domain, market).withdraw(amount, collateral_only)
        self.ledger.apply_deposit(domain, market, account, -share, collateral_only)
        return share

    def withdraw_all(self, domain: Domain, market: str, account: str) -> int:
        """Burn every deposit share of the position; returns the amount paid."""
        collateral_only = self.ledger.is_collateral_only(domain, market, account)
        share = self.ledger.deposited_share(domain, market, account, collateral_only)
        amount = self.deposit_pool(domain, market).withdraw_by_share(share, collateral_only)
        self.ledger.apply_deposit(domain, market, account, -share, collateral_only)
        return amount

    def borrow(self, domain: Domain, market: str, account: str, amount: int) -> int:
        share = self.borrow_pool(domain, market).borrow(amount)
        self.ledger.apply_borrow(domain, market, account, share)
        return share

    def repay(self, domain: Domain, market: str, account: str, amount: int) -> int:
        """Repay up to the outstanding debt; returns the amount actually repaid."""
        debt = self.borrowed_amount(domain, market, account)
        if amount >= debt:
            return self.repay_all(domain, market, account)
        share = self.borrow_pool(domain, market).repay(amount)
        self.ledger.apply_borrow(domain, market, account, -share)
        return amount

    def repay_all(self, domain: Domain, market: str, account: str) -> int:
        share = self.ledger.borrowed_share(domain, market, account)
        if share == 0:
            return 0
        amount = self.borrow_pool(domain, market).repay_by_share(share)
        self.ledger.apply_borrow(domain, market, account, -share)
        return amount

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def take_snapshot(self) -> dict[str, Any]:
        """Capture every mutable record for a potential revert."""
        return {
            "ledger": self.ledger.take_snapshot(),
            "central_pool": self.central_pool.take_snapshot(),
            "treasury": self.treasury.take_snapshot(),
            "asset_pools": {k: p.take_snapshot() for k, p in self.asset_pools.items()},
            "shadow_pools": {k: p.take_snapshot() for k, p in self.shadow_pools.items()},
        }

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self.ledger.restore_snapshot(snapshot["ledger"])
        self.central_pool.restore_snapshot(snapshot["central_pool"])
        self.treasury.restore_snapshot(snapshot["treasury"])
        for key, state in snapshot["asset_pools"].items():
            self.asset_pools[key].restore_snapshot(state)
        for key, state in snapshot["shadow_pools"].items():
            self.shadow_pools[key].restore_snapshot(state)

    @contextmanager
    def atomic(self) -> Iterator[ProtocolStore]:
        """Run a request as one state transition; any failure restores the snapshot."""
        snapshot = self.take_snapshot()
        try:
            yield self
        except Exception as e:
            self.restore_snapshot(snapshot)
            logger.debug("Request reverted: %s", e)
            raise
