"""Position ledger: share balances per account, domain and market.

Positions are created on first touch and kept at zero afterwards, so an
account's markets stay in the order they were first used. That order is the
vector order the rebalancer allocates in.
"""
from __future__ import annotations

import copy
import logging
from typing import Any

from ..exceptions import DepositModeMismatch, ExceedsDeposited, InvalidAmount
from ..models import Domain, Position

logger = logging.getLogger(__name__)


class PositionLedger:
    """In-memory store of :class:`Position` records."""

    def __init__(self) -> None:
        self._positions: dict[str, dict[Domain, dict[str, Position]]] = {}
        self._protected: dict[str, set[str]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def position(self, domain: Domain, market: str, account: str) -> Position:
        """Copy of the position, zero when it was never opened."""
        found = self._positions.get(account, {}).get(domain, {}).get(market)
        return copy.copy(found) if found is not None else Position()

    def markets_of(self, domain: Domain, account: str) -> list[str]:
        return list(self._positions.get(account, {}).get(domain, {}))

    def accounts(self) -> list[str]:
        return list(self._positions)

    def deposited_share(
        self, domain: Domain, market: str, account: str, collateral_only: bool
    ) -> int:
        position = self.position(domain, market, account)
        if collateral_only:
            return position.collateral_only_deposit_share
        return position.normal_deposit_share

    def borrowed_share(self, domain: Domain, market: str, account: str) -> int:
        return self.position(domain, market, account).borrowed_share

    def is_collateral_only(self, domain: Domain, market: str, account: str) -> bool:
        return self.position(domain, market, account).is_collateral_only

    def is_protected(self, market: str, account: str) -> bool:
        return market in self._protected.get(account, set())

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _open(self, domain: Domain, market: str, account: str) -> Position:
        markets = self._positions.setdefault(account, {}).setdefault(domain, {})
        if market not in markets:
            markets[market] = Position()
            logger.debug("Opened %s position in %s for %s", domain.value, market, account)
        return markets[market]

    def apply_deposit(
        self,
        domain: Domain,
        market: str,
        account: str,
        delta: int,
        collateral_only: bool,
    ) -> None:
        """Add ``delta`` deposit shares (negative to withdraw)."""
        current = self.position(domain, market, account)
        if collateral_only:
            mine, other = current.collateral_only_deposit_share, current.normal_deposit_share
        else:
            mine, other = current.normal_deposit_share, current.collateral_only_deposit_share
        if delta > 0 and other > 0:
            raise DepositModeMismatch(
                f"{account} already holds {market} deposits in the other mode"
            )
        if mine + delta < 0:
            raise ExceedsDeposited(
                f"{account} holds {mine} {market} deposit shares, removing {-delta}"
            )

        position = self._open(domain, market, account)
        if collateral_only:
            position.collateral_only_deposit_share += delta
        else:
            position.normal_deposit_share += delta

    def apply_borrow(self, domain: Domain, market: str, account: str, delta: int) -> None:
        """Add ``delta`` debt shares (negative to repay)."""
        current = self.borrowed_share(domain, market, account)
        if current + delta < 0:
            raise InvalidAmount(
                f"{account} owes {current} {market} debt shares, repaying {-delta}"
            )
        self._open(domain, market, account).borrowed_share += delta

    def enable_protection(self, account: str, market: str) -> None:
        self._protected.setdefault(account, set()).add(market)
        logger.info("Rebalancing disabled for %s in %s", account, market)

    def disable_protection(self, account: str, market: str) -> None:
        self._protected.get(account, set()).discard(market)
        logger.info("Rebalancing enabled for %s in %s", account, market)

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def take_snapshot(self) -> dict[str, Any]:
        return {
            "positions": copy.deepcopy(self._positions),
            "protected": copy.deepcopy(self._protected),
        }

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._positions = copy.deepcopy(snapshot["positions"])
        self._protected = copy.deepcopy(snapshot["protected"])
