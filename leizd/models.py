"""Data models shared by pools, the ledger and the rebalancer."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Domain(str, Enum):
    """The two mirrored collateral/debt domains."""

    ASSET_TO_SHADOW = "asset_to_shadow"
    SHADOW_TO_ASSET = "shadow_to_asset"

    @property
    def collateral_is_shadow(self) -> bool:
        return self is Domain.SHADOW_TO_ASSET


@dataclass(frozen=True)
class Market:
    """Risk parameters of one listed asset, fixed-point over PRECISION."""

    name: str
    ltv: int
    lt: int


@dataclass
class Position:
    """Share balances of one account in one market of one domain."""

    normal_deposit_share: int = 0
    collateral_only_deposit_share: int = 0
    borrowed_share: int = 0

    @property
    def is_collateral_only(self) -> bool:
        return self.collateral_only_deposit_share > 0

    @property
    def deposit_share(self) -> int:
        return self.normal_deposit_share + self.collateral_only_deposit_share

    @property
    def is_empty(self) -> bool:
        return self.deposit_share == 0 and self.borrowed_share == 0


@dataclass(frozen=True)
class ScheduledOp:
    """One scheduled pool operation, in native units of the moved asset."""

    market: str
    amount: int


@dataclass
class RebalancePlan:
    """Operations the optimizer derived for one borrow request.

    ``borrows`` and ``repays`` act on AssetToShadow debt; ``withdrawals`` and
    ``deposits`` act on ShadowToAsset collateral. All amounts are in shadow
    units.
    """

    market: str
    amount: int
    total_extra: int = 0
    total_insufficient: int = 0
    required: int = 0
    shadow_target_hf: int | None = None
    asset_target_hf: int | None = None
    borrows: list[ScheduledOp] = field(default_factory=list)
    withdrawals: list[ScheduledOp] = field(default_factory=list)
    repays: list[ScheduledOp] = field(default_factory=list)
    deposits: list[ScheduledOp] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.borrows or self.withdrawals or self.repays or self.deposits)

    @property
    def touched_markets(self) -> set[tuple[Domain, str]]:
        touched = {(Domain.SHADOW_TO_ASSET, self.market)}
        for op in self.borrows + self.repays:
            touched.add((Domain.ASSET_TO_SHADOW, op.market))
        for op in self.withdrawals + self.deposits:
            touched.add((Domain.SHADOW_TO_ASSET, op.market))
        return touched


@dataclass(frozen=True)
class PositionSummary:
    """Read-only view of a position in native amounts."""

    account: str
    domain: Domain
    market: str
    deposited: int
    borrowed: int
    collateral_only: bool
    protected: bool
    health_factor: int
