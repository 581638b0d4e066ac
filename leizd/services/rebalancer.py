"""Rebalance-assisted borrowing across the two position domains.

A borrow of asset C is posted against the asset pool first and recorded as
ShadowToAsset debt. If the ShadowToAsset[C] position is then over its limit,
shadow collateral is moved between the account's unprotected ShadowToAsset
markets; when their combined collateral is not enough, new shadow is
borrowed against the account's unprotected AssetToShadow markets and
deposited as collateral. Every amount below is in shadow units.

The whole request runs inside one store snapshot: it either leaves every
touched position out of liquidation range or changes nothing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exceptions import InsufficientCapacity, InvalidMarket
from ..fixed_point import PRECISION, check_amount
from ..models import Domain, RebalancePlan, ScheduledOp
from ..risk import borrow_limit, distribute, health_factor, required_collateral
from .store import ProtocolStore

logger = logging.getLogger(__name__)

A2S = Domain.ASSET_TO_SHADOW
S2A = Domain.SHADOW_TO_ASSET


@dataclass(frozen=True)
class _CollateralSlot:
    """ShadowToAsset position: shadow deposited against converted debt."""

    market: str
    deposited: int
    debt: int
    need: int

    @property
    def extra(self) -> int:
        return max(0, self.deposited - self.need)

    @property
    def insufficient(self) -> int:
        return max(0, self.need - self.deposited)


@dataclass(frozen=True)
class _DebtSlot:
    """AssetToShadow position: shadow debt against its borrow limit."""

    market: str
    limit: int
    current: int
    liquidation_value: int

    @property
    def capacity(self) -> int:
        return max(0, self.limit - self.current)


class RebalancingOptimizer:
    """Stateless planner and executor over a :class:`ProtocolStore`."""

    def __init__(self, store: ProtocolStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Borrow side
    # ------------------------------------------------------------------

    def borrow_asset_with_rebalance(
        self, account: str, market: str, amount: int
    ) -> RebalancePlan:
        """Borrow ``amount`` of ``market`` and rebalance to keep it within limits."""
        check_amount(amount)
        store = self._store
        if not store.risk.is_registered(market):
            raise InvalidMarket(f"Market '{market}' is not registered")

        with store.atomic():
            store.borrow(S2A, market, account, amount)
            plan = self._plan(account, market, amount)
            self._execute(account, plan)
            self._verify(account, plan)

        logger.info(
            "%s borrowed %d %s: %d borrows, %d withdrawals, %d repays, %d deposits",
            account,
            amount,
            market,
            len(plan.borrows),
            len(plan.withdrawals),
            len(plan.repays),
            len(plan.deposits),
        )
        return plan

    def _plan(self, account: str, market: str, amount: int) -> RebalancePlan:
        store = self._store
        plan = RebalancePlan(market=market, amount=amount)

        requested = self._collateral_slot(account, market)
        if requested.insufficient == 0:
            return plan
        if store.ledger.is_protected(market, account):
            raise InsufficientCapacity(
                f"{account} disabled rebalancing for {market} and its position is short by "
                f"{requested.insufficient}"
            )

        slots = self._collateral_slots(account)
        deposited = sum(s.deposited for s in slots)
        plan.total_extra = sum(s.extra for s in slots)
        plan.total_insufficient = sum(s.insufficient for s in slots)

        if plan.total_extra >= plan.total_insufficient:
            self._schedule_collateral(plan, slots, deposited)
            return plan

        plan.required = requested.insufficient
        debt_slots = self._debt_slots(account)
        allocation = self._allocate(debt_slots, plan.required)
        self._schedule_debt(plan, debt_slots, allocation)

        if plan.total_extra + plan.required >= plan.total_insufficient:
            self._schedule_collateral(plan, slots, deposited + plan.required)
        else:
            plan.deposits.append(ScheduledOp(market, plan.required))
        return plan

    # ------------------------------------------------------------------
    # Position snapshots
    # ------------------------------------------------------------------

    def _collateral_slot(self, account: str, market: str) -> _CollateralSlot:
        store = self._store
        debt = store.prices.to_amount(
            store.shadow_symbol, store.borrowed_value(S2A, market, account)
        )
        return _CollateralSlot(
            market=market,
            deposited=store.deposited_amount(S2A, market, account),
            debt=debt,
            need=required_collateral(debt, store.risk.ltv_shadow()),
        )

    def _collateral_slots(self, account: str) -> list[_CollateralSlot]:
        slots = []
        for market in self._unprotected(S2A, account):
            slot = self._collateral_slot(account, market)
            if slot.deposited or slot.debt:
                slots.append(slot)
        return slots

    def _debt_slots(self, account: str) -> list[_DebtSlot]:
        store = self._store
        slots = []
        for market in self._unprotected(A2S, account):
            deposited_value = store.deposited_value(A2S, market, account)
            limit = store.prices.to_amount(
                store.shadow_symbol, borrow_limit(deposited_value, store.risk.ltv(market))
            )
            current = store.borrowed_amount(A2S, market, account)
            if limit == 0 and current == 0:
                continue
            slots.append(
                _DebtSlot(
                    market=market,
                    limit=limit,
                    current=current,
                    liquidation_value=borrow_limit(deposited_value, store.risk.lt(market)),
                )
            )
        return slots

    def _unprotected(self, domain: Domain, account: str) -> list[str]:
        ledger = self._store.ledger
        return [
            m for m in ledger.markets_of(domain, account) if not ledger.is_protected(m, account)
        ]

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule_collateral(
        self, plan: RebalancePlan, slots: list[_CollateralSlot], pool: int
    ) -> None:
        """Spread ``pool`` shadow so every slot shares one health factor."""
        spare = pool - sum(s.need for s in slots)
        extra_parts = distribute(spare, [s.debt for s in slots])
        plan.shadow_target_hf = health_factor(
            pool, sum(s.debt for s in slots), self._store.risk.lt_shadow()
        )

        for slot, part in zip(slots, extra_parts):
            target = slot.need + part
            if slot.deposited > target:
                plan.withdrawals.append(ScheduledOp(slot.market, slot.deposited - target))
            elif target > slot.deposited:
                plan.deposits.append(ScheduledOp(slot.market, target - slot.deposited))

    @staticmethod
    def _allocate(slots: list[_DebtSlot], required: int) -> dict[str, int]:
        """Greedy fill of ``required`` over spare borrow capacity in vector order."""
        capacity = sum(s.capacity for s in slots)
        if capacity < required:
            raise InsufficientCapacity(
                f"Rebalance needs {required} shadow, spare borrow capacity is {capacity}"
            )
        allocation: dict[str, int] = {}
        remaining = required
        for slot in slots:
            if remaining == 0:
                break
            take = min(remaining, slot.capacity)
            if take:
                allocation[slot.market] = take
                remaining -= take
        return allocation

    def _schedule_debt(
        self, plan: RebalancePlan, slots: list[_DebtSlot], allocation: dict[str, int]
    ) -> None:
        """Spread AssetToShadow debt in proportion to each borrow limit.

        When the domain as a whole cannot carry its debt within limits, the
        greedy allocation is kept as the borrow schedule.
        """
        total = sum(s.current for s in slots) + plan.required
        total_limit = sum(s.limit for s in slots)
        plan.asset_target_hf = health_factor(
            sum(s.liquidation_value for s in slots),
            self._store.prices.to_volume(self._store.shadow_symbol, total),
            PRECISION,
        )

        if total > total_limit:
            plan.borrows.extend(ScheduledOp(m, a) for m, a in allocation.items())
            return

        targets = distribute(total, [s.limit for s in slots])
        for slot, target in zip(slots, targets):
            if target > slot.current:
                plan.borrows.append(ScheduledOp(slot.market, target - slot.current))
            elif target < slot.current:
                plan.repays.append(ScheduledOp(slot.market, slot.current - target))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, account: str, plan: RebalancePlan) -> None:
        """Apply the plan: borrows, withdrawals, repayments, then deposits."""
        store = self._store
        released = 0
        for op in plan.borrows:
            store.borrow(A2S, op.market, account, op.amount)
            released += op.amount
        for op in plan.withdrawals:
            store.withdraw(S2A, op.market, account, op.amount)
            released += op.amount
        for op in plan.repays:
            released -= store.repay(A2S, op.market, account, op.amount)
        for op in plan.deposits:
            if op.amount > released:
                raise InsufficientCapacity(
                    f"Deposit of {op.amount} into {op.market} exceeds released {released}"
                )
            store.deposit(S2A, op.market, account, op.amount)
            released -= op.amount
        if released:
            logger.debug("%d shadow released to %s after rebalance", released, account)

    def _verify(self, account: str, plan: RebalancePlan) -> None:
        for domain, market in sorted(plan.touched_markets):
            if self._store.is_liquidatable(domain, market, account):
                raise InsufficientCapacity(
                    f"Rebalance would leave {account}'s {domain.value} {market} liquidatable"
                )

    # ------------------------------------------------------------------
    # Repay side
    # ------------------------------------------------------------------

    def repay_shadow_evenly(self, account: str, amount: int) -> list[ScheduledOp]:
        """Spread a shadow repayment evenly over the account's shadow debts.

        If ``amount`` covers every debt they are all closed. Otherwise each
        market receives ``amount // n``, capped at its own debt; the unused
        part of a capped share is not redistributed.
        """
        check_amount(amount)
        store = self._store
        debts = [
            (m, store.borrowed_amount(A2S, m, account)) for m in self._unprotected(A2S, account)
        ]
        debts = [(m, d) for m, d in debts if d > 0]
        repaid: list[ScheduledOp] = []
        if not debts:
            return repaid

        with store.atomic():
            if amount >= sum(d for _, d in debts):
                for market, _ in debts:
                    repaid.append(ScheduledOp(market, store.repay_all(A2S, market, account)))
            else:
                each = amount // len(debts)
                for market, debt in debts:
                    part = min(each, debt)
                    if part:
                        repaid.append(
                            ScheduledOp(market, store.repay(A2S, market, account, part))
                        )

        logger.info(
            "%s repaid %d shadow across %d markets",
            account,
            sum(op.amount for op in repaid),
            len(repaid),
        )
        return repaid
