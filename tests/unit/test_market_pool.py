"""Unit tests for per-market asset and shadow pools."""
from __future__ import annotations

import pytest

from leizd.exceptions import ExceedsDeposited, ExceedsLiquidity, InvalidAmount
from leizd.pools import CentralLiquidityPool, MarketPool, Treasury

OWNER = "0xowner"


@pytest.fixture()
def pool(treasury: Treasury) -> MarketPool:
    return MarketPool("WETH", "WETH", treasury)


@pytest.fixture()
def shadow_pool(treasury: Treasury, central_pool: CentralLiquidityPool) -> MarketPool:
    central_pool.deposit("lender", 100_000)
    return MarketPool("WETH", "USDZ", treasury, backstop=central_pool)


class TestDeposits:
    def test_first_deposit_mints_one_to_one(self, pool: MarketPool) -> None:
        assert pool.deposit(400_000) == 400_000
        assert pool.normal.amount == 400_000
        assert pool.liquid_balance == 400_000

    def test_withdraw_burns_shares(self, pool: MarketPool) -> None:
        pool.deposit(400_000)
        assert pool.withdraw(300_000) == 300_000
        assert pool.normal.amount == 100_000
        assert pool.liquid_balance == 100_000

    def test_withdraw_more_than_deposited(self, pool: MarketPool) -> None:
        pool.deposit(100)
        with pytest.raises(ExceedsDeposited):
            pool.withdraw(101)

    def test_zero_amounts_rejected(self, pool: MarketPool) -> None:
        with pytest.raises(InvalidAmount):
            pool.deposit(0)
        with pytest.raises(InvalidAmount):
            pool.borrow(0)

    def test_negative_amounts_rejected(self, pool: MarketPool) -> None:
        pool.deposit(1000)
        pool.borrow(100)
        for call in (
            pool.deposit,
            pool.withdraw,
            pool.withdraw_by_share,
            pool.borrow,
            pool.repay,
            pool.repay_by_share,
            pool.accrue_interest,
        ):
            with pytest.raises(InvalidAmount):
                call(-1)
        assert pool.normal.amount == 1000
        assert pool.borrowed.amount == 100
        assert pool.liquid_balance == 900

    def test_collateral_only_is_not_lent(self, pool: MarketPool) -> None:
        pool.deposit(1000, collateral_only=True)
        pool.deposit(500)
        assert pool.lendable_liquidity == 500
        with pytest.raises(ExceedsLiquidity):
            pool.borrow(501)

    def test_collateral_only_withdraw_uses_full_liquidity(self, pool: MarketPool) -> None:
        pool.deposit(1000, collateral_only=True)
        pool.deposit(500)
        pool.borrow(500)
        assert pool.withdraw(1000, collateral_only=True) == 1000

    def test_withdraw_by_share_rounds_down(self, pool: MarketPool) -> None:
        pool.deposit(1000)
        pool.deposit(1000)
        pool.borrow(100)
        pool.accrue_interest(1)
        # 2001 over 2000 shares
        assert pool.withdraw_by_share(1000) == 1000


class TestDebt:
    def test_borrows_drain_liquidity(self, pool: MarketPool) -> None:
        pool.deposit(400_000)
        for _ in range(4):
            pool.borrow(100_000)
        assert pool.liquid_balance == 0
        assert pool.borrowed.amount == 400_000

    def test_partial_repay_then_rest(self, pool: MarketPool) -> None:
        pool.deposit(10_000)
        share = pool.borrow(10_000)
        pool.repay(9900)
        assert pool.borrowed.amount == 100
        assert pool.borrowed_amount(share - 9900) == 100
        pool.repay(100)
        assert pool.borrowed.amount == 0
        assert pool.liquid_balance == 10_000

    def test_repay_more_than_debt(self, pool: MarketPool) -> None:
        pool.deposit(1000)
        pool.borrow(10)
        with pytest.raises(InvalidAmount):
            pool.repay(11)

    def test_debt_rounds_against_borrower(self, pool: MarketPool) -> None:
        pool.deposit(10_000)
        pool.borrow(3)
        pool.accrue_interest(1)
        # 4 owed over 3 shares: one share is worth ceil(4/3) = 2
        assert pool.borrowed_amount(1) == 2

    def test_repay_by_last_share_clears_pool(self, pool: MarketPool) -> None:
        pool.deposit(10_000)
        share = pool.borrow(3)
        pool.accrue_interest(1)
        assert pool.repay_by_share(share) == 4
        assert pool.borrowed.amount == 0
        assert pool.borrowed.share == 0

    def test_no_backstop_means_exceeds_liquidity(self, pool: MarketPool) -> None:
        with pytest.raises(ExceedsLiquidity):
            pool.borrow(1)


class TestBackstop:
    def test_shortfall_drawn_from_central_pool(
        self, shadow_pool: MarketPool, central_pool: CentralLiquidityPool
    ) -> None:
        shadow_pool.deposit(100)
        shadow_pool.borrow(250)
        assert shadow_pool.backstop_debt == 150
        assert central_pool.borrowed("WETH") == 150
        assert shadow_pool.liquid_balance == 0

    def test_support_fee_is_added_to_debt(self, treasury: Treasury) -> None:
        backstop = CentralLiquidityPool(OWNER, treasury, support_fee_rate=10_000_000)
        backstop.add_supported_market(OWNER, "WETH")
        backstop.deposit("lender", 10_000)
        pool = MarketPool("WETH", "USDZ", treasury, backstop=backstop)

        pool.borrow(1000)
        assert pool.backstop_debt == 1010
        assert pool.borrowed.amount == 1010
        assert pool.borrowed_amount(1000) == 1010

    def test_repay_settles_backstop_first(
        self, shadow_pool: MarketPool, central_pool: CentralLiquidityPool
    ) -> None:
        shadow_pool.deposit(100)
        shadow_pool.borrow(250)
        shadow_pool.repay(200)
        assert shadow_pool.backstop_debt == 0
        assert central_pool.borrowed("WETH") == 0
        assert shadow_pool.liquid_balance == 50

    def test_interest_on_backstop_funded_debt_goes_to_central_pool(
        self, shadow_pool: MarketPool, central_pool: CentralLiquidityPool
    ) -> None:
        shadow_pool.borrow(1000)
        assert shadow_pool.accrue_interest(500) == 0
        assert shadow_pool.normal.amount == 0
        assert shadow_pool.backstop_debt == 1500
        assert central_pool.borrowed("WETH") == 1500
        assert central_pool.total_deposited == 100_500

        # a late depositor gets no claim on interest earned before they joined
        assert shadow_pool.deposit(1) == 1
        assert shadow_pool.normal_amount(1) == 1

    def test_interest_split_pro_rata_with_backstop(
        self, shadow_pool: MarketPool, central_pool: CentralLiquidityPool
    ) -> None:
        shadow_pool.deposit(100)
        shadow_pool.borrow(250)
        shadow_pool.accrue_interest(50)
        # 150 of the 250 owed is backstop-funded: 50 * 150 // 250 = 30
        assert shadow_pool.backstop_debt == 180
        assert central_pool.borrowed("WETH") == 180
        assert shadow_pool.normal.amount == 120
        assert shadow_pool.borrowed.amount == 300

    def test_unsupported_market_is_not_backed(
        self, treasury: Treasury, central_pool: CentralLiquidityPool
    ) -> None:
        pool = MarketPool("UNI", "USDZ", treasury, backstop=central_pool)
        with pytest.raises(ExceedsLiquidity):
            pool.borrow(1)


class TestFees:
    def test_interest_goes_to_normal_depositors(self, treasury: Treasury) -> None:
        pool = MarketPool("WETH", "WETH", treasury, protocol_fee_rate=100_000_000)
        pool.deposit(1000)
        pool.deposit(1000, collateral_only=True)
        pool.borrow(500)

        assert pool.accrue_interest(50) == 5
        assert pool.normal.amount == 1045
        assert pool.collateral_only.amount == 1000
        assert pool.borrowed.amount == 550

    def test_harvest_pays_treasury(self, treasury: Treasury) -> None:
        pool = MarketPool("WETH", "WETH", treasury, protocol_fee_rate=100_000_000)
        pool.deposit(1000)
        pool.borrow(500)
        pool.accrue_interest(50)
        assert pool.harvest_protocol_fees() == 5
        assert treasury.balance_of("WETH") == 5
        assert pool.uncollected_protocol_fee == 0

    def test_snapshot_restore(self, pool: MarketPool) -> None:
        pool.deposit(1000)
        snapshot = pool.take_snapshot()
        pool.borrow(400)
        pool.restore_snapshot(snapshot)
        assert pool.liquid_balance == 1000
        assert pool.borrowed.amount == 0
