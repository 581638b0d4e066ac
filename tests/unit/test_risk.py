"""Unit tests for risk limits and health arithmetic."""
from __future__ import annotations

import pytest

from leizd.exceptions import DuplicateMarket, InvalidAmount, InvalidMarket, PermissionDenied
from leizd.fixed_point import PRECISION
from leizd.models import Market
from leizd.risk import (
    RiskParameters,
    borrow_limit,
    distribute,
    health_factor,
    is_liquidatable,
    is_within_limit,
    required_collateral,
)

OWNER = "0xowner"
HALF = PRECISION // 2


class TestLimits:
    def test_borrow_limit_rounds_down(self) -> None:
        assert borrow_limit(1001, HALF) == 500

    def test_required_collateral_rounds_up(self) -> None:
        assert required_collateral(501, HALF) == 1002
        assert required_collateral(100, 300_000_000) == 334
        assert required_collateral(0, HALF) == 0

    def test_within_limit_boundary(self) -> None:
        assert is_within_limit(1000, 500, HALF)
        assert not is_within_limit(1000, 501, HALF)

    def test_liquidatable_boundary(self) -> None:
        assert not is_liquidatable(1000, 700, 700_000_000)
        assert is_liquidatable(1000, 701, 700_000_000)


class TestHealthFactor:
    def test_no_debt(self) -> None:
        assert health_factor(0, 0, HALF) == PRECISION
        assert health_factor(1000, 0, HALF) == PRECISION

    def test_debt_without_deposit(self) -> None:
        assert health_factor(0, 1, HALF) == 0

    def test_at_threshold_is_zero(self) -> None:
        assert health_factor(1000, 700, 700_000_000) == 0
        assert health_factor(1000, 800, 700_000_000) == 0

    def test_partial(self) -> None:
        assert health_factor(2000, 800, 700_000_000) == 428_571_429


class TestDistribute:
    def test_proportional(self) -> None:
        assert distribute(600, [500, 800]) == [231, 369]

    def test_remainder_goes_in_order(self) -> None:
        assert distribute(200, [100, 800]) == [23, 177]
        assert distribute(2, [1, 1, 1]) == [1, 1, 0]

    def test_zero_weights_skip_remainder(self) -> None:
        assert distribute(400, [0, 800]) == [0, 400]

    def test_zero_total(self) -> None:
        assert distribute(0, [0, 0]) == [0, 0]

    def test_zero_weight_sum(self) -> None:
        with pytest.raises(ValueError):
            distribute(1, [0, 0])


class TestRiskParameters:
    def test_register_and_read(self) -> None:
        risk = RiskParameters(OWNER, 900_000_000, 950_000_000)
        risk.register_market(OWNER, Market("WETH", 700_000_000, 800_000_000))
        assert risk.markets == ("WETH",)
        assert risk.ltv("WETH") == 700_000_000
        assert risk.lt("WETH") == 800_000_000
        assert risk.ltv_shadow() == 900_000_000
        assert risk.lt_shadow() == 950_000_000

    def test_owner_only(self) -> None:
        risk = RiskParameters(OWNER, HALF, HALF)
        with pytest.raises(PermissionDenied):
            risk.register_market("0xmallory", Market("WETH", HALF, HALF))
        with pytest.raises(PermissionDenied):
            risk.update_shadow("0xmallory", HALF, HALF)

    def test_duplicate(self) -> None:
        risk = RiskParameters(OWNER, HALF, HALF)
        risk.register_market(OWNER, Market("WETH", HALF, HALF))
        with pytest.raises(DuplicateMarket):
            risk.register_market(OWNER, Market("WETH", HALF, HALF))

    @pytest.mark.parametrize(
        ("ltv", "lt"), [(0, HALF), (HALF + 1, HALF), (HALF, PRECISION + 1)]
    )
    def test_invalid_limits(self, ltv: int, lt: int) -> None:
        risk = RiskParameters(OWNER, HALF, HALF)
        with pytest.raises(InvalidAmount):
            risk.register_market(OWNER, Market("WETH", ltv, lt))

    def test_update_market(self) -> None:
        risk = RiskParameters(OWNER, HALF, HALF)
        risk.register_market(OWNER, Market("WETH", HALF, HALF))
        risk.update_market(OWNER, "WETH", 100, 200)
        assert risk.market("WETH") == Market("WETH", 100, 200)

    def test_unknown_market(self) -> None:
        risk = RiskParameters(OWNER, HALF, HALF)
        with pytest.raises(InvalidMarket):
            risk.ltv("WETH")
        with pytest.raises(InvalidMarket):
            risk.update_market(OWNER, "WETH", 100, 200)
