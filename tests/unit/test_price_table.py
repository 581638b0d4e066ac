"""Unit tests for the static price table."""
from __future__ import annotations

import pytest

from leizd.exceptions import InvalidAmount, InvalidMarket
from leizd.fixed_point import PRECISION
from leizd.oracles import PriceTable


@pytest.fixture()
def prices() -> PriceTable:
    return PriceTable({"WETH": 2000 * PRECISION, "USDZ": PRECISION, "UNI": PRECISION // 3})


class TestPriceTable:
    def test_to_volume(self, prices: PriceTable) -> None:
        assert prices.to_volume("WETH", 3) == 6000
        assert prices.to_volume("UNI", 10) == 3

    def test_to_amount(self, prices: PriceTable) -> None:
        assert prices.to_amount("WETH", 5000) == 2
        assert prices.to_amount("USDZ", 5000) == 5000

    def test_round_trip_rounds_down(self, prices: PriceTable) -> None:
        volume = prices.to_volume("UNI", 10)
        assert prices.to_amount("UNI", volume) <= 10

    def test_unknown_key(self, prices: PriceTable) -> None:
        with pytest.raises(InvalidMarket):
            prices.price_of("DOGE")

    def test_update_rejects_non_positive(self, prices: PriceTable) -> None:
        with pytest.raises(InvalidAmount):
            prices.update("WETH", 0)

    def test_update_many(self, prices: PriceTable) -> None:
        prices.update_many({"WETH": 1500 * PRECISION, "USDZ": PRECISION})
        assert prices.price_of("WETH") == 1500 * PRECISION
        assert prices.as_dict()["UNI"] == PRECISION // 3
