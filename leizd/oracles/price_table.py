"""Static value normalizer over fixed-point prices."""
from __future__ import annotations

import logging

from ..exceptions import InvalidAmount, InvalidMarket
from ..fixed_point import PRECISION

logger = logging.getLogger(__name__)


class PriceTable:
    """Convert native amounts to a common volume and back.

    Prices are volume per unit, scaled by PRECISION. Both directions round
    down.
    """

    def __init__(self, prices: dict[str, int] | None = None) -> None:
        self._prices: dict[str, int] = {}
        for key, price in (prices or {}).items():
            self.update(key, price)

    def price_of(self, key: str) -> int:
        try:
            return self._prices[key]
        except KeyError:
            raise InvalidMarket(f"No price for '{key}'") from None

    def update(self, key: str, price: int) -> None:
        if price <= 0:
            raise InvalidAmount(f"Price of '{key}' must be positive, got {price}")
        self._prices[key] = price

    def update_many(self, prices: dict[str, int]) -> None:
        for key, price in prices.items():
            self.update(key, price)
        logger.debug("Updated %d prices", len(prices))

    def to_volume(self, key: str, amount: int) -> int:
        return amount * self.price_of(key) // PRECISION

    def to_amount(self, key: str, volume: int) -> int:
        return volume * PRECISION // self.price_of(key)

    def as_dict(self) -> dict[str, int]:
        return dict(self._prices)
