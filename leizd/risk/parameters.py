"""Per-market risk limits plus the shadow-collateral limits."""
from __future__ import annotations

import logging

from ..exceptions import DuplicateMarket, InvalidAmount, InvalidMarket, PermissionDenied
from ..fixed_point import PRECISION
from ..models import Market

logger = logging.getLogger(__name__)


def _check_limits(ltv: int, lt: int) -> None:
    if not 0 < ltv <= lt <= PRECISION:
        raise InvalidAmount(
            f"Risk limits must satisfy 0 < ltv <= lt <= {PRECISION}, got ltv={ltv} lt={lt}"
        )


class RiskParameters:
    """Registry of :class:`Market` limits in listing order."""

    def __init__(self, owner: str, ltv_shadow: int, lt_shadow: int) -> None:
        _check_limits(ltv_shadow, lt_shadow)
        self.owner = owner
        self._ltv_shadow = ltv_shadow
        self._lt_shadow = lt_shadow
        self._markets: dict[str, Market] = {}

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise PermissionDenied(f"{caller} is not the risk parameters owner")

    def register_market(self, caller: str, market: Market) -> None:
        self._only_owner(caller)
        if market.name in self._markets:
            raise DuplicateMarket(f"Market '{market.name}' is already registered")
        _check_limits(market.ltv, market.lt)
        self._markets[market.name] = market
        logger.info(
            "Registered market %s (ltv=%d, lt=%d)", market.name, market.ltv, market.lt
        )

    def update_market(self, caller: str, name: str, ltv: int, lt: int) -> None:
        self._only_owner(caller)
        self.market(name)
        _check_limits(ltv, lt)
        self._markets[name] = Market(name=name, ltv=ltv, lt=lt)

    def update_shadow(self, caller: str, ltv: int, lt: int) -> None:
        self._only_owner(caller)
        _check_limits(ltv, lt)
        self._ltv_shadow = ltv
        self._lt_shadow = lt

    def market(self, name: str) -> Market:
        try:
            return self._markets[name]
        except KeyError:
            raise InvalidMarket(f"Market '{name}' is not registered") from None

    def is_registered(self, name: str) -> bool:
        return name in self._markets

    @property
    def markets(self) -> tuple[str, ...]:
        return tuple(self._markets)

    def ltv(self, market: str) -> int:
        return self.market(market).ltv

    def lt(self, market: str) -> int:
        return self.market(market).lt

    def ltv_shadow(self) -> int:
        return self._ltv_shadow

    def lt_shadow(self) -> int:
        return self._lt_shadow
