"""Risk parameters protocol: per-market LTV/LT."""
from typing import Protocol

from ..models import Market


class RiskModel(Protocol):
    """Abstract interface for fixed-point risk limits."""

    @property
    def markets(self) -> tuple[str, ...]: ...

    def register_market(self, caller: str, market: Market) -> None: ...

    def market(self, name: str) -> Market: ...

    def is_registered(self, name: str) -> bool: ...

    def ltv(self, market: str) -> int: ...

    def lt(self, market: str) -> int: ...

    def ltv_shadow(self) -> int: ...

    def lt_shadow(self) -> int: ...
