"""Treasury: destination of harvested protocol fees."""
from __future__ import annotations

from typing import Any


class Treasury:
    """Collected fee balances keyed by asset."""

    def __init__(self, address: str) -> None:
        self.address = address
        self._balances: dict[str, int] = {}

    def balance_of(self, asset: str) -> int:
        return self._balances.get(asset, 0)

    def collect(self, asset: str, amount: int) -> None:
        self._balances[asset] = self.balance_of(asset) + amount

    def take_snapshot(self) -> dict[str, Any]:
        return {"balances": dict(self._balances)}

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._balances = dict(snapshot["balances"])
