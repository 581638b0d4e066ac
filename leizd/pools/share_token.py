"""Fungible share unit minted and burned only by its pool."""
from __future__ import annotations

from typing import Any

from ..exceptions import InvalidAmount


class ShareToken:
    """Per-account share balances with a tracked total supply."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self._balances: dict[str, int] = {}
        self._supply = 0

    @property
    def supply(self) -> int:
        return self._supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def mint(self, account: str, amount: int) -> None:
        self._balances[account] = self.balance_of(account) + amount
        self._supply += amount

    def burn(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if amount > balance:
            raise InvalidAmount(
                f"Cannot burn {amount} {self.symbol} from {account}: balance is {balance}"
            )
        self._balances[account] = balance - amount
        self._supply -= amount

    def take_snapshot(self) -> dict[str, Any]:
        return {"balances": dict(self._balances), "supply": self._supply}

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._balances = dict(snapshot["balances"])
        self._supply = snapshot["supply"]
