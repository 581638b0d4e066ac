"""Pool protocol: per-market asset or shadow pool returning share deltas."""
from typing import Any, Protocol


class Pool(Protocol):
    """Abstract interface for one exchange-rate pool of a single market."""

    def deposit(self, amount: int, collateral_only: bool = False) -> int: ...

    def withdraw(self, amount: int, collateral_only: bool = False) -> int: ...

    def withdraw_by_share(self, share: int, collateral_only: bool = False) -> int: ...

    def borrow(self, amount: int) -> int: ...

    def repay(self, amount: int) -> int: ...

    def repay_by_share(self, share: int) -> int: ...

    def normal_amount(self, share: int) -> int: ...

    def collateral_only_amount(self, share: int) -> int: ...

    def borrowed_amount(self, share: int) -> int: ...

    def take_snapshot(self) -> dict[str, Any]: ...

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None: ...
