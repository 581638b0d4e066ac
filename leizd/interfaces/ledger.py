"""Position ledger protocol: per-account share balances."""
from typing import Any, Protocol

from ..models import Domain, Position


class Ledger(Protocol):
    """Abstract interface for reading and mutating account positions."""

    def deposited_share(
        self, domain: Domain, market: str, account: str, collateral_only: bool
    ) -> int: ...

    def borrowed_share(self, domain: Domain, market: str, account: str) -> int: ...

    def is_collateral_only(self, domain: Domain, market: str, account: str) -> bool: ...

    def apply_deposit(
        self, domain: Domain, market: str, account: str, delta: int, collateral_only: bool
    ) -> None: ...

    def apply_borrow(self, domain: Domain, market: str, account: str, delta: int) -> None: ...

    def is_protected(self, market: str, account: str) -> bool: ...

    def markets_of(self, domain: Domain, account: str) -> list[str]: ...

    def position(self, domain: Domain, market: str, account: str) -> Position: ...

    def accounts(self) -> list[str]: ...

    def enable_protection(self, account: str, market: str) -> None: ...

    def disable_protection(self, account: str, market: str) -> None: ...

    def take_snapshot(self) -> dict[str, Any]: ...

    def restore_snapshot(self, snapshot: dict[str, Any]) -> None: ...
