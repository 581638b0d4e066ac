"""Value normalizer protocol: oracle-backed amount/volume conversion."""
from typing import Protocol


class ValueNormalizer(Protocol):
    """Abstract interface converting native amounts to a common volume."""

    def price_of(self, key: str) -> int: ...

    def update(self, key: str, price: int) -> None: ...

    def to_volume(self, key: str, amount: int) -> int: ...

    def to_amount(self, key: str, volume: int) -> int: ...
