"""Per-account position accounting."""
from .ledger import PositionLedger

__all__ = ["PositionLedger"]
