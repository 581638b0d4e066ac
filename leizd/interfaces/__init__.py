"""Protocol interfaces consumed by the protocol store."""
from .ledger import Ledger
from .pool import Pool
from .risk import RiskModel
from .value_normalizer import ValueNormalizer

__all__ = ["Ledger", "Pool", "RiskModel", "ValueNormalizer"]
