"""Value normalization backed by oracle prices."""
from .price_table import PriceTable
from .pyth import PythOracle

__all__ = ["PriceTable", "PythOracle"]
