"""Share accounting and rebalance-assisted borrowing for a two-domain lending protocol."""

__version__ = "0.1.0"
