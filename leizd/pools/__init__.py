"""Exchange-rate pools."""
from .central_liquidity_pool import CentralLiquidityPool
from .market_pool import MarketPool
from .share_token import ShareToken
from .treasury import Treasury

__all__ = ["CentralLiquidityPool", "MarketPool", "ShareToken", "Treasury"]
