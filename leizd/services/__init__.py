from .protocol import LendingProtocol
from .rebalancer import RebalancingOptimizer
from .store import ProtocolStore

__all__ = ["LendingProtocol", "ProtocolStore", "RebalancingOptimizer"]
