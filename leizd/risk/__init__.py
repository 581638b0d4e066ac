"""Risk parameters and health arithmetic."""
from .health import (
    borrow_limit,
    distribute,
    health_factor,
    is_liquidatable,
    is_within_limit,
    required_collateral,
)
from .parameters import RiskParameters

__all__ = [
    "RiskParameters",
    "borrow_limit",
    "distribute",
    "health_factor",
    "is_liquidatable",
    "is_within_limit",
    "required_collateral",
]
