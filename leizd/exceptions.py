"""
Leizd Exceptions

Typed failures raised by pools, the position ledger and the rebalancer.
A request that raises leaves pools and positions unchanged.
"""


class LeizdError(Exception):
    """Base exception for the lending core."""
    pass


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(LeizdError):
    """Request is malformed."""
    pass


class InvalidAmount(ValidationError):
    """Amount is zero or out of range for the operation."""
    pass


class ZeroAmount(ValidationError):
    """Requested amount is zero."""
    pass


class UnsupportedMarket(ValidationError):
    """Market is not listed on the pool."""
    pass


class DuplicateMarket(ValidationError):
    """Market is already registered."""
    pass


class InvalidMarket(ValidationError):
    """Market has no risk parameters or pool."""
    pass


class DepositModeMismatch(ValidationError):
    """Deposit mode differs from the one the position already holds."""
    pass


# ---------------------------------------------------------------------------
# Funds
# ---------------------------------------------------------------------------


class InsufficientFunds(LeizdError):
    """Not enough value to satisfy the request."""
    pass


class ExceedsLiquidity(InsufficientFunds):
    """Pool does not hold enough liquid balance."""
    pass


class ExceedsDeposited(InsufficientFunds):
    """Amount is more than the caller has deposited."""
    pass


class InsufficientCapacity(InsufficientFunds):
    """Rebalancing cannot fund the request within risk limits."""
    pass


class InsufficientCollateral(InsufficientFunds):
    """Position would exceed its loan-to-value limit."""
    pass


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


class PermissionDenied(LeizdError):
    """Caller is not the owner."""
    pass
