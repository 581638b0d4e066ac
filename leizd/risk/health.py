"""Pure health and limit arithmetic over fixed-point values, no state."""
from __future__ import annotations

from ..fixed_point import PRECISION, ceil_div


def borrow_limit(deposited_value: int, ltv: int) -> int:
    """Largest debt value the deposit supports, rounded down."""
    return deposited_value * ltv // PRECISION


def required_collateral(borrowed_value: int, ltv: int) -> int:
    """Smallest deposit value that keeps ``borrowed_value`` within ``ltv``."""
    if borrowed_value == 0:
        return 0
    return ceil_div(borrowed_value * PRECISION, ltv)


def is_within_limit(deposited_value: int, borrowed_value: int, ltv: int) -> bool:
    return deposited_value * ltv >= borrowed_value * PRECISION


def is_liquidatable(deposited_value: int, borrowed_value: int, lt: int) -> bool:
    return borrowed_value * PRECISION > deposited_value * lt


def health_factor(deposited_value: int, borrowed_value: int, lt: int) -> int:
    """Distance of debt from the liquidation threshold.

    PRECISION means no debt, 0 means the debt has reached ``lt`` of the
    deposit:

        hf = PRECISION - borrowed * PRECISION^2 / (deposited * lt)
    """
    if borrowed_value == 0:
        return PRECISION
    if deposited_value == 0:
        return 0
    utilization = borrowed_value * PRECISION * PRECISION // (deposited_value * lt)
    if utilization >= PRECISION:
        return 0
    return PRECISION - utilization


def distribute(total: int, weights: list[int]) -> list[int]:
    """Split ``total`` proportionally to ``weights``.

    Each part is rounded down; the leftover units go one at a time to the
    non-zero weights in list order, so the parts always sum to ``total``.
    """
    if total == 0:
        return [0] * len(weights)
    weight_sum = sum(weights)
    if weight_sum == 0:
        raise ValueError(f"Cannot distribute {total} over zero weights")

    parts = [total * w // weight_sum for w in weights]
    remainder = total - sum(parts)
    for i, w in enumerate(weights):
        if remainder == 0:
            break
        if w > 0:
            parts[i] += 1
            remainder -= 1
    return parts
