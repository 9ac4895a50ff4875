# trading_erp/utils/math_utils.py
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Union
import numpy as np

from trading_erp.exceptions import CalculationError

Number = Union[int, float]

def round_half_up(value: Number, places: int = 2) -> float:
    """Round a value to a number of decimal places, halves away from zero.

    Args:
        value: Value to round
        places: Number of decimal places

    Returns:
        Rounded value
    """
    quantum = Decimal(1).scaleb(-places)
    # Go through str so 1.005 rounds like the printed value
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))

def round_money(value: Number) -> float:
    """Round a ledger amount to cents."""
    return round_half_up(value, 2)

def round_cost(value: Number) -> float:
    """Round a per-unit cost to four decimal places."""
    return round_half_up(value, 4)

def weighted_average(values: List[float], weights: List[float]) -> float:
    """Calculate weighted average.

    Args:
        values: List of values
        weights: List of weights

    Returns:
        Weighted average

    Raises:
        CalculationError: If lengths differ or the weights sum to zero
    """
    if len(values) != len(weights):
        raise CalculationError("Values and weights must have the same length")

    total_weight = float(np.sum(weights))
    if total_weight == 0:
        raise CalculationError("Sum of weights cannot be zero")

    return float(np.average(values, weights=weights))
