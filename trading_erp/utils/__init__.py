from .math_utils import round_half_up, round_money, round_cost, weighted_average
from .validation import (
    validate_product, validate_warehouse, validate_party,
    validate_purchase_order, validate_sell_order, validate_movement,
    validate_payment, validate_rates
)

__all__ = [
    'round_half_up',
    'round_money',
    'round_cost',
    'weighted_average',
    'validate_product',
    'validate_warehouse',
    'validate_party',
    'validate_purchase_order',
    'validate_sell_order',
    'validate_movement',
    'validate_payment',
    'validate_rates'
]
