from .currency import resolve_rate, to_ledger
from .landed_cost import LandedCostResult, allocate_landed_costs, apply_landed_costs
from .average_cost import apply_receipt, apply_receipts
from .stock import (
    apply_order_delta, apply_movement, reverse_movement,
    check_movement, check_sell_availability, completed_status, is_completed
)

__all__ = [
    'resolve_rate',
    'to_ledger',
    'LandedCostResult',
    'allocate_landed_costs',
    'apply_landed_costs',
    'apply_receipt',
    'apply_receipts',
    'apply_order_delta',
    'apply_movement',
    'reverse_movement',
    'check_movement',
    'check_sell_availability',
    'completed_status',
    'is_completed'
]
