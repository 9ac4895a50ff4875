# trading_erp/core/landed_cost.py
from dataclasses import dataclass, replace
from typing import Dict, Tuple

from trading_erp.core.currency import to_ledger
from trading_erp.models import DEFAULT_LEDGER_CURRENCY, PurchaseOrder
from trading_erp.utils.math_utils import round_cost, round_money

@dataclass(frozen=True)
class LandedCostResult:
    """Outcome of allocating a purchase order's fees over its items."""
    landed_costs: Tuple[float, ...]
    item_values: Tuple[float, ...]
    products_subtotal: float
    total_fees: float
    total: float

def allocate_landed_costs(
    order: PurchaseOrder,
    rates: Dict[str, float],
    ledger_currency: str = DEFAULT_LEDGER_CURRENCY,
    strict: bool = False
) -> LandedCostResult:
    """Compute the per-unit landed cost of every line of a purchase order.

    Item values are converted with the order currency and its exchange rate;
    each fee bucket is converted with its own currency. Fees are shared in
    proportion to item value. When the products subtotal is zero and the order
    has exactly one item, that item carries all fees.

    Args:
        order: Purchase order with items and fees
        rates: Currency rate table
        ledger_currency: Ledger currency code
        strict: Raise on missing rates instead of using 1

    Returns:
        LandedCostResult, landed costs in item order
    """
    item_values = tuple(
        to_ledger(item.qty * item.price, order.currency, rates,
                  order.exchange_rate, ledger_currency, strict)
        for item in order.items
    )

    total_fees = sum(
        to_ledger(amount, currency, rates, None, ledger_currency, strict)
        for amount, currency in order.fee_buckets()
    )
    products_subtotal = sum(item_values)

    landed_costs = []
    for item, value in zip(order.items, item_values):
        if products_subtotal > 0:
            share = (value / products_subtotal) * total_fees
        elif len(order.items) == 1:
            share = total_fees
        else:
            # Zero subtotal over several items: fees are not allocated
            share = 0.0

        if item.qty > 0:
            landed_costs.append(round_cost((value + share) / item.qty))
        else:
            landed_costs.append(0.0)

    return LandedCostResult(
        landed_costs=tuple(landed_costs),
        item_values=item_values,
        products_subtotal=products_subtotal,
        total_fees=total_fees,
        total=round_money(products_subtotal + total_fees)
    )

def apply_landed_costs(
    order: PurchaseOrder,
    rates: Dict[str, float],
    ledger_currency: str = DEFAULT_LEDGER_CURRENCY,
    strict: bool = False
) -> PurchaseOrder:
    """Return a copy of the order with landed costs and total filled in."""
    result = allocate_landed_costs(order, rates, ledger_currency, strict)
    items = tuple(
        replace(item, landed_cost_per_unit=cost)
        for item, cost in zip(order.items, result.landed_costs)
    )
    return replace(order, items=items, total=result.total)
