# trading_erp/core/average_cost.py
import logging
from dataclasses import replace
from typing import Dict

from trading_erp.models import Product, PurchaseOrder, PurchaseOrderStatus
from trading_erp.utils.math_utils import round_cost, weighted_average

logger = logging.getLogger(__name__)

def apply_receipt(product: Product, qty: float, landed_cost_per_unit: float) -> Product:
    """Blend a receipt into a product's weighted-average landed cost.

    The product's stock must already include the received quantity.

    Args:
        product: Product after the stock increase
        qty: Received quantity
        landed_cost_per_unit: Landed cost of the received units

    Returns:
        Product with the new average cost (the same object when skipped)
    """
    if landed_cost_per_unit <= 0:
        return product

    stock_after = product.total_stock
    stock_before = stock_after - qty
    old_average = product.average_landed_cost

    if stock_before > 0 and old_average > 0:
        new_average = round_cost(weighted_average(
            [old_average, landed_cost_per_unit], [stock_before, qty]
        ))
    else:
        new_average = landed_cost_per_unit

    logger.info(
        f"Average landed cost of product {product.id} {old_average} -> {new_average}"
    )
    return replace(product, average_landed_cost=new_average)

def apply_receipts(products: Dict[int, Product], order: PurchaseOrder) -> Dict[int, Product]:
    """Apply every line of a Received purchase order to the average costs.

    Lines are applied one after another, so repeated products blend in turn.
    The cost basis is never rolled back when the order is later reverted.

    Args:
        products: Products by id, stock already updated for the order
        order: Purchase order

    Returns:
        New products mapping
    """
    updated = dict(products)
    if order.status != PurchaseOrderStatus.RECEIVED:
        return updated

    for item in order.items:
        product = updated.get(item.product_id)
        if product is None:
            logger.warning(f"Product {item.product_id} not found, cost update skipped")
            continue
        updated[item.product_id] = apply_receipt(product, item.qty, item.landed_cost_per_unit)

    return updated
