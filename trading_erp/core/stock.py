# trading_erp/core/stock.py
import logging
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Tuple, Union

from trading_erp.exceptions import InsufficientStockError, StockError
from trading_erp.models import (
    Product, ProductMovement, PurchaseOrder, PurchaseOrderStatus,
    SellOrder, SellOrderStatus
)

logger = logging.getLogger(__name__)

Order = Union[PurchaseOrder, SellOrder]
Cell = Tuple[int, int]

def completed_status(order: Order):
    """Return the status in which an order affects stock."""
    if isinstance(order, PurchaseOrder):
        return PurchaseOrderStatus.RECEIVED
    return SellOrderStatus.SHIPPED

def is_completed(order: Optional[Order]) -> bool:
    """Check whether an order currently holds a stock effect."""
    return order is not None and order.status == completed_status(order)

def _order_lines(order: Order) -> List[Tuple[int, float]]:
    return [(item.product_id, item.qty) for item in order.items]

def _order_deltas(order: Order, sign: int, deltas: Dict[Cell, float]) -> Dict[Cell, float]:
    """Add an order's stock effect (sign 1) or its reversal (sign -1)."""
    direction = 1 if isinstance(order, PurchaseOrder) else -1
    for product_id, qty in _order_lines(order):
        deltas[(product_id, order.warehouse_id)] += sign * direction * qty
    return deltas

def _movement_deltas(movement: ProductMovement, sign: int, deltas: Dict[Cell, float]) -> Dict[Cell, float]:
    """Add a movement's transfer (sign 1) or its reversal (sign -1)."""
    for item in movement.items:
        deltas[(item.product_id, movement.source_warehouse_id)] -= sign * item.quantity
        deltas[(item.product_id, movement.dest_warehouse_id)] += sign * item.quantity
    return deltas

def _adjust(
    products: Dict[int, Product],
    product_id: int,
    warehouse_id: int,
    delta: float,
    clamp: bool,
    reason: str
) -> None:
    """Add delta to one stock cell of the working products mapping."""
    product = products.get(product_id)
    if product is None:
        logger.warning(f"Product {product_id} not found, {reason} skipped")
        return

    current = product.stock.get(warehouse_id, 0)
    new_value = current + delta
    if new_value < 0:
        if not clamp:
            raise StockError(
                f"Stock of product {product_id} in warehouse {warehouse_id} would become negative",
                code='NEGATIVE_STOCK',
                details={
                    'product_id': product_id,
                    'warehouse_id': warehouse_id,
                    'available': current,
                    'delta': delta
                }
            )
        logger.warning(
            f"Stock of product {product_id} in warehouse {warehouse_id} "
            f"clamped to 0 ({reason}: {current} {delta:+})"
        )
        new_value = 0

    stock = dict(product.stock)
    stock[warehouse_id] = new_value
    products[product_id] = replace(product, stock=stock)

def _apply_deltas(
    products: Dict[int, Product],
    deltas: Dict[Cell, float],
    clamp: bool,
    reason: str
) -> Dict[int, Product]:
    """Apply net per-cell changes; cells that net to zero are left alone.

    Reversal and re-application are summed before this call, so a cell is
    only clamped or rejected when its final value would be negative.
    """
    updated = dict(products)
    for (product_id, warehouse_id), delta in sorted(deltas.items()):
        if delta:
            _adjust(updated, product_id, warehouse_id, delta, clamp, reason)
    return updated

def apply_order_delta(
    products: Dict[int, Product],
    new_order: Optional[Order],
    old_order: Optional[Order],
    clamp: bool = True
) -> Dict[int, Product]:
    """Move stock for an order save, edit or delete.

    The old order's effect is reversed when it was completed and the new
    order's effect is applied when it is completed. Both are netted per
    product and warehouse before any cell changes. Purchases add to their
    warehouse, sells subtract. A delete is ``new_order=None``.

    Args:
        products: Products by id
        new_order: Order as it is being saved, or None on delete
        old_order: Stored order before the save, or None on insert
        clamp: Floor negative cells at 0 instead of raising StockError

    Returns:
        New products mapping; the input mapping is left untouched
    """
    deltas = defaultdict(float)
    reason = []

    if is_completed(old_order):
        _order_deltas(old_order, -1, deltas)
        reason.append(f"reversal of order {old_order.id}")
        logger.info(f"Reversed stock effect of {type(old_order).__name__} {old_order.id}")

    if is_completed(new_order):
        _order_deltas(new_order, 1, deltas)
        reason.append(f"order {new_order.id}")
        logger.info(f"Applied stock effect of {type(new_order).__name__} {new_order.id}")

    return _apply_deltas(products, deltas, clamp, ', '.join(reason))

def _shortages(
    products: Dict[int, Product],
    warehouse_id: int,
    lines: List[Tuple[int, float]],
    freed: Optional[Dict[Cell, float]] = None
) -> List[Dict]:
    required = defaultdict(float)
    for product_id, qty in lines:
        required[product_id] += qty

    freed = freed or {}
    shortages = []
    for product_id, qty in required.items():
        product = products.get(product_id)
        available = product.stock.get(warehouse_id, 0) if product else 0
        available += freed.get((product_id, warehouse_id), 0)
        if available < qty:
            shortages.append({
                'product_id': product_id,
                'sku': product.sku if product else None,
                'warehouse_id': warehouse_id,
                'available': available,
                'requested': qty
            })
    return shortages

def _raise_shortages(shortages: List[Dict]) -> None:
    first = shortages[0]
    label = first['sku'] or first['product_id']
    raise InsufficientStockError(
        f"Not enough stock for {label} in warehouse {first['warehouse_id']}: "
        f"available {first['available']}, requested {first['requested']}",
        details={'shortages': shortages}
    )

def check_sell_availability(
    products: Dict[int, Product],
    new_order: SellOrder,
    old_order: Optional[SellOrder] = None
) -> None:
    """Verify that a sell order can ship before anything is mutated.

    Quantities the stored version already took out of stock count as
    available again.

    Raises:
        InsufficientStockError: Listing every product that falls short
    """
    if not is_completed(new_order):
        return

    freed = _order_deltas(old_order, -1, defaultdict(float)) if is_completed(old_order) else None
    shortages = _shortages(products, new_order.warehouse_id, _order_lines(new_order), freed)
    if shortages:
        _raise_shortages(shortages)

def check_movement(
    products: Dict[int, Product],
    movement: ProductMovement,
    previous: Optional[ProductMovement] = None
) -> None:
    """Verify the source warehouse holds every quantity of a movement.

    Quantities of repeated products are summed before the check. When a
    stored version of the movement is given, its transfer counts as undone.

    Raises:
        InsufficientStockError: Listing every product that falls short
    """
    freed = _movement_deltas(previous, -1, defaultdict(float)) if previous is not None else None
    lines = [(item.product_id, item.quantity) for item in movement.items]
    shortages = _shortages(products, movement.source_warehouse_id, lines, freed)
    if shortages:
        _raise_shortages(shortages)

def apply_movement(
    products: Dict[int, Product],
    movement: ProductMovement,
    previous: Optional[ProductMovement] = None,
    clamp: bool = True
) -> Dict[int, Product]:
    """Transfer a movement's items from its source to its destination.

    All items are checked before any cell changes. When editing, pass the
    stored version as ``previous``: it is undone in the same step and only
    the net change per cell is applied.

    Returns:
        New products mapping
    """
    check_movement(products, movement, previous)

    deltas = defaultdict(float)
    if previous is not None:
        _movement_deltas(previous, -1, deltas)
    _movement_deltas(movement, 1, deltas)
    updated = _apply_deltas(products, deltas, clamp, f"movement {movement.id}")

    logger.info(
        f"Moved {len(movement.items)} item(s) from warehouse {movement.source_warehouse_id} "
        f"to warehouse {movement.dest_warehouse_id} (movement {movement.id})"
    )
    return updated

def reverse_movement(
    products: Dict[int, Product],
    movement: ProductMovement,
    clamp: bool = True
) -> Dict[int, Product]:
    """Undo a movement: take items back from the destination to the source.

    Returns:
        New products mapping
    """
    deltas = _movement_deltas(movement, -1, defaultdict(float))
    updated = _apply_deltas(products, deltas, clamp, f"reversal of movement {movement.id}")

    logger.info(f"Reversed movement {movement.id}")
    return updated

def changed_products(before: Dict[int, Product], after: Dict[int, Product]) -> List[Product]:
    """List products whose record differs between two mappings."""
    return [product for product_id, product in after.items()
            if before.get(product_id) is not product]
