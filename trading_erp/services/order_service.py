# trading_erp/services/order_service.py
import logging
from dataclasses import replace
from datetime import date
from typing import Dict, Optional, Union

from trading_erp.core.average_cost import apply_receipts
from trading_erp.core.landed_cost import apply_landed_costs
from trading_erp.core.stock import (
    apply_movement, apply_order_delta, changed_products, check_sell_availability
)
from trading_erp.exceptions import ValidationError
from trading_erp.models import (
    Collection, MovementItem, ProductMovement, PurchaseOrder, PurchaseOrderStatus,
    SellOrder, SellOrderStatus
)
from trading_erp.services.integrity import main_warehouse
from trading_erp.services.record_store import RecordStore
from trading_erp.utils.math_utils import round_money
from trading_erp.utils.validation import validate_purchase_order, validate_sell_order

logger = logging.getLogger(__name__)

PURCHASE_FLOW = (PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.RECEIVED)
SELL_FLOW = (SellOrderStatus.DRAFT, SellOrderStatus.CONFIRMED, SellOrderStatus.SHIPPED)


def _flow(status):
    return PURCHASE_FLOW if isinstance(status, PurchaseOrderStatus) else SELL_FLOW


def next_status(status):
    """Return the next forward status, or None at the end of the flow."""
    flow = _flow(status)
    index = flow.index(status)
    return flow[index + 1] if index + 1 < len(flow) else None


def is_forward_transition(old_status, new_status) -> bool:
    """Check whether a status change follows the normal order flow.

    Keeping the same status counts as forward.
    """
    flow = _flow(new_status)
    if old_status is None:
        return True
    return flow.index(new_status) >= flow.index(old_status)


def _drop_blank_items(order):
    # Empty form rows carry no product
    items = tuple(item for item in order.items if item.product_id)
    return replace(order, items=items)


class OrderService:
    """Service for purchase and sell order operations."""

    def __init__(self, store: RecordStore):
        """Initialize the order service.

        Args:
            store: Record store holding the application state
        """
        self.store = store
        self.options = store.options

    def _log_transition(self, order, old_order) -> None:
        old_status = old_order.status if old_order else None
        if old_status == order.status:
            return
        if is_forward_transition(old_status, order.status):
            logger.info(f"{type(order).__name__} {order.id}: {old_status} -> {order.status}")
        else:
            logger.warning(
                f"{type(order).__name__} {order.id} moved backwards: {old_status} -> {order.status}"
            )

    def _commit_order(self, collection: Collection, order, old_order):
        """Run the ledger effect of an order save and store the order."""
        products = self.store.products()

        if isinstance(order, SellOrder):
            check_sell_availability(products, order, old_order)

        updated = apply_order_delta(products, order, old_order, self.options.clamp_negative_stock)

        if isinstance(order, PurchaseOrder) and order.status == PurchaseOrderStatus.RECEIVED:
            updated = apply_receipts(updated, order)

        self.store.save_products(changed_products(products, updated))
        saved = self.store.save(collection, order)
        self._log_transition(saved, old_order)
        return saved

    def prepare_purchase_order(self, draft: PurchaseOrder) -> PurchaseOrder:
        """Validate a purchase order draft and fill in its derived fields.

        Blank rows are dropped, landed costs and the total are recomputed.

        Raises:
            ValidationError: With a field -> reason mapping
        """
        order = _drop_blank_items(draft)
        rates = self.store.rate_table()

        errors = validate_purchase_order(order, self.store, rates, self.options.currency)
        if errors:
            raise ValidationError("Invalid purchase order", code='INVALID_PURCHASE_ORDER', details=errors)

        return apply_landed_costs(order, rates, self.options.currency, self.options.strict_currency_rates)

    def save_purchase_order(self, draft: PurchaseOrder) -> PurchaseOrder:
        """Create or update a purchase order.

        Stock moves when the order enters, leaves or stays in Received; the
        average landed cost of each product is updated whenever the saved
        order is Received.

        Args:
            draft: Order as submitted; id 0 creates a new order

        Returns:
            Stored purchase order with id, landed costs and total
        """
        order = self.prepare_purchase_order(draft)
        old_order = self.store.get(Collection.PURCHASE_ORDERS, order.id)

        with self.store.transaction():
            return self._commit_order(Collection.PURCHASE_ORDERS, order, old_order)

    def prepare_sell_order(self, draft: SellOrder) -> SellOrder:
        """Validate a sell order draft and recompute its total.

        Raises:
            ValidationError: With a field -> reason mapping
        """
        order = _drop_blank_items(draft)

        errors = validate_sell_order(order, self.store)
        if errors:
            raise ValidationError("Invalid sell order", code='INVALID_SELL_ORDER', details=errors)

        old_order = self.store.get(Collection.SELL_ORDERS, order.id)
        if old_order is not None:
            order = replace(order, product_movement_id=old_order.product_movement_id)

        figures = self.sell_order_figures(order)
        return replace(order, total=figures['total'])

    def save_sell_order(self, draft: SellOrder) -> SellOrder:
        """Create or update a sell order.

        Saving as Shipped checks every line against the warehouse stock
        (counting what the stored version already shipped) before any change.

        Raises:
            ValidationError: Invalid draft
            InsufficientStockError: Not enough stock to ship

        Returns:
            Stored sell order
        """
        order = self.prepare_sell_order(draft)
        old_order = self.store.get(Collection.SELL_ORDERS, order.id)

        with self.store.transaction():
            return self._commit_order(Collection.SELL_ORDERS, order, old_order)

    def set_status(self, collection: Collection, order_id: int,
                   status: Union[PurchaseOrderStatus, SellOrderStatus]):
        """Save an existing order with a new status."""
        order = self.store.require(collection, order_id)
        if collection == Collection.PURCHASE_ORDERS:
            return self.save_purchase_order(replace(order, status=PurchaseOrderStatus(status)))
        return self.save_sell_order(replace(order, status=SellOrderStatus(status)))

    def advance_status(self, collection: Collection, order_id: int):
        """Move an order one step forward in its flow."""
        order = self.store.require(collection, order_id)
        status = next_status(order.status)
        if status is None:
            raise ValidationError(
                f"Order {order_id} is already {order.status}",
                code='FINAL_STATUS',
                details={'status': order.status.value}
            )
        return self.set_status(collection, order_id, status)

    def _delete_order(self, collection: Collection, order_id: int):
        order = self.store.require(collection, order_id)
        with self.store.transaction():
            products = self.store.products()
            updated = apply_order_delta(products, None, order, self.options.clamp_negative_stock)
            self.store.save_products(changed_products(products, updated))
            return self.store.soft_delete(collection, order_id)

    def delete_purchase_order(self, order_id: int):
        """Reverse a purchase order's stock effect and move it to the recycle bin.

        The average landed cost is not rolled back.
        """
        return self._delete_order(Collection.PURCHASE_ORDERS, order_id)

    def delete_sell_order(self, order_id: int):
        """Return a sell order's shipped stock and move it to the recycle bin."""
        return self._delete_order(Collection.SELL_ORDERS, order_id)

    def sell_order_figures(self, order: SellOrder) -> Dict[str, float]:
        """Derive subtotal, VAT, total and clean profit of a sell order.

        Clean profit uses each product's current average landed cost.
        """
        subtotal = sum(item.qty * item.price for item in order.items)
        total = round_money(subtotal * (1 + order.vat_percent / 100))

        cost = 0.0
        for item in order.items:
            product = self.store.get(Collection.PRODUCTS, item.product_id)
            if product is not None:
                cost += item.qty * product.average_landed_cost

        return {
            'subtotal': round_money(subtotal),
            'vat_amount': round_money(total - subtotal),
            'total': total,
            'cost': round_money(cost),
            'clean_profit': round_money(subtotal - cost)
        }

    def generate_product_movement(self, sell_order_id: int,
                                  movement_date: Optional[date] = None) -> ProductMovement:
        """Move a sell order's items from the Main warehouse to its warehouse.

        The movement is stored and linked back to the order.

        Raises:
            ValidationError: Already linked, no Main warehouse, or the
                order ships from Main
            InsufficientStockError: Main cannot cover every item
        """
        order = self.store.require(Collection.SELL_ORDERS, sell_order_id)

        if order.product_movement_id:
            raise ValidationError(
                f"Sell order {order.id} already has movement {order.product_movement_id}",
                code='MOVEMENT_EXISTS',
                details={'product_movement_id': order.product_movement_id}
            )

        main = main_warehouse(self.store)
        if main is None:
            raise ValidationError("No Main warehouse defined", code='NO_MAIN_WAREHOUSE')
        if main.id == order.warehouse_id:
            raise ValidationError(
                f"Sell order {order.id} already ships from the Main warehouse",
                code='SAME_WAREHOUSE',
                details={'warehouse_id': order.warehouse_id}
            )

        movement = ProductMovement(
            source_warehouse_id=main.id,
            dest_warehouse_id=order.warehouse_id,
            items=tuple(MovementItem(product_id=i.product_id, quantity=i.qty) for i in order.items),
            date=movement_date or date.today()
        )

        with self.store.transaction():
            products = self.store.products()
            updated = apply_movement(products, movement)
            self.store.save_products(changed_products(products, updated))
            movement = self.store.save(Collection.PRODUCT_MOVEMENTS, movement)
            self.store.save(Collection.SELL_ORDERS, replace(order, product_movement_id=movement.id))

        logger.info(f"Generated movement {movement.id} for sell order {order.id}")
        return movement
