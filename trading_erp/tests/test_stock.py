import unittest
from dataclasses import replace

from trading_erp.core.stock import (
    apply_movement, apply_order_delta, check_sell_availability, reverse_movement
)
from trading_erp.exceptions import InsufficientStockError, StockError
from trading_erp.models import (
    MovementItem, Product, ProductMovement, PurchaseOrder, PurchaseOrderItem,
    PurchaseOrderStatus, SellOrder, SellOrderItem, SellOrderStatus
)


def purchase(status, qty=10, warehouse_id=1, product_id=1):
    return PurchaseOrder(id=1, warehouse_id=warehouse_id, status=status,
                         items=(PurchaseOrderItem(product_id=product_id, qty=qty, price=1),))


def sale(status, qty=3, warehouse_id=1, product_id=1):
    return SellOrder(id=1, warehouse_id=warehouse_id, status=status,
                     items=(SellOrderItem(product_id=product_id, qty=qty, price=1),))


class TestApplyOrderDelta(unittest.TestCase):
    """Stock changes driven by order status."""

    def setUp(self):
        self.products = {
            1: Product(id=1, sku='A', stock={1: 5, 2: 2}),
            2: Product(id=2, sku='B', stock={1: 1}),
        }

    def test_receive_adds_to_order_warehouse(self):
        updated = apply_order_delta(self.products, purchase(PurchaseOrderStatus.RECEIVED), None)

        self.assertEqual(updated[1].stock, {1: 15, 2: 2})
        self.assertEqual(self.products[1].stock, {1: 5, 2: 2})

    def test_transitions_outside_completed_are_noops(self):
        for old, new in ((None, PurchaseOrderStatus.DRAFT),
                         (PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.ORDERED),
                         (PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.ORDERED)):
            old_order = purchase(old) if old else None
            updated = apply_order_delta(self.products, purchase(new), old_order)
            self.assertEqual(updated, self.products)

    def test_same_completed_status_is_a_noop(self):
        received = purchase(PurchaseOrderStatus.RECEIVED)
        shipped = sale(SellOrderStatus.SHIPPED)

        self.assertEqual(apply_order_delta(self.products, received, received), self.products)
        self.assertEqual(apply_order_delta(self.products, shipped, shipped), self.products)

    def test_receive_then_revert_restores_stock(self):
        received = purchase(PurchaseOrderStatus.RECEIVED)

        after = apply_order_delta(self.products, received, None)
        reverted = apply_order_delta(after, purchase(PurchaseOrderStatus.DRAFT), received)

        self.assertEqual(reverted[1].stock, {1: 5, 2: 2})

    def test_edit_of_received_order_reverses_then_reapplies(self):
        old = purchase(PurchaseOrderStatus.RECEIVED, qty=10)
        after = apply_order_delta(self.products, old, None)

        edited = apply_order_delta(after, purchase(PurchaseOrderStatus.RECEIVED, qty=4, warehouse_id=2), old)

        self.assertEqual(edited[1].stock, {1: 5, 2: 6})

    def test_resave_after_partial_sale_keeps_stock(self):
        received = purchase(PurchaseOrderStatus.RECEIVED, qty=10)
        products = apply_order_delta(self.products, received, None)
        products = apply_order_delta(products, sale(SellOrderStatus.SHIPPED, qty=13), None)
        self.assertEqual(products[1].stock, {1: 2, 2: 2})

        resaved = apply_order_delta(products, received, received, clamp=False)

        self.assertEqual(resaved[1].stock, {1: 2, 2: 2})

    def test_ship_subtracts_and_delete_adds_back(self):
        shipped = sale(SellOrderStatus.SHIPPED, qty=3)

        after = apply_order_delta(self.products, shipped, None)
        self.assertEqual(after[1].stock[1], 2)

        deleted = apply_order_delta(after, None, shipped)
        self.assertEqual(deleted[1].stock[1], 5)

    def test_reversal_clamps_at_zero(self):
        received = purchase(PurchaseOrderStatus.RECEIVED, qty=10)

        with self.assertLogs('trading_erp.core.stock', level='WARNING'):
            updated = apply_order_delta(self.products, None, received)

        self.assertEqual(updated[1].stock[1], 0)

    def test_reversal_raises_without_clamping(self):
        received = purchase(PurchaseOrderStatus.RECEIVED, qty=10)

        with self.assertRaises(StockError) as ctx:
            apply_order_delta(self.products, None, received, clamp=False)
        self.assertEqual(ctx.exception.details['available'], 5)

    def test_unknown_product_is_skipped(self):
        with self.assertLogs('trading_erp.core.stock', level='WARNING'):
            updated = apply_order_delta(self.products, purchase(PurchaseOrderStatus.RECEIVED, product_id=9), None)
        self.assertEqual(updated, self.products)


class TestCheckSellAvailability(unittest.TestCase):

    def setUp(self):
        self.products = {1: Product(id=1, sku='A', stock={1: 2})}

    def test_shipping_more_than_available_fails(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            check_sell_availability(self.products, sale(SellOrderStatus.SHIPPED, qty=3))

        shortage = ctx.exception.details['shortages'][0]
        self.assertEqual(shortage['available'], 2)
        self.assertEqual(shortage['requested'], 3)

    def test_not_shipping_is_never_checked(self):
        check_sell_availability(self.products, sale(SellOrderStatus.CONFIRMED, qty=30))

    def test_quantity_already_shipped_counts_as_available(self):
        shipped = sale(SellOrderStatus.SHIPPED, qty=2)
        after = apply_order_delta(self.products, shipped, None)

        check_sell_availability(after, sale(SellOrderStatus.SHIPPED, qty=2), shipped)
        with self.assertRaises(InsufficientStockError):
            check_sell_availability(after, sale(SellOrderStatus.SHIPPED, qty=3), shipped)

    def test_old_unshipped_order_frees_nothing(self):
        confirmed = sale(SellOrderStatus.CONFIRMED, qty=2)

        with self.assertRaises(InsufficientStockError):
            check_sell_availability(self.products, sale(SellOrderStatus.SHIPPED, qty=3), confirmed)

    def test_repeated_lines_are_summed(self):
        order = SellOrder(id=1, warehouse_id=1, status=SellOrderStatus.SHIPPED,
                          items=(SellOrderItem(product_id=1, qty=1, price=1),
                                 SellOrderItem(product_id=1, qty=2, price=1)))

        with self.assertRaises(InsufficientStockError):
            check_sell_availability(self.products, order)


class TestMovements(unittest.TestCase):

    def setUp(self):
        self.products = {
            1: Product(id=1, sku='A', stock={1: 10, 2: 1}),
            2: Product(id=2, sku='B', stock={1: 3}),
        }
        self.movement = ProductMovement(
            id=4, source_warehouse_id=1, dest_warehouse_id=2,
            items=(MovementItem(product_id=1, quantity=6), MovementItem(product_id=2, quantity=3))
        )

    def test_apply_moves_every_item(self):
        updated = apply_movement(self.products, self.movement)

        self.assertEqual(updated[1].stock, {1: 4, 2: 7})
        self.assertEqual(updated[2].stock, {1: 0, 2: 3})

    def test_apply_then_reverse_restores_stock(self):
        restored = reverse_movement(apply_movement(self.products, self.movement), self.movement)

        self.assertEqual(restored[1].stock, {1: 10, 2: 1})
        self.assertEqual(restored[2].stock, {1: 3, 2: 0})

    def test_edit_nets_against_previous_version(self):
        moved = apply_movement(self.products, self.movement)
        sold = apply_order_delta(moved, sale(SellOrderStatus.SHIPPED, qty=5, warehouse_id=2), None)
        edited = replace(self.movement, items=(MovementItem(product_id=1, quantity=7),))

        updated = apply_movement(sold, edited, self.movement, clamp=False)

        self.assertEqual(updated[1].stock, {1: 3, 2: 3})
        self.assertEqual(updated[2].stock, {1: 3, 2: 0})

    def test_shortage_on_one_item_moves_nothing(self):
        movement = ProductMovement(
            id=5, source_warehouse_id=1, dest_warehouse_id=2,
            items=(MovementItem(product_id=1, quantity=6), MovementItem(product_id=2, quantity=4))
        )

        with self.assertRaises(InsufficientStockError) as ctx:
            apply_movement(self.products, movement)

        self.assertEqual(ctx.exception.details['shortages'][0]['product_id'], 2)
        self.assertEqual(self.products[1].stock, {1: 10, 2: 1})

    def test_repeated_items_are_checked_together(self):
        movement = ProductMovement(
            id=6, source_warehouse_id=1, dest_warehouse_id=2,
            items=(MovementItem(product_id=2, quantity=2), MovementItem(product_id=2, quantity=2))
        )

        with self.assertRaises(InsufficientStockError):
            apply_movement(self.products, movement)

    def test_stock_never_negative(self):
        products = apply_movement(self.products, self.movement)
        products = apply_order_delta(products, None, purchase(PurchaseOrderStatus.RECEIVED, qty=50))
        products = reverse_movement(products, self.movement)

        for product in products.values():
            for qty in product.stock.values():
                self.assertGreaterEqual(qty, 0)


if __name__ == '__main__':
    unittest.main()
