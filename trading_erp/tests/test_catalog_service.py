import unittest

from trading_erp.exceptions import ReferentialIntegrityError, ValidationError
from trading_erp.models import (
    Collection, Customer, Product, PurchaseOrderStatus, SellOrderStatus, Supplier, Warehouse,
    WarehouseType
)
from trading_erp.services.catalog_service import CatalogService
from trading_erp.services.order_service import OrderService
from trading_erp.tests.helpers import LAPTOP, MAIN, SECONDARY, new_product, purchase, sale, seeded_store


class TestProducts(unittest.TestCase):
    """Product master data."""

    def setUp(self):
        self.store = seeded_store()
        self.service = CatalogService(self.store)

    def test_new_product_starts_empty(self):
        product = self.service.save_product(
            Product(name='Monitor', sku=' MON-27 ', stock={1: 99}, average_landed_cost=500)
        )

        self.assertEqual(product.id, 4)
        self.assertEqual(product.sku, 'MON-27')
        self.assertEqual(product.stock, {})
        self.assertEqual(product.average_landed_cost, 0.0)

    def test_edit_keeps_ledger_fields(self):
        product = self.service.save_product(
            Product(id=LAPTOP, name='Laptop Pro 15 (2024)', sku='LP15-PRO', stock={}, average_landed_cost=0)
        )

        self.assertEqual(product.name, 'Laptop Pro 15 (2024)')
        self.assertEqual(product.stock, {MAIN: 50, SECONDARY: 20})
        self.assertEqual(product.average_landed_cost, 1200.0)

    def test_sku_is_unique_ignoring_case(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.save_product(Product(name='Copy', sku='lp15-pro'))
        self.assertIn('sku', ctx.exception.details)

    def test_name_and_sku_required(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.save_product(Product(name=' ', sku=''))
        self.assertEqual(set(ctx.exception.details), {'name', 'sku'})

    def test_find_by_sku(self):
        self.assertEqual(self.service.find_product_by_sku('wm-001').id, 2)
        self.assertIsNone(self.service.find_product_by_sku('nope'))

    def test_product_with_stock_cannot_be_deleted(self):
        with self.assertRaises(ReferentialIntegrityError):
            self.service.delete_product(LAPTOP)

    def test_product_on_an_order_cannot_be_deleted(self):
        product = new_product(self.store)
        OrderService(self.store).save_purchase_order(
            purchase(product.id, 1, 1, status=PurchaseOrderStatus.ORDERED)
        )

        with self.assertRaises(ReferentialIntegrityError) as ctx:
            self.service.delete_product(product.id)
        self.assertEqual(ctx.exception.details['references'], ['purchase_orders:1'])

    def test_unused_product_goes_to_recycle_bin(self):
        product = new_product(self.store)

        entry = self.service.delete_product(product.id)

        self.assertEqual(entry.collection, Collection.PRODUCTS)
        self.assertIsNone(self.store.get(Collection.PRODUCTS, product.id))

    def test_low_stock_products(self):
        product = new_product(self.store, min_stock=5)

        self.assertEqual([p.id for p in self.service.low_stock_products()], [product.id])


class TestWarehouses(unittest.TestCase):

    def setUp(self):
        self.store = seeded_store()
        self.service = CatalogService(self.store)

    def test_second_main_warehouse_is_rejected(self):
        with self.assertRaises(ReferentialIntegrityError):
            self.service.save_warehouse(Warehouse(name='Other', type=WarehouseType.MAIN))

    def test_main_warehouse_can_be_edited(self):
        saved = self.service.save_warehouse(
            Warehouse(id=MAIN, name='Central', location='Baku', type=WarehouseType.MAIN)
        )
        self.assertEqual(self.service.main_warehouse(), saved)

    def test_main_warehouse_cannot_be_deleted(self):
        with self.assertRaises(ReferentialIntegrityError):
            self.service.delete_warehouse(MAIN)

    def test_stocked_warehouse_cannot_be_deleted(self):
        with self.assertRaises(ReferentialIntegrityError) as ctx:
            self.service.delete_warehouse(SECONDARY)
        self.assertEqual(ctx.exception.code, 'DELETE_BLOCKED')

    def test_referenced_warehouse_cannot_be_deleted(self):
        empty = self.service.save_warehouse(Warehouse(name='Depot'))
        OrderService(self.store).save_sell_order(sale(LAPTOP, 1, 1, status=SellOrderStatus.CONFIRMED,
                                                      warehouse_id=empty.id))

        with self.assertRaises(ReferentialIntegrityError):
            self.service.delete_warehouse(empty.id)

    def test_unused_warehouse_can_be_deleted(self):
        empty = self.service.save_warehouse(Warehouse(name='Depot'))

        self.service.delete_warehouse(empty.id)

        self.assertIsNone(self.store.get(Collection.WAREHOUSES, empty.id))


class TestParties(unittest.TestCase):

    def setUp(self):
        self.store = seeded_store()
        self.service = CatalogService(self.store)

    def test_supplier_on_purchase_order_cannot_be_deleted(self):
        product = new_product(self.store)
        OrderService(self.store).save_purchase_order(purchase(product.id, 1, 1))

        with self.assertRaises(ReferentialIntegrityError):
            self.service.delete_supplier(1)

    def test_unused_supplier_can_be_deleted(self):
        supplier = self.service.save_supplier(Supplier(name='Parts Ltd.'))

        self.service.delete_supplier(supplier.id)

        self.assertEqual(len(self.store.recycle_bin()), 1)

    def test_customer_on_sell_order_cannot_be_deleted(self):
        OrderService(self.store).save_sell_order(sale(LAPTOP, 1, 1))

        with self.assertRaises(ReferentialIntegrityError):
            self.service.delete_customer(1)

    def test_customer_default_warehouse_must_exist(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.save_customer(Customer(name='Shop', default_warehouse_id=9))
        self.assertIn('default_warehouse_id', ctx.exception.details)


if __name__ == '__main__':
    unittest.main()
