"""Builders shared by the test suites."""
from datetime import date

from trading_erp.db.interface import InMemoryKeyValueStore
from trading_erp.models import (
    LedgerOptions, Product, PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus,
    SellOrder, SellOrderItem, SellOrderStatus, Settings
)
from trading_erp.populate_db import populate
from trading_erp.services.catalog_service import CatalogService
from trading_erp.services.record_store import RecordStore

DAY = date(2024, 1, 10)
RATES = {'USD': 1.70, 'EUR': 2.00, 'RUB': 0.019}

MAIN = 1
SECONDARY = 2
LAPTOP, MOUSE, KEYBOARD = 1, 2, 3


def make_store(kv_store=None, rates=None, **options) -> RecordStore:
    """Empty store with the demo rate table."""
    store = RecordStore(kv_store or InMemoryKeyValueStore(), LedgerOptions(**options))
    store.save_settings(Settings(currency_rates=dict(RATES if rates is None else rates)))
    return store


def seeded_store(**options) -> RecordStore:
    """Store holding the demo warehouses, products, supplier and customer."""
    store = make_store(**options)
    populate(store)
    return store


def new_product(store, sku='WID-1', min_stock=0) -> Product:
    return CatalogService(store).save_product(Product(name=f'Product {sku}', sku=sku, min_stock=min_stock))


def purchase(product_id, qty, price, status=PurchaseOrderStatus.RECEIVED,
             warehouse_id=MAIN, **kwargs) -> PurchaseOrder:
    return PurchaseOrder(
        supplier_id=1,
        warehouse_id=warehouse_id,
        order_date=kwargs.pop('order_date', DAY),
        status=status,
        items=(PurchaseOrderItem(product_id=product_id, qty=qty, price=price,
                                 currency=kwargs.get('currency', 'AZN')),),
        **kwargs
    )


def sale(product_id, qty, price, status=SellOrderStatus.SHIPPED,
         warehouse_id=MAIN, vat_percent=18.0, **kwargs) -> SellOrder:
    return SellOrder(
        customer_id=1,
        warehouse_id=warehouse_id,
        order_date=kwargs.pop('order_date', DAY),
        status=status,
        items=(SellOrderItem(product_id=product_id, qty=qty, price=price),),
        vat_percent=vat_percent,
        **kwargs
    )
