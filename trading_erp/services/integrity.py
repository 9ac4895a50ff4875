# trading_erp/services/integrity.py
from typing import List, Optional

from trading_erp.exceptions import ReferentialIntegrityError
from trading_erp.models import Collection, Warehouse, WarehouseType

ORDER_COLLECTIONS = (Collection.PURCHASE_ORDERS, Collection.SELL_ORDERS)


def _blocked(message: str, **details) -> ReferentialIntegrityError:
    return ReferentialIntegrityError(message, code='DELETE_BLOCKED', details=details)


def main_warehouse(store) -> Optional[Warehouse]:
    """Return the Main warehouse, if one exists."""
    for warehouse in store.list(Collection.WAREHOUSES):
        if warehouse.type == WarehouseType.MAIN:
            return warehouse
    return None


def check_main_warehouse_unique(store, warehouse: Warehouse) -> None:
    """Reject saving a second Main warehouse.

    Raises:
        ReferentialIntegrityError: If another Main warehouse exists
    """
    if warehouse.type != WarehouseType.MAIN:
        return
    current = main_warehouse(store)
    if current is not None and current.id != warehouse.id:
        raise ReferentialIntegrityError(
            f"Warehouse {current.id} is already the Main warehouse",
            code='MAIN_WAREHOUSE_EXISTS',
            details={'main_warehouse_id': current.id}
        )


def orders_referencing_product(store, product_id: int) -> List[str]:
    references = []
    for collection in ORDER_COLLECTIONS + (Collection.PRODUCT_MOVEMENTS,):
        for record in store.list(collection):
            if any(item.product_id == product_id for item in record.items):
                references.append(f"{collection.value}:{record.id}")
    return references


def check_product_deletable(store, product_id: int) -> None:
    """Make sure a product has no stock and no order or movement references.

    Raises:
        ReferentialIntegrityError: If the product is still in use
    """
    product = store.require(Collection.PRODUCTS, product_id)

    stocked = {w: q for w, q in product.stock.items() if q > 0}
    if stocked:
        raise _blocked(
            f"Product {product.sku} still has stock",
            product_id=product_id, stock=stocked
        )

    references = orders_referencing_product(store, product_id)
    if references:
        raise _blocked(
            f"Product {product.sku} is used by {len(references)} order(s) or movement(s)",
            product_id=product_id, references=references
        )


def check_warehouse_deletable(store, warehouse_id: int) -> None:
    """Make sure a warehouse is not Main, holds no stock and is unreferenced.

    Raises:
        ReferentialIntegrityError: If the warehouse is still in use
    """
    warehouse = store.require(Collection.WAREHOUSES, warehouse_id)

    if warehouse.type == WarehouseType.MAIN:
        raise _blocked("The Main warehouse cannot be deleted", warehouse_id=warehouse_id)

    stocked = [p.id for p in store.list(Collection.PRODUCTS) if p.stock.get(warehouse_id, 0) > 0]
    if stocked:
        raise _blocked(
            f"Warehouse {warehouse.name} still holds stock",
            warehouse_id=warehouse_id, product_ids=stocked
        )

    references = [
        f"{collection.value}:{order.id}"
        for collection in ORDER_COLLECTIONS
        for order in store.list(collection)
        if order.warehouse_id == warehouse_id
    ]
    references.extend(
        f"{Collection.PRODUCT_MOVEMENTS.value}:{movement.id}"
        for movement in store.list(Collection.PRODUCT_MOVEMENTS)
        if warehouse_id in (movement.source_warehouse_id, movement.dest_warehouse_id)
    )
    if references:
        raise _blocked(
            f"Warehouse {warehouse.name} is used by {len(references)} order(s) or movement(s)",
            warehouse_id=warehouse_id, references=references
        )


def check_supplier_deletable(store, supplier_id: int) -> None:
    """Make sure no purchase order references a supplier."""
    supplier = store.require(Collection.SUPPLIERS, supplier_id)
    orders = [o.id for o in store.list(Collection.PURCHASE_ORDERS) if o.supplier_id == supplier_id]
    if orders:
        raise _blocked(
            f"Supplier {supplier.name} is used by purchase order(s) {orders}",
            supplier_id=supplier_id, order_ids=orders
        )


def check_customer_deletable(store, customer_id: int) -> None:
    """Make sure no sell order references a customer."""
    customer = store.require(Collection.CUSTOMERS, customer_id)
    orders = [o.id for o in store.list(Collection.SELL_ORDERS) if o.customer_id == customer_id]
    if orders:
        raise _blocked(
            f"Customer {customer.name} is used by sell order(s) {orders}",
            customer_id=customer_id, order_ids=orders
        )


def missing_references(store, collection: Collection, record) -> List[str]:
    """List references of a record that no longer resolve.

    Used before restoring a record from the recycle bin.
    """
    missing = []

    def need(target: Collection, record_id: Optional[int]):
        if record_id and store.get(target, record_id) is None:
            missing.append(f"{target.value}:{record_id}")

    if collection == Collection.PURCHASE_ORDERS:
        need(Collection.SUPPLIERS, record.supplier_id)
        need(Collection.WAREHOUSES, record.warehouse_id)
    elif collection == Collection.SELL_ORDERS:
        need(Collection.CUSTOMERS, record.customer_id)
        need(Collection.WAREHOUSES, record.warehouse_id)
    elif collection == Collection.PRODUCT_MOVEMENTS:
        need(Collection.WAREHOUSES, record.source_warehouse_id)
        need(Collection.WAREHOUSES, record.dest_warehouse_id)
    elif collection == Collection.INCOMING_PAYMENTS:
        need(Collection.SELL_ORDERS, record.order_id)
    elif collection == Collection.OUTGOING_PAYMENTS:
        need(Collection.PURCHASE_ORDERS, record.order_id)
    elif collection == Collection.CUSTOMERS:
        need(Collection.WAREHOUSES, record.default_warehouse_id)

    for item in getattr(record, 'items', ()):
        need(Collection.PRODUCTS, item.product_id)

    return sorted(set(missing))
