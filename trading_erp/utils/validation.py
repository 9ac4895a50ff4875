from typing import Dict, Optional

from trading_erp.models import (
    Collection, Customer, Payment, PaymentCategory, Product, ProductMovement,
    PurchaseOrder, SellOrder, Warehouse
)

def _has_rate(currency: str, rates: Dict[str, float], ledger_currency: str,
              manual_rate: Optional[float] = None) -> bool:
    if currency.upper() == ledger_currency.upper():
        return True
    if manual_rate is not None:
        return manual_rate > 0
    return rates.get(currency.upper(), 0) > 0

def _require(store, collection: Collection, record_id: int, field: str, label: str,
             errors: Dict[str, str]) -> None:
    if not record_id:
        errors[field] = f'{label} is required'
    elif store.get(collection, record_id) is None:
        errors[field] = f'{label} {record_id} does not exist'

def validate_product(product: Product, store) -> Dict[str, str]:
    """Validate a product.

    Args:
        product: Product to validate
        store: Record store used for the SKU uniqueness check

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not product.name or not product.name.strip():
        errors['name'] = 'Product name is required'

    sku = (product.sku or '').strip()
    if not sku:
        errors['sku'] = 'SKU is required'
    else:
        for other in store.list(Collection.PRODUCTS):
            if other.id != product.id and other.sku.strip().lower() == sku.lower():
                errors['sku'] = f'SKU {sku} is already used by product {other.id}'
                break

    if product.min_stock is not None and product.min_stock < 0:
        errors['min_stock'] = 'Minimum stock cannot be negative'

    return errors

def validate_warehouse(warehouse: Warehouse) -> Dict[str, str]:
    """Validate a warehouse."""
    errors = {}

    if not warehouse.name or not warehouse.name.strip():
        errors['name'] = 'Warehouse name is required'

    return errors

def validate_party(party, store) -> Dict[str, str]:
    """Validate a supplier or customer.

    Args:
        party: Supplier or Customer
        store: Record store

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not party.name or not party.name.strip():
        errors['name'] = 'Name is required'

    if isinstance(party, Customer) and party.default_warehouse_id:
        if store.get(Collection.WAREHOUSES, party.default_warehouse_id) is None:
            errors['default_warehouse_id'] = f'Warehouse {party.default_warehouse_id} does not exist'

    return errors

def validate_purchase_order(
    order: PurchaseOrder,
    store,
    rates: Dict[str, float],
    ledger_currency: str
) -> Dict[str, str]:
    """Validate a purchase order.

    Args:
        order: Purchase order to validate
        store: Record store used to resolve references
        rates: Currency rate table
        ledger_currency: Ledger currency code

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    _require(store, Collection.SUPPLIERS, order.supplier_id, 'supplier_id', 'Supplier', errors)
    _require(store, Collection.WAREHOUSES, order.warehouse_id, 'warehouse_id', 'Warehouse', errors)

    if order.order_date is None:
        errors['order_date'] = 'Order date is required'

    if not order.items:
        errors['items'] = 'At least one item is required'

    for index, item in enumerate(order.items):
        if store.get(Collection.PRODUCTS, item.product_id) is None:
            errors[f'items[{index}].product_id'] = f'Product {item.product_id} does not exist'
        if item.qty is None or item.qty <= 0:
            errors[f'items[{index}].qty'] = 'Quantity must be greater than zero'
        if item.price is None or item.price < 0:
            errors[f'items[{index}].price'] = 'Price cannot be negative'

    if order.exchange_rate is not None and order.exchange_rate <= 0:
        errors['exchange_rate'] = 'Exchange rate must be greater than zero'
    elif not _has_rate(order.currency, rates, ledger_currency, order.exchange_rate):
        errors['exchange_rate'] = f'No exchange rate for {order.currency}'

    for name, (amount, currency) in zip(
        ('transportation_fees', 'custom_fees', 'additional_fees'), order.fee_buckets()
    ):
        if amount < 0:
            errors[name] = 'Fees cannot be negative'
        elif amount > 0 and not _has_rate(currency, rates, ledger_currency):
            errors[f'{name}_currency'] = f'No exchange rate for {currency}'

    return errors

def validate_sell_order(order: SellOrder, store) -> Dict[str, str]:
    """Validate a sell order.

    Args:
        order: Sell order to validate
        store: Record store used to resolve references

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    _require(store, Collection.CUSTOMERS, order.customer_id, 'customer_id', 'Customer', errors)
    _require(store, Collection.WAREHOUSES, order.warehouse_id, 'warehouse_id', 'Warehouse', errors)

    if order.order_date is None:
        errors['order_date'] = 'Order date is required'

    if not order.items:
        errors['items'] = 'At least one item is required'

    for index, item in enumerate(order.items):
        if store.get(Collection.PRODUCTS, item.product_id) is None:
            errors[f'items[{index}].product_id'] = f'Product {item.product_id} does not exist'
        if item.qty is None or item.qty <= 0:
            errors[f'items[{index}].qty'] = 'Quantity must be greater than zero'
        if item.price is None or item.price < 0:
            errors[f'items[{index}].price'] = 'Price cannot be negative'

    if order.vat_percent is None or order.vat_percent < 0:
        errors['vat_percent'] = 'VAT cannot be negative'

    return errors

def validate_movement(movement: ProductMovement, store) -> Dict[str, str]:
    """Validate a product movement."""
    errors = {}

    _require(store, Collection.WAREHOUSES, movement.source_warehouse_id,
             'source_warehouse_id', 'Source warehouse', errors)
    _require(store, Collection.WAREHOUSES, movement.dest_warehouse_id,
             'dest_warehouse_id', 'Destination warehouse', errors)

    if (movement.source_warehouse_id and
            movement.source_warehouse_id == movement.dest_warehouse_id):
        errors['dest_warehouse_id'] = 'Source and destination warehouses must differ'

    if movement.date is None:
        errors['date'] = 'Movement date is required'

    if not movement.items:
        errors['items'] = 'At least one item is required'

    for index, item in enumerate(movement.items):
        if store.get(Collection.PRODUCTS, item.product_id) is None:
            errors[f'items[{index}].product_id'] = f'Product {item.product_id} does not exist'
        if item.quantity is None or item.quantity <= 0:
            errors[f'items[{index}].quantity'] = 'Quantity must be greater than zero'

    return errors

def validate_payment(
    payment: Payment,
    store,
    order_collection: Collection,
    rates: Dict[str, float],
    ledger_currency: str
) -> Dict[str, str]:
    """Validate an incoming or outgoing payment.

    Args:
        payment: Payment to validate
        store: Record store used to resolve the linked order
        order_collection: Collection the linked order lives in
        rates: Currency rate table
        ledger_currency: Ledger currency code

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if payment.amount is None or payment.amount <= 0:
        errors['amount'] = 'Amount must be greater than zero'

    if payment.date is None:
        errors['date'] = 'Payment date is required'

    if payment.order_id and store.get(order_collection, payment.order_id) is None:
        errors['order_id'] = f'Order {payment.order_id} does not exist'

    if payment.category == PaymentCategory.MANUAL and not payment.manual_description.strip():
        errors['manual_description'] = 'Description is required for manual payments'

    if payment.exchange_rate is not None and payment.exchange_rate <= 0:
        errors['exchange_rate'] = 'Exchange rate must be greater than zero'
    elif not _has_rate(payment.currency, rates, ledger_currency, payment.exchange_rate):
        errors['exchange_rate'] = f'No exchange rate for {payment.currency}'

    return errors

def validate_rates(rates: Dict[str, float]) -> Dict[str, str]:
    """Validate a currency rate table."""
    errors = {}

    for code, rate in rates.items():
        if not code or not code.strip():
            errors['currency'] = 'Currency code is required'
        elif rate is None or rate <= 0:
            errors[code] = 'Rate must be greater than zero'

    return errors
