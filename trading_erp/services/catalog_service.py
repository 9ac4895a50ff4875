# trading_erp/services/catalog_service.py
import logging
from dataclasses import replace
from typing import List, Optional

from trading_erp.exceptions import ValidationError
from trading_erp.models import Collection, Customer, Product, Supplier, Warehouse
from trading_erp.services import integrity
from trading_erp.services.record_store import RecordStore
from trading_erp.utils.validation import validate_party, validate_product, validate_warehouse

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for products, warehouses, suppliers and customers."""

    def __init__(self, store: RecordStore):
        """Initialize the catalog service.

        Args:
            store: Record store holding the application state
        """
        self.store = store

    def save_product(self, draft: Product) -> Product:
        """Create or update a product.

        Stock and average landed cost belong to the ledger: a new product
        starts with no stock and cost 0, an edit keeps the stored values.

        Raises:
            ValidationError: Missing name or SKU, or SKU already taken
        """
        product = replace(draft, sku=draft.sku.strip())
        errors = validate_product(product, self.store)
        if errors:
            raise ValidationError("Invalid product", code='INVALID_PRODUCT', details=errors)

        existing = self.store.get(Collection.PRODUCTS, product.id)
        if existing is None:
            product = replace(product, stock={}, average_landed_cost=0.0)
        else:
            product = replace(product, stock=dict(existing.stock),
                              average_landed_cost=existing.average_landed_cost)

        saved = self.store.save(Collection.PRODUCTS, product)
        logger.info(f"Saved product {saved.id} ({saved.sku})")
        return saved

    def delete_product(self, product_id: int):
        """Move a product to the recycle bin.

        Raises:
            ReferentialIntegrityError: Product has stock or is referenced
        """
        integrity.check_product_deletable(self.store, product_id)
        return self.store.soft_delete(Collection.PRODUCTS, product_id)

    def find_product_by_sku(self, sku: str) -> Optional[Product]:
        """Find a product by SKU, ignoring case."""
        wanted = sku.strip().lower()
        for product in self.store.list(Collection.PRODUCTS):
            if product.sku.lower() == wanted:
                return product
        return None

    def save_warehouse(self, warehouse: Warehouse) -> Warehouse:
        """Create or update a warehouse.

        Raises:
            ValidationError: Missing name
            ReferentialIntegrityError: A second Main warehouse
        """
        errors = validate_warehouse(warehouse)
        if errors:
            raise ValidationError("Invalid warehouse", code='INVALID_WAREHOUSE', details=errors)

        integrity.check_main_warehouse_unique(self.store, warehouse)

        saved = self.store.save(Collection.WAREHOUSES, warehouse)
        logger.info(f"Saved warehouse {saved.id} ({saved.name}, {saved.type})")
        return saved

    def delete_warehouse(self, warehouse_id: int):
        """Move a warehouse to the recycle bin.

        Raises:
            ReferentialIntegrityError: Main warehouse, stocked or referenced
        """
        integrity.check_warehouse_deletable(self.store, warehouse_id)
        return self.store.soft_delete(Collection.WAREHOUSES, warehouse_id)

    def main_warehouse(self) -> Optional[Warehouse]:
        return integrity.main_warehouse(self.store)

    def save_supplier(self, supplier: Supplier) -> Supplier:
        errors = validate_party(supplier, self.store)
        if errors:
            raise ValidationError("Invalid supplier", code='INVALID_SUPPLIER', details=errors)
        return self.store.save(Collection.SUPPLIERS, supplier)

    def delete_supplier(self, supplier_id: int):
        integrity.check_supplier_deletable(self.store, supplier_id)
        return self.store.soft_delete(Collection.SUPPLIERS, supplier_id)

    def save_customer(self, customer: Customer) -> Customer:
        errors = validate_party(customer, self.store)
        if errors:
            raise ValidationError("Invalid customer", code='INVALID_CUSTOMER', details=errors)
        return self.store.save(Collection.CUSTOMERS, customer)

    def delete_customer(self, customer_id: int):
        integrity.check_customer_deletable(self.store, customer_id)
        return self.store.soft_delete(Collection.CUSTOMERS, customer_id)

    def low_stock_products(self) -> List[Product]:
        """Products whose total stock is below their minimum."""
        return [p for p in self.store.list(Collection.PRODUCTS) if p.total_stock < p.min_stock]
