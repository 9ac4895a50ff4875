# trading_erp/services/recycle_bin_service.py
import logging
from typing import List, Optional

from trading_erp.core.average_cost import apply_receipts
from trading_erp.core.stock import (
    apply_movement, apply_order_delta, changed_products, check_sell_availability
)
from trading_erp.exceptions import ReferentialIntegrityError, RestoreConflictError
from trading_erp.models import (
    Collection, PurchaseOrder, PurchaseOrderStatus, RecycleBinEntry, SellOrder
)
from trading_erp.services import integrity
from trading_erp.services.record_store import RecordStore

logger = logging.getLogger(__name__)


class RecycleBinService:
    """Service for listing, restoring and purging soft deleted records."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.options = store.options

    def list_entries(self, collection: Optional[Collection] = None) -> List[RecycleBinEntry]:
        """List recycle bin entries, optionally for one collection."""
        entries = self.store.recycle_bin()
        if collection is not None:
            entries = [e for e in entries if e.collection == collection]
        return entries

    def _check_references(self, entry: RecycleBinEntry, record) -> None:
        missing = integrity.missing_references(self.store, entry.collection, record)
        if missing:
            raise ReferentialIntegrityError(
                f"Cannot restore {entry.collection.value} record {entry.original_id}: "
                f"missing {', '.join(missing)}",
                code='MISSING_REFERENCES',
                details={'recycle_id': entry.recycle_id, 'missing': missing}
            )

    def _check_unique(self, entry: RecycleBinEntry, record) -> None:
        if entry.collection == Collection.PRODUCTS:
            for other in self.store.list(Collection.PRODUCTS):
                if other.sku.lower() == record.sku.lower():
                    raise RestoreConflictError(
                        f"SKU {record.sku} is now used by product {other.id}",
                        code='SKU_CONFLICT',
                        details={'recycle_id': entry.recycle_id, 'product_id': other.id}
                    )
        elif entry.collection == Collection.WAREHOUSES:
            integrity.check_main_warehouse_unique(self.store, record)

    def _replay_ledger_effect(self, record) -> None:
        """Apply a restored order or movement to stock as a fresh save."""
        products = self.store.products()

        if isinstance(record, (PurchaseOrder, SellOrder)):
            if isinstance(record, SellOrder):
                check_sell_availability(products, record)
            updated = apply_order_delta(products, record, None, self.options.clamp_negative_stock)
            if isinstance(record, PurchaseOrder) and record.status == PurchaseOrderStatus.RECEIVED:
                updated = apply_receipts(updated, record)
        else:
            updated = apply_movement(products, record)

        self.store.save_products(changed_products(products, updated))

    def restore(self, recycle_id: int):
        """Put a deleted record back under its original id.

        Orders and movements have their stock effect applied again, with the
        same stock checks as a normal save. On any failure nothing changes and
        the entry stays in the bin.

        Raises:
            NotFoundError: Unknown entry
            RestoreConflictError: The original id (or SKU) is taken
            ReferentialIntegrityError: Referenced records are gone
            InsufficientStockError: Stock no longer covers the record
        """
        entry = self.store.check_restorable(recycle_id)
        record = entry.record()

        self._check_references(entry, record)
        self._check_unique(entry, record)

        with self.store.transaction():
            if entry.collection in (Collection.PURCHASE_ORDERS, Collection.SELL_ORDERS,
                                    Collection.PRODUCT_MOVEMENTS):
                self._replay_ledger_effect(record)
            return self.store.restore(recycle_id)

    def delete_permanently(self, recycle_id: int) -> RecycleBinEntry:
        return self.store.delete_permanently(recycle_id)

    def clean(self) -> int:
        """Empty the recycle bin and return how many entries were dropped."""
        return self.store.clean_recycle_bin()
