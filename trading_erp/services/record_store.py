# trading_erp/services/record_store.py
import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from trading_erp.config import config
from trading_erp.db.interface import KeyValueStore
from trading_erp.exceptions import NotFoundError, RestoreConflictError
from trading_erp.models import (
    Collection, LedgerOptions, Product, RECORD_TYPES, RecycleBinEntry, Settings
)

logger = logging.getLogger(__name__)

NEXT_IDS_KEY = 'next_ids'
RECYCLE_BIN_KEY = 'recycle_bin'
SETTINGS_KEY = 'settings'
RECYCLE_COUNTER = 'recycle_bin'


class RecordStore:
    """Application state: every collection, id counters and the recycle bin.

    The store is owned by the caller and handed to each service. Records are
    immutable; every update replaces the stored object. Writes go straight to
    the key-value store unless a transaction is open, in which case they are
    flushed together when the outermost transaction ends.
    """

    def __init__(self, kv_store: KeyValueStore, options: Optional[LedgerOptions] = None):
        """Initialize the record store and load its state.

        Args:
            kv_store: Backing key-value store
            options: Ledger options; read from configuration when omitted
        """
        self.kv_store = kv_store
        self.options = options or LedgerOptions.from_config(config.ledger_config)
        self._transaction_depth = 0
        self._dirty = set()
        self.load()

    def load(self) -> None:
        """(Re)load the whole state from the key-value store."""
        self._records: Dict[Collection, Dict[int, object]] = {}
        for collection in Collection:
            record_type = RECORD_TYPES[collection]
            rows = self.kv_store.get(collection.value, []) or []
            self._records[collection] = {
                record.id: record for record in (record_type.from_dict(row) for row in rows)
            }

        self._next_ids: Dict[str, int] = {
            key: int(value) for key, value in (self.kv_store.get(NEXT_IDS_KEY, {}) or {}).items()
        }
        self._recycle_bin: List[RecycleBinEntry] = [
            RecycleBinEntry.from_dict(row) for row in (self.kv_store.get(RECYCLE_BIN_KEY, []) or [])
        ]

        settings = self.kv_store.get(SETTINGS_KEY)
        if settings is None:
            ledger = config.ledger_config
            self._settings = Settings(
                default_vat=ledger['default_vat'],
                default_markup=ledger['default_markup'],
                currency_rates=config.default_rates
            )
        else:
            self._settings = Settings.from_dict(settings)

    # Persistence

    def _value_for(self, key: str):
        if key == NEXT_IDS_KEY:
            return dict(self._next_ids)
        if key == RECYCLE_BIN_KEY:
            return [entry.to_dict() for entry in self._recycle_bin]
        if key == SETTINGS_KEY:
            return self._settings.to_dict()
        collection = Collection.from_string(key)
        return [record.to_dict() for _, record in sorted(self._records[collection].items())]

    def _persist(self, key: str) -> None:
        if self._transaction_depth:
            self._dirty.add(key)
        else:
            self.kv_store.set(key, self._value_for(key))

    @contextmanager
    def transaction(self):
        """Group writes so they are stored together or not at all.

        When the block raises, the in-memory state is reloaded from storage
        and the exception propagates.
        """
        self._transaction_depth += 1
        try:
            yield self
        except Exception:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                self._dirty.clear()
                self.load()
                logger.info("Transaction rolled back")
            raise
        else:
            self._transaction_depth -= 1
            if self._transaction_depth == 0 and self._dirty:
                values = {key: self._value_for(key) for key in sorted(self._dirty)}
                self._dirty.clear()
                self.kv_store.set_many(values)

    # Identity

    def next_id(self, collection) -> int:
        """Allocate the next id of a collection.

        The counter is persisted at once and never moves backwards, so ids are
        not reused after deletes or rolled back saves.
        """
        key = str(collection)
        existing = self._records[collection] if isinstance(collection, Collection) else {}
        candidate = max(self._next_ids.get(key, 1), max(existing, default=0) + 1)
        self._next_ids[key] = candidate + 1
        self.kv_store.set(NEXT_IDS_KEY, dict(self._next_ids))
        return candidate

    # Records

    def get(self, collection: Collection, record_id: int):
        """Get a record by id, or None."""
        if not record_id:
            return None
        return self._records[collection].get(record_id)

    def require(self, collection: Collection, record_id: int):
        """Get a record by id.

        Raises:
            NotFoundError: If no such record exists
        """
        record = self.get(collection, record_id)
        if record is None:
            raise NotFoundError(
                f"{collection.value} record {record_id} not found",
                code='NOT_FOUND',
                details={'collection': collection.value, 'id': record_id}
            )
        return record

    def list(self, collection: Collection) -> List:
        """List the records of a collection ordered by id."""
        return [record for _, record in sorted(self._records[collection].items())]

    def products(self) -> Dict[int, Product]:
        """Return a snapshot of all products keyed by id."""
        return dict(self._records[Collection.PRODUCTS])

    def save(self, collection: Collection, record):
        """Insert or replace a record.

        A record with id 0 or an id unknown to the collection is inserted
        under a freshly allocated id; otherwise the stored record is replaced.

        Returns:
            The stored record
        """
        if not record.id or record.id not in self._records[collection]:
            record = replace(record, id=self.next_id(collection))
        self._records[collection][record.id] = record
        self._persist(collection.value)
        return record

    def save_products(self, products: List[Product]) -> None:
        """Replace several product records in one write."""
        if not products:
            return
        for product in products:
            self._records[Collection.PRODUCTS][product.id] = product
        self._persist(Collection.PRODUCTS.value)

    # Recycle bin

    def soft_delete(self, collection: Collection, record_id: int) -> RecycleBinEntry:
        """Move a record into the recycle bin.

        Reference checks are the caller's job and must run before this call.

        Raises:
            NotFoundError: If no such record exists
        """
        record = self.require(collection, record_id)
        entry = RecycleBinEntry(
            recycle_id=self.next_id(RECYCLE_COUNTER),
            original_id=record.id,
            collection=collection,
            data=record.to_dict(),
            deleted_at=datetime.now()
        )
        with self.transaction():
            del self._records[collection][record_id]
            self._recycle_bin.append(entry)
            self._persist(collection.value)
            self._persist(RECYCLE_BIN_KEY)
        logger.info(f"Moved {collection.value} record {record_id} to recycle bin as {entry.recycle_id}")
        return entry

    def recycle_bin(self) -> List[RecycleBinEntry]:
        """List recycle bin entries, oldest first."""
        return list(self._recycle_bin)

    def get_entry(self, recycle_id: int) -> RecycleBinEntry:
        """Get a recycle bin entry.

        Raises:
            NotFoundError: If no such entry exists
        """
        for entry in self._recycle_bin:
            if entry.recycle_id == recycle_id:
                return entry
        raise NotFoundError(
            f"Recycle bin entry {recycle_id} not found",
            code='NOT_FOUND',
            details={'recycle_id': recycle_id}
        )

    def check_restorable(self, recycle_id: int) -> RecycleBinEntry:
        """Get an entry and make sure its id is free in its collection.

        Raises:
            RestoreConflictError: If a live record already uses the id
        """
        entry = self.get_entry(recycle_id)
        if entry.original_id in self._records[entry.collection]:
            raise RestoreConflictError(
                f"{entry.collection.value} record {entry.original_id} already exists",
                code='ID_CONFLICT',
                details={'recycle_id': recycle_id, 'original_id': entry.original_id}
            )
        return entry

    def restore(self, recycle_id: int):
        """Reinsert a deleted record unchanged under its original id.

        Returns:
            The restored record
        """
        entry = self.check_restorable(recycle_id)
        record = entry.record()
        with self.transaction():
            self._records[entry.collection][record.id] = record
            self._recycle_bin = [e for e in self._recycle_bin if e.recycle_id != recycle_id]
            self._persist(entry.collection.value)
            self._persist(RECYCLE_BIN_KEY)
        logger.info(f"Restored {entry.collection.value} record {record.id} from recycle bin")
        return record

    def delete_permanently(self, recycle_id: int) -> RecycleBinEntry:
        """Drop a recycle bin entry for good."""
        entry = self.get_entry(recycle_id)
        self._recycle_bin = [e for e in self._recycle_bin if e.recycle_id != recycle_id]
        self._persist(RECYCLE_BIN_KEY)
        logger.info(f"Permanently deleted recycle bin entry {recycle_id}")
        return entry

    def clean_recycle_bin(self) -> int:
        """Empty the recycle bin.

        Returns:
            Number of entries removed
        """
        count = len(self._recycle_bin)
        self._recycle_bin = []
        self._persist(RECYCLE_BIN_KEY)
        logger.info(f"Cleaned recycle bin ({count} entries)")
        return count

    # Settings

    @property
    def settings(self) -> Settings:
        return self._settings

    def save_settings(self, settings: Settings) -> Settings:
        self._settings = settings
        self._persist(SETTINGS_KEY)
        return settings

    def rate_table(self) -> Dict[str, float]:
        """Current currency rates with the ledger currency pinned to 1."""
        return self._settings.rate_table(self.options.currency)
