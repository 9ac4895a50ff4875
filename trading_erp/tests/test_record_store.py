import unittest
from datetime import datetime

from sqlalchemy.pool import StaticPool
from sqlalchemy import create_engine

from trading_erp.db import db
from trading_erp.db.interface import InMemoryKeyValueStore, SqlKeyValueStore
from trading_erp.exceptions import DatabaseError, NotFoundError, RestoreConflictError
from trading_erp.models import Base, Collection, LedgerOptions, Product, Supplier
from trading_erp.services.record_store import RecordStore


class FlakyRecycleBinStore(InMemoryKeyValueStore):
    """In-memory store whose recycle bin writes fail once broken."""

    def __init__(self, initial=None):
        self.broken = False
        super().__init__(initial)

    def _check(self, keys):
        if self.broken and 'recycle_bin' in keys:
            raise DatabaseError("Recycle bin write failed")

    def set(self, key, value):
        self._check([key])
        super().set(key, value)

    def set_many(self, values):
        self._check(values)
        super().set_many(values)


class TestRecordStore(unittest.TestCase):
    """Identity, persistence and recycle bin behaviour."""

    def setUp(self):
        self.kv = InMemoryKeyValueStore()
        self.store = RecordStore(self.kv, LedgerOptions())

    def test_ids_are_sequential_per_collection(self):
        first = self.store.save(Collection.SUPPLIERS, Supplier(name='A'))
        second = self.store.save(Collection.SUPPLIERS, Supplier(name='B'))
        product = self.store.save(Collection.PRODUCTS, Product(name='P', sku='P'))

        self.assertEqual((first.id, second.id, product.id), (1, 2, 1))

    def test_unknown_id_is_inserted_under_fresh_id(self):
        saved = self.store.save(Collection.SUPPLIERS, Supplier(id=77, name='A'))

        self.assertEqual(saved.id, 1)
        self.assertIsNone(self.store.get(Collection.SUPPLIERS, 77))

    def test_known_id_replaces_record(self):
        saved = self.store.save(Collection.SUPPLIERS, Supplier(name='A'))
        self.store.save(Collection.SUPPLIERS, Supplier(id=saved.id, name='B'))

        self.assertEqual(len(self.store.list(Collection.SUPPLIERS)), 1)
        self.assertEqual(self.store.get(Collection.SUPPLIERS, saved.id).name, 'B')

    def test_ids_are_not_reused_after_delete(self):
        saved = self.store.save(Collection.SUPPLIERS, Supplier(name='A'))
        self.store.soft_delete(Collection.SUPPLIERS, saved.id)
        self.store.delete_permanently(self.store.recycle_bin()[0].recycle_id)

        again = self.store.save(Collection.SUPPLIERS, Supplier(name='B'))

        self.assertEqual(again.id, 2)
        self.assertEqual(RecordStore(self.kv, LedgerOptions()).next_id(Collection.SUPPLIERS), 3)

    def test_state_survives_reload(self):
        self.store.save(Collection.PRODUCTS, Product(name='P', sku='P', stock={1: 5, 2: 0}))

        reloaded = RecordStore(self.kv, LedgerOptions())

        self.assertEqual(reloaded.get(Collection.PRODUCTS, 1).stock, {1: 5, 2: 0})

    def test_require_unknown_record(self):
        with self.assertRaises(NotFoundError):
            self.store.require(Collection.PRODUCTS, 3)

    def test_soft_delete_and_restore(self):
        saved = self.store.save(Collection.SUPPLIERS, Supplier(name='A', email='a@example.com'))

        entry = self.store.soft_delete(Collection.SUPPLIERS, saved.id)

        self.assertIsNone(self.store.get(Collection.SUPPLIERS, saved.id))
        self.assertEqual(entry.original_id, saved.id)
        self.assertEqual(entry.collection, Collection.SUPPLIERS)
        self.assertIsInstance(entry.deleted_at, datetime)

        restored = self.store.restore(entry.recycle_id)

        self.assertEqual(restored, saved)
        self.assertEqual(self.store.recycle_bin(), [])

    def test_restore_with_taken_id_fails_and_keeps_entry(self):
        kv = InMemoryKeyValueStore({
            'suppliers': [{'id': 1, 'name': 'Live'}],
            'recycle_bin': [{
                'recycle_id': 1, 'original_id': 1, 'collection': 'suppliers',
                'data': {'id': 1, 'name': 'Deleted'}, 'deleted_at': '2024-01-01T10:00:00'
            }],
        })
        store = RecordStore(kv, LedgerOptions())

        with self.assertRaises(RestoreConflictError):
            store.restore(1)

        self.assertEqual(len(store.recycle_bin()), 1)
        self.assertEqual(store.get(Collection.SUPPLIERS, 1).name, 'Live')

    def test_failed_bin_write_keeps_deleted_record(self):
        kv = FlakyRecycleBinStore()
        store = RecordStore(kv, LedgerOptions())
        saved = store.save(Collection.PRODUCTS, Product(name='P', sku='P'))
        kv.broken = True

        with self.assertRaises(DatabaseError):
            store.soft_delete(Collection.PRODUCTS, saved.id)

        reloaded = RecordStore(kv, LedgerOptions())
        self.assertEqual([p.id for p in reloaded.list(Collection.PRODUCTS)], [saved.id])
        self.assertEqual(reloaded.recycle_bin(), [])
        self.assertIsNotNone(store.get(Collection.PRODUCTS, saved.id))

    def test_failed_bin_write_keeps_entry_on_restore(self):
        kv = FlakyRecycleBinStore()
        store = RecordStore(kv, LedgerOptions())
        saved = store.save(Collection.SUPPLIERS, Supplier(name='A'))
        entry = store.soft_delete(Collection.SUPPLIERS, saved.id)
        kv.broken = True

        with self.assertRaises(DatabaseError):
            store.restore(entry.recycle_id)

        reloaded = RecordStore(kv, LedgerOptions())
        self.assertEqual(reloaded.list(Collection.SUPPLIERS), [])
        self.assertEqual([e.recycle_id for e in reloaded.recycle_bin()], [entry.recycle_id])
        self.assertEqual(len(store.recycle_bin()), 1)

    def test_clean_recycle_bin(self):
        for name in ('A', 'B'):
            saved = self.store.save(Collection.SUPPLIERS, Supplier(name=name))
            self.store.soft_delete(Collection.SUPPLIERS, saved.id)

        self.assertEqual(self.store.clean_recycle_bin(), 2)
        self.assertEqual(RecordStore(self.kv, LedgerOptions()).recycle_bin(), [])

    def test_transaction_rolls_back_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.store.save(Collection.SUPPLIERS, Supplier(name='A'))
                raise RuntimeError("boom")

        self.assertEqual(self.store.list(Collection.SUPPLIERS), [])
        self.assertEqual(self.kv.get('suppliers', []), [])

    def test_transaction_writes_once_at_the_end(self):
        with self.store.transaction():
            self.store.save(Collection.SUPPLIERS, Supplier(name='A'))
            self.assertEqual(self.kv.get('suppliers', []), [])

        self.assertEqual(len(self.kv.get('suppliers')), 1)


class TestSqlKeyValueStore(unittest.TestCase):
    """Record store on top of the kv_store table."""

    def setUp(self):
        self.engine = create_engine('sqlite://', connect_args={'check_same_thread': False},
                                    poolclass=StaticPool)
        Base.metadata.create_all(self.engine)
        self.kv = SqlKeyValueStore(self.engine)

    def tearDown(self):
        self.engine.dispose()

    def test_get_set_delete(self):
        self.assertIsNone(self.kv.get('missing'))
        self.assertEqual(self.kv.get('missing', []), [])

        self.kv.set('a', {'x': [1, 2]})
        self.kv.set('a', {'x': [3]})
        self.kv.set_many({'b': 1, 'c': 'text'})

        self.assertEqual(self.kv.get('a'), {'x': [3]})
        self.assertEqual(self.kv.keys(), ['a', 'b', 'c'])

        self.kv.delete('b')
        self.assertEqual(self.kv.keys(), ['a', 'c'])

    def test_failed_batch_leaves_previous_value(self):
        self.kv.set('a', 1)

        with self.assertRaises(DatabaseError):
            self.kv.set_many({'a': 2, 'b': object()})

        self.assertEqual(self.kv.get('a'), 1)
        self.assertEqual(self.kv.keys(), ['a'])

    def test_global_connection_is_used_without_engine(self):
        db.initialize('sqlite://')
        db.create_all_tables()

        kv = SqlKeyValueStore()
        kv.set('a', [1])

        self.assertEqual(kv.get('a'), [1])
        self.assertEqual(kv.keys(), ['a'])

    def test_record_store_round_trip(self):
        store = RecordStore(self.kv, LedgerOptions())
        store.save(Collection.PRODUCTS, Product(name='P', sku='P', stock={2: 7}, average_landed_cost=3.5))

        reloaded = RecordStore(SqlKeyValueStore(self.engine), LedgerOptions())
        product = reloaded.get(Collection.PRODUCTS, 1)

        self.assertEqual(product.stock, {2: 7})
        self.assertEqual(product.average_landed_cost, 3.5)


if __name__ == '__main__':
    unittest.main()
