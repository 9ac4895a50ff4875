#!/usr/bin/env python
# populate_db.py - Load the demo master data into the trading ERP store

import logging

from trading_erp.models import (
    Collection, Customer, Product, Supplier, Warehouse, WarehouseType
)
from trading_erp.services.record_store import RecordStore

app_logger = logging.getLogger('populate_db')

WAREHOUSES = [
    Warehouse(id=1, name='Main Warehouse', location='Baku, Azerbaijan', type=WarehouseType.MAIN),
    Warehouse(id=2, name='Secondary Hub', location='Ganja, Azerbaijan', type=WarehouseType.SECONDARY),
]

PRODUCTS = [
    Product(id=1, name='Laptop Pro 15"', sku='LP15-PRO', category='Electronics',
            description='High-end professional laptop', stock={1: 50, 2: 20},
            min_stock=10, average_landed_cost=1200.00),
    Product(id=2, name='Wireless Mouse', sku='WM-001', category='Accessories',
            description='Ergonomic wireless mouse', stock={1: 150, 2: 75},
            min_stock=25, average_landed_cost=8.50),
    Product(id=3, name='Mechanical Keyboard', sku='MK-ELITE', category='Accessories',
            description='Gaming mechanical keyboard', stock={1: 80, 2: 30},
            min_stock=15, average_landed_cost=45.00),
]

SUPPLIERS = [
    Supplier(id=1, name='Tech Supplies Inc.', contact_person='John Doe',
             email='john@techsupplies.com', phone='+1234567890', address='123 Tech Road'),
]

CUSTOMERS = [
    Customer(id=1, name='Global Innovations Ltd.', contact_person='Jane Smith',
             email='jane@globalinnovations.com', phone='+9876543210', address='456 Business Ave'),
]


def populate(store: RecordStore) -> dict:
    """Insert the demo records into every empty master data collection.

    The demo products carry opening stock and costs, so they are written
    through the store directly rather than the catalog service.

    Returns:
        Number of records created per collection
    """
    created = {}
    with store.transaction():
        for collection, records in (
            (Collection.WAREHOUSES, WAREHOUSES),
            (Collection.PRODUCTS, PRODUCTS),
            (Collection.SUPPLIERS, SUPPLIERS),
            (Collection.CUSTOMERS, CUSTOMERS),
        ):
            if store.list(collection):
                app_logger.info(f"{collection.value} already populated, skipping")
                created[collection.value] = 0
                continue
            for record in records:
                store.save(collection, record)
            created[collection.value] = len(records)
            app_logger.info(f"Created {len(records)} {collection.value} record(s)")

    return created


def main():
    """Main function to populate the database."""
    from trading_erp.db import db
    from trading_erp.db.interface import SqlKeyValueStore
    from trading_erp.logging_setup import get_logger, log_exception

    log = get_logger('populate_db')
    log.info("Starting database population...")

    db.initialize()
    db.create_all_tables()

    try:
        created = populate(RecordStore(SqlKeyValueStore()))
        log.info(f"Database population completed: {created}")
        return True
    except Exception as e:
        log_exception('populate_db', e, "Error populating database")
        return False


if __name__ == "__main__":
    main()
