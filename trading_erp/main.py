import argparse
import sys
from datetime import date

from tabulate import tabulate

from trading_erp.config import config
from trading_erp.db import db
from trading_erp.db.interface import SqlKeyValueStore
from trading_erp.exceptions import ERPError
from trading_erp.logging_setup import logger, get_logger, log_exception
from trading_erp.services.record_store import RecordStore
from trading_erp.services.recycle_bin_service import RecycleBinService
from trading_erp.services.reporting_service import ReportingService

def init_application() -> RecordStore:
    """Initialize application components and load the record store."""
    db.initialize()
    db.create_all_tables()

    log = logger.app_logger
    log.info("Trading ERP initialized")
    log.info(f"Using database: {config.get_db_url()}")
    log.info(f"Ledger currency: {config.ledger_config['currency']}")

    return RecordStore(SqlKeyValueStore())

def _parse_date(value):
    return date.fromisoformat(value) if value else None

def show_stock(store, args):
    table = ReportingService(store).stock_table()
    print(tabulate(table, headers='keys', tablefmt='github', showindex=False))

def show_finance(store, args):
    summary = ReportingService(store).finance_summary(_parse_date(args.start), _parse_date(args.end))
    print(tabulate(list(summary.items()), headers=['Figure', 'Value'], tablefmt='github'))

def show_profitability(store, args):
    table = ReportingService(store).product_profitability(_parse_date(args.start), _parse_date(args.end))
    if table.empty:
        print("No shipped sales in range")
        return
    print(tabulate(table, headers='keys', tablefmt='github', showindex=False))

def show_low_stock(store, args):
    table = ReportingService(store).low_stock()
    if table.empty:
        print("No products below minimum stock")
        return
    print(tabulate(table, headers='keys', tablefmt='github', showindex=False))

def show_recycle_bin(store, args):
    entries = RecycleBinService(store).list_entries()
    rows = [
        [e.recycle_id, e.collection.value, e.original_id, e.deleted_at.strftime('%Y-%m-%d %H:%M')]
        for e in entries
    ]
    print(tabulate(rows, headers=['Recycle ID', 'Collection', 'Original ID', 'Deleted at'], tablefmt='github'))

def seed(store, args):
    from trading_erp.populate_db import populate
    created = populate(store)
    print(tabulate(list(created.items()), headers=['Collection', 'Created'], tablefmt='github'))

COMMANDS = {
    'seed': seed,
    'stock': show_stock,
    'finance': show_finance,
    'profitability': show_profitability,
    'low-stock': show_low_stock,
    'recycle-bin': show_recycle_bin,
}

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Trading ERP inventory and landed-cost ledger')

    parser.add_argument('--setup-db', action='store_true',
                      help='Set up the database schema')
    parser.add_argument('--drop-db', action='store_true',
                      help='Drop existing tables before setup')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('seed', help='Load demo warehouses, products, suppliers and customers')
    subparsers.add_parser('stock', help='Show stock per product and warehouse')
    subparsers.add_parser('low-stock', help='Show products below their minimum stock')
    subparsers.add_parser('recycle-bin', help='List deleted records')

    for name, help_text in (('finance', 'Show the finance summary'),
                            ('profitability', 'Show product profitability')):
        report_parser = subparsers.add_parser(name, help=help_text)
        report_parser.add_argument('--start', type=str, help='First day (YYYY-MM-DD)')
        report_parser.add_argument('--end', type=str, help='Last day (YYYY-MM-DD)')

    return parser

def main(argv=None):
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    log = get_logger('cli')

    if args.setup_db:
        db.initialize()
        if args.drop_db:
            db.drop_all_tables()
            log.info("Dropped all tables")
        db.create_all_tables()
        log.info("Database schema created")
        return 0

    store = init_application()

    command = COMMANDS.get(args.command)
    if command is None:
        logger.app_logger.info("Trading ERP ready")
        return 0

    try:
        command(store, args)
    except ERPError as e:
        log_exception('cli', e, f"Command {args.command} failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
