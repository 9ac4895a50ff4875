import unittest
from dataclasses import replace
from datetime import date

from trading_erp.models import Payment, SellOrderItem, SellOrderStatus
from trading_erp.services.order_service import OrderService
from trading_erp.services.payment_service import PaymentService
from trading_erp.services.reporting_service import ReportingService
from trading_erp.tests.helpers import (
    DAY, KEYBOARD, LAPTOP, MAIN, MOUSE, new_product, sale, seeded_store
)


class TestReportingService(unittest.TestCase):
    """Finance, profitability and stock reports."""

    def setUp(self):
        self.store = seeded_store()
        orders = OrderService(self.store)

        orders.save_sell_order(replace(sale(LAPTOP, 2, 2000, vat_percent=18), items=(
            SellOrderItem(product_id=LAPTOP, qty=2, price=2000),
            SellOrderItem(product_id=MOUSE, qty=10, price=20),
        )))
        # Not shipped, so not revenue
        orders.save_sell_order(sale(KEYBOARD, 5, 100, status=SellOrderStatus.CONFIRMED))

        payments = PaymentService(self.store)
        payments.save_incoming_payment(Payment(order_id=1, amount=1000, date=DAY))
        payments.save_outgoing_payment(Payment(amount=100, currency='USD', date=DAY))

        self.service = ReportingService(self.store)

    def test_finance_summary(self):
        summary = self.service.finance_summary()

        self.assertEqual(summary['shipped_orders'], 1)
        self.assertEqual(summary['revenue_ex_vat'], 4200.0)
        self.assertEqual(summary['vat_collected'], 756.0)
        self.assertEqual(summary['cogs'], 2485.0)
        self.assertEqual(summary['gross_profit'], 1715.0)
        self.assertEqual(summary['incoming_payments'], 1000.0)
        self.assertEqual(summary['outgoing_payments'], 170.0)
        self.assertEqual(summary['net_cash_flow'], 830.0)

    def test_finance_summary_outside_range_is_empty(self):
        summary = self.service.finance_summary(date(2024, 2, 1), date(2024, 2, 29))

        self.assertEqual(summary['revenue_ex_vat'], 0.0)
        self.assertEqual(summary['gross_margin_pct'], 0.0)
        self.assertEqual(summary['net_cash_flow'], 0.0)

    def test_product_profitability(self):
        report = self.service.product_profitability()

        self.assertEqual(list(report['sku']), ['LP15-PRO', 'WM-001'])
        first = report.iloc[0]
        self.assertEqual(first['qty_sold'], 2)
        self.assertEqual(first['cogs'], 2400.0)
        self.assertEqual(first['clean_profit'], 1600.0)
        self.assertEqual(first['share_of_sales'], 95.24)

    def test_product_profitability_empty(self):
        report = self.service.product_profitability(start=date(2030, 1, 1))

        self.assertTrue(report.empty)
        self.assertIn('clean_profit', report.columns)

    def test_low_stock(self):
        product = new_product(self.store, min_stock=3)

        report = self.service.low_stock()

        self.assertEqual(list(report['product_id']), [product.id])
        self.assertEqual(report.iloc[0]['shortfall'], 3)

    def test_inventory_valuation(self):
        report = self.service.inventory_valuation()

        laptop_main = report[(report['product_id'] == LAPTOP) & (report['warehouse_id'] == MAIN)].iloc[0]
        self.assertEqual(laptop_main['qty'], 48)
        self.assertEqual(laptop_main['value'], 57600.0)
        self.assertEqual(len(report), 6)

    def test_stock_table(self):
        table = self.service.stock_table()

        self.assertEqual(list(table.columns), ['sku', 'name', 'Main Warehouse', 'Secondary Hub', 'total'])
        mouse = table[table['sku'] == 'WM-001'].iloc[0]
        self.assertEqual(mouse['Main Warehouse'], 140)
        self.assertEqual(mouse['Secondary Hub'], 75)
        self.assertEqual(mouse['total'], 215)


if __name__ == '__main__':
    unittest.main()
