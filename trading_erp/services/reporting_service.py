# trading_erp/services/reporting_service.py
import logging
from datetime import date
from typing import Dict, Optional

import numpy as np
import pandas as pd

from trading_erp.models import Collection, SellOrderStatus
from trading_erp.services.payment_service import PaymentService
from trading_erp.services.record_store import RecordStore
from trading_erp.utils.math_utils import round_money

logger = logging.getLogger(__name__)

PROFITABILITY_COLUMNS = [
    'product_id', 'sku', 'name', 'qty_sold', 'sales_ex_vat', 'cogs', 'clean_profit', 'share_of_sales'
]


def _in_range(day: Optional[date], start: Optional[date], end: Optional[date]) -> bool:
    if day is None:
        return start is None and end is None
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


class ReportingService:
    """Read-only reports over products, orders and payments.

    COGS always uses each product's current average landed cost.
    """

    def __init__(self, store: RecordStore):
        """Initialize the reporting service.

        Args:
            store: Record store holding the application state
        """
        self.store = store
        self.payments = PaymentService(store)

    def sales_lines(self, start: Optional[date] = None, end: Optional[date] = None) -> pd.DataFrame:
        """One row per line of every Shipped sell order in the date range.

        Returns:
            DataFrame with order_id, order_date, product_id, qty, price,
            vat_percent, sales_ex_vat, vat and cogs columns
        """
        rows = []
        for order in self.store.list(Collection.SELL_ORDERS):
            if order.status != SellOrderStatus.SHIPPED or not _in_range(order.order_date, start, end):
                continue
            for item in order.items:
                product = self.store.get(Collection.PRODUCTS, item.product_id)
                average_cost = product.average_landed_cost if product else 0.0
                sales = item.qty * item.price
                rows.append({
                    'order_id': order.id,
                    'order_date': order.order_date,
                    'product_id': item.product_id,
                    'qty': item.qty,
                    'price': item.price,
                    'vat_percent': order.vat_percent,
                    'sales_ex_vat': sales,
                    'vat': sales * order.vat_percent / 100,
                    'cogs': item.qty * average_cost
                })

        return pd.DataFrame(rows, columns=[
            'order_id', 'order_date', 'product_id', 'qty', 'price',
            'vat_percent', 'sales_ex_vat', 'vat', 'cogs'
        ])

    def _payment_total(self, collection: Collection, start, end) -> float:
        amounts = [
            self.payments.ledger_amount(p)
            for p in self.store.list(collection)
            if _in_range(p.date, start, end)
        ]
        return float(np.sum(amounts)) if amounts else 0.0

    def finance_summary(self, start: Optional[date] = None, end: Optional[date] = None) -> Dict:
        """Summarize revenue, cost and cash flow over a date range.

        Revenue excludes VAT. Shipped sell orders are the only source of
        revenue and COGS; cash flow comes from payments.

        Args:
            start: First day included, open when None
            end: Last day included, open when None

        Returns:
            Dictionary of ledger currency figures
        """
        lines = self.sales_lines(start, end)

        revenue = float(lines['sales_ex_vat'].sum()) if not lines.empty else 0.0
        vat = float(lines['vat'].sum()) if not lines.empty else 0.0
        cogs = float(lines['cogs'].sum()) if not lines.empty else 0.0

        incoming = self._payment_total(Collection.INCOMING_PAYMENTS, start, end)
        outgoing = self._payment_total(Collection.OUTGOING_PAYMENTS, start, end)

        summary = {
            'start': start,
            'end': end,
            'shipped_orders': int(lines['order_id'].nunique()) if not lines.empty else 0,
            'revenue_ex_vat': round_money(revenue),
            'vat_collected': round_money(vat),
            'cogs': round_money(cogs),
            'gross_profit': round_money(revenue - cogs),
            'gross_margin_pct': round_money(revenue and (revenue - cogs) / revenue * 100),
            'incoming_payments': round_money(incoming),
            'outgoing_payments': round_money(outgoing),
            'net_cash_flow': round_money(incoming - outgoing)
        }
        logger.info(f"Finance summary {start} - {end}: revenue {summary['revenue_ex_vat']}")
        return summary

    def product_profitability(self, start: Optional[date] = None,
                              end: Optional[date] = None) -> pd.DataFrame:
        """Per product sales, COGS and clean profit, best sellers first."""
        lines = self.sales_lines(start, end)
        if lines.empty:
            return pd.DataFrame(columns=PROFITABILITY_COLUMNS)

        report = (
            lines.groupby('product_id', as_index=False)
            .agg(qty_sold=('qty', 'sum'), sales_ex_vat=('sales_ex_vat', 'sum'), cogs=('cogs', 'sum'))
        )
        report['clean_profit'] = report['sales_ex_vat'] - report['cogs']

        total_sales = report['sales_ex_vat'].sum()
        report['share_of_sales'] = (
            report['sales_ex_vat'] / total_sales * 100 if total_sales else 0.0
        )

        products = {p.id: p for p in self.store.list(Collection.PRODUCTS)}
        report['sku'] = report['product_id'].map(lambda pid: products[pid].sku if pid in products else '')
        report['name'] = report['product_id'].map(lambda pid: products[pid].name if pid in products else '')

        for column in ('sales_ex_vat', 'cogs', 'clean_profit', 'share_of_sales'):
            report[column] = report[column].round(2)

        return report[PROFITABILITY_COLUMNS].sort_values('sales_ex_vat', ascending=False).reset_index(drop=True)

    def stock_table(self) -> pd.DataFrame:
        """Products by warehouse on-hand quantities, with a total column."""
        warehouses = self.store.list(Collection.WAREHOUSES)
        rows = []
        for product in self.store.list(Collection.PRODUCTS):
            row = {'sku': product.sku, 'name': product.name}
            for warehouse in warehouses:
                row[warehouse.name] = product.stock.get(warehouse.id, 0)
            row['total'] = product.total_stock
            rows.append(row)

        return pd.DataFrame(rows, columns=['sku', 'name'] + [w.name for w in warehouses] + ['total'])

    def low_stock(self) -> pd.DataFrame:
        """Products whose total stock is below their minimum."""
        rows = [
            {
                'product_id': p.id,
                'sku': p.sku,
                'name': p.name,
                'total_stock': p.total_stock,
                'min_stock': p.min_stock,
                'shortfall': p.min_stock - p.total_stock
            }
            for p in self.store.list(Collection.PRODUCTS)
            if p.total_stock < p.min_stock
        ]
        return pd.DataFrame(rows, columns=['product_id', 'sku', 'name', 'total_stock', 'min_stock', 'shortfall'])

    def inventory_valuation(self) -> pd.DataFrame:
        """Stock value per product and warehouse at average landed cost."""
        names = {w.id: w.name for w in self.store.list(Collection.WAREHOUSES)}
        rows = [
            {
                'product_id': p.id,
                'sku': p.sku,
                'warehouse_id': warehouse_id,
                'warehouse': names.get(warehouse_id, str(warehouse_id)),
                'qty': qty,
                'average_landed_cost': p.average_landed_cost,
                'value': round_money(qty * p.average_landed_cost)
            }
            for p in self.store.list(Collection.PRODUCTS)
            for warehouse_id, qty in sorted(p.stock.items())
            if qty > 0
        ]
        return pd.DataFrame(rows, columns=[
            'product_id', 'sku', 'warehouse_id', 'warehouse', 'qty', 'average_landed_cost', 'value'
        ])
