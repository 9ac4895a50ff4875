# trading_erp/services/payment_service.py
import logging
from typing import Dict

from trading_erp.core.currency import to_ledger
from trading_erp.exceptions import ValidationError
from trading_erp.models import Collection, Payment
from trading_erp.services.record_store import RecordStore
from trading_erp.utils.math_utils import round_money
from trading_erp.utils.validation import validate_payment

logger = logging.getLogger(__name__)

# Payment collection -> collection of the orders it settles
ORDER_FOR_PAYMENTS = {
    Collection.INCOMING_PAYMENTS: Collection.SELL_ORDERS,
    Collection.OUTGOING_PAYMENTS: Collection.PURCHASE_ORDERS,
}
PAYMENTS_FOR_ORDER = {v: k for k, v in ORDER_FOR_PAYMENTS.items()}


class PaymentService:
    """Service for incoming and outgoing payments.

    Payments never touch stock or costs; reports read them.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.options = store.options

    def _save(self, collection: Collection, payment: Payment) -> Payment:
        errors = validate_payment(
            payment, self.store, ORDER_FOR_PAYMENTS[collection],
            self.store.rate_table(), self.options.currency
        )
        if errors:
            raise ValidationError("Invalid payment", code='INVALID_PAYMENT', details=errors)

        saved = self.store.save(collection, payment)
        logger.info(f"Saved {collection.value} record {saved.id}: {saved.amount} {saved.currency}")
        return saved

    def save_incoming_payment(self, payment: Payment) -> Payment:
        """Record money received, optionally against a sell order."""
        return self._save(Collection.INCOMING_PAYMENTS, payment)

    def save_outgoing_payment(self, payment: Payment) -> Payment:
        """Record money paid, optionally against a purchase order."""
        return self._save(Collection.OUTGOING_PAYMENTS, payment)

    def delete_incoming_payment(self, payment_id: int):
        return self.store.soft_delete(Collection.INCOMING_PAYMENTS, payment_id)

    def delete_outgoing_payment(self, payment_id: int):
        return self.store.soft_delete(Collection.OUTGOING_PAYMENTS, payment_id)

    def ledger_amount(self, payment: Payment) -> float:
        """Convert a payment to the ledger currency, preferring its own rate."""
        return to_ledger(
            payment.amount, payment.currency, self.store.rate_table(),
            payment.exchange_rate, self.options.currency, self.options.strict_currency_rates
        )

    def order_balance(self, order_collection: Collection, order_id: int) -> Dict[str, float]:
        """Compare what has been paid on an order with its total.

        Args:
            order_collection: PURCHASE_ORDERS or SELL_ORDERS
            order_id: Order id

        Returns:
            Dictionary with total, paid and outstanding amounts
        """
        order = self.store.require(order_collection, order_id)
        payments = self.store.list(PAYMENTS_FOR_ORDER[order_collection])

        paid = sum(self.ledger_amount(p) for p in payments if p.order_id == order_id)
        return {
            'total': round_money(order.total),
            'paid': round_money(paid),
            'outstanding': round_money(order.total - paid)
        }
