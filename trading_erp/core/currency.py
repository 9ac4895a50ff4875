# trading_erp/core/currency.py
import logging
from typing import Dict, Optional

from trading_erp.exceptions import CurrencyRateError
from trading_erp.models import DEFAULT_LEDGER_CURRENCY

logger = logging.getLogger(__name__)

def resolve_rate(
    currency: str,
    rates: Dict[str, float],
    manual_rate: Optional[float] = None,
    ledger_currency: str = DEFAULT_LEDGER_CURRENCY,
    strict: bool = False
) -> float:
    """Find the rate that converts one unit of a currency to the ledger currency.

    Args:
        currency: Currency code of the amount
        rates: Rate table, currency code -> rate to the ledger currency
        manual_rate: Order level rate that overrides the table
        ledger_currency: Ledger currency code
        strict: Raise instead of falling back to 1 when no rate is known

    Returns:
        Conversion rate

    Raises:
        CurrencyRateError: In strict mode, when no usable rate exists
    """
    code = (currency or ledger_currency).upper()
    if code == ledger_currency.upper():
        return 1.0

    if manual_rate is not None:
        return float(manual_rate)

    rate = rates.get(code)
    if rate:
        return float(rate)

    if strict:
        raise CurrencyRateError(
            f"No exchange rate for {code}",
            details={'currency': code}
        )

    logger.warning(f"No exchange rate for {code}, using 1")
    return 1.0

def to_ledger(
    amount: float,
    currency: str,
    rates: Dict[str, float],
    manual_rate: Optional[float] = None,
    ledger_currency: str = DEFAULT_LEDGER_CURRENCY,
    strict: bool = False
) -> float:
    """Convert an amount to the ledger currency.

    Amounts already in the ledger currency are returned unchanged.
    """
    if (currency or ledger_currency).upper() == ledger_currency.upper():
        return amount
    return amount * resolve_rate(currency, rates, manual_rate, ledger_currency, strict)
