# trading_erp/services/settings_service.py
import logging
from dataclasses import replace
from typing import Dict, Optional

from trading_erp.exceptions import ValidationError
from trading_erp.models import Settings
from trading_erp.services.record_store import RecordStore
from trading_erp.utils.validation import validate_rates

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for company settings and the currency rate table."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.options = store.options

    def get_settings(self) -> Settings:
        return self.store.settings

    def rates(self) -> Dict[str, float]:
        """Rate table with the ledger currency pinned to 1."""
        return self.store.rate_table()

    def update_settings(
        self,
        company_name: Optional[str] = None,
        default_vat: Optional[float] = None,
        default_markup: Optional[float] = None
    ) -> Settings:
        """Update company wide defaults.

        Raises:
            ValidationError: Negative VAT or markup
        """
        errors = {}
        if default_vat is not None and default_vat < 0:
            errors['default_vat'] = 'VAT cannot be negative'
        if default_markup is not None and default_markup < 0:
            errors['default_markup'] = 'Markup cannot be negative'
        if errors:
            raise ValidationError("Invalid settings", code='INVALID_SETTINGS', details=errors)

        settings = self.store.settings
        changes = {}
        if company_name is not None:
            changes['company_name'] = company_name
        if default_vat is not None:
            changes['default_vat'] = float(default_vat)
        if default_markup is not None:
            changes['default_markup'] = float(default_markup)

        return self.store.save_settings(replace(settings, **changes))

    def set_rates(self, rates: Dict[str, float]) -> Settings:
        """Replace the whole rate table.

        The ledger currency is always 1 and is not stored.

        Raises:
            ValidationError: A non-positive rate
        """
        normalized = {code.strip().upper(): rate for code, rate in rates.items()}
        normalized.pop(self.options.currency.upper(), None)

        errors = validate_rates(normalized)
        if errors:
            raise ValidationError("Invalid currency rates", code='INVALID_RATES', details=errors)

        settings = replace(self.store.settings,
                           currency_rates={k: float(v) for k, v in normalized.items()})
        logger.info(f"Currency rates updated: {settings.currency_rates}")
        return self.store.save_settings(settings)

    def set_rate(self, currency: str, rate: float) -> Settings:
        """Add or change the rate of one currency."""
        rates = dict(self.store.settings.currency_rates)
        rates[currency.strip().upper()] = rate
        return self.set_rates(rates)

    def remove_rate(self, currency: str) -> Settings:
        rates = dict(self.store.settings.currency_rates)
        rates.pop(currency.strip().upper(), None)
        return self.set_rates(rates)
