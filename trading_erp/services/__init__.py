from .record_store import RecordStore
from .catalog_service import CatalogService
from .order_service import OrderService
from .movement_service import MovementService
from .payment_service import PaymentService
from .recycle_bin_service import RecycleBinService
from .settings_service import SettingsService
from .reporting_service import ReportingService

__all__ = [
    'RecordStore',
    'CatalogService',
    'OrderService',
    'MovementService',
    'PaymentService',
    'RecycleBinService',
    'SettingsService',
    'ReportingService'
]
