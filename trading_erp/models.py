# trading_erp/models.py
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple
import enum

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

DEFAULT_LEDGER_CURRENCY = 'AZN'


class Collection(enum.Enum):
    """Named record collections held by the record store.

    Values double as the storage keys of each collection.
    """
    PRODUCTS = 'products'
    WAREHOUSES = 'warehouses'
    SUPPLIERS = 'suppliers'
    CUSTOMERS = 'customers'
    PURCHASE_ORDERS = 'purchase_orders'
    SELL_ORDERS = 'sell_orders'
    PRODUCT_MOVEMENTS = 'product_movements'
    INCOMING_PAYMENTS = 'incoming_payments'
    OUTGOING_PAYMENTS = 'outgoing_payments'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'Collection':
        """Create a Collection from its storage key.

        Raises:
            ValueError if the key is not a known collection
        """
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(c.value for c in cls)
            raise ValueError(f"Invalid collection: {value}. Valid values are: {valid}")


class PurchaseOrderStatus(enum.Enum):
    DRAFT = 'Draft'
    ORDERED = 'Ordered'
    RECEIVED = 'Received'

    def __str__(self):
        return self.value


class SellOrderStatus(enum.Enum):
    DRAFT = 'Draft'
    CONFIRMED = 'Confirmed'
    SHIPPED = 'Shipped'

    def __str__(self):
        return self.value


class WarehouseType(enum.Enum):
    MAIN = 'Main'
    SECONDARY = 'Secondary'

    def __str__(self):
        return self.value


class PaymentCategory(enum.Enum):
    PRODUCTS = 'products'
    TRANSPORTATION_FEES = 'transportation_fees'
    CUSTOM_FEES = 'custom_fees'
    ADDITIONAL_FEES = 'additional_fees'
    MANUAL = 'manual'

    def __str__(self):
        return self.value


def _encode(value: Any) -> Any:
    """Turn a record attribute into a JSON compatible value."""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if is_dataclass(value):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _encode(v) for k, v in value.items()}
    return value


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


class RecordMixin:
    """Serialization shared by every stored record."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert the record to a JSON compatible dictionary."""
        return {f.name: _encode(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class Product(RecordMixin):
    id: int = 0
    name: str = ''
    sku: str = ''
    category: str = ''
    description: str = ''
    stock: Dict[int, float] = field(default_factory=dict)
    min_stock: float = 0
    average_landed_cost: float = 0.0
    image_url: str = ''

    @property
    def total_stock(self) -> float:
        """Sum of on-hand quantities over all warehouses."""
        return sum(self.stock.values())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        # JSON object keys are strings, warehouse ids are ints
        stock = {int(k): float(v) for k, v in (data.get('stock') or {}).items()}
        return cls(
            id=int(data.get('id', 0)),
            name=data.get('name', ''),
            sku=data.get('sku', ''),
            category=data.get('category', ''),
            description=data.get('description', ''),
            stock=stock,
            min_stock=data.get('min_stock', 0),
            average_landed_cost=float(data.get('average_landed_cost', 0.0)),
            image_url=data.get('image_url', '')
        )


@dataclass(frozen=True)
class Warehouse(RecordMixin):
    id: int = 0
    name: str = ''
    location: str = ''
    type: WarehouseType = WarehouseType.SECONDARY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Warehouse':
        return cls(
            id=int(data.get('id', 0)),
            name=data.get('name', ''),
            location=data.get('location', ''),
            type=WarehouseType(data.get('type', WarehouseType.SECONDARY.value))
        )


@dataclass(frozen=True)
class Supplier(RecordMixin):
    id: int = 0
    name: str = ''
    contact_person: str = ''
    email: str = ''
    phone: str = ''
    address: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Supplier':
        return cls(**{f.name: data.get(f.name, f.default) for f in fields(cls)})


@dataclass(frozen=True)
class Customer(RecordMixin):
    id: int = 0
    name: str = ''
    contact_person: str = ''
    email: str = ''
    phone: str = ''
    address: str = ''
    default_warehouse_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        values = {f.name: data.get(f.name, f.default) for f in fields(cls)}
        values['default_warehouse_id'] = _optional_int(values['default_warehouse_id'])
        return cls(**values)


@dataclass(frozen=True)
class PurchaseOrderItem(RecordMixin):
    product_id: int = 0
    qty: float = 0
    price: float = 0.0
    currency: str = DEFAULT_LEDGER_CURRENCY
    landed_cost_per_unit: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PurchaseOrderItem':
        return cls(
            product_id=int(data.get('product_id', 0)),
            qty=data.get('qty', 0),
            price=float(data.get('price', 0.0)),
            currency=data.get('currency', DEFAULT_LEDGER_CURRENCY),
            landed_cost_per_unit=float(data.get('landed_cost_per_unit', 0.0))
        )


@dataclass(frozen=True)
class PurchaseOrder(RecordMixin):
    id: int = 0
    supplier_id: int = 0
    warehouse_id: int = 0
    order_date: Optional[date] = None
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    items: Tuple[PurchaseOrderItem, ...] = ()
    currency: str = DEFAULT_LEDGER_CURRENCY
    exchange_rate: Optional[float] = None
    transportation_fees: float = 0.0
    transportation_fees_currency: str = DEFAULT_LEDGER_CURRENCY
    custom_fees: float = 0.0
    custom_fees_currency: str = DEFAULT_LEDGER_CURRENCY
    additional_fees: float = 0.0
    additional_fees_currency: str = DEFAULT_LEDGER_CURRENCY
    total: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PurchaseOrder':
        return cls(
            id=int(data.get('id', 0)),
            supplier_id=int(data.get('supplier_id', 0)),
            warehouse_id=int(data.get('warehouse_id', 0)),
            order_date=_parse_date(data.get('order_date')),
            status=PurchaseOrderStatus(data.get('status', PurchaseOrderStatus.DRAFT.value)),
            items=tuple(PurchaseOrderItem.from_dict(i) for i in data.get('items', [])),
            currency=data.get('currency', DEFAULT_LEDGER_CURRENCY),
            exchange_rate=_optional_float(data.get('exchange_rate')),
            transportation_fees=float(data.get('transportation_fees', 0.0)),
            transportation_fees_currency=data.get('transportation_fees_currency', DEFAULT_LEDGER_CURRENCY),
            custom_fees=float(data.get('custom_fees', 0.0)),
            custom_fees_currency=data.get('custom_fees_currency', DEFAULT_LEDGER_CURRENCY),
            additional_fees=float(data.get('additional_fees', 0.0)),
            additional_fees_currency=data.get('additional_fees_currency', DEFAULT_LEDGER_CURRENCY),
            total=float(data.get('total', 0.0))
        )

    def fee_buckets(self) -> Tuple[Tuple[float, str], ...]:
        """Return the (amount, currency) pair of every fee bucket."""
        return (
            (self.transportation_fees, self.transportation_fees_currency),
            (self.custom_fees, self.custom_fees_currency),
            (self.additional_fees, self.additional_fees_currency),
        )


@dataclass(frozen=True)
class SellOrderItem(RecordMixin):
    product_id: int = 0
    qty: float = 0
    price: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SellOrderItem':
        return cls(
            product_id=int(data.get('product_id', 0)),
            qty=data.get('qty', 0),
            price=float(data.get('price', 0.0))
        )


@dataclass(frozen=True)
class SellOrder(RecordMixin):
    id: int = 0
    customer_id: int = 0
    warehouse_id: int = 0
    order_date: Optional[date] = None
    status: SellOrderStatus = SellOrderStatus.DRAFT
    items: Tuple[SellOrderItem, ...] = ()
    vat_percent: float = 0.0
    total: float = 0.0
    product_movement_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SellOrder':
        return cls(
            id=int(data.get('id', 0)),
            customer_id=int(data.get('customer_id', 0)),
            warehouse_id=int(data.get('warehouse_id', 0)),
            order_date=_parse_date(data.get('order_date')),
            status=SellOrderStatus(data.get('status', SellOrderStatus.DRAFT.value)),
            items=tuple(SellOrderItem.from_dict(i) for i in data.get('items', [])),
            vat_percent=float(data.get('vat_percent', 0.0)),
            total=float(data.get('total', 0.0)),
            product_movement_id=_optional_int(data.get('product_movement_id'))
        )


@dataclass(frozen=True)
class MovementItem(RecordMixin):
    product_id: int = 0
    quantity: float = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MovementItem':
        return cls(product_id=int(data.get('product_id', 0)), quantity=data.get('quantity', 0))


@dataclass(frozen=True)
class ProductMovement(RecordMixin):
    id: int = 0
    source_warehouse_id: int = 0
    dest_warehouse_id: int = 0
    items: Tuple[MovementItem, ...] = ()
    date: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductMovement':
        return cls(
            id=int(data.get('id', 0)),
            source_warehouse_id=int(data.get('source_warehouse_id', 0)),
            dest_warehouse_id=int(data.get('dest_warehouse_id', 0)),
            items=tuple(MovementItem.from_dict(i) for i in data.get('items', [])),
            date=_parse_date(data.get('date'))
        )


@dataclass(frozen=True)
class Payment(RecordMixin):
    """Incoming (sell side) or outgoing (purchase side) payment.

    ``order_id`` of 0 marks a manual payment not linked to any order.
    """
    id: int = 0
    order_id: int = 0
    category: PaymentCategory = PaymentCategory.PRODUCTS
    amount: float = 0.0
    currency: str = DEFAULT_LEDGER_CURRENCY
    exchange_rate: Optional[float] = None
    date: Optional[date] = None
    method: str = ''
    manual_description: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        return cls(
            id=int(data.get('id', 0)),
            order_id=int(data.get('order_id', 0)),
            category=PaymentCategory(data.get('category', PaymentCategory.PRODUCTS.value)),
            amount=float(data.get('amount', 0.0)),
            currency=data.get('currency', DEFAULT_LEDGER_CURRENCY),
            exchange_rate=_optional_float(data.get('exchange_rate')),
            date=_parse_date(data.get('date')),
            method=data.get('method', ''),
            manual_description=data.get('manual_description', '')
        )


RECORD_TYPES = {
    Collection.PRODUCTS: Product,
    Collection.WAREHOUSES: Warehouse,
    Collection.SUPPLIERS: Supplier,
    Collection.CUSTOMERS: Customer,
    Collection.PURCHASE_ORDERS: PurchaseOrder,
    Collection.SELL_ORDERS: SellOrder,
    Collection.PRODUCT_MOVEMENTS: ProductMovement,
    Collection.INCOMING_PAYMENTS: Payment,
    Collection.OUTGOING_PAYMENTS: Payment,
}


@dataclass(frozen=True)
class RecycleBinEntry(RecordMixin):
    """A soft deleted record waiting to be restored or purged."""
    recycle_id: int
    original_id: int
    collection: Collection
    data: Dict[str, Any]
    deleted_at: datetime

    def record(self):
        """Rebuild the stored record exactly as it was deleted."""
        return RECORD_TYPES[self.collection].from_dict(self.data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecycleBinEntry':
        return cls(
            recycle_id=int(data['recycle_id']),
            original_id=int(data['original_id']),
            collection=Collection.from_string(data['collection']),
            data=dict(data.get('data') or {}),
            deleted_at=_parse_datetime(data.get('deleted_at'))
        )


@dataclass(frozen=True)
class Settings(RecordMixin):
    company_name: str = ''
    default_vat: float = 18.0
    default_markup: float = 70.0
    currency_rates: Dict[str, float] = field(default_factory=dict)

    def rate_table(self, ledger_currency: str) -> Dict[str, float]:
        """Return the currency rates with the ledger currency pinned to 1."""
        rates = {code.upper(): float(rate) for code, rate in self.currency_rates.items()}
        rates[ledger_currency.upper()] = 1.0
        return rates

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        return cls(
            company_name=data.get('company_name', ''),
            default_vat=float(data.get('default_vat', 18.0)),
            default_markup=float(data.get('default_markup', 70.0)),
            currency_rates={k.upper(): float(v) for k, v in (data.get('currency_rates') or {}).items()}
        )


@dataclass(frozen=True)
class LedgerOptions:
    """Ledger behaviour switches read from the LEDGER config section."""
    currency: str = DEFAULT_LEDGER_CURRENCY
    strict_currency_rates: bool = False
    clamp_negative_stock: bool = True

    @classmethod
    def from_config(cls, ledger_config: Dict[str, Any]) -> 'LedgerOptions':
        return cls(
            currency=ledger_config.get('currency', DEFAULT_LEDGER_CURRENCY),
            strict_currency_rates=ledger_config.get('strict_currency_rates', False),
            clamp_negative_stock=ledger_config.get('clamp_negative_stock', True)
        )


class KeyValueEntry(Base):
    __tablename__ = 'kv_store'

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<KeyValueEntry(key='{self.key}')>"
