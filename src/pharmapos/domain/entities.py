"""Domain model entities for pharmapos.

These are pure data classes representing business concepts, independent of
database schema. Store rows are mapped onto them at the database boundary so
the pipelines never handle loosely-typed rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

WALK_IN = "walk-in"
WALK_IN_NAME = "Walk-in Customer"
UNCATEGORIZED = "Uncategorized"


class Segment(str, Enum):
    """Customer marketing segment."""

    NEW = "new"
    REGULAR = "regular"
    LOYAL = "loyal"
    VIP = "vip"
    INACTIVE = "inactive"


class TransactionStatus(str, Enum):
    """Lifecycle state of a sale transaction."""

    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    VOIDED = "voided"


class LedgerCategory(str, Enum):
    """Ledger categories posted by the sale pipelines."""

    SALES = "sales"
    REFUNDS = "refunds"


@dataclass(frozen=True)
class Product:
    """Catalog product domain entity."""

    id: int
    name: str
    category: str
    price: Decimal
    cost_price: Optional[Decimal]
    quantity: int
    reorder_level: int
    sales_count: int
    barcode: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_level


@dataclass(frozen=True)
class Customer:
    """Customer domain entity with running purchase aggregates."""

    id: int
    name: str
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    total_spent: Decimal
    total_orders: int
    loyalty_points: int
    last_order_date: Optional[datetime]
    average_order_value: Decimal
    segment: Segment
    created_at: datetime
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transaction:
    """Sale transaction domain entity."""

    id: int
    order_number: int
    reference_number: str
    customer_id: Optional[int]
    customer_name: str
    status: TransactionStatus
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    amount_paid: Decimal
    change_amount: Decimal
    payment_type: Optional[str]
    payment_info: Optional[str]
    till: int
    cashier_id: str
    cashier_name: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_walk_in(self) -> bool:
        return self.customer_id is None


@dataclass(frozen=True)
class TransactionItem:
    """Historical snapshot of one sold product line."""

    id: int
    transaction_id: int
    product_id: int
    product_name: str
    price: Decimal
    quantity: int
    category: str

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class LedgerEntry:
    """Immutable bookkeeping record of a cash-affecting event."""

    id: int
    date: datetime
    description: str
    amount: Decimal
    category: str
    payment_method: Optional[str]
    reference: str
    transaction_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class SaleItemInput:
    """One cart line as submitted by the till."""

    product_id: Optional[int] = None
    unit_price: Optional[Decimal] = None
    quantity: Optional[int] = None
    product_name: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class SaleInput:
    """A sale as submitted by the till, before validation.

    Required fields are typed Optional so that validation can report every
    missing field at once instead of failing on construction.
    """

    subtotal: Optional[Decimal] = None
    total: Optional[Decimal] = None
    amount_paid: Optional[Decimal] = None
    cashier_id: Optional[str] = None
    cashier_name: Optional[str] = None
    items: tuple[SaleItemInput, ...] = field(default_factory=tuple)
    customer_id: Optional[Union[int, str]] = None
    customer_name: Optional[str] = None
    discount: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    change_amount: Decimal = Decimal("0")
    payment_type: Optional[str] = None
    payment_info: Optional[str] = None
    till: int = 1
    reference_number: Optional[str] = None


@dataclass(frozen=True)
class SaleReceipt:
    """Identifiers generated for a committed sale."""

    transaction_id: int
    order_number: int
    reference_number: str


@dataclass(frozen=True)
class RefundItem:
    """Explicit quantity to restock for one product during a partial refund."""

    product_id: int
    quantity: int
