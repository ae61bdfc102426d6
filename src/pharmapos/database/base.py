"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from pharmapos.domain.entities import (
    Customer,
    LedgerEntry,
    Product,
    Segment,
    Transaction,
    TransactionItem,
    TransactionStatus,
)


class Database(ABC):
    """Abstract database interface for pharmapos.

    Every write method commits on its own when called outside a unit of work.
    Inside ``unit_of_work()`` writes are only flushed, and the whole group
    commits or rolls back together when the block exits.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Unit of work
    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group writes into one atomic transaction.

        Commits when the block exits normally; rolls back every write made
        inside the block and re-raises when it exits with an exception.
        """
        pass

    @abstractmethod
    def savepoint(self) -> AbstractContextManager[None]:
        """Nested scope whose writes can roll back without aborting the outer unit."""
        pass

    # Product operations
    @abstractmethod
    def create_product(
        self,
        name: str,
        price: Decimal,
        quantity: int = 0,
        category: str = "Uncategorized",
        cost_price: Optional[Decimal] = None,
        reorder_level: int = 0,
        barcode: Optional[str] = None,
    ) -> int:
        """Create a product. Returns product ID."""
        pass

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID."""
        pass

    @abstractmethod
    def list_products(self, category: Optional[str] = None) -> list[Product]:
        """List products, optionally filtered by category."""
        pass

    @abstractmethod
    def apply_product_delta(
        self,
        product_id: int,
        quantity_delta: int,
        sales_delta: int,
        require_non_negative: bool = False,
    ) -> int:
        """Apply relative quantity and sales-count deltas. Returns rows affected.

        Args:
            require_non_negative: If True, the update only applies when the
                resulting quantity is not negative.
        """
        pass

    # Customer operations
    @abstractmethod
    def create_customer(
        self,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
    ) -> int:
        """Create a customer. Returns customer ID."""
        pass

    @abstractmethod
    def get_customer(self, customer_id: int) -> Optional[Customer]:
        """Get customer by ID."""
        pass

    @abstractmethod
    def list_customers(self, segment: Optional[Segment] = None) -> list[Customer]:
        """List customers, optionally filtered by segment."""
        pass

    @abstractmethod
    def apply_customer_sale(
        self, customer_id: int, amount: Decimal, loyalty_points: int, order_date: datetime
    ) -> int:
        """Add one order to a customer's running aggregates. Returns rows affected."""
        pass

    @abstractmethod
    def write_customer_aggregates(self, customer_id: int, fields: dict[str, Any]) -> None:
        """Overwrite aggregate columns (total_spent, loyalty_points, ...) on a customer."""
        pass

    @abstractmethod
    def update_customer_segment(self, customer_id: int, segment: Segment) -> int:
        """Persist a customer's segment. Returns rows affected."""
        pass

    # Transaction operations
    @abstractmethod
    def get_max_transaction_id(self) -> Optional[int]:
        """Return the highest transaction ID, or None when there are none."""
        pass

    @abstractmethod
    def insert_transaction(self, row: dict[str, Any]) -> None:
        """Insert a transaction row with an explicit ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        status: Optional[TransactionStatus] = None,
        customer_id: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions, newest first."""
        pass

    @abstractmethod
    def update_transaction_status(
        self, transaction_id: int, status: TransactionStatus, fields: Optional[dict[str, Any]] = None
    ) -> int:
        """Set a transaction's status (and optional payment fields). Returns rows affected."""
        pass

    @abstractmethod
    def insert_transaction_item(self, row: dict[str, Any]) -> int:
        """Insert a transaction item snapshot. Returns item ID."""
        pass

    @abstractmethod
    def list_transaction_items(self, transaction_id: int) -> list[TransactionItem]:
        """List the items of a transaction in insertion order."""
        pass

    # Ledger operations
    @abstractmethod
    def insert_ledger_entry(self, row: dict[str, Any]) -> int:
        """Append a ledger entry. Returns entry ID."""
        pass

    @abstractmethod
    def list_ledger_entries(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        category: Optional[str] = None,
        reference: Optional[str] = None,
        transaction_id: Optional[int] = None,
    ) -> list[LedgerEntry]:
        """List ledger entries with optional filters, oldest first.

        Args:
            start_date: Inclusive lower bound on entry date
            end_date: Exclusive upper bound on entry date
            category: Ledger category filter
            reference: Exact reference string filter
            transaction_id: Linked transaction filter
        """
        pass
