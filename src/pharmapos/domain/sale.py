"""Sale commit pipeline.

A completed sale writes the transaction, its item snapshots, the inventory
decrements, the customer's aggregates and segment, and one ledger entry as a
single unit of work. Hold orders store the cart without any of the side
effects and post them later when the customer pays.
"""

import logging
from datetime import datetime, UTC
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from pharmapos.database.base import Database
from pharmapos.domain.entities import (
    LedgerCategory,
    SaleInput,
    SaleItemInput,
    SaleReceipt,
    Transaction as TransactionEntity,
    TransactionItem as TransactionItemEntity,
    TransactionStatus,
    UNCATEGORIZED,
    WALK_IN,
    WALK_IN_NAME,
)
from pharmapos.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    PersistenceError,
    SegmentUpdateError,
    ValidationError,
    customer_not_found,
    invalid_sale_fields,
    missing_sale_fields,
    product_not_found,
    store_failure,
    transaction_not_found,
    transaction_wrong_status,
)
from pharmapos.domain.inventory import InventoryAdjuster
from pharmapos.domain.segmentation import classify_customer

logger = logging.getLogger(__name__)

# One loyalty point per this much spend
LOYALTY_POINT_VALUE = Decimal("1000")

# Customer identifiers that mean "no customer record"
WALK_IN_SENTINELS = frozenset({WALK_IN, "walkin_customer", "", "0"})


def resolve_customer_id(customer_id: Optional[Union[int, str]]) -> Optional[int]:
    """Normalize a submitted customer reference; None means walk-in.

    Raises:
        ValidationError: If the reference is neither a sentinel nor an integer
    """
    if customer_id is None or customer_id == 0:
        return None
    if isinstance(customer_id, str):
        if customer_id.strip().lower() in WALK_IN_SENTINELS:
            return None
        try:
            return int(customer_id)
        except ValueError:
            raise ValidationError(
                invalid_sale_fields(["customer_id"]), invalid_fields=["customer_id"]
            ) from None
    return int(customer_id)


def loyalty_points_for(total: Decimal) -> int:
    """Points earned by a sale total (whole multiples of LOYALTY_POINT_VALUE)."""
    if total <= 0:
        return 0
    return int(Decimal(total) // LOYALTY_POINT_VALUE)


def validate_sale(sale: SaleInput, require_payment: bool = True) -> None:
    """Check a sale for missing or malformed fields before any store access.

    Args:
        sale: Submitted sale
        require_payment: If False, amount_paid may be absent (hold orders)

    Raises:
        ValidationError: Listing every missing and invalid field
    """
    missing: list[str] = []
    invalid: list[str] = []

    required = ["subtotal", "total"]
    if require_payment:
        required.append("amount_paid")
    required += ["cashier_id", "cashier_name"]
    for name in required:
        if not getattr(sale, name):
            missing.append(name)
    if not sale.items:
        missing.append("items")

    for name in ("subtotal", "total", "amount_paid", "discount", "tax", "change_amount"):
        value = getattr(sale, name)
        if value is not None and value < 0:
            invalid.append(name)

    for index, item in enumerate(sale.items or ()):
        prefix = f"items[{index}]"
        if item.product_id is None:
            missing.append(f"{prefix}.product_id")
        if item.unit_price is None:
            missing.append(f"{prefix}.unit_price")
        elif item.unit_price < 0:
            invalid.append(f"{prefix}.unit_price")
        if item.quantity is None:
            missing.append(f"{prefix}.quantity")
        elif item.quantity <= 0 or int(item.quantity) != item.quantity:
            invalid.append(f"{prefix}.quantity")

    if missing:
        raise ValidationError(missing_sale_fields(missing), missing_fields=missing, invalid_fields=invalid)
    if invalid:
        raise ValidationError(invalid_sale_fields(invalid), invalid_fields=invalid)


class SaleService:
    """Service for committing, holding and reading sales."""

    def __init__(
        self,
        db: Database,
        inventory: Optional[InventoryAdjuster] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize sale service.

        Args:
            db: Database instance
            inventory: Inventory adjuster (defaults to one that allows negative stock)
            clock: Returns the current time; defaults to UTC now
        """
        self.db = db
        self.inventory = inventory or InventoryAdjuster(db)
        self.clock = clock or (lambda: datetime.now(UTC))

    # Entry points
    def commit_sale(self, sale: SaleInput) -> SaleReceipt:
        """Commit a completed sale as one atomic unit.

        Args:
            sale: Submitted sale

        Returns:
            Generated transaction ID, order number and reference number

        Raises:
            ValidationError: If required fields are missing or malformed
            NotFoundError: If a referenced product does not exist
            InsufficientStockError: If negative stock is disallowed and an item overdraws
            PersistenceError: If the store fails; nothing is written
        """
        validate_sale(sale)
        customer_id = resolve_customer_id(sale.customer_id)
        customer_id, customer_name = self._resolve_customer(customer_id, sale.customer_name)
        now = self.clock()

        def _op() -> SaleReceipt:
            transaction_id = self._next_transaction_id(now)
            reference = sale.reference_number or f"REF-{transaction_id}"
            self.db.insert_transaction(
                self._transaction_row(
                    transaction_id,
                    reference,
                    sale,
                    customer_id,
                    customer_name,
                    TransactionStatus.COMPLETED,
                    now,
                )
            )
            for item in sale.items:
                self._insert_item(transaction_id, item)
                self.inventory.sell(item.product_id, int(item.quantity))

            self._post_completion(
                transaction_id=transaction_id,
                order_number=transaction_id,
                reference=reference,
                customer_id=customer_id,
                total=Decimal(sale.total),
                payment_type=sale.payment_type,
                description=f"Sale - Order #{transaction_id}",
                now=now,
            )
            return SaleReceipt(transaction_id, transaction_id, reference)

        receipt = self._run_atomically("sale commit", _op)
        logger.info(
            "Committed sale %s (%s) total %s for %s",
            receipt.transaction_id,
            receipt.reference_number,
            sale.total,
            customer_name,
        )
        return receipt

    def create_transaction(self, sale: SaleInput) -> SaleReceipt:
        """Alternate entry point for committing a sale; same pipeline as commit_sale."""
        return self.commit_sale(sale)

    def hold_sale(self, sale: SaleInput) -> SaleReceipt:
        """Park a cart for a registered customer without posting it.

        Items are stored, but inventory, customer aggregates and the ledger
        are left untouched until complete_held_sale is called.

        Raises:
            ValidationError: If fields are missing or the sale is for a walk-in
            NotFoundError: If the customer does not exist
        """
        validate_sale(sale, require_payment=False)
        customer_id = resolve_customer_id(sale.customer_id)
        if customer_id is None:
            raise ValidationError(
                "Hold orders require a registered customer", missing_fields=["customer_id"]
            )
        customer_id, customer_name = self._resolve_customer(
            customer_id, sale.customer_name, required=True
        )
        now = self.clock()

        def _op() -> SaleReceipt:
            transaction_id = self._next_transaction_id(now)
            reference = sale.reference_number or f"HOLD-{transaction_id}"
            row = self._transaction_row(
                transaction_id,
                reference,
                sale,
                customer_id,
                customer_name,
                TransactionStatus.ON_HOLD,
                now,
            )
            row["amount_paid"] = sale.amount_paid or Decimal("0")
            row["payment_type"] = sale.payment_type or "Due"
            self.db.insert_transaction(row)
            for item in sale.items:
                self._insert_item(transaction_id, item)
            return SaleReceipt(transaction_id, transaction_id, reference)

        receipt = self._run_atomically("hold order", _op)
        logger.info("Held order %s for customer %s", receipt.transaction_id, customer_id)
        return receipt

    def complete_held_sale(
        self,
        transaction_id: int,
        amount_paid: Decimal,
        change_amount: Decimal = Decimal("0"),
        payment_type: Optional[str] = None,
        payment_info: Optional[str] = None,
    ) -> SaleReceipt:
        """Take payment for a held order and post all of its side effects.

        Raises:
            ValidationError: If amount_paid is missing
            NotFoundError: If the transaction does not exist
            ConflictError: If the transaction is not on hold
            PersistenceError: If the store fails; nothing is written
        """
        if not amount_paid:
            raise ValidationError(missing_sale_fields(["amount_paid"]), missing_fields=["amount_paid"])
        held = self.require_transaction(transaction_id)
        if held.status != TransactionStatus.ON_HOLD:
            raise ConflictError(
                transaction_wrong_status(transaction_id, held.status.value, TransactionStatus.ON_HOLD.value)
            )
        now = self.clock()

        def _op() -> SaleReceipt:
            self.db.update_transaction_status(
                transaction_id,
                TransactionStatus.COMPLETED,
                {
                    "amount_paid": amount_paid,
                    "change_amount": change_amount or Decimal("0"),
                    "payment_type": payment_type,
                    "payment_info": payment_info or "",
                },
            )
            for item in self.db.list_transaction_items(transaction_id):
                self.inventory.sell(item.product_id, item.quantity)

            self._post_completion(
                transaction_id=transaction_id,
                order_number=held.order_number,
                reference=held.reference_number,
                customer_id=held.customer_id,
                total=held.total,
                payment_type=payment_type,
                description=f"Sale - Order #{held.order_number} (from hold)",
                now=now,
            )
            return SaleReceipt(transaction_id, held.order_number, held.reference_number)

        receipt = self._run_atomically("held order completion", _op)
        logger.info("Completed held order %s", transaction_id)
        return receipt

    # Queries
    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID."""
        return self.db.get_transaction(transaction_id)

    def require_transaction(self, transaction_id: int) -> TransactionEntity:
        """Get transaction by ID or raise NotFoundError."""
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def list_transactions(
        self,
        status: Optional[TransactionStatus] = None,
        customer_id: Optional[int] = None,
    ) -> list[TransactionEntity]:
        """List transactions, newest first."""
        return self.db.list_transactions(status=status, customer_id=customer_id)

    def get_items(self, transaction_id: int) -> list[TransactionItemEntity]:
        """List the item snapshots of a transaction."""
        return self.db.list_transaction_items(transaction_id)

    # Pipeline steps
    def _run_atomically(self, operation: str, op: Callable[[], SaleReceipt]) -> SaleReceipt:
        """Run op inside one unit of work, mapping store failures to PersistenceError."""
        try:
            with self.db.unit_of_work():
                return op()
        except DomainError as exc:
            logger.info("%s rolled back: %s", operation.capitalize(), exc)
            raise
        except Exception as exc:
            logger.exception("%s rolled back", operation.capitalize())
            raise PersistenceError(store_failure(operation, exc)) from exc

    def _next_transaction_id(self, now: datetime) -> int:
        """Seconds since epoch, bumped past the highest existing ID on collision."""
        candidate = int(now.timestamp())
        highest = self.db.get_max_transaction_id()
        if highest is not None and highest >= candidate:
            candidate = highest + 1
        return candidate

    def _resolve_customer(
        self, customer_id: Optional[int], submitted: Optional[str], required: bool = False
    ) -> tuple[Optional[int], str]:
        """Resolve the customer reference and name snapshot.

        Walk-ins never touch the customer store. An unknown customer is
        logged and the sale is recorded as a walk-in, unless required is set.
        """
        if customer_id is None:
            return None, submitted or WALK_IN_NAME
        customer = self.db.get_customer(customer_id)
        if customer is None:
            if required:
                raise NotFoundError(customer_not_found(customer_id))
            logger.warning(
                "%s; recording the sale without customer history", customer_not_found(customer_id)
            )
            return None, submitted or WALK_IN_NAME
        return customer_id, submitted or customer.name

    def _transaction_row(
        self,
        transaction_id: int,
        reference: str,
        sale: SaleInput,
        customer_id: Optional[int],
        customer_name: str,
        status: TransactionStatus,
        now: datetime,
    ) -> dict:
        return {
            "id": transaction_id,
            "order_number": transaction_id,
            "reference_number": reference,
            "customer_id": customer_id,
            "customer_name": customer_name,
            "status": status,
            "subtotal": sale.subtotal,
            "discount": sale.discount or Decimal("0"),
            "tax": sale.tax or Decimal("0"),
            "total": sale.total,
            "amount_paid": sale.amount_paid,
            "change_amount": sale.change_amount or Decimal("0"),
            "payment_type": sale.payment_type,
            "payment_info": sale.payment_info or "",
            "till": sale.till or 1,
            "cashier_id": str(sale.cashier_id),
            "cashier_name": sale.cashier_name,
            "created_at": now,
        }

    def _insert_item(self, transaction_id: int, item: SaleItemInput) -> None:
        """Insert the item snapshot, filling name and category from the catalog if absent."""
        name = item.product_name
        category = item.category
        if not name or not category:
            product = self.db.get_product(item.product_id)
            if product is None:
                raise NotFoundError(product_not_found(item.product_id))
            name = name or product.name
            category = category or product.category
        self.db.insert_transaction_item(
            {
                "transaction_id": transaction_id,
                "product_id": item.product_id,
                "product_name": name,
                "price": item.unit_price,
                "quantity": int(item.quantity),
                "category": category or UNCATEGORIZED,
            }
        )

    def _post_completion(
        self,
        transaction_id: int,
        order_number: int,
        reference: str,
        customer_id: Optional[int],
        total: Decimal,
        payment_type: Optional[str],
        description: str,
        now: datetime,
    ) -> None:
        """Customer aggregates, segment and the sales ledger entry."""
        if customer_id is not None:
            self._record_customer_sale(customer_id, total, now)

        self.db.insert_ledger_entry(
            {
                "date": now,
                "description": description,
                "amount": total,
                "category": LedgerCategory.SALES.value,
                "payment_method": payment_type,
                "reference": reference,
                "transaction_id": transaction_id,
                "created_at": now,
            }
        )

    def _record_customer_sale(self, customer_id: int, total: Decimal, now: datetime) -> None:
        rows = self.db.apply_customer_sale(customer_id, total, loyalty_points_for(total), now)
        if not rows:
            logger.warning("%s; aggregates not updated", customer_not_found(customer_id))
            return

        customer = self.db.get_customer(customer_id)
        average = (customer.total_spent / customer.total_orders).quantize(Decimal("0.01"))
        self.db.write_customer_aggregates(customer_id, {"average_order_value": average})
        self._refresh_segment(customer_id, now)

    def _refresh_segment(self, customer_id: int, now: datetime) -> None:
        """Recompute the segment in a savepoint; failure never aborts the sale."""
        try:
            with self.db.savepoint():
                customer = self.db.get_customer(customer_id)
                segment = classify_customer(customer, now=now)
                self.db.update_customer_segment(customer_id, segment)
        except Exception as exc:
            error = SegmentUpdateError(f"Segment update failed for customer {customer_id}: {exc}")
            logger.warning("%s (non-critical)", error)
            return
        logger.info("Customer %s segment is now %s", customer_id, segment.value)


def build_sale_input(
    items: Iterable[SaleItemInput],
    amount_paid: Optional[Decimal],
    cashier_id: Optional[str],
    cashier_name: Optional[str],
    discount: Decimal = Decimal("0"),
    tax: Decimal = Decimal("0"),
    **kwargs,
) -> SaleInput:
    """Build a SaleInput whose subtotal, total and change are derived from the items.

    total = subtotal - discount + tax; change is what was paid above total.
    """
    items = tuple(items)
    subtotal = sum(
        (Decimal(item.unit_price) * int(item.quantity) for item in items
         if item.unit_price is not None and item.quantity is not None),
        Decimal("0"),
    )
    total = subtotal - (discount or Decimal("0")) + (tax or Decimal("0"))
    change = Decimal("0")
    if amount_paid is not None and amount_paid > total:
        change = amount_paid - total
    return SaleInput(
        subtotal=subtotal,
        total=total,
        amount_paid=amount_paid,
        cashier_id=cashier_id,
        cashier_name=cashier_name,
        items=items,
        discount=discount or Decimal("0"),
        tax=tax or Decimal("0"),
        change_amount=change,
        **kwargs,
    )
