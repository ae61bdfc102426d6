"""Refund / reversal pipeline."""

import logging
from datetime import datetime, UTC
from typing import Callable, Optional, Sequence

from pharmapos.database.base import Database
from pharmapos.domain.entities import LedgerCategory, RefundItem, TransactionStatus
from pharmapos.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    store_failure,
    transaction_already_voided,
    transaction_not_found,
    transaction_wrong_status,
)
from pharmapos.domain.inventory import InventoryAdjuster

logger = logging.getLogger(__name__)


def refund_reference(transaction_id: int) -> str:
    """Ledger reference for the refund of a transaction."""
    return f"REFUND-TXN-{transaction_id}"


class RefundService:
    """Service for voiding completed sales.

    A refund flips the transaction to ``voided``, puts stock back and posts
    one negative ledger entry. The original rows are never deleted. Customer
    aggregates and segment are left as they were.
    """

    def __init__(
        self,
        db: Database,
        inventory: Optional[InventoryAdjuster] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize refund service.

        Args:
            db: Database instance
            inventory: Inventory adjuster (defaults to one that allows negative stock)
            clock: Returns the current time; defaults to UTC now
        """
        self.db = db
        self.inventory = inventory or InventoryAdjuster(db)
        self.clock = clock or (lambda: datetime.now(UTC))

    def reverse_sale(
        self,
        transaction_id: int,
        reason: Optional[str] = None,
        item_overrides: Optional[Sequence[RefundItem]] = None,
    ) -> None:
        """Refund a completed transaction.

        Args:
            transaction_id: Transaction to refund
            reason: Optional reason, appended to the ledger description
            item_overrides: Quantities to restock for a partial refund; when
                omitted every stored item is restocked in full

        Raises:
            NotFoundError: If the transaction does not exist
            ConflictError: If the transaction is already voided or still on hold
            ValidationError: If an override quantity is not positive
            PersistenceError: If the store fails; nothing is written
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if transaction.status == TransactionStatus.VOIDED:
            raise ConflictError(transaction_already_voided(transaction_id))
        if transaction.status != TransactionStatus.COMPLETED:
            raise ConflictError(
                transaction_wrong_status(
                    transaction_id, transaction.status.value, TransactionStatus.COMPLETED.value
                )
            )

        if item_overrides:
            bad = [o.product_id for o in item_overrides if o.quantity is None or o.quantity <= 0]
            if bad:
                raise ValidationError(
                    f"Refund quantities must be positive (products: {', '.join(map(str, bad))})",
                    invalid_fields=["items"],
                )

        now = self.clock()
        description = f"Refund - Order #{transaction.order_number}"
        if reason:
            description += f" - {reason}"

        try:
            with self.db.unit_of_work():
                self.db.update_transaction_status(transaction_id, TransactionStatus.VOIDED)

                if item_overrides:
                    restock = [(o.product_id, o.quantity) for o in item_overrides]
                else:
                    restock = [
                        (item.product_id, item.quantity)
                        for item in self.db.list_transaction_items(transaction_id)
                    ]
                for product_id, quantity in restock:
                    self.inventory.restock(product_id, quantity)

                self.db.insert_ledger_entry(
                    {
                        "date": now,
                        "description": description,
                        "amount": -transaction.total,
                        "category": LedgerCategory.REFUNDS.value,
                        "payment_method": transaction.payment_type,
                        "reference": refund_reference(transaction_id),
                        "transaction_id": transaction_id,
                        "created_at": now,
                    }
                )
        except DomainError as exc:
            logger.info("Refund of %s rolled back: %s", transaction_id, exc)
            raise
        except Exception as exc:
            logger.exception("Refund of %s rolled back", transaction_id)
            raise PersistenceError(store_failure("refund", exc)) from exc

        logger.info("Refunded transaction %s (%s)", transaction_id, -transaction.total)
