"""Ledger domain service (read side)."""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from pharmapos.database.base import Database
from pharmapos.domain.entities import LedgerEntry


class LedgerService:
    """Queries over the append-only ledger.

    Entries are only ever written by the sale and refund pipelines.
    """

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> list[LedgerEntry]:
        """List ledger entries.

        Args:
            start_date: Optional first day to include
            end_date: Optional last day to include (whole day)
            category: Optional ledger category (e.g. 'sales', 'refunds')
            reference: Optional exact reference string
        """
        start = datetime.combine(start_date, time.min) if start_date else None
        end = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None
        return self.db.list_ledger_entries(
            start_date=start, end_date=end, category=category, reference=reference
        )

    def entries_for_transaction(self, transaction_id: int) -> list[LedgerEntry]:
        """All entries posted for a transaction (its sale and any refund)."""
        return self.db.list_ledger_entries(transaction_id=transaction_id)

    def transaction_balance(self, transaction_id: int) -> Decimal:
        """Net cash effect of a transaction according to the ledger."""
        return sum(
            (entry.amount for entry in self.entries_for_transaction(transaction_id)),
            Decimal("0"),
        )

    @staticmethod
    def total(entries: list[LedgerEntry]) -> Decimal:
        """Sum of entry amounts."""
        return sum((entry.amount for entry in entries), Decimal("0"))
