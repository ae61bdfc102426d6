"""Customer domain service."""

import logging
from datetime import datetime, UTC
from typing import Callable, Optional

from pharmapos.database.base import Database
from pharmapos.domain.entities import Customer as CustomerEntity, Segment
from pharmapos.domain.errors import (
    NotFoundError,
    ValidationError,
    customer_not_found,
    invalid_segment,
)
from pharmapos.domain.segmentation import VALID_SEGMENTS, classify_customer

logger = logging.getLogger(__name__)


def parse_segment(value: str) -> Segment:
    """Parse a segment name.

    Raises:
        ValidationError: If the name is not one of the known segments
    """
    if isinstance(value, Segment):
        return value
    try:
        return Segment(str(value).strip().lower())
    except ValueError:
        raise ValidationError(invalid_segment(value, VALID_SEGMENTS), invalid_fields=["segment"]) from None


class CustomerService:
    """Service for managing customers and their segments."""

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None):
        """Initialize customer service.

        Args:
            db: Database instance
            clock: Returns the current time; defaults to UTC now
        """
        self.db = db
        self.clock = clock or (lambda: datetime.now(UTC))

    def create_customer(
        self,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
    ) -> int:
        """Create a customer in the ``new`` segment.

        Returns:
            Customer ID

        Raises:
            ValidationError: If name is empty
        """
        if not name or not name.strip():
            raise ValidationError("Customer name is required", missing_fields=["name"])
        return self.db.create_customer(name=name.strip(), phone=phone, email=email, address=address)

    def get_customer(self, customer_id: int) -> Optional[CustomerEntity]:
        """Get customer by ID."""
        return self.db.get_customer(customer_id)

    def require_customer(self, customer_id: int) -> CustomerEntity:
        """Get customer by ID or raise NotFoundError."""
        customer = self.db.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(customer_not_found(customer_id))
        return customer

    def list_customers(self, segment: Optional[str] = None) -> list[CustomerEntity]:
        """List customers, optionally only one segment."""
        return self.db.list_customers(segment=parse_segment(segment) if segment else None)

    def set_segment(self, customer_id: int, segment: str) -> CustomerEntity:
        """Manually override a customer's segment.

        The override holds until the customer's next sale recomputes it.

        Raises:
            ValidationError: If the segment is unknown
            NotFoundError: If the customer does not exist
        """
        parsed = parse_segment(segment)
        self.require_customer(customer_id)
        self.db.update_customer_segment(customer_id, parsed)
        logger.info("Customer %s segment manually set to %s", customer_id, parsed.value)
        return self.require_customer(customer_id)

    def recalculate_segment(self, customer_id: int) -> tuple[Segment, Segment]:
        """Recompute one customer's segment from its stored aggregates.

        Returns:
            Tuple of (previous segment, current segment)

        Raises:
            NotFoundError: If the customer does not exist
        """
        customer = self.require_customer(customer_id)
        segment = classify_customer(customer, now=self.clock())
        if segment != customer.segment:
            self.db.update_customer_segment(customer_id, segment)
            logger.info(
                "Customer %s segment changed from %s to %s",
                customer_id,
                customer.segment.value,
                segment.value,
            )
        return customer.segment, segment

    def recalculate_all_segments(self) -> tuple[int, int]:
        """Recompute every customer's segment, writing only those that changed.

        Returns:
            Tuple of (updated count, total customers)
        """
        now = self.clock()
        customers = self.db.list_customers()
        updated = 0
        with self.db.unit_of_work():
            for customer in customers:
                segment = classify_customer(customer, now=now)
                if segment != customer.segment:
                    self.db.update_customer_segment(customer.id, segment)
                    updated += 1
                    logger.info(
                        "Customer %s (%s) moved from %s to %s",
                        customer.name,
                        customer.id,
                        customer.segment.value,
                        segment.value,
                    )
        logger.info("Recalculated segments: %d of %d updated", updated, len(customers))
        return updated, len(customers)

    def adjust_loyalty_points(
        self, customer_id: int, points: int, subtract: bool = False
    ) -> CustomerEntity:
        """Add or redeem loyalty points.

        Raises:
            ValidationError: If points is not positive or exceeds the balance on redemption
            NotFoundError: If the customer does not exist
        """
        if points is None or points <= 0:
            raise ValidationError("Points must be a positive number", invalid_fields=["points"])
        customer = self.require_customer(customer_id)
        if subtract:
            if customer.loyalty_points < points:
                raise ValidationError(
                    f"Insufficient points: customer only has {customer.loyalty_points} points",
                    invalid_fields=["points"],
                )
            balance = customer.loyalty_points - points
        else:
            balance = customer.loyalty_points + points
        self.db.write_customer_aggregates(customer_id, {"loyalty_points": balance})
        return self.require_customer(customer_id)
