"""Inventory adjustment applied by the sale and refund pipelines."""

import logging

from pharmapos.database.base import Database
from pharmapos.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    insufficient_stock,
    product_not_found,
)

logger = logging.getLogger(__name__)


class InventoryAdjuster:
    """Apply signed quantity deltas to products.

    Sales pass a negative quantity delta, refunds a positive one. Each call is
    a single relative UPDATE, so concurrent adjustments of the same product
    never lose arithmetic.
    """

    def __init__(self, db: Database, allow_negative_stock: bool = True):
        """Initialize inventory adjuster.

        Args:
            db: Database instance
            allow_negative_stock: If False, decrements that would take a
                product below zero are refused
        """
        self.db = db
        self.allow_negative_stock = allow_negative_stock

    def adjust(self, product_id: int, delta_quantity: int, delta_sales_count: int = 0) -> None:
        """Apply a quantity and sales-count delta to one product.

        Raises:
            NotFoundError: If the product does not exist
            InsufficientStockError: If negative stock is disallowed and the
                decrement would overdraw the product
        """
        guard = delta_quantity < 0 and not self.allow_negative_stock
        rows = self.db.apply_product_delta(
            product_id,
            delta_quantity,
            delta_sales_count,
            require_non_negative=guard,
        )
        if rows:
            logger.debug(
                "Adjusted product %s by %+d (sales %+d)", product_id, delta_quantity, delta_sales_count
            )
            return

        # Zero rows: either no such product, or the stock guard refused it
        if guard and self.db.get_product(product_id) is not None:
            raise InsufficientStockError(insufficient_stock(product_id, -delta_quantity))
        raise NotFoundError(product_not_found(product_id))

    def sell(self, product_id: int, quantity: int) -> None:
        """Remove sold units and count them as sales."""
        self.adjust(product_id, -quantity, quantity)

    def restock(self, product_id: int, quantity: int) -> None:
        """Return units to stock without touching the sales counter."""
        self.adjust(product_id, quantity, 0)
