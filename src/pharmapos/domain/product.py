"""Product catalog domain service."""

from decimal import Decimal
from typing import Optional

from pharmapos.database.base import Database
from pharmapos.domain.entities import Product as ProductEntity, UNCATEGORIZED
from pharmapos.domain.errors import NotFoundError, ValidationError, product_not_found


class ProductService:
    """Service for managing the product catalog."""

    def __init__(self, db: Database):
        """Initialize product service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_product(
        self,
        name: str,
        price: Decimal,
        quantity: int = 0,
        category: Optional[str] = None,
        cost_price: Optional[Decimal] = None,
        reorder_level: int = 0,
        barcode: Optional[str] = None,
    ) -> int:
        """Create a product.

        Args:
            name: Product name
            price: Unit selling price
            quantity: Opening stock
            category: Category name (defaults to Uncategorized)
            cost_price: Optional unit cost
            reorder_level: Stock level at or below which the product is low
            barcode: Optional barcode

        Returns:
            Product ID

        Raises:
            ValidationError: If name is empty or a price/level is negative
        """
        if not name or not name.strip():
            raise ValidationError("Product name is required", missing_fields=["name"])
        invalid = []
        if price is None or price < 0:
            invalid.append("price")
        if cost_price is not None and cost_price < 0:
            invalid.append("cost_price")
        if reorder_level < 0:
            invalid.append("reorder_level")
        if invalid:
            raise ValidationError(f"Invalid fields: {', '.join(invalid)}", invalid_fields=invalid)

        return self.db.create_product(
            name=name.strip(),
            price=price,
            quantity=quantity,
            category=category or UNCATEGORIZED,
            cost_price=cost_price,
            reorder_level=reorder_level,
            barcode=barcode,
        )

    def get_product(self, product_id: int) -> Optional[ProductEntity]:
        """Get product by ID."""
        return self.db.get_product(product_id)

    def require_product(self, product_id: int) -> ProductEntity:
        """Get product by ID or raise NotFoundError."""
        product = self.db.get_product(product_id)
        if product is None:
            raise NotFoundError(product_not_found(product_id))
        return product

    def list_products(self, category: Optional[str] = None) -> list[ProductEntity]:
        """List products, optionally filtered by category."""
        return self.db.list_products(category=category)

    def list_low_stock(self) -> list[ProductEntity]:
        """Products at or below their reorder level, emptiest first."""
        low = [p for p in self.db.list_products() if p.is_low_stock]
        return sorted(low, key=lambda p: (p.quantity, p.name))
