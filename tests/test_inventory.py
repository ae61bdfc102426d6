"""Tests for InventoryAdjuster."""

import pytest

from pharmapos.domain.errors import InsufficientStockError, NotFoundError
from pharmapos.domain.inventory import InventoryAdjuster


def test_sell_decrements_and_counts(inventory, temp_db, sample_product):
    inventory.sell(sample_product.id, 4)

    product = temp_db.get_product(sample_product.id)
    assert product.quantity == 16
    assert product.sales_count == 4


def test_restock_leaves_sales_count(inventory, temp_db, sample_product):
    inventory.restock(sample_product.id, 5)

    product = temp_db.get_product(sample_product.id)
    assert product.quantity == 25
    assert product.sales_count == 0


def test_adjust_is_relative(inventory, temp_db, sample_product):
    """Adjustments compose from the stored value, not a value read earlier."""
    stale = temp_db.get_product(sample_product.id)
    inventory.sell(sample_product.id, 2)
    inventory.sell(stale.id, 3)

    assert temp_db.get_product(sample_product.id).quantity == 15


def test_unknown_product(inventory):
    with pytest.raises(NotFoundError, match="Product 404 not found"):
        inventory.sell(404, 1)


def test_negative_stock_allowed(inventory, temp_db, sample_product):
    inventory.sell(sample_product.id, 25)
    assert temp_db.get_product(sample_product.id).quantity == -5


def test_negative_stock_refused(temp_db, sample_product):
    strict = InventoryAdjuster(temp_db, allow_negative_stock=False)

    strict.sell(sample_product.id, 20)
    with pytest.raises(InsufficientStockError):
        strict.sell(sample_product.id, 1)

    assert temp_db.get_product(sample_product.id).quantity == 0


def test_strict_restock_is_never_refused(temp_db, sample_product):
    strict = InventoryAdjuster(temp_db, allow_negative_stock=False)
    strict.restock(sample_product.id, 1)
    assert temp_db.get_product(sample_product.id).quantity == 21


def test_strict_unknown_product_is_not_found(temp_db):
    strict = InventoryAdjuster(temp_db, allow_negative_stock=False)
    with pytest.raises(NotFoundError):
        strict.sell(404, 1)
